"""Tests for patch assembly, ordering and application."""

import json

import pytest
from configdiff import (
    Change,
    ChangeType,
    Operation,
    OperationType,
    PatchError,
    apply_patch,
    assemble,
    from_value,
    sort_changes,
)
from configdiff.patch import path_sort_key


def change(kind, path, old=None, new=None, from_path=None):
    return Change(
        type=kind,
        path=path,
        old_value=from_value(old) if old is not None else None,
        new_value=from_value(new) if new is not None else None,
        from_path=from_path
    )


class TestAssemble:
    """Test conversion of changes into operations."""

    def test_one_operation_per_change(self):
        """Test the change type to operation mapping."""
        patch = assemble([
            change(ChangeType.ADD, "/a", new=1),
            change(ChangeType.REMOVE, "/b", old=2),
            change(ChangeType.MODIFY, "/c", old=1, new=2),
        ])

        assert patch.to_list() == [
            {"op": "add", "path": "/a", "value": 1},
            {"op": "remove", "path": "/b"},
            {"op": "replace", "path": "/c", "value": 2},
        ]

    def test_move_without_content_change(self):
        """Test that an unchanged moved element is a single move."""
        element = {"id": 1, "v": "a"}
        patch = assemble([
            change(ChangeType.MOVE, "/items[1]", old=element, new=element, from_path="/items[0]")
        ])

        assert patch.to_list() == [{"op": "move", "from": "/items[0]", "path": "/items[1]"}]

    def test_move_with_content_change(self):
        """Test that a changed moved element gets a paired replace."""
        patch = assemble([
            change(
                ChangeType.MOVE, "/items[1]",
                old={"id": 1, "v": "a"}, new={"id": 1, "v": "b"},
                from_path="/items[0]"
            )
        ])

        assert [op.op for op in patch] == [OperationType.MOVE, OperationType.REPLACE]
        assert patch.operations[1].path == "/items[1]"
        assert patch.operations[1].value.to_value() == {"id": 1, "v": "b"}

    def test_stable_order(self):
        """Test that assembling with stable order sorts first."""
        patch = assemble([
            change(ChangeType.ADD, "/b", new=1),
            change(ChangeType.ADD, "/a", new=1),
        ], stable_order=True)

        assert [op.path for op in patch] == ["/a", "/b"]

    def test_keyed_add_uses_index(self):
        """Test that a keyed addition is placed by its index in the new array."""
        added = Change(ChangeType.ADD, "/items[id=3]", new_value=from_value({"id": 3}), index=0)
        patch = assemble([change(ChangeType.REMOVE, "/items[id=1]", old={"id": 1}), added])

        assert patch.to_list() == [
            {"op": "remove", "path": "/items[id=1]"},
            {"op": "add", "path": "/items[0]", "value": {"id": 3}},
        ]

    def test_keyed_add_in_nested_array(self):
        """Test index placement for an array below a keyed element."""
        added = Change(
            ChangeType.ADD, "/groups[name=g]/members[id=2]",
            new_value=from_value({"id": 2}), index=1
        )
        assert assemble([added]).to_list() == [
            {"op": "add", "path": "/groups[name=g]/members[1]", "value": {"id": 2}},
        ]

    def test_to_json(self):
        """Test JSON serialization of a patch."""
        patch = assemble([change(ChangeType.MODIFY, "/name", old="a", new="ü")])
        assert json.loads(patch.to_json(indent=2)) == [
            {"op": "replace", "path": "/name", "value": "ü"}
        ]
        assert "ü" in patch.to_json()


class TestOrdering:
    """Test deterministic change ordering."""

    def test_parents_before_children(self):
        """Test that a parent path sorts before its children."""
        assert path_sort_key("/a") < path_sort_key("/a/b")
        assert path_sort_key("/a/b") < path_sort_key("/ab")

    def test_numeric_indices(self):
        """Test numeric index ordering."""
        assert path_sort_key("/p[2]") < path_sort_key("/p[10]")
        assert path_sort_key("/p[10]") < path_sort_key("/p[id=1]")

    def test_ties_broken_by_change_type(self):
        """Test the tie-break on equal paths."""
        changes = [
            change(ChangeType.MOVE, "/p[0]", old=1, new=1, from_path="/p[2]"),
            change(ChangeType.MODIFY, "/p[0]", old=1, new=2),
            change(ChangeType.ADD, "/p[0]", new=1),
            change(ChangeType.REMOVE, "/p[0]", old=1),
        ]

        assert [c.type for c in sort_changes(changes)] == [
            ChangeType.REMOVE,
            ChangeType.ADD,
            ChangeType.MODIFY,
            ChangeType.MOVE,
        ]

    def test_sort_is_independent_of_input_order(self):
        """Test that any permutation sorts to the same sequence."""
        changes = [
            change(ChangeType.ADD, "/z", new=1),
            change(ChangeType.MODIFY, "/a[1]", old=1, new=2),
            change(ChangeType.REMOVE, "/a[0]/x", old=1),
            change(ChangeType.MOVE, "/m[0]", old=1, new=1, from_path="/m[1]"),
            change(ChangeType.MOVE, "/m[0]", old=2, new=2, from_path="/m[0]"),
        ]

        forward = [c.to_dict() for c in sort_changes(changes)]
        backward = [c.to_dict() for c in sort_changes(reversed(changes))]
        assert forward == backward
        assert [c["path"] for c in forward] == ["/a[0]/x", "/a[1]", "/m[0]", "/m[0]", "/z"]


class TestApplyPatch:
    """Test applying patches to plain documents."""

    def test_object_operations(self):
        """Test add, replace and remove on object members."""
        doc = {"a": 1, "b": 2}
        result = apply_patch(doc, [
            {"op": "add", "path": "/c", "value": {"x": [1]}},
            {"op": "replace", "path": "/a", "value": "one"},
            {"op": "remove", "path": "/b"},
        ])

        assert result == {"a": "one", "c": {"x": [1]}}
        assert doc == {"a": 1, "b": 2}

    def test_array_operations(self):
        """Test index operations with removes applied highest index first."""
        result = apply_patch({"p": [1, 2, 3, 4]}, [
            {"op": "remove", "path": "/p[1]"},
            {"op": "remove", "path": "/p[3]"},
            {"op": "replace", "path": "/p[0]", "value": 0},
        ])
        assert result == {"p": [0, 3]}

    def test_identity_operations(self):
        """Test set-mode identity paths."""
        doc = {"items": [{"id": 1, "v": "a"}, {"id": 2, "v": "b"}]}
        result = apply_patch(doc, [
            {"op": "replace", "path": "/items[id=2]/v", "value": "c"},
            {"op": "remove", "path": "/items[id=1]"},
            {"op": "add", "path": "/items[id=3]", "value": {"id": 3}},
        ])

        assert result == {"items": [{"id": 2, "v": "c"}, {"id": 3}]}

    def test_moves(self):
        """Test that moves are resolved against the original positions."""
        doc = {"items": ["a", "b", "c"]}
        result = apply_patch(doc, [
            Operation(OperationType.MOVE, "/items[2]", from_path="/items[0]"),
            Operation(OperationType.MOVE, "/items[0]", from_path="/items[2]"),
        ])
        assert result == {"items": ["c", "b", "a"]}

    def test_index_add_keeps_position(self):
        """Test that an element added at an index stays there after removes."""
        doc = {"items": [{"id": 1}, {"id": 2}]}
        result = apply_patch(doc, [
            {"op": "remove", "path": "/items[id=1]"},
            {"op": "add", "path": "/items[0]", "value": {"id": 3}},
        ])
        assert result == {"items": [{"id": 3}, {"id": 2}]}

    def test_index_adds_out_of_order(self):
        """Test index adds listed in a different order than their indices."""
        doc = {"items": [{"id": 1}, {"id": 2}, {"id": 3}]}
        result = apply_patch(doc, [
            {"op": "remove", "path": "/items[id=1]"},
            {"op": "remove", "path": "/items[id=3]"},
            {"op": "add", "path": "/items[2]", "value": {"id": 4}},
            {"op": "add", "path": "/items[0]", "value": {"id": 5}},
        ])
        assert result == {"items": [{"id": 5}, {"id": 2}, {"id": 4}]}

    def test_index_add_scalars(self):
        """Test scalar index adds, which must be in range."""
        assert apply_patch({"p": [1]}, [
            {"op": "add", "path": "/p[1]", "value": 2},
            {"op": "add", "path": "/p[0]", "value": 0},
        ]) == {"p": [0, 1, 2]}

        with pytest.raises(PatchError):
            apply_patch({"p": [1]}, [{"op": "add", "path": "/p[3]", "value": 2}])
        with pytest.raises(PatchError):
            apply_patch({"p": {}}, [{"op": "add", "path": "/p[0]", "value": 2}])

    def test_escaped_keys(self):
        """Test paths through keys containing slashes and brackets."""
        doc = {"metadata": {"annotations": {"kubernetes.io/change-cause": "v1", "a[0]": 1}}}
        result = apply_patch(doc, [
            {"op": "replace", "path": "/metadata/annotations/kubernetes.io~1change-cause", "value": "v2"},
            {"op": "remove", "path": "/metadata/annotations/a~20~3"},
            {"op": "add", "path": "/metadata/annotations/x~0y", "value": True},
        ])
        assert result == {"metadata": {"annotations": {"kubernetes.io/change-cause": "v2", "x~y": True}}}

    def test_root_replace(self):
        """Test replacing the whole document."""
        assert apply_patch({"a": 1}, [{"op": "replace", "path": "/", "value": [1]}]) == [1]

    def test_missing_key(self):
        """Test that removing a missing key fails."""
        with pytest.raises(PatchError) as exc_info:
            apply_patch({"a": 1}, [{"op": "remove", "path": "/b"}])
        assert exc_info.value.path == "/b"

    def test_missing_identity(self):
        """Test that an unknown identity fails."""
        with pytest.raises(PatchError):
            apply_patch({"items": []}, [{"op": "remove", "path": "/items[id=1]"}])

    def test_invalid_operation(self):
        """Test that malformed operations are rejected."""
        with pytest.raises(PatchError):
            apply_patch({}, [{"op": "copy", "path": "/a"}])
        with pytest.raises(PatchError):
            apply_patch({}, [{"path": "/a"}])

    def test_move_across_arrays(self):
        """Test that moves must stay within one array."""
        with pytest.raises(PatchError):
            apply_patch({"a": [1], "b": [2]}, [
                {"op": "move", "from": "/a[0]", "path": "/b[0]"},
            ])
