"""Tests for the configdiff command line interface."""

import io
import json

import pytest
from configdiff.cli import main, read_input


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user configuration files out of the tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


def write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return str(path)


class TestCompareFiles:
    """Test comparing two files."""

    def setup_method(self):
        self.old_doc = "name: web\nreplicas: 2\nstatus:\n  ready: 1\n"
        self.new_doc = "name: web\nreplicas: 3\nstatus:\n  ready: 2\n"

    def test_report_output(self, tmp_path, capsys):
        """Test the default report."""
        old = write(tmp_path / "old.yaml", self.old_doc)
        new = write(tmp_path / "new.yaml", self.new_doc)

        assert main([old, new]) == 0
        out = capsys.readouterr().out
        assert "Summary: ~2 modified (2 total)" in out
        assert "~ /replicas: 2 → 3" in out
        assert "~ /status/ready: 1 → 2" in out

    def test_exit_code(self, tmp_path):
        """Test --exit-code with and without changes."""
        old = write(tmp_path / "old.yaml", self.old_doc)
        new = write(tmp_path / "new.yaml", self.new_doc)

        assert main(["--exit-code", "-q", old, new]) == 1
        assert main(["--exit-code", "-q", old, old]) == 0

    def test_no_changes(self, tmp_path, capsys):
        """Test output for identical files."""
        old = write(tmp_path / "old.yaml", self.old_doc)

        assert main([old, old]) == 0
        assert capsys.readouterr().out == "No changes detected.\n"

    def test_ignore(self, tmp_path, capsys):
        """Test ignore flags."""
        old = write(tmp_path / "old.yaml", self.old_doc)
        new = write(tmp_path / "new.yaml", self.new_doc)

        main(["-i", "/status/*", "-o", "json", old, new])
        changes = json.loads(capsys.readouterr().out)
        assert [c["path"] for c in changes] == ["/replicas"]

    def test_json_output(self, tmp_path, capsys):
        """Test the JSON change list."""
        old = write(tmp_path / "old.json", '{"a": 1}')
        new = write(tmp_path / "new.json", '{"a": 2}')

        main(["--output", "json", old, new])
        assert json.loads(capsys.readouterr().out) == [{
            "type": "modify",
            "path": "/a",
            "old_value": 1,
            "new_value": 2,
        }]

    def test_patch_output(self, tmp_path, capsys):
        """Test the patch output."""
        old = write(tmp_path / "old.yaml", "a: 1\nb: 2\n")
        new = write(tmp_path / "new.yaml", "a: 1\nc: 3\n")

        main(["-o", "patch", old, new])
        assert json.loads(capsys.readouterr().out) == [
            {"op": "remove", "path": "/b"},
            {"op": "add", "path": "/c", "value": 3},
        ]

    def test_compact_output(self, tmp_path, capsys):
        """Test the compact report."""
        old = write(tmp_path / "old.yaml", self.old_doc)
        new = write(tmp_path / "new.yaml", self.new_doc)

        main(["-o", "compact", old, new])
        out = capsys.readouterr().out
        assert "  ~ /replicas\n" in out
        assert "→" not in out

    def test_array_key(self, tmp_path, capsys):
        """Test keyed array comparison from the command line."""
        old = write(tmp_path / "old.yaml", "items:\n  - id: 1\n  - id: 2\n")
        new = write(tmp_path / "new.yaml", "items:\n  - id: 2\n  - id: 1\n")

        main(["--array-key", "items=id", "-o", "json", old, new])
        changes = json.loads(capsys.readouterr().out)
        assert [c["type"] for c in changes] == ["move", "move"]
        assert [c["path"] for c in changes] == ["/items[0]", "/items[1]"]

    def test_numeric_strings(self, tmp_path, capsys):
        """Test the coercion flags."""
        old = write(tmp_path / "old.yaml", "port: \"80\"\nenabled: \"true\"\n")
        new = write(tmp_path / "new.yaml", "port: 80\nenabled: true\n")

        assert main(["--exit-code", "-q", old, new]) == 1
        assert main(["--exit-code", "--numeric-strings", "--bool-strings", old, new]) == 0

    def test_mixed_formats(self, tmp_path):
        """Test comparing YAML with JSON."""
        old = write(tmp_path / "old.yaml", "a: 1\nb: [x]\n")
        new = write(tmp_path / "new.json", '{"b": ["x"], "a": 1}')

        assert main(["--exit-code", old, new]) == 0

    def test_hcl_files(self, tmp_path, capsys):
        """Test comparing Terraform files."""
        old = write(tmp_path / "old.tf", "instance_count = 2\nmonitoring = true\n")
        new = write(tmp_path / "new.tf", "instance_count = 3\nmonitoring = true\n")

        assert main(["--exit-code", "-o", "json", old, new]) == 1
        changes = json.loads(capsys.readouterr().out)
        assert [(c["type"], c["path"]) for c in changes] == [("modify", "/instance_count")]

    def test_stdin(self, tmp_path, monkeypatch, capsys):
        """Test reading one side from stdin."""
        new = write(tmp_path / "new.yaml", "a: 2\n")
        monkeypatch.setattr("sys.stdin", io.StringIO("a: 1\n"))

        assert main(["--exit-code", "-", new]) == 1
        assert "~ /a: 1 → 2" in capsys.readouterr().out

    def test_config_file(self, tmp_path, capsys):
        """Test defaults from an explicit config file."""
        old = write(tmp_path / "old.yaml", self.old_doc)
        new = write(tmp_path / "new.yaml", self.new_doc)
        cfg = write(tmp_path / "cfg.yaml", "ignore_paths: [/replicas]\noutput_format: json\n")

        main(["--config", cfg, old, new])
        changes = json.loads(capsys.readouterr().out)
        assert [c["path"] for c in changes] == ["/status/ready"]

    def test_config_file_lookup(self, tmp_path, capsys):
        """Test that .configdiffrc in the working directory is used."""
        old = write(tmp_path / "old.yaml", self.old_doc)
        new = write(tmp_path / "new.yaml", self.new_doc)
        write(tmp_path / ".configdiffrc", "ignore_paths: ['/status/*']\n")

        main(["-o", "json", old, new])
        changes = json.loads(capsys.readouterr().out)
        assert [c["path"] for c in changes] == ["/replicas"]


class TestErrors:
    """Test error exit codes."""

    def test_parse_error(self, tmp_path, capsys):
        """Test that invalid input exits with status 2."""
        old = write(tmp_path / "old.json", '{"a": ')
        new = write(tmp_path / "new.json", '{"a": 1}')

        assert main([old, new]) == 2
        assert "Error:" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        """Test that a missing file exits with status 2."""
        new = write(tmp_path / "new.yaml", "a: 1\n")

        assert main([str(tmp_path / "missing.yaml"), new]) == 2
        assert "missing.yaml" in capsys.readouterr().err

    def test_both_stdin(self, capsys):
        """Test that only one side may be stdin."""
        assert main(["-", "-"]) == 2

    def test_invalid_output(self, tmp_path):
        """Test that an unknown output format is rejected."""
        old = write(tmp_path / "old.yaml", "a: 1\n")
        assert main(["-o", "xml", old, old]) == 2

    def test_invalid_array_key(self, tmp_path):
        """Test that a malformed array key is rejected."""
        old = write(tmp_path / "old.yaml", "a: 1\n")
        assert main(["--array-key", "items", old, old]) == 2

    def test_directory_without_recursive(self, tmp_path):
        """Test that directories require --recursive."""
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()
        assert main([str(tmp_path / "a"), str(tmp_path / "b")]) == 2

    def test_invalid_config_file(self, tmp_path):
        """Test that an explicit broken config file is an error."""
        old = write(tmp_path / "old.yaml", "a: 1\n")
        cfg = write(tmp_path / "cfg.yaml", "stable_order: sometimes\n")
        assert main(["--config", cfg, old, old]) == 2


class TestRecursive:
    """Test directory comparison."""

    def test_directories(self, tmp_path, capsys):
        """Test added, removed and changed files."""
        write(tmp_path / "old" / "app.yaml", "a: 1\n")
        write(tmp_path / "old" / "gone.json", "{}")
        write(tmp_path / "old" / "same" / "x.yml", "x: 1\n")
        write(tmp_path / "old" / "notes.txt", "ignored")
        write(tmp_path / "new" / "app.yaml", "a: 2\n")
        write(tmp_path / "new" / "extra.yaml", "b: 1\n")
        write(tmp_path / "new" / "same" / "x.yml", "x: 1\n")

        code = main(["-r", "--exit-code", str(tmp_path / "old"), str(tmp_path / "new")])
        out = capsys.readouterr().out

        assert code == 1
        assert "=== app.yaml ===" in out
        assert "~ /a: 1 → 2" in out
        assert "+++ extra.yaml (added)" in out
        assert "--- gone.json (removed)" in out
        assert "=== same/x.yml ===" in out
        assert "notes.txt" not in out
        assert "Summary: 2 files compared, 1 added, 1 removed" in out

    def test_identical_directories(self, tmp_path):
        """Test that identical trees exit with status 0."""
        write(tmp_path / "old" / "app.yaml", "a: 1\n")
        write(tmp_path / "new" / "app.yaml", "a: 1\n")

        assert main(["-r", "-q", "--exit-code", str(tmp_path / "old"), str(tmp_path / "new")]) == 0


class TestReadInput:
    """Test input reading and format detection."""

    def test_extension(self, tmp_path):
        """Test detection from the file extension."""
        source = read_input(write(tmp_path / "a.yml", "a: 1\n"))
        assert source.format == "yaml"

    def test_content(self, tmp_path):
        """Test detection from content for unknown extensions."""
        source = read_input(write(tmp_path / "a.txt", '{"a": 1}'))
        assert source.format == "json"

    def test_hcl_extensions(self, tmp_path):
        """Test that .hcl and .tf files are read as HCL."""
        assert read_input(write(tmp_path / "a.hcl", "a = 1\n")).format == "hcl"
        assert read_input(write(tmp_path / "main.tf", "a = 1\n")).format == "hcl"

    def test_hint(self, tmp_path):
        """Test that an explicit format wins."""
        source = read_input(write(tmp_path / "a.json", "a: 1\n"), "yaml")
        assert source.format == "yaml"
