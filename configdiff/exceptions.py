"""Custom exceptions for configdiff."""


class ConfigDiffError(Exception):
    """Base exception for configdiff errors."""
    pass


class InvariantViolationError(ConfigDiffError):
    """Raised when a document tree breaks an engine invariant."""
    def __init__(self, message: str, path: str = None):
        super().__init__(f"{message} at path: {path}" if path else message)
        self.message = message
        self.path = path


class ParseError(ConfigDiffError):
    """Raised when input text cannot be turned into a document tree."""
    def __init__(self, message: str, fmt: str = None):
        super().__init__(message)
        self.message = message
        self.fmt = fmt


class ConfigError(ConfigDiffError):
    """Raised when a configuration file is unreadable or malformed."""
    def __init__(self, message: str, path: str = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.message = message
        self.path = path


class OptionsError(ConfigDiffError):
    """Raised when command-line options are invalid."""
    def __init__(self, message: str, option: str = None):
        super().__init__(message)
        self.message = message
        self.option = option


class PatchError(ConfigDiffError):
    """Raised when a patch operation cannot be applied."""
    def __init__(self, message: str, path: str = None):
        super().__init__(f"Cannot apply patch at {path}: {message}" if path else message)
        self.message = message
        self.path = path
