"""Repohist exception hierarchy with exit codes."""

# Exit code constants
EXIT_SUCCESS = 0  # Operation succeeded
EXIT_ERROR = 1  # Generic error / failure
EXIT_NOT_READY = 2  # Backend tool not available
EXIT_UNSUPPORTED = 3  # Backend lacks the requested capability
EXIT_USAGE = 5  # Invalid usage / arguments


class RepohistError(Exception):
    """Base exception for all Repohist errors."""

    def __init__(self, message: str, exit_code: int = EXIT_ERROR):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class RetrievalError(RepohistError):
    """
    A backend tool invocation failed.

    Carries the tool's stderr verbatim.
    """

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message, exit_code=EXIT_ERROR)
        self.stderr = stderr


class MalformedOutputError(RetrievalError):
    """Backend output did not have the expected structure."""


class UnsupportedOperation(RepohistError):
    """Capability the backend fundamentally lacks. Never retried."""

    exit_code = EXIT_UNSUPPORTED

    def __init__(self, message: str = "Not supported by this backend"):
        super().__init__(message, exit_code=self.exit_code)


class ConfigError(RepohistError):
    """Configuration errors (invalid values, unreadable files)."""

    exit_code = EXIT_ERROR

    def __init__(self, message: str = "Configuration error"):
        super().__init__(message, exit_code=self.exit_code)


class UserInputError(RepohistError):
    """Invalid CLI usage / arguments."""

    exit_code = EXIT_USAGE

    def __init__(self, message: str = "Invalid arguments"):
        super().__init__(message, exit_code=self.exit_code)
