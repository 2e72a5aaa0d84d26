"""
Exception classes for the git client.

Every error names the operation that failed, the URL or ref it targeted and
the underlying cause.
"""

from typing import Optional


class GitClientError(Exception):
    """Base exception for all git client errors."""

    def __init__(
        self,
        operation: str,
        target: Optional[str] = None,
        cause: Optional[object] = None,
    ):
        self.operation = operation
        self.target = target
        self.cause = cause
        message = operation
        if target:
            message += f" {target}"
        message += " failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class AuthenticationUnavailableError(GitClientError):
    """Raised when the remote requires credentials and none resolve."""

    pass


class AuthenticationRejectedError(GitClientError):
    """Raised when the remote refuses the supplied credential."""

    pass


class NetworkFailureError(GitClientError):
    """Raised on transport-level failures."""

    pass


class GitTimeoutError(GitClientError):
    """Raised when an operation exceeds its configured deadline."""

    def __init__(self, operation: str, target: Optional[str], timeout: int):
        self.timeout = timeout
        super().__init__(
            operation, target, f"did not complete within {timeout} seconds"
        )


class MalformedRefSpecError(GitClientError):
    """Raised when a refspec string cannot be parsed."""

    def __init__(self, refspec: str, reason: str):
        self.refspec = refspec
        super().__init__("parse refspec", repr(refspec), reason)


class NotSupportedByBackendError(GitClientError):
    """Raised when the active backend lacks a requested capability."""

    def __init__(self, operation: str, target: Optional[str], backend: str, what: str):
        self.backend = backend
        super().__init__(operation, target, f"{what} is not supported by the {backend} backend")


class BranchAlreadyExistsError(GitClientError):
    """Raised when checkout would move an existing branch without permission."""

    def __init__(self, branch: str, current: str, requested: str):
        self.branch = branch
        super().__init__(
            "checkout",
            branch,
            f"branch '{branch}' already exists at {current[:7]}, refusing to move it to {requested[:7]}",
        )


class RepositoryStateInconsistentError(GitClientError):
    """Raised when a post-condition on the working repository does not hold."""

    pass


class RefNotFoundError(GitClientError):
    """Raised when a ref cannot be resolved locally or on the remote."""

    pass


class CommandAlreadyExecutedError(GitClientError):
    """Raised when execute() is called a second time on the same command."""

    def __init__(self, command: str):
        super().__init__(command, None, "command has already been executed")
