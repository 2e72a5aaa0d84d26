"""Translate transport failure output into typed client errors."""

import shutil
from pathlib import Path
from typing import Optional

from gitclient.credentials import Credential
from gitclient.exceptions import (
    AuthenticationRejectedError,
    AuthenticationUnavailableError,
    GitClientError,
    NetworkFailureError,
)

AUTH_FAILURE_PATTERNS = (
    "permission denied",
    "authentication failed",
    "could not read username",
    "could not read password",
    "terminal prompts disabled",
    "invalid username or password",
    "access denied",
    "too many authentication failures",
    "no more authentication methods",
)

NETWORK_FAILURE_PATTERNS = (
    "could not resolve host",
    "could not resolve hostname",
    "name or service not known",
    "unable to access",
    "connection refused",
    "connection timed out",
    "connection reset",
    "network is unreachable",
    "no route to host",
    "failed to connect",
    "could not read from remote repository",
    "the remote end hung up",
    "early eof",
    "host key verification failed",
    "ssl certificate problem",
)


def is_auth_failure(text: str) -> bool:
    text = text.lower()
    return any(pattern in text for pattern in AUTH_FAILURE_PATTERNS)


def is_network_failure(text: str) -> bool:
    text = text.lower()
    return any(pattern in text for pattern in NETWORK_FAILURE_PATTERNS)


def transport_error(
    operation: str,
    target: str,
    text: str,
    credential: Optional[Credential],
) -> GitClientError:
    """
    Build the error matching a transport failure message.

    Authentication failures without a credential mean the credential was
    missing, not that it was rejected.

    Args:
        operation: Name of the failed operation
        target: URL or ref the operation targeted
        text: Failure output (stderr, exception message)
        credential: Credential that was used, if any

    Returns:
        The typed error, a plain GitClientError if the message is unknown
    """
    cause = text.strip() or "unknown error"
    if is_auth_failure(text):
        if credential is None:
            return AuthenticationUnavailableError(operation, target, cause)
        return AuthenticationRejectedError(operation, target, cause)
    if is_network_failure(text):
        return NetworkFailureError(operation, target, cause)
    return GitClientError(operation, target, cause)


def check_clone_destination(path: Path, url: str) -> None:
    """Refuse to clone into anything but a missing or empty directory."""
    if path.exists() and (not path.is_dir() or any(path.iterdir())):
        raise GitClientError(
            "clone", url, f"destination path '{path}' already exists and is not an empty directory"
        )


def discard_partial_clone(path: Path, existed: bool) -> None:
    """
    Remove what a failed clone left behind, restoring the previous state.

    Only valid after check_clone_destination passed: an existing destination
    was empty, so everything inside it belongs to the failed clone.
    """
    if not existed:
        shutil.rmtree(path, ignore_errors=True)
        return
    if not path.is_dir():
        return
    for child in path.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child, ignore_errors=True)
        else:
            child.unlink()
