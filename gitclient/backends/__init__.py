"""
Interchangeable git backends.

    native    drives the git executable (GitPython)
    embedded  works in-process on the object database (dulwich)
"""

from .base import Backend, Capability
from .embedded import EmbeddedBackend
from .native import NativeBackend

BACKENDS = {
    "native": NativeBackend,
    "embedded": EmbeddedBackend,
}

ALIASES = {
    "git": "native",
    "cli": "native",
    "dulwich": "embedded",
    "jgit": "embedded",
}


def get_backend(name: str) -> Backend:
    """
    Instantiate a backend by name.

    Args:
        name: "native" or "embedded", or one of their aliases

    Returns:
        A new backend instance

    Raises:
        ValueError: If the name is unknown
    """
    key = ALIASES.get(name.lower(), name.lower())
    try:
        return BACKENDS[key]()
    except KeyError:
        choices = ", ".join(sorted(list(BACKENDS) + list(ALIASES)))
        raise ValueError(f"Unknown git backend '{name}', expected one of: {choices}") from None


__all__ = [
    "Backend",
    "Capability",
    "EmbeddedBackend",
    "NativeBackend",
    "get_backend",
]
