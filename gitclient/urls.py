"""Classification of repository URLs."""

import re
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

NETWORK_URL_PREFIXES = ("ftp:", "git:", "http:", "https:", "rsync:", "ssh:")

# user@host:path, the scp-like syntax git accepts for ssh
_SCP_LIKE = re.compile(r"^[^@/\s]+@[A-Za-z0-9.\-]+:(?!//)\S*$")


def is_scp_like(url: str) -> bool:
    return bool(_SCP_LIKE.match(url.strip()))


def is_remote_url(url: str) -> bool:
    """
    Check if a repository URL points at a network remote.

    Bare paths, relative paths and file:// URLs are local.

    Args:
        url: Repository URL or path

    Returns:
        True if the URL uses a network transport
    """
    url = url.strip()
    return url.startswith(NETWORK_URL_PREFIXES) or is_scp_like(url)


def is_local_path(url: str) -> bool:
    return not is_remote_url(url)


def is_ssh_url(url: str) -> bool:
    """Check if the URL is served over ssh (ssh://, git+ssh:// or scp-like)."""
    url = url.strip()
    return url.startswith(("ssh:", "git+ssh:", "ssh+git:")) or is_scp_like(url)


def resolve_local_path(url: str, base_dir: Optional[Path] = None) -> Path:
    """
    Resolve a local repository URL to an absolute filesystem path.

    Args:
        url: Local path (e.g., ".", "/home/user/repo", "file:///path/to/repo")
        base_dir: Directory relative paths are resolved against. Defaults to cwd.

    Returns:
        Resolved absolute Path
    """
    if url.startswith("file://"):
        url = url[len("file://") :]
    p = Path(url)
    if not p.is_absolute():
        base = base_dir or Path.cwd()
        p = base / p
    return p.resolve()


def url_username(url: str) -> Optional[str]:
    """User named in an ssh URL (ssh://user@host/path or user@host:path)."""
    url = url.strip()
    if is_scp_like(url):
        return url.split("@", 1)[0]
    return urlparse(url).username


def with_username(url: str, username: str) -> str:
    """Add a login user to an ssh:// URL that doesn't name one."""
    parsed = urlparse(url)
    if parsed.username or not parsed.netloc:
        return url
    return parsed._replace(netloc=f"{username}@{parsed.netloc}").geturl()
