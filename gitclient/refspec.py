"""Fetch refspecs of the form [+]source:destination."""

from dataclasses import dataclass
from typing import Optional

from gitclient.exceptions import MalformedRefSpecError


@dataclass(frozen=True)
class RefSpec:
    """A mapping from remote ref names to local ref names."""

    source: str
    destination: str
    force: bool = False

    @classmethod
    def parse(cls, spec: str) -> "RefSpec":
        """
        Parse a refspec string.

        Args:
            spec: Refspec such as "+refs/heads/*:refs/remotes/origin/*"

        Returns:
            The parsed RefSpec

        Raises:
            MalformedRefSpecError: If the separator is missing, a side is
                empty, or wildcards don't pair up
        """
        force = spec.startswith("+")
        body = spec[1:] if force else spec
        if ":" not in body:
            raise MalformedRefSpecError(spec, "missing ':' separator")
        source, destination = body.split(":", 1)
        if not source or not destination:
            raise MalformedRefSpecError(spec, "source and destination must be non-empty")
        if ":" in destination:
            raise MalformedRefSpecError(spec, "more than one ':' separator")
        for side in (source, destination):
            if side.count("*") > 1:
                raise MalformedRefSpecError(spec, f"more than one '*' in '{side}'")
        if ("*" in source) != ("*" in destination):
            raise MalformedRefSpecError(
                spec, "wildcard must appear on both sides or neither"
            )
        return cls(source=source, destination=destination, force=force)

    @classmethod
    def default_fetch(cls, remote_name: str = "origin") -> "RefSpec":
        return cls(
            source="refs/heads/*",
            destination=f"refs/remotes/{remote_name}/*",
            force=True,
        )

    @property
    def is_wildcard(self) -> bool:
        return "*" in self.source

    def matches_source(self, ref: str) -> bool:
        if not self.is_wildcard:
            return ref == self.source
        prefix, suffix = self.source.split("*", 1)
        return (
            len(ref) >= len(prefix) + len(suffix)
            and ref.startswith(prefix)
            and ref.endswith(suffix)
        )

    def matches_destination(self, ref: str) -> bool:
        if not self.is_wildcard:
            return ref == self.destination
        prefix, suffix = self.destination.split("*", 1)
        return (
            len(ref) >= len(prefix) + len(suffix)
            and ref.startswith(prefix)
            and ref.endswith(suffix)
        )

    def expand(self, ref: str) -> Optional[str]:
        """
        Map a remote ref to its local name.

        Returns:
            The destination ref, or None if the ref doesn't match the source
        """
        if not self.matches_source(ref):
            return None
        if not self.is_wildcard:
            return self.destination
        prefix, suffix = self.source.split("*", 1)
        middle = ref[len(prefix) : len(ref) - len(suffix)]
        return self.destination.replace("*", middle, 1)

    def __str__(self) -> str:
        return f"{'+' if self.force else ''}{self.source}:{self.destination}"
