"""
Base content resolver interface.

A resolver returns the authoritative text of a file at the base revision
a diff is checked against. It is the only blocking boundary of a
validation run.
"""

from abc import ABC, abstractmethod
from typing import Optional


class ResolverError(Exception):
    """The resolver could not supply content for a path."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"could not read base content of {path}: {reason}")


class ResolverConfigError(Exception):
    """The resolver itself is misconfigured (bad revision, missing root)."""
    pass


class ContentResolver(ABC):
    """
    Abstract base class for base content resolvers.

    Subclasses must implement read() and describe().
    """

    @abstractmethod
    def read(self, path: str, timeout: Optional[float] = None) -> Optional[str]:
        """
        Read the base content of a file.

        Args:
            path: Repository-relative path using forward slashes.
            timeout: Seconds to wait before giving up, None for no limit.

        Returns:
            The file's full text, or None if the file does not exist in the
            base.

        Raises:
            ResolverError: If the content exists but cannot be read.
        """
        pass

    @abstractmethod
    def describe(self) -> str:
        """Short description of the base, used in reports and logs."""
        pass
