"""
Filesystem resolver.

Reads base content from a directory tree, typically a checkout of the
target branch.
"""

import logging
from pathlib import Path
from typing import Optional

from patchguard.resolvers.base import (
    ContentResolver,
    ResolverConfigError,
    ResolverError,
)

logger = logging.getLogger(__name__)


class FilesystemResolver(ContentResolver):
    """
    Resolve base content from files under a root directory.

    Paths that would escape the root are rejected.
    """

    def __init__(self, root: Path, encoding: str = "utf-8") -> None:
        """
        Initialize the resolver.

        Args:
            root: Directory the diff paths are relative to.
            encoding: Encoding used to decode file content.

        Raises:
            ResolverConfigError: If the root is not a directory.
        """
        if not root.is_dir():
            raise ResolverConfigError(f"Base directory not found: {root}")
        self.root = root.resolve()
        self.encoding = encoding

    def _resolve(self, path: str) -> Path:
        candidate = (self.root / path).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise ResolverError(path, "path escapes the base directory")
        return candidate

    def read(self, path: str, timeout: Optional[float] = None) -> Optional[str]:
        file_path = self._resolve(path)
        if not file_path.exists():
            return None
        if not file_path.is_file():
            raise ResolverError(path, "not a regular file")

        logger.debug("Reading base content from %s", file_path)
        try:
            # newline="" keeps \r\n so comparisons stay byte-exact
            with open(file_path, encoding=self.encoding, newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ResolverError(path, str(e)) from e

    def describe(self) -> str:
        return str(self.root)
