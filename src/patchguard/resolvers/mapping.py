"""
In-memory resolver.
"""

from typing import Mapping, Optional

from patchguard.resolvers.base import ContentResolver


class MappingResolver(ContentResolver):
    """Resolve base content from a path -> text mapping."""

    def __init__(self, files: Mapping[str, str], name: str = "memory") -> None:
        self._files = dict(files)
        self._name = name

    def read(self, path: str, timeout: Optional[float] = None) -> Optional[str]:
        return self._files.get(path)

    def describe(self) -> str:
        return self._name
