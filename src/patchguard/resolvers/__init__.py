"""
Resolvers package for patchguard.

This package contains the base content resolvers a validation run reads
from:
- In-memory mappings (embedding and tests)
- Directory trees (a checkout of the target branch)
- Git revisions (read with git cat-file)
"""

from pathlib import Path
from typing import Optional

from patchguard.resolvers.base import (
    ContentResolver,
    ResolverConfigError,
    ResolverError,
)
from patchguard.resolvers.filesystem import FilesystemResolver
from patchguard.resolvers.git import GitResolver
from patchguard.resolvers.mapping import MappingResolver


def make_resolver(spec: str, repo: Optional[Path] = None) -> ContentResolver:
    """
    Build a resolver from a ``--base`` value.

    Accepted forms are ``git:<rev>``, ``dir:<path>``, the path of an
    existing directory, or a bare git revision.

    Args:
        spec: The base value.
        repo: Repository used for git revisions (default: cwd).

    Returns:
        A ready-to-use resolver.

    Raises:
        ResolverConfigError: If the value cannot be satisfied.
    """
    if not spec:
        raise ResolverConfigError("Empty base value")
    if spec.startswith("git:"):
        return GitResolver(spec[len("git:"):] or "HEAD", repo=repo)
    if spec.startswith("dir:"):
        return FilesystemResolver(Path(spec[len("dir:"):]))
    if Path(spec).is_dir():
        return FilesystemResolver(Path(spec))
    return GitResolver(spec, repo=repo)


__all__ = [
    "ContentResolver",
    "FilesystemResolver",
    "GitResolver",
    "MappingResolver",
    "ResolverConfigError",
    "ResolverError",
    "make_resolver",
]
