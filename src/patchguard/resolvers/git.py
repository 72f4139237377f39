"""
Git revision resolver.

Reads base content from a revision of a git repository with
``git cat-file``, so the working tree is never touched.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from patchguard.resolvers.base import (
    ContentResolver,
    ResolverConfigError,
    ResolverError,
)

logger = logging.getLogger(__name__)

# stderr fragments git prints when a path is absent from a revision
_MISSING_MARKERS = (
    "does not exist in",
    "exists on disk, but not in",
    "Not a valid object name",
)


class GitResolver(ContentResolver):
    """
    Resolve base content from a git revision.

    Every read runs one ``git cat-file blob <rev>:<path>`` subprocess with
    the caller's timeout.
    """

    def __init__(
        self,
        revision: str = "HEAD",
        repo: Optional[Path] = None,
        encoding: str = "utf-8",
        verify: bool = True,
        verify_timeout: float = 10,
    ) -> None:
        """
        Initialize the git resolver.

        Args:
            revision: Revision to read from (branch, tag, sha, HEAD...).
            repo: Repository directory (default: current directory).
            encoding: Encoding used to decode blobs.
            verify: Check that the revision exists before first use.
            verify_timeout: Timeout in seconds for the verification.

        Raises:
            ResolverConfigError: If git is missing or the revision is unknown.
        """
        self.revision = revision
        self.repo = (repo or Path.cwd()).resolve()
        self.encoding = encoding
        if verify:
            self.commit = self._verify(verify_timeout)
        else:
            self.commit = revision

    def _run(self, args: list[str], timeout: Optional[float]) -> subprocess.CompletedProcess:
        return subprocess.run(
            ["git", *args],
            cwd=self.repo,
            capture_output=True,
            timeout=timeout,
        )

    def _verify(self, timeout: float) -> str:
        try:
            result = self._run(
                ["rev-parse", "--verify", "--quiet", f"{self.revision}^{{commit}}"],
                timeout,
            )
        except FileNotFoundError as e:
            raise ResolverConfigError("git executable not found") from e
        except subprocess.TimeoutExpired as e:
            raise ResolverConfigError(
                f"Timed out verifying revision {self.revision}"
            ) from e

        if result.returncode != 0:
            raise ResolverConfigError(
                f"Unknown revision {self.revision!r} in repository {self.repo}"
            )
        commit = result.stdout.decode("ascii", errors="replace").strip()
        logger.debug("Resolved %s to %s", self.revision, commit)
        return commit

    def read(self, path: str, timeout: Optional[float] = None) -> Optional[str]:
        spec = f"{self.commit}:{path}"
        try:
            result = self._run(["cat-file", "blob", spec], timeout)
        except subprocess.TimeoutExpired as e:
            raise ResolverError(path, f"git timed out after {timeout}s") from e
        except OSError as e:
            raise ResolverError(path, str(e)) from e

        if result.returncode != 0:
            stderr = result.stderr.decode(self.encoding, errors="replace").strip()
            if any(marker in stderr for marker in _MISSING_MARKERS):
                return None
            raise ResolverError(path, stderr or f"git exited with {result.returncode}")

        try:
            return result.stdout.decode(self.encoding)
        except UnicodeDecodeError as e:
            raise ResolverError(path, f"content is not {self.encoding}: {e}") from e

    def describe(self) -> str:
        return f"git:{self.revision}"
