"""
Apply-check engine - dry-runs hunks against base content.

Every context and removed line of a hunk must equal the base line at the
hunk's declared source offset. Nothing is written; the base text is only
compared against.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from patchguard.models.diff import ChangeKind, FilePatch, Hunk
from patchguard.models.report import IssueKind, ValidationIssue
from patchguard.resolvers.base import ContentResolver, ResolverError

logger = logging.getLogger(__name__)


def split_lines(content: str) -> list[str]:
    """Split text into lines the way diff line numbers count them."""
    if not content:
        return []
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


@dataclass(frozen=True)
class BaseContent:
    """Base content of one file as seen by a validation run."""

    path: str
    lines: Optional[list[str]] = None
    error: Optional[str] = None

    @property
    def exists(self) -> bool:
        return self.lines is not None

    @property
    def line_count(self) -> Optional[int]:
        """Number of base lines; 0 for absent files, None if unreadable."""
        if self.error is not None:
            return None
        return len(self.lines) if self.lines is not None else 0


class ApplyChecker:
    """
    Check that hunks apply cleanly to base content.

    Conflicts are reported per hunk so one bad hunk does not hide the state
    of the others.
    """

    def __init__(self, ignore_trailing_whitespace: bool = False) -> None:
        self.ignore_trailing_whitespace = ignore_trailing_whitespace

    def load_base(
        self,
        file_patch: FilePatch,
        resolver: ContentResolver,
        timeout: Optional[float] = None,
        strict: bool = False,
    ) -> BaseContent:
        """
        Fetch the base content a file patch applies to.

        Args:
            file_patch: The file patch.
            resolver: Resolver supplying base content.
            timeout: Timeout passed to the resolver.
            strict: Re-raise resolver failures instead of recording them.

        Returns:
            The base content, possibly carrying a resolver error.

        Raises:
            ResolverError: In strict mode, if the resolver fails.
        """
        path = file_patch.base_path
        try:
            content = resolver.read(path, timeout=timeout)
        except ResolverError as e:
            if strict:
                raise
            logger.warning("%s", e)
            return BaseContent(path=path, error=e.reason)

        if content is None:
            return BaseContent(path=path)
        return BaseContent(path=path, lines=split_lines(content))

    def _lines_match(self, expected: str, actual: str) -> bool:
        if self.ignore_trailing_whitespace:
            return expected.rstrip() == actual.rstrip()
        return expected == actual

    def find_mismatch(self, hunk: Hunk, base_lines: list[str]) -> Optional[tuple[int, str]]:
        """
        Find the first base line that disagrees with a hunk.

        Returns:
            (line number, explanation) of the first mismatch, or None.
        """
        if hunk.source_length == 0:
            # Pure insertion after line source_start
            if hunk.source_start > len(base_lines):
                return (
                    hunk.source_start,
                    f"insertion point is past the end of the base "
                    f"({len(base_lines)} lines)",
                )
            return None

        for offset, line in enumerate(hunk.source_lines()):
            line_no = hunk.source_start + offset
            if line_no > len(base_lines):
                return (
                    line_no,
                    f"base has only {len(base_lines)} lines, "
                    f"expected {line.text!r}",
                )
            actual = base_lines[line_no - 1]
            if not self._lines_match(line.text, actual):
                return line_no, f"expected {line.text!r}, base has {actual!r}"
        return None

    def _conflict(self, path: str, hunk_index: int, message: str) -> ValidationIssue:
        return ValidationIssue(
            path=path,
            hunk_index=hunk_index,
            kind=IssueKind.APPLY_CONFLICT,
            message=message,
        )

    def _check_added(self, file_patch: FilePatch, base: BaseContent) -> list[ValidationIssue]:
        issues = []
        if base.error is not None:
            issues.append(self._conflict(
                file_patch.path, -1, f"could not read base content: {base.error}",
            ))
        elif base.exists:
            issues.append(self._conflict(
                file_patch.path, -1, "file is added by the patch but already exists in the base",
            ))

        for index, hunk in enumerate(file_patch.hunks):
            if hunk.source_start != 0 or hunk.source_length != 0:
                issues.append(self._conflict(
                    file_patch.path,
                    index,
                    f"hunk {index + 1} of a new file must start at -0,0, "
                    f"found -{hunk.source_start},{hunk.source_length}",
                ))
        return issues

    def check(self, file_patch: FilePatch, base: BaseContent) -> list[ValidationIssue]:
        """
        Check a file patch against already loaded base content.

        Args:
            file_patch: The file patch to check.
            base: Its base content.

        Returns:
            ApplyConflict issues in hunk order.
        """
        path = file_patch.path
        if file_patch.change_kind == ChangeKind.ADDED:
            return self._check_added(file_patch, base)

        if base.error is not None:
            return [self._conflict(path, -1, f"could not read base content: {base.error}")]
        if base.lines is None:
            return [self._conflict(path, -1, f"{base.path} does not exist in the base")]

        issues = []
        for index, hunk in enumerate(file_patch.hunks):
            mismatch = self.find_mismatch(hunk, base.lines)
            if mismatch is None:
                continue
            line_no, detail = mismatch
            logger.debug("%s hunk %d conflicts at line %d", path, index, line_no)
            issues.append(self._conflict(
                path, index, f"hunk {index + 1} does not apply at line {line_no}: {detail}",
            ))

        if file_patch.change_kind == ChangeKind.DELETED and not issues:
            removed = file_patch.removed_count
            if removed != len(base.lines):
                issues.append(self._conflict(
                    path,
                    -1,
                    f"deletion removes {removed} of {len(base.lines)} base lines",
                ))
        return issues

    def check_file(
        self,
        file_patch: FilePatch,
        resolver: ContentResolver,
        timeout: Optional[float] = None,
        strict: bool = False,
    ) -> list[ValidationIssue]:
        """Load the base content of a file patch and check it."""
        base = self.load_base(file_patch, resolver, timeout=timeout, strict=strict)
        return self.check(file_patch, base)
