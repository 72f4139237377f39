"""
Context validator - enforces the minimum-context policy on hunks.

A hunk needs enough unchanged lines around its changes for ``git apply``
and ``patch`` to anchor it. Hunks touching the start or the end of the
base file are exempt on that side since fewer lines exist there.
"""

import logging
from typing import Optional

from patchguard.models.diff import FilePatch, Hunk
from patchguard.models.report import IssueKind, ValidationIssue

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONTEXT = 3


class ContextValidator:
    """
    Check that every hunk carries at least ``min_context`` context lines
    before its first change and after its last change.
    """

    def __init__(self, min_context: int = DEFAULT_MIN_CONTEXT) -> None:
        if min_context < 0:
            raise ValueError(f"min_context must be >= 0, got {min_context}")
        self.min_context = min_context

    @staticmethod
    def _at_file_start(hunk: Hunk) -> bool:
        return hunk.source_start <= 1

    @staticmethod
    def _at_file_end(hunk: Hunk, base_line_count: Optional[int]) -> bool:
        if base_line_count is None:
            return False
        if base_line_count == 0:
            return True
        # A pure insertion is anchored after source_start
        last_line = hunk.source_end if hunk.source_length else hunk.source_start
        return last_line >= base_line_count

    def check_hunk(
        self,
        hunk: Hunk,
        path: str,
        hunk_index: int,
        base_line_count: Optional[int] = None,
    ) -> Optional[ValidationIssue]:
        """
        Check a single hunk.

        Args:
            hunk: The hunk to check.
            path: File path used in the issue.
            hunk_index: 0-based index of the hunk in its file.
            base_line_count: Lines in the base file, None if unknown.

        Returns:
            An InsufficientContext issue, or None if the hunk is fine.
        """
        if not hunk.has_changes:
            return None

        problems: list[str] = []

        leading = hunk.leading_context()
        if leading < self.min_context and not self._at_file_start(hunk):
            problems.append(f"{leading} leading")

        trailing = hunk.trailing_context()
        if trailing < self.min_context and not self._at_file_end(hunk, base_line_count):
            problems.append(f"{trailing} trailing")

        if not problems:
            return None

        logger.debug("%s hunk %d lacks context: %s", path, hunk_index, problems)
        return ValidationIssue(
            path=path,
            hunk_index=hunk_index,
            kind=IssueKind.INSUFFICIENT_CONTEXT,
            message=(
                f"hunk {hunk_index + 1} (line {hunk.source_start}) has "
                f"{' and '.join(problems)} context line(s), "
                f"{self.min_context} required"
            ),
        )

    def check_file(
        self,
        file_patch: FilePatch,
        base_line_count: Optional[int] = None,
    ) -> list[ValidationIssue]:
        """Check every hunk of a file patch, one issue per offending hunk."""
        issues = []
        for index, hunk in enumerate(file_patch.hunks):
            issue = self.check_hunk(hunk, file_patch.path, index, base_line_count)
            if issue is not None:
                issues.append(issue)
        return issues
