"""
Data models for patchguard.

This package contains Pydantic models for representing parsed diffs,
validation issues and reports.
"""

from patchguard.models.diff import (
    ChangeKind,
    FilePatch,
    Hunk,
    HunkLine,
    LineKind,
    PatchSet,
    SectionParseError,
)
from patchguard.models.report import (
    IssueKind,
    ValidationIssue,
    ValidationReport,
)

__all__ = [
    # Diff models
    "ChangeKind",
    "FilePatch",
    "Hunk",
    "HunkLine",
    "LineKind",
    "PatchSet",
    "SectionParseError",
    # Report models
    "IssueKind",
    "ValidationIssue",
    "ValidationReport",
]
