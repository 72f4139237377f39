"""
Report data models.

Models representing validation issues and the report handed to the hook
or CI step that invoked patchguard.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class IssueKind(str, Enum):
    """Category of a validation issue."""

    INSUFFICIENT_CONTEXT = "InsufficientContext"
    APPLY_CONFLICT = "ApplyConflict"
    PARSE_ERROR = "ParseError"


# Ordering of issues that share a path and hunk index
_KIND_RANK = {
    IssueKind.PARSE_ERROR: 0,
    IssueKind.INSUFFICIENT_CONTEXT: 1,
    IssueKind.APPLY_CONFLICT: 2,
}


class ValidationIssue(BaseModel):
    """A single policy violation found in a diff."""

    path: str = Field(description="Path of the offending file")
    hunk_index: int = Field(
        description="0-based hunk index, -1 for file-level issues",
    )
    kind: IssueKind = Field(description="Issue category")
    message: str = Field(description="Human-readable explanation")

    class Config:
        frozen = True

    @property
    def sort_key(self) -> tuple[str, int, int]:
        """Key giving file-then-hunk ordering."""
        return (self.path, self.hunk_index, _KIND_RANK[self.kind])

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the report's public key names."""
        return {
            "path": self.path,
            "hunkIndex": self.hunk_index,
            "kind": self.kind.value,
            "message": self.message,
        }


class ValidationReport(BaseModel):
    """Outcome of one validation run."""

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="Issues in file-then-hunk order",
    )
    checked_files: list[str] = Field(
        default_factory=list,
        description="Paths that matched the filter and were checked",
    )
    skipped_files: list[str] = Field(
        default_factory=list,
        description="Paths that did not match the filter",
    )

    class Config:
        frozen = True

    @property
    def passed(self) -> bool:
        """True iff no issues were found."""
        return not self.issues

    @property
    def issue_count(self) -> int:
        """Number of issues."""
        return len(self.issues)

    def count(self, kind: IssueKind) -> int:
        """Number of issues of a given kind."""
        return sum(1 for issue in self.issues if issue.kind == kind)

    def issues_by_path(self) -> dict[str, list[ValidationIssue]]:
        """Group issues by file, keeping report order."""
        grouped: dict[str, list[ValidationIssue]] = {}
        for issue in self.issues:
            grouped.setdefault(issue.path, []).append(issue)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the public report shape."""
        return {
            "passed": self.passed,
            "issues": [issue.to_dict() for issue in self.issues],
        }
