"""
Diff data models.

Models representing a parsed unified diff: the patch set, its file
patches, their hunks and the individual hunk lines.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ChangeKind(str, Enum):
    """Type of file change in a diff."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class LineKind(str, Enum):
    """Type of a single line inside a hunk."""

    CONTEXT = "context"
    ADDED = "added"
    REMOVED = "removed"


class HunkLine(BaseModel):
    """A line of a hunk, without its prefix and line terminator."""

    kind: LineKind = Field(description="Context, added or removed")
    text: str = Field(description="Line content")

    class Config:
        frozen = True


class Hunk(BaseModel):
    """Represents a hunk (section of changes) in a diff."""

    source_start: int = Field(description="Starting line in source file")
    source_length: int = Field(description="Number of lines in source")
    target_start: int = Field(description="Starting line in target file")
    target_length: int = Field(description="Number of lines in target")
    lines: list[HunkLine] = Field(
        default_factory=list,
        description="Lines of the hunk in diff order",
    )
    section_header: str = Field(
        default="",
        description="Text after the closing @@ of the hunk header",
    )
    diff_line: int = Field(
        default=0,
        description="1-based line of the @@ header in the diff text",
    )

    class Config:
        frozen = True

    @property
    def source_end(self) -> int:
        """Last source line covered by the hunk."""
        return self.source_start + self.source_length - 1

    @property
    def has_changes(self) -> bool:
        """Check if the hunk adds or removes anything."""
        return any(line.kind != LineKind.CONTEXT for line in self.lines)

    def source_lines(self) -> list[HunkLine]:
        """Lines the hunk expects to find in the base file."""
        return [line for line in self.lines if line.kind != LineKind.ADDED]

    def target_lines(self) -> list[HunkLine]:
        """Lines the hunk leaves in the patched file."""
        return [line for line in self.lines if line.kind != LineKind.REMOVED]

    def leading_context(self) -> int:
        """Number of context lines before the first changed line."""
        count = 0
        for line in self.lines:
            if line.kind != LineKind.CONTEXT:
                break
            count += 1
        return count

    def trailing_context(self) -> int:
        """Number of context lines after the last changed line."""
        count = 0
        for line in reversed(self.lines):
            if line.kind != LineKind.CONTEXT:
                break
            count += 1
        return count


class FilePatch(BaseModel):
    """Represents a single file in a diff."""

    path: str = Field(description="Path of the file after the change")
    source_path: Optional[str] = Field(
        default=None,
        description="Path of the file before the change (differs for renames)",
    )
    change_kind: ChangeKind = Field(description="Type of change")
    hunks: list[Hunk] = Field(
        default_factory=list,
        description="Hunks in ascending source order",
    )

    class Config:
        frozen = True

    @property
    def base_path(self) -> str:
        """Path to read the base content from."""
        return self.source_path or self.path

    @property
    def added_count(self) -> int:
        """Total lines added."""
        return sum(
            1 for hunk in self.hunks for line in hunk.lines
            if line.kind == LineKind.ADDED
        )

    @property
    def removed_count(self) -> int:
        """Total lines removed."""
        return sum(
            1 for hunk in self.hunks for line in hunk.lines
            if line.kind == LineKind.REMOVED
        )


class SectionParseError(BaseModel):
    """A file section of the diff that could not be parsed."""

    path: Optional[str] = Field(
        default=None,
        description="Path named by the section headers, if any",
    )
    hunk_index: int = Field(
        default=-1,
        description="Index of the malformed hunk, -1 for file-level errors",
    )
    line: int = Field(description="1-based line offset in the diff text")
    message: str = Field(description="What is wrong with the section")

    class Config:
        frozen = True


class PatchSet(BaseModel):
    """All file patches produced by one diff."""

    files: list[FilePatch] = Field(default_factory=list)
    parse_errors: list[SectionParseError] = Field(
        default_factory=list,
        description="Sections that were skipped because they are malformed",
    )

    class Config:
        frozen = True

    @property
    def paths(self) -> list[str]:
        """Paths of all parsed file patches, in diff order."""
        return [file_patch.path for file_patch in self.files]
