"""
Diff parser using the unidiff library.

A line scanner first splits the diff into file sections and checks every
hunk body against the counts its header declares, so malformed input is
reported with the exact line it was found on. Each well-formed section is
then parsed by unidiff and converted into our models.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from unidiff import Hunk as UnidiffHunk
from unidiff import PatchedFile, UnidiffParseError
from unidiff import PatchSet as UnidiffPatchSet
from unidiff.constants import RE_HUNK_HEADER

from patchguard.models.diff import (
    ChangeKind,
    FilePatch,
    Hunk,
    HunkLine,
    LineKind,
    PatchSet,
    SectionParseError,
)

logger = logging.getLogger(__name__)

GIT_HEADER = "diff --git "
SIGNATURE_SEPARATOR = "-- "
DEV_NULL = "/dev/null"

# git abbreviates the hash of the empty blob (e69de29bb2d1d6434b8b29ae775ad8c2e48c5391)
RE_EMPTY_ADDED_INDEX = re.compile(r"^index 0+\.\.e69de29[0-9a-f]*(?: \d+)?\s*$")
RE_EMPTY_DELETED_INDEX = re.compile(r"^index e69de29[0-9a-f]*\.\.0+(?: \d+)?\s*$")


class DiffParserError(Exception):
    """Error during diff parsing."""

    def __init__(
        self,
        message: str,
        line: int = 0,
        path: Optional[str] = None,
        hunk_index: int = -1,
    ) -> None:
        self.message = message
        self.line = line
        self.path = path
        self.hunk_index = hunk_index
        location = f"line {line}: " if line else ""
        super().__init__(f"{location}{message}")

    def to_section_error(self) -> SectionParseError:
        """Convert to the model stored on a PatchSet."""
        return SectionParseError(
            path=self.path,
            hunk_index=self.hunk_index,
            line=self.line,
            message=self.message,
        )


def _strip_prefix(path: str) -> str:
    """Drop the a/ or b/ prefix git puts on diff paths."""
    path = path.split("\t", 1)[0].strip()
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path


def _strip_eol(value: str) -> str:
    if value.endswith("\n"):
        return value[:-1]
    return value


@dataclass
class _Section:
    """Raw lines of one file section plus what the scanner learned about it."""

    start: int
    lines: list[str] = field(default_factory=list)
    path: Optional[str] = None
    hunk_headers: list[int] = field(default_factory=list)
    error: Optional[DiffParserError] = None
    closed: bool = False

    def fail(self, line: int, message: str, hunk_index: int = -1) -> None:
        # Only the first problem of a section is reported
        if self.error is None:
            self.error = DiffParserError(
                message, line=line, path=self.path, hunk_index=hunk_index,
            )

    def note_path(self, line: str) -> None:
        """Remember the file path named by a header line."""
        if line.startswith(GIT_HEADER):
            rest = line[len(GIT_HEADER):].rstrip("\r\n")
            if " b/" in rest:
                self.path = rest.rsplit(" b/", 1)[1]
        elif line.startswith("+++ "):
            candidate = _strip_prefix(line[4:])
            if candidate != DEV_NULL:
                self.path = candidate
        elif line.startswith("--- ") and self.path is None:
            candidate = _strip_prefix(line[4:])
            if candidate != DEV_NULL:
                self.path = candidate


class DiffParser:
    """
    Parse unified diff text using the unidiff library.

    Supports parsing from files or strings, in a strict mode that raises on
    the first malformed file section and a lenient mode that records
    malformed sections and keeps the rest.
    """

    @staticmethod
    def _starts_section(lines: list[str], index: int, git_style: bool) -> bool:
        line = lines[index]
        if git_style:
            return line.startswith(GIT_HEADER)
        return (
            line.startswith("--- ")
            and index + 1 < len(lines)
            and lines[index + 1].startswith("+++ ")
        )

    @classmethod
    def _scan_sections(cls, lines: list[str]) -> list[_Section]:
        """
        Split diff lines into file sections and verify hunk counts.

        Args:
            lines: Diff lines including their line terminators.

        Returns:
            Sections in diff order. A section whose hunk bodies disagree with
            their headers carries an error and is not handed to unidiff.
        """
        git_style = any(line.startswith(GIT_HEADER) for line in lines)
        sections: list[_Section] = []
        current: Optional[_Section] = None
        source_left = 0
        target_left = 0
        header_line = 0

        for index, line in enumerate(lines):
            line_no = index + 1

            if current is not None and (source_left > 0 or target_left > 0):
                hunk_index = len(current.hunk_headers) - 1
                prefix = line[:1]
                in_body = True
                if prefix == " " or line in ("\n", "\r\n"):
                    source_left -= 1
                    target_left -= 1
                elif prefix == "-":
                    source_left -= 1
                elif prefix == "+":
                    target_left -= 1
                elif prefix != "\\":
                    in_body = False
                    current.fail(
                        header_line,
                        f"hunk {hunk_index + 1} is shorter than its header "
                        f"declares (body ends at line {line_no - 1})",
                        hunk_index,
                    )
                    source_left = target_left = 0

                if in_body:
                    if source_left < 0 or target_left < 0:
                        current.fail(
                            line_no,
                            f"hunk {hunk_index + 1} is longer than its header "
                            f"declares",
                            hunk_index,
                        )
                        source_left = target_left = 0
                    current.lines.append(line)
                    continue

            if cls._starts_section(lines, index, git_style):
                current = _Section(start=line_no)
                sections.append(current)
                current.note_path(line)
                current.lines.append(line)
                continue

            if current is None or current.closed:
                # Preamble before the first section or trailer after a signature
                continue

            if line.rstrip("\r\n") == SIGNATURE_SEPARATOR:
                current.closed = True
                continue

            if line.startswith("@@"):
                match = RE_HUNK_HEADER.match(line)
                if match is None:
                    current.fail(
                        line_no,
                        f"malformed hunk header: {line.rstrip()}",
                        len(current.hunk_headers),
                    )
                    current.closed = True
                    continue
                current.hunk_headers.append(line_no)
                header_line = line_no
                source_left = int(match.group(2)) if match.group(2) is not None else 1
                target_left = int(match.group(4)) if match.group(4) is not None else 1
                current.lines.append(line)
                continue

            if not current.hunk_headers:
                current.note_path(line)
            elif line[:1] in ("+", "-", " "):
                current.fail(
                    line_no,
                    f"hunk {len(current.hunk_headers)} is longer than its "
                    f"header declares",
                    len(current.hunk_headers) - 1,
                )
            current.lines.append(line)

        if current is not None and (source_left > 0 or target_left > 0):
            current.fail(
                header_line,
                f"hunk {len(current.hunk_headers)} is shorter than its header "
                f"declares (diff ends at line {len(lines)})",
                len(current.hunk_headers) - 1,
            )

        return sections

    @staticmethod
    def _determine_change_kind(patched_file: PatchedFile) -> ChangeKind:
        """
        Determine the type of change for a patched file.

        Args:
            patched_file: A PatchedFile from unidiff.

        Returns:
            The ChangeKind for this file.
        """
        if patched_file.is_added_file:
            return ChangeKind.ADDED
        if patched_file.is_removed_file:
            return ChangeKind.DELETED
        source = _strip_prefix(patched_file.source_file or "")
        target = _strip_prefix(patched_file.target_file or "")
        if getattr(patched_file, "is_rename", False) or source != target:
            return ChangeKind.RENAMED
        return ChangeKind.MODIFIED

    @staticmethod
    def _parse_hunk(hunk: UnidiffHunk, diff_line: int) -> Hunk:
        """
        Convert a unidiff Hunk into our Hunk model.

        Args:
            hunk: A Hunk from unidiff.
            diff_line: Line of the hunk header in the whole diff.

        Returns:
            Hunk with its lines classified.
        """
        lines: list[HunkLine] = []
        for line in hunk:
            if line.is_added:
                kind = LineKind.ADDED
            elif line.is_removed:
                kind = LineKind.REMOVED
            elif line.is_context:
                kind = LineKind.CONTEXT
            else:
                # "\ No newline at end of file"
                continue
            lines.append(HunkLine(kind=kind, text=_strip_eol(line.value)))

        return Hunk(
            source_start=hunk.source_start,
            source_length=hunk.source_length,
            target_start=hunk.target_start,
            target_length=hunk.target_length,
            lines=lines,
            section_header=(hunk.section_header or "").strip(),
            diff_line=diff_line,
        )

    @classmethod
    def _parse_patched_file(
        cls,
        patched_file: PatchedFile,
        section: _Section,
    ) -> FilePatch:
        """
        Convert a PatchedFile into our FilePatch model.

        Raises:
            DiffParserError: If the file has no hunks or its hunks overlap.
        """
        change_kind = cls._determine_change_kind(patched_file)
        source = _strip_prefix(patched_file.source_file or "")
        target = _strip_prefix(patched_file.target_file or "")

        if change_kind == ChangeKind.DELETED:
            path, source_path = source, None
        elif change_kind == ChangeKind.RENAMED:
            path, source_path = target, source
        else:
            path, source_path = target, None

        if len(patched_file) == 0:
            raise DiffParserError(
                "file section has no hunks", line=section.start, path=path,
            )

        hunks = []
        for index, unidiff_hunk in enumerate(patched_file):
            if index < len(section.hunk_headers):
                diff_line = section.hunk_headers[index]
            else:
                diff_line = section.start
            hunks.append(cls._parse_hunk(unidiff_hunk, diff_line))

        for index in range(1, len(hunks)):
            previous, hunk = hunks[index - 1], hunks[index]
            if hunk.source_start < previous.source_start + previous.source_length:
                raise DiffParserError(
                    f"hunk {index + 1} overlaps or precedes hunk {index}",
                    line=hunk.diff_line,
                    path=path,
                    hunk_index=index,
                )

        return FilePatch(
            path=path,
            source_path=source_path,
            change_kind=change_kind,
            hunks=hunks,
        )

    @staticmethod
    def _empty_file_patch(section: _Section) -> Optional[FilePatch]:
        """
        Build the hunkless patch of a git section adding or deleting an empty file.

        Returns:
            An Added or Deleted FilePatch without hunks, or None if the
            section is anything else.
        """
        if section.path is None:
            return None
        headers = [line.rstrip("\r\n") for line in section.lines]
        if any(line.startswith("new file mode ") for line in headers):
            pattern, change_kind = RE_EMPTY_ADDED_INDEX, ChangeKind.ADDED
        elif any(line.startswith("deleted file mode ") for line in headers):
            pattern, change_kind = RE_EMPTY_DELETED_INDEX, ChangeKind.DELETED
        else:
            return None
        if not any(pattern.match(line) for line in headers):
            return None
        return FilePatch(path=section.path, change_kind=change_kind)

    @classmethod
    def _parse_section(cls, section: _Section) -> list[FilePatch]:
        if section.error is not None:
            raise section.error

        if not section.hunk_headers:
            empty = cls._empty_file_patch(section)
            if empty is None:
                raise DiffParserError(
                    "file section has no hunks", line=section.start, path=section.path,
                )
            logger.debug("Empty file %s: %s", empty.change_kind.value, empty.path)
            return [empty]

        try:
            patched = UnidiffPatchSet("".join(section.lines))
        except UnidiffParseError as e:
            raise DiffParserError(
                f"invalid file section: {e}", line=section.start, path=section.path,
            ) from e

        if len(patched) == 0:
            raise DiffParserError(
                "file section has no hunks", line=section.start, path=section.path,
            )
        return [cls._parse_patched_file(f, section) for f in patched]

    @classmethod
    def _sections_from_text(cls, diff_content: str) -> list[_Section]:
        if not diff_content.strip():
            raise DiffParserError("diff input is empty")

        sections = cls._scan_sections(diff_content.splitlines(keepends=True))
        if not sections:
            raise DiffParserError("no file sections found in diff input", line=1)
        logger.debug("Scanned %d file section(s)", len(sections))
        return sections

    @classmethod
    def parse_string(cls, diff_content: str) -> PatchSet:
        """
        Parse diff content from a string, failing on any malformed section.

        Args:
            diff_content: The diff content as a string.

        Returns:
            PatchSet with every file of the diff.

        Raises:
            DiffParserError: If the input is empty or any section is malformed.
        """
        files: list[FilePatch] = []
        for section in cls._sections_from_text(diff_content):
            files.extend(cls._parse_section(section))
        return PatchSet(files=files)

    @classmethod
    def parse_lenient(cls, diff_content: str) -> PatchSet:
        """
        Parse diff content, recording malformed sections instead of failing.

        Args:
            diff_content: The diff content as a string.

        Returns:
            PatchSet whose parse_errors list the malformed sections.

        Raises:
            DiffParserError: If the input is empty or has no file sections.
        """
        files: list[FilePatch] = []
        errors: list[SectionParseError] = []
        for section in cls._sections_from_text(diff_content):
            try:
                files.extend(cls._parse_section(section))
            except DiffParserError as e:
                logger.debug("Malformed section at line %d: %s", section.start, e)
                errors.append(e.to_section_error())
        return PatchSet(files=files, parse_errors=errors)

    @classmethod
    def parse_file(
        cls,
        diff_path: Path,
        encoding: str = "utf-8",
        lenient: bool = False,
    ) -> PatchSet:
        """
        Parse a diff file.

        Args:
            diff_path: Path to the diff file.
            encoding: File encoding (default: utf-8).
            lenient: Record malformed sections instead of failing.

        Returns:
            PatchSet for the file's content.

        Raises:
            DiffParserError: If the file cannot be read or parsing fails.
        """
        try:
            # newline="" keeps \r\n so CRLF hunks match CRLF bases
            with open(diff_path, encoding=encoding, newline="") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise DiffParserError(f"Failed to read diff file {diff_path}: {e}") from e

        if lenient:
            return cls.parse_lenient(content)
        return cls.parse_string(content)

    @classmethod
    def parse(cls, source: Union[Path, str], lenient: bool = False) -> PatchSet:
        """
        Parse diff from a file path or string.

        Args:
            source: Either a Path to a diff file or diff content as string.
            lenient: Record malformed sections instead of failing.

        Returns:
            PatchSet for the diff.
        """
        if isinstance(source, Path):
            return cls.parse_file(source, lenient=lenient)
        elif isinstance(source, str):
            if lenient:
                return cls.parse_lenient(source)
            return cls.parse_string(source)
        else:
            raise DiffParserError(f"Invalid source type: {type(source)}")
