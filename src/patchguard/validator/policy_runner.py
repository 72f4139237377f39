"""
Policy runner - validates a patch set and aggregates the results.

This module combines the context validator and the apply-check engine
over every file patch that matches the configured path filter, and
produces a deterministic ValidationReport.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Optional

from pydantic import BaseModel, Field

from patchguard.models.diff import FilePatch, PatchSet
from patchguard.models.report import IssueKind, ValidationIssue, ValidationReport
from patchguard.parser.diff_parser import DiffParser
from patchguard.resolvers.base import ContentResolver, ResolverError
from patchguard.validator.apply_check import ApplyChecker
from patchguard.validator.context_validator import DEFAULT_MIN_CONTEXT, ContextValidator

logger = logging.getLogger(__name__)

# Path filter: path -> should it be checked
PathFilter = Callable[[str], bool]

UNKNOWN_PATH = "<unknown>"


class PolicyOptions(BaseModel):
    """Options for one validation run."""

    min_context: int = Field(default=DEFAULT_MIN_CONTEXT, ge=0)
    ignore_trailing_whitespace: bool = False
    strict: bool = Field(
        default=False,
        description="Abort the run when the resolver fails.",
    )
    workers: int = Field(default=1, ge=1)
    resolver_timeout: Optional[float] = Field(default=30.0, gt=0)

    class Config:
        frozen = True


class ExtensionFilter:
    """
    Match paths by file extension.

    An empty extension set matches every path.
    """

    def __init__(self, extensions: Iterable[str]) -> None:
        self.extensions = frozenset(
            ext.strip().lstrip(".").lower() for ext in extensions if ext.strip()
        )

    def __call__(self, path: str) -> bool:
        if not self.extensions or "*" in self.extensions:
            return True
        name = path.rsplit("/", 1)[-1]
        if "." not in name.lstrip("."):
            return False
        return name.rsplit(".", 1)[-1].lower() in self.extensions

    def __repr__(self) -> str:
        return f"ExtensionFilter({sorted(self.extensions)!r})"


class PolicyRunner:
    """
    Run the context and apply checks over a patch set.

    Each run depends only on its inputs, so a runner can be reused and
    called from several threads.
    """

    def __init__(
        self,
        resolver: ContentResolver,
        path_filter: Optional[PathFilter] = None,
        options: Optional[PolicyOptions] = None,
    ) -> None:
        """
        Initialize the policy runner.

        Args:
            resolver: Supplies base content for file patches.
            path_filter: Selects the paths to check (default: all paths).
            options: Run options (default: PolicyOptions()).
        """
        self.resolver = resolver
        self.path_filter = path_filter or ExtensionFilter(())
        self.options = options or PolicyOptions()
        self.context_validator = ContextValidator(self.options.min_context)
        self.apply_checker = ApplyChecker(self.options.ignore_trailing_whitespace)

    def check_file(self, file_patch: FilePatch) -> list[ValidationIssue]:
        """
        Validate one file patch.

        The base content is loaded once and shared by both checks.

        Raises:
            ResolverError: In strict mode, if the base cannot be read.
        """
        logger.debug("Checking %s (%s)", file_patch.path, file_patch.change_kind.value)
        base = self.apply_checker.load_base(
            file_patch,
            self.resolver,
            timeout=self.options.resolver_timeout,
            strict=self.options.strict,
        )
        issues = self.context_validator.check_file(file_patch, base.line_count)
        issues.extend(self.apply_checker.check(file_patch, base))
        return issues

    def _check_all(self, files: list[FilePatch]) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        if self.options.workers <= 1 or len(files) <= 1:
            for file_patch in files:
                issues.extend(self.check_file(file_patch))
            return issues

        with ThreadPoolExecutor(max_workers=self.options.workers) as pool:
            futures = [pool.submit(self.check_file, f) for f in files]
            try:
                # Submission order, so ties in the sort keep diff order
                for future in futures:
                    issues.extend(future.result())
            except ResolverError:
                for future in futures:
                    future.cancel()
                raise
        return issues

    def run(self, patch_set: PatchSet) -> ValidationReport:
        """
        Validate a patch set.

        Args:
            patch_set: Parsed diff, possibly carrying malformed sections.

        Returns:
            ValidationReport with issues sorted by path, hunk and kind.

        Raises:
            ResolverError: In strict mode, if a base cannot be read.
        """
        matched: list[FilePatch] = []
        skipped: set[str] = set()
        for file_patch in patch_set.files:
            if self.path_filter(file_patch.path):
                matched.append(file_patch)
            else:
                skipped.add(file_patch.path)

        issues: list[ValidationIssue] = []
        for error in patch_set.parse_errors:
            if error.path is not None and not self.path_filter(error.path):
                skipped.add(error.path)
                continue
            issues.append(ValidationIssue(
                path=error.path or UNKNOWN_PATH,
                hunk_index=error.hunk_index,
                kind=IssueKind.PARSE_ERROR,
                message=f"line {error.line}: {error.message}",
            ))

        logger.debug(
            "Checking %d file(s), skipping %d", len(matched), len(skipped),
        )
        issues.extend(self._check_all(matched))
        issues.sort(key=lambda issue: issue.sort_key)

        report = ValidationReport(
            issues=issues,
            checked_files=sorted({f.path for f in matched}),
            skipped_files=sorted(skipped),
        )
        logger.info(
            "Validated %d file(s): %s",
            len(report.checked_files),
            "passed" if report.passed else f"{report.issue_count} issue(s)",
        )
        return report


def validate_diff(
    diff_content: str,
    resolver: ContentResolver,
    path_filter: Optional[PathFilter] = None,
    options: Optional[PolicyOptions] = None,
) -> ValidationReport:
    """
    Parse a diff and validate it in one call.

    Malformed file sections become ParseError issues.

    Raises:
        DiffParserError: If the diff is empty or has no file sections.
        ResolverError: In strict mode, if a base cannot be read.
    """
    patch_set = DiffParser.parse_lenient(diff_content)
    return PolicyRunner(resolver, path_filter, options).run(patch_set)
