"""
Unit tests for the policy runner.
"""

import threading
import time
from typing import Optional

import pytest

from patchguard.models.report import IssueKind
from patchguard.output import JsonFormatter
from patchguard.parser.diff_parser import DiffParser, DiffParserError
from patchguard.resolvers.base import ContentResolver, ResolverError
from patchguard.resolvers.mapping import MappingResolver
from patchguard.validator.policy_runner import (
    ExtensionFilter,
    PolicyOptions,
    PolicyRunner,
    validate_diff,
)


class FailingResolver(ContentResolver):
    """Resolver whose every read fails."""

    def read(self, path: str, timeout: Optional[float] = None) -> Optional[str]:
        raise ResolverError(path, "permission denied")

    def describe(self) -> str:
        return "failing"


class CountingResolver(MappingResolver):
    """Mapping resolver that counts reads per path."""

    def __init__(self, files: dict[str, str]) -> None:
        super().__init__(files)
        self.reads: dict[str, int] = {}
        self._lock = threading.Lock()

    def read(self, path: str, timeout: Optional[float] = None) -> Optional[str]:
        with self._lock:
            self.reads[path] = self.reads.get(path, 0) + 1
        return super().read(path, timeout=timeout)


class SlowFirstReadResolver(MappingResolver):
    """Mapping resolver whose first read is slower than the others."""

    def __init__(self, files: dict[str, str], delay: float = 0.3) -> None:
        super().__init__(files)
        self.delay = delay
        self._calls = 0
        self._lock = threading.Lock()

    def read(self, path: str, timeout: Optional[float] = None) -> Optional[str]:
        with self._lock:
            first = self._calls == 0
            self._calls += 1
        if first:
            time.sleep(self.delay)
        return super().read(path, timeout=timeout)


def _broken_second_section(first: str) -> str:
    """Append a section whose only hunk is cut short."""
    return first + (
        "diff --git a/b.py b/b.py\n"
        "--- a/b.py\n"
        "+++ b/b.py\n"
        "@@ -1,3 +1,3 @@\n"
        " only one line\n"
    )


class TestExtensionFilter:
    """Tests for the ExtensionFilter class."""

    @pytest.mark.parametrize("extensions, path, expected", [
        ([], "anything.bin", True),
        (["*"], "Makefile", True),
        (["py"], "src/a.py", True),
        ([".py"], "src/a.py", True),
        (["py"], "src/A.PY", True),
        (["py"], "src/a.pyc", False),
        (["py", "json"], "data/x.json", True),
        (["py"], "Makefile", False),
        (["py"], ".bashrc", False),
        (["gz"], "dist/pkg.tar.gz", True),
    ])
    def test_matching(self, extensions: list[str], path: str, expected: bool) -> None:
        """Test extension matching rules."""
        assert ExtensionFilter(extensions)(path) is expected


class TestPolicyOptions:
    """Tests for PolicyOptions."""

    def test_defaults(self) -> None:
        """Test the default run options."""
        options = PolicyOptions()

        assert options.min_context == 3
        assert options.workers == 1
        assert not options.strict
        assert not options.ignore_trailing_whitespace

    @pytest.mark.parametrize("field, value", [
        ("min_context", -1),
        ("workers", 0),
        ("resolver_timeout", 0),
    ])
    def test_invalid_values(self, field: str, value: int) -> None:
        """Test that out-of-range options are rejected."""
        with pytest.raises(Exception):  # ValidationError
            PolicyOptions(**{field: value})


class TestPolicyRunner:
    """Tests for the PolicyRunner class."""

    def test_clean_patch_passes(
        self, clean_diff_content: str, base_resolver: MappingResolver,
    ) -> None:
        """Test a patch with enough context that applies cleanly."""
        report = PolicyRunner(base_resolver).run(DiffParser.parse_string(clean_diff_content))

        assert report.passed
        assert report.issues == []
        assert report.checked_files == ["src/module.py"]

    def test_low_context_rejected(
        self, low_context_diff_content: str, base_resolver: MappingResolver,
    ) -> None:
        """Test a hunk with one leading context line."""
        report = PolicyRunner(base_resolver).run(
            DiffParser.parse_string(low_context_diff_content),
        )

        assert not report.passed
        assert len(report.issues) == 1
        issue = report.issues[0]
        assert issue.kind == IssueKind.INSUFFICIENT_CONTEXT
        assert issue.path == "src/module.py"
        assert issue.hunk_index == 0

    def test_low_context_with_lower_minimum(
        self, low_context_diff_content: str, base_resolver: MappingResolver,
    ) -> None:
        """Test that the minimum is configurable."""
        runner = PolicyRunner(base_resolver, options=PolicyOptions(min_context=1))

        assert runner.run(DiffParser.parse_string(low_context_diff_content)).passed

    def test_conflict_rejected(
        self, conflict_diff_content: str, base_resolver: MappingResolver,
    ) -> None:
        """Test a removed line that does not match the base."""
        report = PolicyRunner(base_resolver).run(
            DiffParser.parse_string(conflict_diff_content),
        )

        assert [issue.kind for issue in report.issues] == [IssueKind.APPLY_CONFLICT]
        assert report.issues[0].hunk_index == 0

    def test_extension_filter(
        self, multi_file_diff_content: str, multi_file_resolver: MappingResolver,
    ) -> None:
        """Test that filtered-out files are skipped and never checked."""
        runner = PolicyRunner(multi_file_resolver, path_filter=ExtensionFilter(["py", "json"]))

        report = runner.run(DiffParser.parse_string(multi_file_diff_content))

        assert report.passed
        assert report.checked_files == ["data/settings.json", "src/module.py"]
        assert report.skipped_files == ["docs/readme.txt"]

    def test_unfiltered_multi_file(
        self, multi_file_diff_content: str, multi_file_resolver: MappingResolver,
    ) -> None:
        """Test that only the mismatching text file fails without a filter."""
        report = PolicyRunner(multi_file_resolver).run(
            DiffParser.parse_string(multi_file_diff_content),
        )

        assert [(i.path, i.kind) for i in report.issues] == [
            ("docs/readme.txt", IssueKind.APPLY_CONFLICT),
        ]

    def test_issue_order(
        self, multi_file_diff_content: str, multi_file_resolver: MappingResolver,
    ) -> None:
        """Test that issues come out in path order regardless of diff order."""
        runner = PolicyRunner(multi_file_resolver, options=PolicyOptions(min_context=5))

        report = runner.run(DiffParser.parse_string(multi_file_diff_content))

        assert [(i.path, i.kind) for i in report.issues] == [
            ("docs/readme.txt", IssueKind.APPLY_CONFLICT),
            ("src/module.py", IssueKind.INSUFFICIENT_CONTEXT),
        ]

    def test_base_loaded_once_per_file(self, clean_diff_content: str, ten_line_base: str) -> None:
        """Test that both checks share one resolver read."""
        resolver = CountingResolver({"src/module.py": ten_line_base})

        PolicyRunner(resolver).run(DiffParser.parse_string(clean_diff_content))

        assert resolver.reads == {"src/module.py": 1}

    def test_idempotent(
        self, multi_file_diff_content: str, multi_file_resolver: MappingResolver,
    ) -> None:
        """Test that repeated runs serialize to identical bytes."""
        runner = PolicyRunner(multi_file_resolver)
        patch_set = DiffParser.parse_string(multi_file_diff_content)
        formatter = JsonFormatter()

        first = formatter.format(runner.run(patch_set))
        second = formatter.format(runner.run(patch_set))

        assert first == second

    def test_workers_do_not_change_result(
        self, multi_file_diff_content: str, multi_file_resolver: MappingResolver,
    ) -> None:
        """Test that parallel runs match serial runs."""
        patch_set = DiffParser.parse_string(multi_file_diff_content)
        options = {"min_context": 5}

        serial = PolicyRunner(
            multi_file_resolver, options=PolicyOptions(workers=1, **options),
        ).run(patch_set)
        parallel = PolicyRunner(
            multi_file_resolver, options=PolicyOptions(workers=4, **options),
        ).run(patch_set)

        assert parallel.to_dict() == serial.to_dict()
        assert parallel.checked_files == serial.checked_files

    def test_workers_keep_diff_order_for_repeated_paths(self) -> None:
        """Test that sections touching the same file keep diff order in parallel."""
        section = (
            "diff --git a/a.py b/a.py\n"
            "--- a/a.py\n"
            "+++ b/a.py\n"
            "@@ -1 +1 @@\n"
            "-{old}\n"
            "+new\n"
        )
        patch_set = DiffParser.parse_string(
            section.format(old="first") + section.format(old="second"),
        )
        base = {"a.py": "x\n"}

        serial = PolicyRunner(
            SlowFirstReadResolver(base), options=PolicyOptions(workers=1),
        ).run(patch_set)
        parallel = PolicyRunner(
            SlowFirstReadResolver(base), options=PolicyOptions(workers=4),
        ).run(patch_set)

        messages = [issue.message for issue in parallel.issues]
        assert len(messages) == 2
        assert "'first'" in messages[0]
        assert "'second'" in messages[1]
        assert parallel.to_dict() == serial.to_dict()


class TestPolicyRunnerErrors:
    """Tests for resolver failures and malformed sections."""

    def test_resolver_failure_reported(self, clean_diff_content: str) -> None:
        """Test that an unreadable base becomes a file-level conflict."""
        report = PolicyRunner(FailingResolver()).run(DiffParser.parse_string(clean_diff_content))

        assert len(report.issues) == 1
        issue = report.issues[0]
        assert issue.kind == IssueKind.APPLY_CONFLICT
        assert issue.hunk_index == -1
        assert "permission denied" in issue.message

    @pytest.mark.parametrize("workers", [1, 4])
    def test_resolver_failure_strict(
        self, multi_file_diff_content: str, workers: int,
    ) -> None:
        """Test that strict mode aborts the run."""
        runner = PolicyRunner(
            FailingResolver(), options=PolicyOptions(strict=True, workers=workers),
        )

        with pytest.raises(ResolverError):
            runner.run(DiffParser.parse_string(multi_file_diff_content))

    def test_parse_errors_become_issues(
        self, clean_diff_content: str, base_resolver: MappingResolver,
    ) -> None:
        """Test that malformed sections are reported and the rest is checked."""
        patch_set = DiffParser.parse_lenient(_broken_second_section(clean_diff_content))

        report = PolicyRunner(base_resolver).run(patch_set)

        assert report.checked_files == ["src/module.py"]
        assert len(report.issues) == 1
        issue = report.issues[0]
        assert issue.kind == IssueKind.PARSE_ERROR
        assert issue.path == "b.py"
        assert issue.hunk_index == 0
        assert issue.message.startswith("line 18: ")

    def test_parse_errors_respect_filter(
        self, clean_diff_content: str, base_resolver: MappingResolver,
    ) -> None:
        """Test that malformed sections of filtered-out files are skipped."""
        patch_set = DiffParser.parse_lenient(_broken_second_section(clean_diff_content))
        runner = PolicyRunner(base_resolver, path_filter=ExtensionFilter(["txt"]))

        report = runner.run(patch_set)

        assert report.passed
        assert report.checked_files == []
        assert report.skipped_files == ["b.py", "src/module.py"]


class TestValidateDiff:
    """Tests for validate_diff()."""

    def test_validate_diff(
        self, conflict_diff_content: str, base_resolver: MappingResolver,
    ) -> None:
        """Test parsing and validating in one call."""
        report = validate_diff(conflict_diff_content, base_resolver)

        assert not report.passed
        assert report.issues[0].kind == IssueKind.APPLY_CONFLICT

    def test_validate_diff_empty(self, base_resolver: MappingResolver) -> None:
        """Test that empty input is not a valid diff."""
        with pytest.raises(DiffParserError):
            validate_diff("", base_resolver)

    @pytest.mark.parametrize("base, passed", [
        ({}, True),
        ({"pkg/__init__.py": ""}, False),
    ])
    def test_validate_empty_new_file(self, base: dict[str, str], passed: bool) -> None:
        """Test that adding an empty file only checks that it does not exist yet."""
        content = (
            "diff --git a/pkg/__init__.py b/pkg/__init__.py\n"
            "new file mode 100644\n"
            "index 0000000..e69de29\n"
        )

        report = validate_diff(content, MappingResolver(base))

        assert report.passed is passed
        assert report.checked_files == ["pkg/__init__.py"]
        if not passed:
            assert report.issues[0].kind == IssueKind.APPLY_CONFLICT
            assert "already exists" in report.issues[0].message
