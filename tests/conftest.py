"""
Pytest configuration and shared fixtures.
"""

import shutil
import subprocess
from pathlib import Path

import pytest

from patchguard.resolvers.mapping import MappingResolver


def make_diff(path: str, header: str, body: list[str]) -> str:
    """Build a single-file git diff from a hunk header and body lines."""
    lines = [
        f"diff --git a/{path} b/{path}",
        "index 1111111..2222222 100644",
        f"--- a/{path}",
        f"+++ b/{path}",
        header,
        *body,
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def examples_path() -> Path:
    """Get the path to the examples directory."""
    return Path(__file__).parent.parent / "examples"


@pytest.fixture
def sample_base_path(examples_path: Path) -> Path:
    """Get the path to the sample base tree."""
    return examples_path / "base"


@pytest.fixture
def sample_diffs_path(examples_path: Path) -> Path:
    """Get the path to the sample diff files."""
    return examples_path / "diffs"


@pytest.fixture
def ten_line_base() -> str:
    """A base file with ten numbered lines."""
    return "".join(f"line {n}\n" for n in range(1, 11))


@pytest.fixture
def base_resolver(ten_line_base: str) -> MappingResolver:
    """Resolver serving the ten-line base as src/module.py."""
    return MappingResolver({"src/module.py": ten_line_base})


@pytest.fixture
def clean_diff_content() -> str:
    """Change line 7 of the ten-line base with 3 lines of context each side."""
    return make_diff("src/module.py", "@@ -4,7 +4,8 @@", [
        " line 4",
        " line 5",
        " line 6",
        "-line 7",
        "+line seven",
        "+line 7b",
        " line 8",
        " line 9",
        " line 10",
    ])


@pytest.fixture
def low_context_diff_content() -> str:
    """Change line 7 with a single leading context line."""
    return make_diff("src/module.py", "@@ -6,5 +6,5 @@", [
        " line 6",
        "-line 7",
        "+line seven",
        " line 8",
        " line 9",
        " line 10",
    ])


@pytest.fixture
def conflict_diff_content() -> str:
    """Remove a line whose text does not match the base at line 7."""
    return make_diff("src/module.py", "@@ -4,7 +4,7 @@", [
        " line 4",
        " line 5",
        " line 6",
        "-line 70",
        "+line seven",
        " line 8",
        " line 9",
        " line 10",
    ])


@pytest.fixture
def multi_file_diff_content() -> str:
    """A diff touching a Python file, a JSON file and a text file."""
    lines = [
        "diff --git a/src/module.py b/src/module.py",
        "index 1111111..2222222 100644",
        "--- a/src/module.py",
        "+++ b/src/module.py",
        "@@ -1,4 +1,5 @@",
        " line 1",
        "+line 1b",
        " line 2",
        " line 3",
        " line 4",
        "diff --git a/data/settings.json b/data/settings.json",
        "index 3333333..4444444 100644",
        "--- a/data/settings.json",
        "+++ b/data/settings.json",
        "@@ -1,3 +1,3 @@",
        " {",
        '-  "retries": 3',
        '+  "retries": 5',
        " }",
        "diff --git a/docs/readme.txt b/docs/readme.txt",
        "index 5555555..6666666 100644",
        "--- a/docs/readme.txt",
        "+++ b/docs/readme.txt",
        "@@ -1,1 +1,1 @@",
        "-this does not match anything",
        "+whatever",
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def multi_file_resolver(ten_line_base: str) -> MappingResolver:
    """Resolver matching multi_file_diff_content except for the text file."""
    return MappingResolver({
        "src/module.py": ten_line_base,
        "data/settings.json": '{\n  "retries": 3\n}\n',
        "docs/readme.txt": "something else\n",
    })


def _git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


@pytest.fixture
def git_repo(tmp_path: Path, sample_base_path: Path) -> Path:
    """A git repository whose HEAD holds the sample base tree."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = tmp_path / "repo"
    shutil.copytree(sample_base_path, repo)
    _git(repo, "init", "-q")
    _git(repo, "config", "user.email", "dev@example.com")
    _git(repo, "config", "user.name", "Dev")
    _git(repo, "config", "commit.gpgsign", "false")
    _git(repo, "add", "-A")
    _git(repo, "commit", "-q", "-m", "base")
    return repo


@pytest.fixture
def diff_factory():
    """Factory building single-file diffs, see make_diff()."""
    return make_diff
