"""
Git pre-commit hook installation.

The installed hook validates the staged changes against HEAD before
every commit.
"""

import logging
import shlex
import stat
import subprocess
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

HOOK_NAME = "pre-commit"
HOOK_MARKER = "# Installed by patchguard install-hook"

HOOK_TEMPLATE = """#!/bin/sh
{marker}
# Rejects staged changes that do not apply cleanly to HEAD or lack context.
diff=$(git diff --cached --no-color --no-ext-diff --unified={context})
[ -z "$diff" ] && exit 0
printf '%s\\n' "$diff" | {command} check --base HEAD --min-context {min_context}{extensions}
"""


class HookError(Exception):
    """Error while installing the hook."""
    pass


def render_hook(
    min_context: int = 3,
    extensions: Optional[list[str]] = None,
    command: str = "patchguard",
) -> str:
    """
    Render the pre-commit hook script.

    Args:
        min_context: Context lines required per hunk.
        extensions: Extensions to check, None to use the config file.
        command: How the hook invokes patchguard.

    Returns:
        The shell script text.
    """
    extension_arg = ""
    if extensions:
        extension_arg = f" --ext {shlex.quote(','.join(extensions))}"
    return HOOK_TEMPLATE.format(
        marker=HOOK_MARKER,
        context=max(min_context, 3),
        command=command,
        min_context=min_context,
        extensions=extension_arg,
    )


def find_hooks_dir(repo: Path, timeout: float = 10) -> Path:
    """
    Locate the hooks directory of a repository.

    Raises:
        HookError: If ``repo`` is not inside a git repository.
    """
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--git-path", "hooks"],
            cwd=repo,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise HookError("git executable not found") from e
    except subprocess.TimeoutExpired as e:
        raise HookError("Timed out locating the hooks directory") from e

    if result.returncode != 0:
        raise HookError(f"Not a git repository: {repo}")
    return (repo / result.stdout.strip()).resolve()


def install_hook(
    repo: Path,
    min_context: int = 3,
    extensions: Optional[list[str]] = None,
    command: str = "patchguard",
    force: bool = False,
) -> Path:
    """
    Write the pre-commit hook into a repository.

    Args:
        repo: Repository directory.
        min_context: Context lines required per hunk.
        extensions: Extensions to check, None to use the config file.
        command: How the hook invokes patchguard.
        force: Overwrite an existing hook that patchguard did not install.

    Returns:
        Path of the installed hook.

    Raises:
        HookError: If the hook cannot be installed.
    """
    hooks_dir = find_hooks_dir(repo)
    hook_path = hooks_dir / HOOK_NAME

    if hook_path.exists() and not force:
        existing = hook_path.read_text(encoding="utf-8", errors="replace")
        if HOOK_MARKER not in existing:
            raise HookError(
                f"{hook_path} already exists; use --force to overwrite it"
            )

    hooks_dir.mkdir(parents=True, exist_ok=True)
    hook_path.write_text(
        render_hook(min_context, extensions, command), encoding="utf-8",
    )
    mode = hook_path.stat().st_mode
    hook_path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.debug("Installed hook at %s", hook_path)
    return hook_path
