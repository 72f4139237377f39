"""
Command-line interface for patchguard.

This module provides the CLI using Click framework for argument parsing
and orchestrates the validation pipeline.

Exit codes of ``patchguard check``:
    0 - the patch applies cleanly and every hunk has enough context
    1 - the report contains issues
    2 - fatal error, no report was produced
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from patchguard import __version__
from patchguard.config import (
    Config,
    ConfigError,
    apply_overrides,
    find_config_file,
    load_config,
    parse_extensions,
)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_FATAL = 2

console = Console(stderr=True)


def _setup_logging(verbose: bool) -> None:
    """Route patchguard's loggers to a Rich handler on stderr."""
    package_logger = logging.getLogger("patchguard")
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)
    handler = RichHandler(console=console, show_path=False, show_time=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _read_diff(diff_file: Optional[Path]) -> str:
    """Read the diff from a file or standard input."""
    if diff_file is not None:
        # Raw bytes on both paths so line endings survive
        return diff_file.read_bytes().decode("utf-8")
    return sys.stdin.buffer.read().decode("utf-8")


def _fatal(ctx: click.Context, message: str) -> None:
    console.print(f"[red]Error:[/red] {message}", highlight=False)
    ctx.exit(EXIT_FATAL)


@click.group()
@click.version_option(version=__version__, prog_name="patchguard")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file (default: nearest .patchguard.yaml).",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path]) -> None:
    """patchguard - Reject patches that do not apply cleanly or lack context."""
    ctx.ensure_object(dict)
    config_path = config or find_config_file(Path.cwd())
    try:
        ctx.obj["config"] = load_config(config_path)
    except ConfigError as e:
        _fatal(ctx, str(e))
    ctx.obj["config_path"] = config_path


@cli.command()
@click.argument(
    "diff_file",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--base",
    "-b",
    help="Base to check against: git:<rev>, dir:<path>, a directory or a git revision (default: HEAD).",
)
@click.option(
    "--repo",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Repository used to resolve git revisions (default: current directory).",
)
@click.option(
    "--min-context",
    "-k",
    type=click.IntRange(min=0),
    help="Context lines required before and after each change (default: 3).",
)
@click.option(
    "--ext",
    "extensions",
    help="Comma-separated extensions to check, e.g. py,json. Empty checks all files.",
)
@click.option(
    "--ignore-trailing-ws/--no-ignore-trailing-ws",
    default=None,
    help="Ignore trailing whitespace when matching base lines.",
)
@click.option(
    "--strict/--no-strict",
    default=None,
    help="Fail the run when base content cannot be read.",
)
@click.option(
    "--workers",
    "-j",
    type=click.IntRange(min=1),
    help="Files validated in parallel.",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds to wait for the base content of one file.",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Write the JSON report to stdout (same as --format json).",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["json", "yaml", "markdown"]),
    help="Write the report to stdout in this format.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the report to this file instead of stdout.",
)
@click.option(
    "--color/--no-color",
    default=None,
    help="Use colors in the summary.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)
@click.pass_context
def check(
    ctx: click.Context,
    diff_file: Optional[Path],
    base: Optional[str],
    repo: Optional[Path],
    min_context: Optional[int],
    extensions: Optional[str],
    ignore_trailing_ws: Optional[bool],
    strict: Optional[bool],
    workers: Optional[int],
    timeout: Optional[float],
    as_json: bool,
    output_format: Optional[str],
    output: Optional[Path],
    color: Optional[bool],
    verbose: bool,
) -> None:
    """Validate a diff read from DIFF_FILE or standard input."""
    from patchguard.output.formatters import get_formatter
    from patchguard.output.text_output import TextFormatter
    from patchguard.parser.diff_parser import DiffParser, DiffParserError
    from patchguard.resolvers import ResolverConfigError, ResolverError, make_resolver
    from patchguard.validator.policy_runner import PolicyRunner

    if as_json and output_format not in (None, "json"):
        _fatal(ctx, "--json and --format cannot be combined")

    try:
        config: Config = apply_overrides(
            ctx.obj["config"],
            policy_min_context=min_context,
            policy_extensions=parse_extensions(extensions) if extensions is not None else None,
            policy_ignore_trailing_whitespace=ignore_trailing_ws,
            runner_base=base,
            runner_workers=workers,
            runner_resolver_timeout=timeout,
            runner_strict=strict,
            output_colorize=color,
            output_verbose=True if verbose else None,
        )
    except ConfigError as e:
        _fatal(ctx, str(e))

    _setup_logging(config.output.verbose)
    if config.output.verbose:
        console.print(f"[blue]Base:[/blue] {config.runner.base}", highlight=False)
        console.print(f"[blue]Minimum context:[/blue] {config.policy.min_context}")
        console.print(
            f"[blue]Extensions:[/blue] {', '.join(config.policy.extensions) or 'all'}",
            highlight=False,
        )

    try:
        diff_text = _read_diff(diff_file)
    except (OSError, UnicodeDecodeError) as e:
        _fatal(ctx, f"Failed to read diff: {e}")

    try:
        patch_set = DiffParser.parse_lenient(diff_text)
        resolver = make_resolver(config.runner.base, repo=repo)
        runner = PolicyRunner(resolver, config.path_filter(), config.policy_options())
        report = runner.run(patch_set)
    except DiffParserError as e:
        _fatal(ctx, f"Invalid diff: {e}")
    except ResolverConfigError as e:
        _fatal(ctx, f"Invalid base: {e}")
    except ResolverError as e:
        _fatal(ctx, str(e))

    summary = TextFormatter(colorize=config.output.colorize).format(report)
    click.echo(summary, err=True, nl=False)

    report_format = "json" if as_json else output_format
    if report_format is not None:
        formatted_output = get_formatter(report_format).format(report)
        if output:
            output.write_text(formatted_output, encoding="utf-8")
            console.print(f"[green]Report written to:[/green] {output}", highlight=False)
        else:
            sys.stdout.write(formatted_output)
            sys.stdout.flush()

    ctx.exit(EXIT_OK if report.passed else EXIT_FAILED)


@cli.command("install-hook")
@click.option(
    "--repo",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    help="Repository to install the hook into (default: current directory).",
)
@click.option(
    "--min-context",
    "-k",
    type=click.IntRange(min=0),
    help="Context lines the hook requires (default: from configuration).",
)
@click.option(
    "--ext",
    "extensions",
    help="Comma-separated extensions the hook checks (default: from configuration at commit time).",
)
@click.option(
    "--command",
    default="patchguard",
    show_default=True,
    help="Command the hook uses to run patchguard.",
)
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite an existing pre-commit hook.",
)
@click.pass_context
def install_hook_cmd(
    ctx: click.Context,
    repo: Path,
    min_context: Optional[int],
    extensions: Optional[str],
    command: str,
    force: bool,
) -> None:
    """Install a git pre-commit hook that validates staged changes."""
    from patchguard.hook import HookError, install_hook

    config: Config = ctx.obj["config"]
    try:
        hook_path = install_hook(
            repo,
            min_context=min_context if min_context is not None else config.policy.min_context,
            extensions=parse_extensions(extensions) if extensions is not None else None,
            command=command,
            force=force,
        )
    except HookError as e:
        _fatal(ctx, str(e))

    console.print(f"[green]Installed pre-commit hook:[/green] {hook_path}", highlight=False)


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})
