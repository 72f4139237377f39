"""
Human-readable text output formatter.
"""

from io import StringIO

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from patchguard.models.report import IssueKind, ValidationReport
from patchguard.output.formatters import BaseFormatter, register_formatter


@register_formatter("text")
class TextFormatter(BaseFormatter):
    """
    Format output as human-readable text using Rich.
    """

    def __init__(self, colorize: bool = True, width: int = 120) -> None:
        """
        Initialize the text formatter.

        Args:
            colorize: Whether to use colors in output.
            width: Console width used for wrapping.
        """
        self.colorize = colorize
        self.width = width

    def _kind_style(self, kind: IssueKind) -> str:
        """Get the style for an issue kind."""
        if not self.colorize:
            return ""

        styles = {
            IssueKind.PARSE_ERROR: "bold red",
            IssueKind.APPLY_CONFLICT: "red",
            IssueKind.INSUFFICIENT_CONTEXT: "yellow",
        }
        return styles.get(kind, "")

    def _kind_icon(self, kind: IssueKind) -> str:
        """Get an icon for an issue kind."""
        icons = {
            IssueKind.PARSE_ERROR: "❌",
            IssueKind.APPLY_CONFLICT: "💥",
            IssueKind.INSUFFICIENT_CONTEXT: "⚠️ ",
        }
        return icons.get(kind, "•")

    def format(self, report: ValidationReport) -> str:
        """Format a validation report as text."""
        output = StringIO()
        console = Console(
            file=output,
            force_terminal=self.colorize,
            no_color=not self.colorize,
            width=self.width,
        )

        # Header
        console.print(
            Panel.fit(
                "[bold]patchguard[/bold]\nPatch Validation Report",
                border_style="blue",
            )
        )

        # Summary
        console.print("[bold]Summary[/bold]")
        console.print(f"  Files Checked: {len(report.checked_files)}")
        console.print(f"  Files Skipped: {len(report.skipped_files)}")
        console.print(f"  Issues: {report.issue_count}")
        for kind in IssueKind:
            count = report.count(kind)
            if count:
                console.print(f"    {kind.value}: {count}")
        console.print()

        if report.passed:
            console.print("[green]✅ Patch applies cleanly with sufficient context.[/green]")
            return output.getvalue()

        console.print("[bold]Issues[/bold]")
        for path, issues in report.issues_by_path().items():
            console.print(f"  📄 [cyan]{escape(path)}[/cyan]")
            for issue in issues:
                style = self._kind_style(issue.kind)
                icon = self._kind_icon(issue.kind)
                label = f"[{style}]{issue.kind.value}[/{style}]" if style else issue.kind.value
                console.print(f"     {icon} {label}: {escape(issue.message)}")
            console.print()

        console.print("[bold red]Patch rejected.[/bold red]")
        return output.getvalue()
