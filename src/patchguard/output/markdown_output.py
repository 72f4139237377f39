"""
Markdown output formatter.

Useful for posting the result of a CI run as a pull request comment.
"""

from patchguard.models.report import IssueKind, ValidationReport
from patchguard.output.formatters import BaseFormatter, register_formatter


@register_formatter("markdown")
class MarkdownFormatter(BaseFormatter):
    """
    Format output as Markdown.
    """

    def _kind_emoji(self, kind: IssueKind) -> str:
        """Get an emoji for an issue kind."""
        emojis = {
            IssueKind.PARSE_ERROR: "❌",
            IssueKind.APPLY_CONFLICT: "🔴",
            IssueKind.INSUFFICIENT_CONTEXT: "🟡",
        }
        return emojis.get(kind, "⚪")

    def format(self, report: ValidationReport) -> str:
        """Format a validation report as Markdown."""
        lines = []

        lines.append("# patchguard")
        lines.append("")

        # Summary
        lines.append("## Summary")
        lines.append("")
        lines.append(f"- **Result:** {'passed' if report.passed else 'rejected'}")
        lines.append(f"- **Files Checked:** {len(report.checked_files)}")
        lines.append(f"- **Files Skipped:** {len(report.skipped_files)}")
        lines.append(f"- **Issues:** {report.issue_count}")
        lines.append("")

        if report.passed:
            lines.append("## ✅ No Issues")
            lines.append("")
            lines.append("The patch applies cleanly and every hunk has enough context.")
            lines.append("")
            return "\n".join(lines)

        lines.append("## Issues")
        lines.append("")
        lines.append("| | File | Hunk | Kind | Message |")
        lines.append("|---|------|------|------|---------|")
        for issue in report.issues:
            hunk = str(issue.hunk_index + 1) if issue.hunk_index >= 0 else "-"
            message = issue.message.replace("|", "\\|")
            lines.append(
                f"| {self._kind_emoji(issue.kind)} | `{issue.path}` | {hunk} "
                f"| {issue.kind.value} | {message} |"
            )
        lines.append("")

        return "\n".join(lines)
