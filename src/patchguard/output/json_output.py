"""
JSON output formatter.
"""

import json

from patchguard.models.report import ValidationReport
from patchguard.output.formatters import BaseFormatter, register_formatter


@register_formatter("json")
class JsonFormatter(BaseFormatter):
    """
    Format output as JSON.

    The document has the shape
    ``{"passed": bool, "issues": [{"path", "hunkIndex", "kind", "message"}]}``
    and carries nothing run-specific, so identical inputs give identical
    bytes.
    """

    def __init__(self, indent: int = 2) -> None:
        """
        Initialize the JSON formatter.

        Args:
            indent: JSON indentation level.
        """
        self.indent = indent

    def format(self, report: ValidationReport) -> str:
        """Format a validation report as JSON."""
        return json.dumps(report.to_dict(), indent=self.indent) + "\n"
