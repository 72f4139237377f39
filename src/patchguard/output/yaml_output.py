"""
YAML output formatter.
"""

import yaml

from patchguard.models.report import ValidationReport
from patchguard.output.formatters import BaseFormatter, register_formatter


@register_formatter("yaml")
class YamlFormatter(BaseFormatter):
    """
    Format output as YAML.
    """

    def format(self, report: ValidationReport) -> str:
        """Format a validation report as YAML."""
        return yaml.dump(
            report.to_dict(),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
