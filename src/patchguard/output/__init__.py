"""
Output package for patchguard.

This package contains formatters for displaying validation reports
in various formats (text, JSON, YAML, Markdown).
"""

from patchguard.output.formatters import (
    BaseFormatter,
    get_formatter,
)
from patchguard.output.json_output import JsonFormatter
from patchguard.output.markdown_output import MarkdownFormatter
from patchguard.output.text_output import TextFormatter
from patchguard.output.yaml_output import YamlFormatter

__all__ = [
    "BaseFormatter",
    "JsonFormatter",
    "MarkdownFormatter",
    "TextFormatter",
    "YamlFormatter",
    "get_formatter",
]
