"""
Parser package for patchguard.

This package contains the unified diff parser (built on unidiff).
"""

from patchguard.parser.diff_parser import DiffParser, DiffParserError

__all__ = [
    "DiffParser",
    "DiffParserError",
]
