"""
Validator package for patchguard.

This package contains modules for:
- Minimum-context checks on hunks
- Dry-run apply checks against base content
- The policy runner that aggregates both into a report
"""

from patchguard.validator.apply_check import ApplyChecker, BaseContent
from patchguard.validator.context_validator import ContextValidator
from patchguard.validator.policy_runner import (
    ExtensionFilter,
    PolicyOptions,
    PolicyRunner,
    validate_diff,
)

__all__ = [
    "ApplyChecker",
    "BaseContent",
    "ContextValidator",
    "ExtensionFilter",
    "PolicyOptions",
    "PolicyRunner",
    "validate_diff",
]
