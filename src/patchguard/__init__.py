"""
patchguard

A CLI tool that rejects patches which do not apply cleanly to the current
state of a repository or which carry too little unchanged context around
their hunks. It is meant to run from a git pre-commit hook or a CI step.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("patchguard")
except PackageNotFoundError:
    __version__ = "0.1.0"

# Public API exports
__all__ = [
    "__version__",
]
