"""
Export errors
=============

Every fatal problem during an export is one of three kinds. Each carries a
single human-readable message that the CLI prints as-is.

Malformed values inside individual records are never errors: they degrade to
None / UNKNOWN / exclusion inside the engine.
"""


class ExportError(Exception):
    """Base class for all fatal export errors."""


class ConfigurationError(ExportError):
    """Invalid export parameters (raised before any data access)."""


class ResourceError(ExportError):
    """Template, destination or input file problem."""


class EmptyResultError(ExportError):
    """The record query produced no rows."""
