"""
Exceptions raised by the migration pipeline.
"""


class MigrationError(Exception):
    """Base class for errors raised while converting a component."""


class ScriptParseError(MigrationError):
    """The script parser itself failed (not merely a syntax error in the source)."""


class FormatterError(MigrationError):
    """The external formatter could not produce output."""
