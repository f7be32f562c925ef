"""Exceptions raised by the ground track generator.

Library code raises these and lets them propagate; only the CLI entry
point turns them into a logged fatal error and a non-zero exit status.
"""


class ConfigurationError(ValueError):
    """The requested output cannot be produced with the given settings."""


class OutputError(RuntimeError):
    """The output dataset cannot be created or written."""
