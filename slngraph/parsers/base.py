"""Error hierarchy shared by the evaluator, ingestion and pipeline.

Per-file problems derive from ``RecoverableError`` and are handled by
skipping the file. ``ConfigurationError`` is reserved for pre-flight
failures that make the whole run impossible.
"""


class RecoverableError(Exception):
    """Base class for recoverable business errors.

    These errors indicate expected failure conditions that can be handled
    gracefully by skipping the current item and continuing processing.
    """


class DescriptorError(RecoverableError):
    """A project descriptor could not be read or evaluated.

    The file is skipped and never becomes a node, so it can never be a
    dependency target either.
    """


class ScanError(RecoverableError):
    """A source file could not be read while scanning for directives."""


class ManifestEntryError(RecoverableError):
    """An entry of the build manifest names a file that does not exist."""


class ConfigurationError(Exception):
    """Run-fatal configuration problem detected before ingestion starts.

    Raised for a missing search directory, an unreadable manifest or
    invalid option values.
    """


# Exceptions a per-file task may raise when its input is malformed.
RECOVERABLE_ERRORS = (
    RecoverableError,
    OSError,
    UnicodeDecodeError,
    ValueError,
    KeyError,
)
