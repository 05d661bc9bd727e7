"""
Exception hierarchy for YoRC Stats.

Each subsystem raises its own error type so callers can tell a rejected
document apart from a storage failure.
"""


class YoRCStatsError(Exception):
    """Base exception for all YoRC Stats failures."""


class ParseError(YoRCStatsError):
    """Raised when a submitted document cannot be decoded.

    Either the text is not valid JSON or the generator configuration
    object is missing from it.
    """


class StorageError(YoRCStatsError):
    """Raised for any failure reported by the storage layer."""


class ConfigError(YoRCStatsError, ValueError):
    """Raised for invalid configuration files."""
