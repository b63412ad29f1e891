"""Exception taxonomy for the conversion pipeline.

All errors derive from :class:`ConversionError` so that callers (the CLI in
particular) can report any conversion failure with a single ``except``.
"""

from __future__ import annotations


class ConversionError(ValueError):
    """Base class for every failure raised while converting a backup."""


class FormatError(ConversionError):
    """The backup text does not have the expected header/body shape."""


class ValidationError(ConversionError):
    """A transaction cannot be expressed as ledger postings."""

    def __init__(self, message: str, *, transaction_id: int | str | None = None) -> None:
        super().__init__(message)
        self.transaction_id = transaction_id


class ConfigError(ConversionError):
    """An entity carries a configuration value the converter does not know."""


__all__ = ["ConversionError", "FormatError", "ValidationError", "ConfigError"]
