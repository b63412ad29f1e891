"""Public interface for the ``financisto_ledger`` package.

Converts Financisto backups into ledger-cli text. This module exposes the
package's API functions and public models/types as the stable import
surface; there is no runtime logic here, only symbol re-exports.
"""

from .api import (
    Book,
    ConversionResult,
    convert,
    from_any_file,
    from_backup,
    from_file,
    from_string,
    load_backup_text,
    parse_backup,
)
from .entities import Entity, EntityCollection, EntityStore
from .errors import ConfigError, ConversionError, FormatError, ValidationError
from .options import DEFAULT_OPTIONS, ConverterOptions

__all__ = [
    # API
    "convert",
    "from_any_file",
    "from_backup",
    "from_file",
    "from_string",
    "load_backup_text",
    "parse_backup",
    # Models / types
    "Book",
    "ConversionResult",
    "ConverterOptions",
    "DEFAULT_OPTIONS",
    "Entity",
    "EntityCollection",
    "EntityStore",
    # Errors
    "ConversionError",
    "ConfigError",
    "FormatError",
    "ValidationError",
]
