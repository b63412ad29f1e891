"""Type raw backup fields in place.

Each :class:`~financisto_ledger.entities.RawValue` field of every record is
converted exactly once, first rule wins:

1. ``<prefix_><name>_id`` where a ``<name>`` collection exists: replaced by a
   ``<prefix_><name>`` reference to the target record (``None`` when the
   identifier is not in that collection); the ``_id`` field is removed.
2. A registered field handler (epoch-millisecond timestamps).
3. A single-quoted string: quotes stripped.
4. A lossless decimal number: ``int`` or ``Decimal``.

Anything else becomes a plain ``str``. Converted values are no longer
``RawValue`` instances, so running the pass again changes nothing.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Any

from .entities import (
    ACCOUNT,
    EXCHANGE_RATE,
    TRANSACTION,
    Entity,
    EntityStore,
    RawValue,
)
from .logging_setup import get_logger

_log = get_logger("financisto_ledger.normalize")

_REFERENCE_RE = re.compile(r"^((?:\w+_)?(\w+))_id$")
_QUOTED_RE = re.compile(r"^'(.+)'$", re.DOTALL)
_NUMBER_RE = re.compile(r"^-?(?:0|[1-9]\d*)(?:\.\d+)?$")
_INTEGER_RE = re.compile(r"^-?\d+$")

type FieldHandler = Callable[[str, tzinfo | None], Any]


def as_timestamp(value: str, tz: tzinfo | None) -> Any:
    """Convert epoch milliseconds to a ``datetime``; other text is kept."""

    text = value.strip()
    if not _INTEGER_RE.match(text):
        return str(value)
    return datetime.fromtimestamp(int(text) / 1000, tz=tz)


def as_number(value: str) -> int | Decimal | None:
    """Return ``value`` as ``int``/``Decimal`` when it round-trips, else ``None``."""

    if not _NUMBER_RE.match(value):
        return None
    if "." in value:
        return Decimal(value)
    return int(value)


FIELD_HANDLERS: dict[str, dict[str, FieldHandler]] = {
    ACCOUNT: {
        "creation_date": as_timestamp,
    },
    EXCHANGE_RATE: {
        "rate_date": as_timestamp,
        "updated_on": as_timestamp,
    },
    TRANSACTION: {
        "datetime": as_timestamp,
        "updated_on": as_timestamp,
    },
}


def _normalize_entity(store: EntityStore, entity: Entity, tz: tzinfo | None) -> int:
    handlers = FIELD_HANDLERS.get(entity.type, {})
    linked = 0
    # Keys are added and removed while iterating.
    for key in list(entity):
        value = entity[key]
        if not isinstance(value, RawValue):
            continue

        ref = _REFERENCE_RE.match(key)
        if ref is not None and ref.group(2) in store:
            entity[ref.group(1)] = store.collection(ref.group(2)).get(value)
            del entity[key]
            linked += 1
        elif key in handlers:
            entity[key] = handlers[key](value, tz)
        elif (quoted := _QUOTED_RE.match(value)) is not None:
            entity[key] = quoted.group(1)
        elif (number := as_number(value)) is not None:
            entity[key] = number
        else:
            entity[key] = str(value)
    return linked


def normalize_entities(store: EntityStore, tz: tzinfo | None = None) -> EntityStore:
    """Type and link every record of ``store`` in place and return it."""

    linked = 0
    for coll in store:
        for entity in coll:
            linked += _normalize_entity(store, entity, tz)
    _log.debug("normalized %d collections, %d references linked", len(store.types()), linked)
    return store


__all__ = ["FIELD_HANDLERS", "as_number", "as_timestamp", "normalize_entities"]
