"""Entity records and per-type collections decoded from a backup.

A backup is a flat stream of records, one collection per entity type. Records
start out holding ``RawValue`` strings exactly as tokenized and are typed in
place by :mod:`financisto_ledger.normalize`; references between records are
plain Python object references after that pass.
"""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from typing import Any

from .errors import FormatError

# Entity type names used throughout the pipeline.
ACCOUNT = "account"
CATEGORY = "category"
CURRENCY = "currency"
PAYEE = "payee"
PROJECT = "project"
LOCATION = "location"
TRANSACTION = "transaction"
EXCHANGE_RATE = "currency_exchange_rate"
HEADER = "header"

ID_FIELD = "_id"


class RawValue(str):
    """A field value as it appeared in the backup, not yet normalized."""

    __slots__ = ()


class Entity(MutableMapping[str, Any]):
    """A single backup record: a mutable mapping of field name to value."""

    __slots__ = ("type", "_fields")

    def __init__(self, type: str, fields: dict[str, Any] | None = None) -> None:
        self.type = type
        self._fields: dict[str, Any] = dict(fields or {})

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._fields[key] = value

    def __delitem__(self, key: str) -> None:
        del self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    # Identity semantics: two records with equal fields are still different
    # records, and parent/split links make structural equality recursive.
    __eq__ = object.__eq__
    __hash__ = object.__hash__

    @property
    def id(self) -> Any:
        return self._fields.get(ID_FIELD)

    def __repr__(self) -> str:
        label = self._fields.get("name") or self._fields.get("title")
        return f"<Entity {self.type} id={self.id!r} {label!r}>"


class EntityCollection:
    """Insertion-ordered records of one type with an identifier index.

    Storing a record whose identifier is already present replaces the earlier
    record at its original position.
    """

    __slots__ = ("type", "_items", "_positions")

    def __init__(self, type: str) -> None:
        self.type = type
        self._items: list[Entity] = []
        self._positions: dict[int | str, int] = {}

    @staticmethod
    def _key(identifier: Any) -> int | str:
        text = str(identifier).strip()
        try:
            return int(text)
        except ValueError:
            return text

    def add(self, entity: Entity) -> None:
        identifier = entity.get(ID_FIELD)
        if identifier is None or str(identifier).strip() == "":
            self._items.append(entity)
            return
        key = self._key(identifier)
        pos = self._positions.get(key)
        if pos is None:
            self._positions[key] = len(self._items)
            self._items.append(entity)
        else:
            self._items[pos] = entity

    def get(self, identifier: Any) -> Entity | None:
        pos = self._positions.get(self._key(identifier))
        return None if pos is None else self._items[pos]

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"<EntityCollection {self.type} n={len(self._items)}>"


class EntityStore:
    """All collections decoded from one backup, keyed by entity type."""

    __slots__ = ("_collections",)

    def __init__(self) -> None:
        self._collections: dict[str, EntityCollection] = {}

    def collection(self, type: str) -> EntityCollection:
        """Return the collection for ``type``, creating it when missing."""

        coll = self._collections.get(type)
        if coll is None:
            coll = self._collections[type] = EntityCollection(type)
        return coll

    def add(self, entity: Entity) -> None:
        self.collection(entity.type).add(entity)

    def find(self, type: str) -> EntityCollection | None:
        return self._collections.get(type)

    def require(self, type: str) -> EntityCollection:
        """Return the collection for ``type`` or raise :class:`FormatError`."""

        coll = self._collections.get(type)
        if coll is None:
            raise FormatError(f"backup has no {type!r} records")
        return coll

    def items_of(self, type: str) -> list[Entity]:
        """Records of an optional collection (empty when the type is absent)."""

        coll = self._collections.get(type)
        return list(coll) if coll is not None else []

    def __contains__(self, type: object) -> bool:
        return type in self._collections

    def __iter__(self) -> Iterator[EntityCollection]:
        return iter(self._collections.values())

    def types(self) -> list[str]:
        return list(self._collections)


__all__ = [
    "ACCOUNT",
    "CATEGORY",
    "CURRENCY",
    "EXCHANGE_RATE",
    "HEADER",
    "ID_FIELD",
    "LOCATION",
    "PAYEE",
    "PROJECT",
    "TRANSACTION",
    "Entity",
    "EntityCollection",
    "EntityStore",
    "RawValue",
]
