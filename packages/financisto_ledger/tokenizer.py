"""Split backup text into typed entity records.

Layout of a decompressed Financisto backup::

    PACKAGE:ru.orangesoftware.financisto
    VERSION_CODE:92
    ...
    #START
    $ENTITY:account
    _id:1
    title:Cash
    currency_id:1
    $$
    $ENTITY:transactions
    ...
    $$
    #END

Every ``$ENTITY`` block normally holds one record; several records in one
block are separated by a blank line. All values are kept as
:class:`~financisto_ledger.entities.RawValue` strings.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from .entities import HEADER, Entity, EntityStore, RawValue
from .errors import FormatError
from .logging_setup import get_logger

_log = get_logger("financisto_ledger.tokenizer")

_DOCUMENT_RE = re.compile(r"^(.*?)\n#START\n(.*?)#END\n?$", re.DOTALL)
_BLOCK_RE = re.compile(r"\$ENTITY:(\w+)\n(?:(.*?)\n)?\$\$\n", re.DOTALL)
_FIELD_RE = re.compile(r"^(\w+):(.*)$")

# Plural block names used by some app versions.
TYPE_RENAMES: dict[str, str] = {
    "transactions": "transaction",
    "locations": "location",
}


def _records(block: str) -> Iterator[dict[str, RawValue]]:
    fields: dict[str, RawValue] = {}
    reading = True
    for line in block.split("\n"):
        if not line.strip():
            if fields:
                yield fields
            fields = {}
            reading = True
            continue
        if not reading:
            continue
        m = _FIELD_RE.match(line)
        if m is None:
            # Anything after a non key:value line belongs to no field.
            reading = False
            continue
        fields[m.group(1)] = RawValue(m.group(2).strip())
    if fields:
        yield fields


def parse_entity_block(store: EntityStore, type: str, text: str) -> None:
    """Add every record of one block to ``store`` under ``type``."""

    store.collection(type)
    for fields in _records(text):
        store.add(Entity(type, fields))


def tokenize(text: str | bytes) -> EntityStore:
    """Decode a backup document into an :class:`EntityStore` of raw records.

    Raises
    ------
    FormatError
        When the text lacks the ``#START`` / ``#END`` markers.
    """

    if isinstance(text, bytes):
        text = text.decode("utf-8")
    text = text.replace("\r\n", "\n")

    doc = _DOCUMENT_RE.match(text)
    if doc is None:
        raise FormatError("not a Financisto backup: missing #START/#END markers")

    store = EntityStore()
    parse_entity_block(store, HEADER, doc.group(1))

    blocks = 0
    for m in _BLOCK_RE.finditer(doc.group(2)):
        type = TYPE_RENAMES.get(m.group(1), m.group(1))
        parse_entity_block(store, type, m.group(2) or "")
        blocks += 1

    _log.debug(
        "tokenized %d blocks: %s",
        blocks,
        ", ".join(f"{c.type}={len(c)}" for c in store),
    )
    return store


__all__ = ["TYPE_RENAMES", "parse_entity_block", "tokenize"]
