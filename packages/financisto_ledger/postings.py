"""Turn one Financisto transaction into ledger posting items.

Three shapes are recognized, in priority order:

- **transfer**: both ``from_account`` and ``to_account`` are set;
- **simple expense**: no splits;
- **split expense**: a parent with child transactions in ``splits``.

Amounts in the backup are fixed-point integers (see
:data:`~financisto_ledger.currency.FIXED_INT`). A leg whose commodity differs
from the rest of the transaction carries a ``posting_cost`` rendered as a
ledger ``(@@)`` total-cost annotation.

Notes may start with a cost override, ``((12.50 EUR)) rest of note`` (symbol
before or after the number), giving the amount in another currency.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from .currency import FIXED_INT, CurrencyFormats, FormattedAmount, format_amount
from .entities import CURRENCY, Entity, EntityStore
from .errors import ValidationError
from .options import ConverterOptions

NOTE_POSTING_COST = re.compile(r"^\(\((.*?)\s*(-?\d+\.?\d*)\s*(.*?)\)\)\s*(.*)$", re.DOTALL)


@dataclass(slots=True)
class PostingItem:
    """One posting line: an account or category with optional amounts."""

    category: str
    cost: FormattedAmount | None = None
    posting_cost: FormattedAmount | None = None
    project: str | None = None
    extra: str | None = None

    @property
    def sort_amount(self) -> Decimal:
        return self.cost.amount if self.cost is not None else Decimal(0)


@dataclass(frozen=True, slots=True)
class NoteCost:
    """Cost override parsed from the start of a transaction note."""

    amount: Decimal
    currency: Entity
    note: str


def _sign(value: Any) -> int:
    if not value:
        return 0
    return 1 if value > 0 else -1


def parse_transaction_note(note: Any, store: EntityStore) -> NoteCost | None:
    """Parse a ``((amount symbol)) text`` override from ``note``.

    Returns ``None`` when the note has no override or its symbol matches no
    currency, in which case callers use the note verbatim.
    """

    if not isinstance(note, str) or not note:
        return None
    m = NOTE_POSTING_COST.match(note)
    if m is None:
        return None
    symbol = m.group(1) or m.group(3)
    currency = next(
        (c for c in store.items_of(CURRENCY) if c.get("symbol") == symbol),
        None,
    )
    if currency is None:
        return None
    return NoteCost(amount=Decimal(m.group(2)), currency=currency, note=m.group(4))


def _note_cost_amount(note_cost: NoteCost, signed_by: Any) -> Decimal:
    # The override is an absolute amount; it takes the opposite sign of the
    # leg it prices.
    return _sign(signed_by) * -1 * note_cost.amount * FIXED_INT


def convert_transfer(
    transaction: Entity,
    options: ConverterOptions,
    formats: CurrencyFormats,
    note_cost: NoteCost | None,
) -> list[PostingItem]:
    """Postings for a transfer between two accounts.

    Raises
    ------
    ValidationError
        When a cost override is given for accounts in different currencies.
    """

    source = transaction["from_account"]
    target = transaction["to_account"]
    items = [
        PostingItem(
            category=str(source["name"]),
            cost=format_amount(formats, source["currency"], transaction.get("from_amount", 0)),
        ),
        PostingItem(
            category=str(target["name"]),
            cost=format_amount(formats, target["currency"], transaction.get("to_amount", 0)),
        ),
    ]

    if note_cost is not None:
        if source["currency"] is not target["currency"]:
            raise ValidationError(
                "A posting cost may only be specified for same-currency transactions: "
                f"{transaction.id}",
                transaction_id=transaction.id,
            )
        amount = _note_cost_amount(note_cost, transaction.get("from_amount"))
        for item in items:
            item.posting_cost = format_amount(formats, note_cost.currency, amount)
    elif source["currency"] is not target["currency"]:
        items[1].posting_cost = format_amount(
            formats, source["currency"], abs(transaction.get("from_amount", 0))
        )

    if options.simplify and note_cost is None:
        items[0 if items[1].posting_cost is not None else 1].cost = None

    return items


def convert_simple_expense(
    transaction: Entity,
    options: ConverterOptions,
    formats: CurrencyFormats,
) -> list[PostingItem]:
    """Postings for an expense or income booked against one category."""

    account = transaction["from_account"]
    category = transaction.get("category")
    from_amount = transaction.get("from_amount", 0)
    original_currency = transaction.get("original_currency")

    account_cost = format_amount(formats, account["currency"], from_amount)
    n_account_cost = format_amount(formats, account["currency"], -1 * from_amount)
    items = [
        PostingItem(category=str(account["name"]), cost=account_cost),
        PostingItem(
            category=str(category["name"]) if category is not None else options.unknown_expense
        ),
    ]

    if original_currency is None:
        items[1].cost = n_account_cost
    else:
        original_amount = transaction.get("original_from_amount", 0)
        items[1].cost = format_amount(formats, original_currency, -1 * original_amount)
        items[1].posting_cost = n_account_cost if account_cost.amount < 0 else account_cost

    if options.simplify:
        drop = 1 if original_currency is None and account_cost.amount <= 0 else 0
        items[drop].cost = None

    return items


def _split_item(
    split: Entity,
    store: EntityStore,
    options: ConverterOptions,
    formats: CurrencyFormats,
) -> PostingItem:
    note_cost = parse_transaction_note(split.get("note"), store)
    source = split["from_account"]
    target = split.get("to_account")
    from_amount = split.get("from_amount", 0)

    if target is not None:
        category = str(target["name"])
    elif split.get("category") is not None:
        category = str(split["category"]["name"])
    else:
        category = options.unknown_expense
    item = PostingItem(category=category)

    if split.get("to_amount") and target is not None:
        # Transfer to another account inside a split.
        item.cost = format_amount(formats, target["currency"], split["to_amount"])
        if target["currency"] is not source["currency"]:
            item.posting_cost = format_amount(formats, source["currency"], abs(from_amount))
    elif note_cost is not None:
        item.cost = format_amount(
            formats, note_cost.currency, _note_cost_amount(note_cost, from_amount)
        )
        item.posting_cost = format_amount(formats, source["currency"], abs(from_amount))
        item.extra = note_cost.note
    else:
        item.cost = format_amount(formats, source["currency"], -1 * from_amount)

    if split.get("note") and note_cost is None:
        item.extra = str(split["note"])

    project = split.get("project")
    if options.projects and project is not None and project.id:
        item.project = str(project.get("title"))

    return item


def convert_split_expense(
    transaction: Entity,
    store: EntityStore,
    options: ConverterOptions,
    formats: CurrencyFormats,
) -> list[PostingItem]:
    """Postings for a parent transaction and its splits."""

    account = transaction["from_account"]
    # Sign of the parent amount; cleared once a split's cost shares it.
    original_sign: int | None = _sign(transaction.get("from_amount"))
    items = [
        PostingItem(
            category=str(account["name"]),
            cost=format_amount(formats, account["currency"], transaction.get("from_amount", 0)),
        )
    ]

    for split in transaction.get("splits", []):
        item = _split_item(split, store, options, formats)
        if item.cost is not None and _sign(item.cost.amount) == original_sign:
            original_sign = None
        items.append(item)

    if options.simplify and original_sign is not None:
        drop = 0
        if len(items) == 2 and items[1].posting_cost is None and original_sign <= 0:
            drop = 1
        items[drop].cost = None

    return items


def convert_postings(
    transaction: Entity,
    store: EntityStore,
    options: ConverterOptions,
    formats: CurrencyFormats,
    note_cost: NoteCost | None = None,
) -> list[PostingItem]:
    """Classify ``transaction`` and return its items sorted by amount."""

    if transaction.get("from_account") is not None and transaction.get("to_account") is not None:
        items = convert_transfer(transaction, options, formats, note_cost)
    elif not transaction.get("splits"):
        items = convert_simple_expense(transaction, options, formats)
    else:
        items = convert_split_expense(transaction, store, options, formats)

    items.sort(key=lambda item: item.sort_amount)
    return items


__all__ = [
    "NOTE_POSTING_COST",
    "NoteCost",
    "PostingItem",
    "convert_postings",
    "convert_simple_expense",
    "convert_split_expense",
    "convert_transfer",
    "parse_transaction_note",
]
