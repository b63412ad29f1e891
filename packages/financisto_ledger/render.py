"""Ledger text for transactions, prices and definitions."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from .currency import FIXED_INT, CurrencyFormats, format_amount, format_value
from .entities import Entity, EntityStore
from .options import ConverterOptions
from .postings import PostingItem, convert_postings, parse_transaction_note

CATEGORY_PADDING = 40

TRANSACTION_STATUS: dict[str, str] = {
    "RS": " ",  # restored
    "PN": "!",  # pending
    "UR": " ",  # unreconciled
    "CL": " ",  # cleared
    "RC": "*",  # reconciled
}

# Automated transaction valuing expenses at market price.
VALUE_TAG_PREAMBLE = (
    "tag VALUE\n= /^Expenses:/\n\t; VALUE:: market(post.commodity, post.date, exchange)\n\n"
)

DATE_FORMAT = "%Y/%m/%d"
DATETIME_FORMAT = "%Y/%m/%d %H:%M:%S"


@dataclass(frozen=True, slots=True)
class TimedText:
    """A rendered chunk and the timestamp it sorts by."""

    time: float
    text: str


def merge_by_time(chunks: Iterable[TimedText]) -> str:
    """Concatenate chunks in ascending time order (stable)."""

    return "".join(c.text for c in sorted(chunks, key=lambda c: c.time))


def _time_key(value: object) -> float:
    return value.timestamp() if isinstance(value, datetime) else 0.0


def _has_id(entity: Entity | None) -> bool:
    return entity is not None and bool(entity.id)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def render_item(item: PostingItem) -> str:
    if item.cost is not None:
        width = CATEGORY_PADDING if item.cost.amount < 0 else CATEGORY_PADDING + 1
        text = f"\t{item.category.ljust(width)}  {item.cost.formatted}"
        if item.posting_cost is not None:
            text += f" (@@) {item.posting_cost.formatted}"
    else:
        text = f"\t{item.category}"

    base_length = len(text)
    if item.extra:
        text += f"  ; {item.extra}"
    text += "\n"

    if item.project:
        indent = "\t".ljust(base_length)
        text += f"{indent}  ; Project: {item.project}\n"
    return text


def render_transaction(
    transaction: Entity,
    store: EntityStore,
    options: ConverterOptions,
    formats: CurrencyFormats,
) -> TimedText | None:
    """Render one top-level transaction; templates and splits yield ``None``."""

    if transaction.get("is_template") or transaction.get("parent") is not None:
        return None

    note_cost = parse_transaction_note(transaction.get("note"), store)
    note_text = note_cost.note if note_cost is not None else transaction.get("note")

    when: datetime = transaction["datetime"]
    state = TRANSACTION_STATUS.get(str(transaction.get("status")), " ")
    payee = transaction.get("payee")
    payee_title = payee.get("title") if payee is not None else options.unknown_payee
    note = f"  ; {note_text}" if note_text else ""

    text = f"{when.strftime(DATE_FORMAT)} {state} {payee_title}{note}\n"

    if options.debug:
        text += f"\t; FinancistoId: {transaction.id}\n"

    project = transaction.get("project")
    if options.projects and _has_id(project):
        text += f"\t; Project: {project.get('title')}\n"

    location = transaction.get("location")
    if options.locations and _has_id(location):
        text += f"\t; Location: {location.get('name')}\n"

    if (
        options.lonlats
        and transaction.get("longitude")
        and transaction.get("latitude")
        and transaction.get("provider")
    ):
        text += (
            f"\t; LonLat: {transaction['longitude']}, {transaction['latitude']}"
            f" ({transaction['provider']})\n"
        )

    for item in convert_postings(transaction, store, options, formats, note_cost):
        text += render_item(item)

    text += "\n"
    return TimedText(time=_time_key(when), text=text)


# ---------------------------------------------------------------------------
# Prices and definitions
# ---------------------------------------------------------------------------


def render_exchange_rate(rate: Entity, formats: CurrencyFormats) -> TimedText:
    when: datetime = rate["rate_date"]
    target = format_amount(formats, rate["to_currency"], Decimal(str(rate["rate"])) * FIXED_INT)
    symbol = rate["from_currency"]["symbol"]
    return TimedText(
        time=_time_key(when),
        text=f"P {when.strftime(DATETIME_FORMAT)}\t{symbol}\t{target.formatted}\n",
    )


def render_currency(currency: Entity, formats: CurrencyFormats) -> str:
    return (
        f"commodity {currency.get('symbol')}\n"
        f"\tnote {currency.get('name')} - {currency.get('title')}\n"
        f"\tformat {format_value(formats, currency, 1000)}\n"
    )


def render_account(account: Entity, today: date) -> str:
    text = f"account {account['name']}\n"
    if account.get("note"):
        text += f"\tnote {account['note']}\n"
    text += f'\tassert commodity == "{account["currency"]["symbol"]}"\n'
    if not account.get("is_active"):
        text += f"\tassert post.date < [{today.strftime(DATE_FORMAT)}]\n"
    return text


def render_category(category: Entity) -> str:
    return f"account {category['name']}\n"


def render_payee(payee: Entity) -> str:
    return f"payee {payee.get('title')}\n"


__all__ = [
    "CATEGORY_PADDING",
    "TRANSACTION_STATUS",
    "VALUE_TAG_PREAMBLE",
    "TimedText",
    "merge_by_time",
    "render_account",
    "render_category",
    "render_currency",
    "render_exchange_rate",
    "render_item",
    "render_payee",
    "render_transaction",
]
