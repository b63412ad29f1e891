"""Per-currency number formats.

Each currency gets a display mask in the ``0,0.00[00000000]`` notation (the
bracketed digits are optional) wrapped with a ``$`` placeholder for the
currency symbol, e.g. ``0,0.00[00000000] $`` for a two-decimal currency whose
symbol follows the amount after a space. :class:`CurrencyFormatter` renders
amounts with such a mask; formatters are collected in a
:data:`CurrencyFormats` mapping keyed by currency name and handed to the
renderers explicitly.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from .entities import CURRENCY, Entity, EntityStore
from .errors import ConfigError
from .logging_setup import get_logger

_log = get_logger("financisto_ledger.currency")

# Amounts in a backup are integers scaled by this factor.
FIXED_INT = 100
MAX_DECIMALS = 10

SYMBOL_PLACEHOLDER = "$"
DEFAULT_SYMBOL_FORMAT = "RS"

# Financisto ``symbol_format`` values: Left/Right of the amount, with or
# without a Space.
SYMBOL_FORMATS: dict[str, str] = {
    "L": "$%s",
    "LS": "$ %s",
    "R": "%s$",
    "RS": "%s $",
}

_MASK_RE = re.compile(
    r"^(?P<prefix>[^0]*)0,0"
    r"(?:\.(?P<fixed>0*))?"
    r"(?:\[\.?\])?"
    r"(?:\[(?P<optional>0*)\])?"
    r"(?P<suffix>[^0\]]*)$"
)


@dataclass(frozen=True, slots=True)
class FormattedAmount:
    """A scaled amount and its display string in one currency."""

    amount: Decimal
    formatted: str


def decimal_mask(decimals: int) -> str:
    """Return the bare number mask for a currency with ``decimals`` digits."""

    if decimals:
        return f"0,0.{'0' * decimals}[{'0' * (MAX_DECIMALS - decimals)}]"
    return f"0,0[.][{'0' * MAX_DECIMALS}]"


def wrap_symbol(mask: str, symbol_format: str | None) -> str:
    """Place the symbol placeholder around ``mask``.

    Raises
    ------
    ConfigError
        When ``symbol_format`` is not one of :data:`SYMBOL_FORMATS`.
    """

    template = SYMBOL_FORMATS.get(str(symbol_format))
    if template is None:
        raise ConfigError(f"unknown currency symbol format: {symbol_format!r}")
    return template % mask


class CurrencyFormatter:
    """Render decimal amounts with a currency mask and symbol."""

    __slots__ = ("mask", "symbol", "thousands", "decimal", "_prefix", "_suffix", "_min", "_max")

    def __init__(
        self,
        mask: str,
        symbol: str,
        *,
        thousands: str = ",",
        decimal: str = ".",
    ) -> None:
        m = _MASK_RE.match(mask)
        if m is None:
            raise ConfigError(f"unsupported number mask: {mask!r}")
        self.mask = mask
        self.symbol = symbol
        self.thousands = thousands
        self.decimal = decimal
        self._prefix = m.group("prefix").replace(SYMBOL_PLACEHOLDER, symbol)
        self._suffix = m.group("suffix").replace(SYMBOL_PLACEHOLDER, symbol)
        self._min = len(m.group("fixed") or "")
        self._max = self._min + len(m.group("optional") or "")

    def format(self, value: Decimal | int | str) -> str:
        amount = Decimal(str(value)).quantize(
            Decimal(1).scaleb(-self._max), rounding=ROUND_HALF_UP
        )
        # Quantized negative zero compares equal to zero.
        negative = amount < 0
        digits = f"{abs(amount):.{self._max}f}"
        whole, _, frac = digits.partition(".")
        frac = frac.rstrip("0")
        if len(frac) < self._min:
            frac = frac.ljust(self._min, "0")
        grouped = f"{int(whole):,}".replace(",", self.thousands)
        number = f"{grouped}{self.decimal}{frac}" if frac else grouped
        return f"{'-' if negative else ''}{self._prefix}{number}{self._suffix}"

    def __repr__(self) -> str:
        return f"<CurrencyFormatter {self.mask!r} symbol={self.symbol!r}>"


type CurrencyFormats = Mapping[str, CurrencyFormatter]


def build_currency_formats(store: EntityStore) -> dict[str, CurrencyFormatter]:
    """Derive ``format`` for every currency and return formatters by name.

    An unknown ``symbol_format`` is not fatal: the currency is rendered with
    the symbol after the amount, separated by a space.
    """

    formats: dict[str, CurrencyFormatter] = {}
    for currency in store.require(CURRENCY):
        mask = decimal_mask(int(currency.get("decimals") or 0))
        try:
            mask = wrap_symbol(mask, currency.get("symbol_format"))
        except ConfigError as exc:
            _log.warning(
                "currency %s: %s; using %r", currency.get("name"), exc, DEFAULT_SYMBOL_FORMAT
            )
            mask = wrap_symbol(mask, DEFAULT_SYMBOL_FORMAT)
        currency["format"] = mask
        symbol = str(currency.get("symbol", ""))
        formats[str(currency.get("name"))] = CurrencyFormatter(mask, symbol)
    return formats


def format_value(formats: CurrencyFormats, currency: Entity, value: Any) -> str:
    """Format an unscaled value (e.g., ``1000`` in a commodity sample)."""

    return formats[str(currency.get("name"))].format(value)


def format_amount(formats: CurrencyFormats, currency: Entity, fixed: Any) -> FormattedAmount:
    """Scale a fixed-point backup amount and format it in ``currency``."""

    amount = Decimal(str(fixed)) / FIXED_INT
    return FormattedAmount(amount=amount, formatted=format_value(formats, currency, amount))


__all__ = [
    "DEFAULT_SYMBOL_FORMAT",
    "FIXED_INT",
    "SYMBOL_FORMATS",
    "CurrencyFormats",
    "CurrencyFormatter",
    "FormattedAmount",
    "build_currency_formats",
    "decimal_mask",
    "format_amount",
    "format_value",
    "wrap_symbol",
]
