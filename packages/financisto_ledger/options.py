"""Converter options.

``ConverterOptions`` is a frozen pydantic model populated from the
``DEFAULT_OPTIONS`` table. Field names are snake_case; camelCase aliases
(``unknownExpense``, ``accountPrefix``...) are also accepted so option
mappings written for other tools can be passed through unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_OPTIONS: dict[str, Any] = {
    "unknown_expense": "Expenses:Unknown",
    "unknown_payee": "Unknown",
    "account_prefix": "Assets:",
    "accounts": True,
    "currencies": True,
    "payees": True,
    "transactions": True,
    "pricedb": True,
    "simplify": False,
    "debug": False,
    "projects": True,
    "locations": True,
    "lonlats": False,
    "budgets": False,
    "timezone": None,
}


class ConverterOptions(BaseModel):
    """Typed, validated conversion settings.

    Toggles gate one rendered section or annotation class each:

    - ``accounts`` / ``currencies`` / ``payees``: definition blocks.
    - ``transactions`` / ``pricedb``: ledger body and price database.
    - ``projects`` / ``locations`` / ``lonlats``: comment tags on postings
      (and the matching ``tag`` declarations).
    - ``simplify``: omit one inferable amount per transaction.
    - ``debug``: add the Financisto record id to each transaction.
    - ``budgets``: accepted for compatibility; budget conversion is not
      implemented.

    ``timezone`` is an IANA zone name used to interpret epoch timestamps; when
    unset, the local zone of the host is used.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    unknown_expense: str = DEFAULT_OPTIONS["unknown_expense"]
    unknown_payee: str = DEFAULT_OPTIONS["unknown_payee"]
    account_prefix: str = DEFAULT_OPTIONS["account_prefix"]
    accounts: bool = DEFAULT_OPTIONS["accounts"]
    currencies: bool = DEFAULT_OPTIONS["currencies"]
    payees: bool = DEFAULT_OPTIONS["payees"]
    transactions: bool = DEFAULT_OPTIONS["transactions"]
    pricedb: bool = DEFAULT_OPTIONS["pricedb"]
    simplify: bool = DEFAULT_OPTIONS["simplify"]
    debug: bool = DEFAULT_OPTIONS["debug"]
    projects: bool = DEFAULT_OPTIONS["projects"]
    locations: bool = DEFAULT_OPTIONS["locations"]
    lonlats: bool = DEFAULT_OPTIONS["lonlats"]
    budgets: bool = DEFAULT_OPTIONS["budgets"]
    timezone: str | None = DEFAULT_OPTIONS["timezone"]

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        try:
            ZoneInfo(v.strip())
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {v!r}") from exc
        return v.strip()

    @property
    def tzinfo(self) -> ZoneInfo | None:
        return ZoneInfo(self.timezone) if self.timezone else None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None = None) -> ConverterOptions:
        """Build options from a partial mapping, ignoring ``None`` values.

        ``None`` means "not given" so callers (e.g., the CLI) can forward
        every flag and let the defaults apply.
        """

        if not values:
            return cls()
        return cls.model_validate({k: v for k, v in values.items() if v is not None})


__all__ = ["DEFAULT_OPTIONS", "ConverterOptions"]
