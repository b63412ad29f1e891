import gzip
from datetime import date

import pytest

from financisto_ledger import errors
from financisto_ledger.api import (
    convert,
    from_any_file,
    from_backup,
    from_file,
    from_string,
    parse_backup,
)
from financisto_ledger.options import ConverterOptions
from financisto_ledger.render import VALUE_TAG_PREAMBLE
from tests.helpers.backup import (
    ACCOUNTS,
    CATEGORIES,
    CURRENCIES,
    JAN_14,
    JAN_15,
    JAN_16,
    JAN_17,
    backup,
    book,
    tx,
)

TODAY = date(2024, 2, 1)

RATES = [
    (
        "currency_exchange_rate",
        {"from_currency_id": 2, "to_currency_id": 1, "rate_date": JAN_16, "rate": "0.91"},
    ),
    (
        "currency_exchange_rate",
        {"from_currency_id": 1, "to_currency_id": 2, "rate_date": JAN_15, "rate": "1.1"},
    ),
]


def post(category: str, amount: str | None = None, cost: str | None = None) -> str:
    """One expected posting line, padded the way ledger output aligns them."""

    if amount is None:
        return f"\t{category}\n"
    width = 40 if amount.startswith("-") else 41
    line = f"\t{category.ljust(width)}  {amount}"
    if cost is not None:
        line += f" (@@) {cost}"
    return line + "\n"


def _convert(text, **options):
    return convert(parse_backup(text, {"timezone": "UTC", **options}), today=TODAY)


def test_definitions_snapshot():
    result = _convert(book(tx(_id=1, from_account_id=1, from_amount=-100)))

    assert result.definitions == (
        "commodity €\n"
        "\tnote EUR - Euro\n"
        "\tformat 1,000.00 €\n"
        "\n"
        "commodity $\n"
        "\tnote USD - US Dollar\n"
        "\tformat $1,000.00\n"
        "\n"
        "account Assets:Cash\n"
        '\tassert commodity == "€"\n'
        "\n"
        "account Assets:Dollars\n"
        '\tassert commodity == "$"\n'
        "\tassert post.date < [2024/02/01]\n"
        "\n"
        "account Liabilities:Visa\n"
        "\tnote Main card\n"
        '\tassert commodity == "€"\n'
        "\n"
        "account Expenses\n"
        "\n"
        "account Expenses:Food\n"
        "\n"
        "account Expenses:Food:Groceries\n"
        "\n"
        "account Expenses:Unknown\n"
        "\n"
        "account Income\n"
        "\n"
        "\n"
        "payee Bank\n"
        "payee Supermarket\n"
        "\n"
        "tag Location\n"
        "tag Project\n"
    )


def test_pricedb_is_sorted_by_rate_date():
    result = _convert(book(tx(_id=1, from_account_id=1, from_amount=-100), extra=RATES))

    assert result.pricedb == (
        "P 2024/01/15 12:00:00\t€\t$1.10\n"
        "P 2024/01/16 12:00:00\t$\t0.91 €\n"
    )


def test_pricedb_without_rates_is_empty():
    result = _convert(book(tx(_id=1, from_account_id=1, from_amount=-100)))
    assert result.pricedb == ""


def test_ledger_snapshot():
    text = book(
        tx(
            _id=1,
            datetime=JAN_16,
            status="RC",
            from_account_id=1,
            from_amount=-1250,
            category_id=3,
            payee_id=1,
            project_id=1,
            location_id=1,
            note="'weekly shop'",
        ),
        tx(_id=2, datetime=JAN_15, from_account_id=1, from_amount=4000, category_id=4, payee_id=2),
        tx(_id=3, datetime=JAN_14, is_template=1, from_account_id=1, from_amount=-1),
        tx(_id=4, datetime=JAN_17, status="PN", from_account_id=1, from_amount=-300),
    )
    result = _convert(text)

    assert result.ledger == (
        VALUE_TAG_PREAMBLE
        + "2024/01/15   Bank\n"
        + post("Income", "-40.00 €")
        + post("Assets:Cash", "40.00 €")
        + "\n"
        + "2024/01/16 * Supermarket  ; weekly shop\n"
        + "\t; Project: Holiday\n"
        + "\t; Location: Berlin\n"
        + post("Assets:Cash", "-12.50 €")
        + post("Expenses:Food:Groceries", "12.50 €")
        + "\n"
        + "2024/01/17 ! Unknown\n"
        + post("Assets:Cash", "-3.00 €")
        + post("Expenses:Unknown", "3.00 €")
        + "\n"
    )


def test_split_transaction_renders_once_under_its_parent():
    text = book(
        tx(_id=10, from_account_id=1, from_amount=-3000, category_id=None),
        tx(_id=11, parent_id=10, from_account_id=1, from_amount=-1000, category_id=3),
        tx(
            _id=12,
            parent_id=10,
            from_account_id=1,
            from_amount=-2000,
            category_id=2,
            note="'bread'",
            project_id=1,
        ),
    )
    result = _convert(text, simplify=True)

    bread = post("Expenses:Food", "20.00 €").rstrip("\n")
    assert result.ledger == (
        VALUE_TAG_PREAMBLE
        + "2024/01/15   Unknown\n"
        + post("Assets:Cash")
        + post("Expenses:Food:Groceries", "10.00 €")
        + f"{bread}  ; bread\n"
        + "\t".ljust(len(bread))
        + "  ; Project: Holiday\n"
        + "\n"
    )


def test_transfer_with_note_override_uses_remaining_note_in_header():
    text = book(
        tx(
            _id=1,
            from_account_id=1,
            to_account_id=2,
            from_amount=-5500,
            to_amount=5500,
            note="'((55 $)) card payment'",
        )
    )
    ledger = _convert(text).ledger

    assert "2024/01/15   Unknown  ; card payment\n" in ledger
    assert post("Liabilities:Visa", "55.00 €", "$55.00") in ledger


def test_unresolved_note_override_is_rendered_verbatim():
    text = book(tx(_id=1, from_account_id=1, from_amount=-1200, note="'((12 XYZ)) hello'"))
    ledger = _convert(text).ledger

    assert "2024/01/15   Unknown  ; ((12 XYZ)) hello\n" in ledger
    assert "(@@)" not in ledger


def test_transactions_with_equal_times_keep_record_order():
    text = book(
        tx(_id=5, from_account_id=1, from_amount=-100, payee_id=2),
        tx(_id=2, from_account_id=1, from_amount=-100, payee_id=1),
    )
    ledger = _convert(text).ledger
    assert ledger.index("Bank") < ledger.index("Supermarket")


def test_debug_and_lonlat_annotations():
    text = book(
        tx(
            _id=42,
            from_account_id=1,
            from_amount=-100,
            longitude="13.404954",
            latitude="52.520008",
            provider="'gps'",
        )
    )
    result = _convert(text, debug=True, lonlats=True)

    assert "\t; FinancistoId: 42\n" in result.ledger
    assert "\t; LonLat: 13.404954, 52.520008 (gps)\n" in result.ledger
    assert "tag LonLat\n" in result.definitions


def test_disabled_sections_are_none():
    result = _convert(
        book(tx(_id=1, from_account_id=1, from_amount=-100)),
        transactions=False,
        pricedb=False,
        accounts=False,
        currencies=False,
        payees=False,
        projects=False,
        locations=False,
    )
    assert (result.definitions, result.pricedb, result.ledger) == (None, None, None)


def test_disabled_tags_are_not_rendered():
    text = book(tx(_id=1, from_account_id=1, from_amount=-100, project_id=1, location_id=1))
    result = _convert(text, projects=False, locations=False)

    assert "Project" not in result.ledger
    assert "Location" not in result.ledger
    assert "tag " not in result.definitions


def test_camel_case_option_names_are_accepted():
    text = book(tx(_id=1, from_account_id=1, from_amount=-100, category_id=None))
    result = _convert(text, unknownExpense="Expenses:Other", accountPrefix="Funds:")

    assert post("Funds:Cash", "-1.00 €") in result.ledger
    assert post("Expenses:Other", "1.00 €") in result.ledger


def test_unknown_option_is_rejected():
    with pytest.raises(ValueError):
        _convert(book(tx(_id=1, from_account_id=1)), colour=True)


def test_options_model_can_be_passed_directly():
    options = ConverterOptions(timezone="UTC", pricedb=False)
    parsed = parse_backup(book(tx(_id=1, from_account_id=1, from_amount=-100)), options)
    assert parsed.options is options
    assert convert(parsed, today=TODAY).pricedb is None


def test_timezone_shifts_transaction_dates():
    # 12:00 UTC on the 15th is already the 16th in Auckland.
    text = book(tx(_id=1, from_account_id=1, from_amount=-100))
    result = convert(parse_backup(text, {"timezone": "Pacific/Auckland"}), today=TODAY)
    assert "2024/01/16   Unknown\n" in result.ledger


def test_missing_required_collection_is_a_format_error():
    with pytest.raises(errors.FormatError):
        from_string(backup([*CURRENCIES, *ACCOUNTS, *CATEGORIES]), {"timezone": "UTC"})


def test_optional_collections_may_be_absent():
    text = backup(
        [*CURRENCIES, *ACCOUNTS, *CATEGORIES, tx(_id=1, from_account_id=1, from_amount=-100)]
    )
    result = _convert(text)

    assert result.pricedb == ""
    assert "payee " not in result.definitions
    assert "2024/01/15   Unknown\n" in result.ledger


def test_cross_currency_override_fails_the_conversion():
    text = book(
        tx(
            _id=9,
            from_account_id=1,
            to_account_id=3,
            from_amount=-100,
            to_amount=110,
            note="'((1 €))'",
        )
    )
    with pytest.raises(errors.ValidationError):
        _convert(text)


def test_file_entry_points(tmp_path):
    text = book(tx(_id=1, from_account_id=1, from_amount=-100))
    plain = tmp_path / "financisto.txt"
    plain.write_text(text, encoding="utf-8")
    packed = tmp_path / "20240201_000000_000.backup"
    with gzip.open(packed, "wt", encoding="utf-8") as f:
        f.write(text)

    options = {"timezone": "UTC"}
    expected = from_string(text, options).ledger

    assert from_file(plain, options).ledger == expected
    assert from_backup(packed, options).ledger == expected
    assert from_any_file(packed, options).ledger == expected
    assert from_any_file(plain, options).ledger == expected
