from datetime import UTC

import pytest

from financisto_ledger.errors import FormatError
from financisto_ledger.hierarchy import (
    ROOT_CATEGORY_NAME,
    collect_split_transactions,
    name_accounts,
    name_categories,
)
from financisto_ledger.normalize import normalize_entities
from financisto_ledger.tokenizer import tokenize
from tests.helpers.backup import ACCOUNTS, CATEGORIES, CURRENCIES, backup, tx


def _store(*records):
    return normalize_entities(tokenize(backup(list(records))), UTC)


def test_category_names_follow_the_nested_set():
    store = name_categories(_store(*CATEGORIES))
    names = {c.id: c["name"] for c in store.collection("category")}
    assert names == {
        0: ROOT_CATEGORY_NAME,
        1: "Expenses",
        2: "Expenses:Food",
        3: "Expenses:Food:Groceries",
        4: "Income",
    }


def test_every_ancestor_is_a_prefix_of_its_descendants():
    # A deeper tree, records deliberately out of order.
    tree = [
        ("category", {"_id": 6, "title": "F", "left": 6, "right": 7}),
        ("category", {"_id": 1, "title": "A", "left": 1, "right": 12}),
        ("category", {"_id": 3, "title": "C", "left": 3, "right": 10}),
        ("category", {"_id": 2, "title": "B", "left": 2, "right": 11}),
        ("category", {"_id": 4, "title": "D", "left": 4, "right": 9}),
        ("category", {"_id": 5, "title": "E", "left": 5, "right": 8}),
    ]
    categories = list(name_categories(_store(*tree)).collection("category"))

    for ancestor in categories:
        for other in categories:
            if ancestor["left"] < other["left"] <= ancestor["right"]:
                assert other["name"].startswith(ancestor["name"] + ":")

    by_id = {c.id: c["name"] for c in categories}
    assert by_id[6] == "A:B:C:D:E:F"


def test_account_names_use_prefix_unless_hierarchical():
    store = name_accounts(_store(*CURRENCIES, *ACCOUNTS), "Assets:")
    names = [a["name"] for a in store.collection("account")]
    assert names == ["Assets:Cash", "Liabilities:Visa", "Assets:Dollars"]


def test_leading_separator_is_not_hierarchical():
    store = name_accounts(_store(("account", {"_id": 1, "title": ":Odd"})), "Assets:")
    assert store.collection("account").get(1)["name"] == "Assets::Odd"


def test_splits_are_attached_to_their_parent_in_record_order():
    store = collect_split_transactions(
        _store(
            tx(_id=10, from_amount=-3000),
            tx(_id=12, parent_id=10, from_amount=-2000),
            tx(_id=11, parent_id=10, from_amount=-1000),
            tx(_id=13, from_amount=-5),
        )
    )
    transactions = store.collection("transaction")
    parent = transactions.get(10)

    assert [s.id for s in parent["splits"]] == [12, 11]
    assert transactions.get(11)["parent"] is parent
    assert transactions.get(13)["splits"] == []
    assert "parent" not in transactions.get(13)


def test_collecting_splits_twice_does_not_duplicate():
    store = _store(tx(_id=1), tx(_id=2, parent_id=1))
    collect_split_transactions(store)
    collect_split_transactions(store)
    assert len(store.collection("transaction").get(1)["splits"]) == 1


def test_missing_collection_is_a_format_error():
    with pytest.raises(FormatError):
        name_categories(_store(*CURRENCIES))
