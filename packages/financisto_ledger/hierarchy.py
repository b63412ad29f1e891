"""Derived names and trees: accounts, the category tree, split transactions."""

from __future__ import annotations

from .entities import ACCOUNT, CATEGORY, TRANSACTION, Entity, EntityStore
from .logging_setup import get_logger

_log = get_logger("financisto_ledger.hierarchy")

SEPARATOR = ":"
# Name of the Financisto root category ("No category", id 0).
ROOT_CATEGORY_NAME = "Expenses:Unknown"


def name_accounts(store: EntityStore, account_prefix: str) -> EntityStore:
    """Set ``name`` on every account.

    Titles that already look hierarchical (a separator after the first
    character) are used verbatim; others get ``account_prefix`` prepended.
    """

    for account in store.require(ACCOUNT):
        title = str(account.get("title", ""))
        account["name"] = title if title.find(SEPARATOR) > 0 else f"{account_prefix}{title}"
    return store


def name_categories(store: EntityStore) -> EntityStore:
    """Set ``name`` on every category to its colon-joined path.

    Categories form a nested set: every category whose ``left`` lies in
    ``(C.left, C.right]`` is a descendant of ``C``. Walking by descending
    ``left`` names each subtree before its ancestors prepend their own names,
    so one prefix pass per category yields full paths at any depth.
    """

    categories = list(store.require(CATEGORY))
    by_left: dict[int, Entity] = {}
    for category in categories:
        category["name"] = category.get("title")
        by_left[category.get("left")] = category

    for category in sorted(categories, key=lambda c: c.get("left"), reverse=True):
        if not category.id:
            category["name"] = ROOT_CATEGORY_NAME
            continue
        for i in range(category["left"] + 1, category["right"] + 1):
            descendant = by_left.get(i)
            if descendant is not None:
                descendant["name"] = f"{category['name']}{SEPARATOR}{descendant['name']}"

    _log.debug("named %d categories", len(categories))
    return store


def collect_split_transactions(store: EntityStore) -> EntityStore:
    """Attach split transactions to their parents.

    Every transaction gets a ``splits`` list; each transaction with a
    ``parent_id`` is appended to its parent's ``splits`` (record order) and
    gets a ``parent`` reference.
    """

    transactions = store.require(TRANSACTION)
    for transaction in transactions:
        transaction["splits"] = []

    n_splits = 0
    for transaction in transactions:
        parent_id = transaction.get("parent_id")
        if not parent_id:
            continue
        parent = transactions.get(parent_id)
        if parent is None:
            _log.warning(
                "transaction %s refers to missing parent %s; kept as top-level",
                transaction.id,
                parent_id,
            )
            continue
        parent["splits"].append(transaction)
        transaction["parent"] = parent
        n_splits += 1

    _log.debug("attached %d split transactions", n_splits)
    return store


__all__ = [
    "ROOT_CATEGORY_NAME",
    "SEPARATOR",
    "collect_split_transactions",
    "name_accounts",
    "name_categories",
]
