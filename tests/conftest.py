"""Pytest configuration for test isolation.

The CLI reads ``FINANCISTO_LEDGER_LOG_LEVEL`` (possibly from a ``.env`` in the
working directory). A value exported in the developer's shell would leak into
tests that assert on log levels, so it is cleared for every test.
"""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _isolate_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop any inherited log-level override."""

    monkeypatch.delenv("FINANCISTO_LEDGER_LOG_LEVEL", raising=False)
