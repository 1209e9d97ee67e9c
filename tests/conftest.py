"""Shared fixtures: a file-backed SQLite store per test and an in-memory fake.

Async code is driven with ``asyncio.run`` from plain test functions. The
engine uses ``NullPool`` so no aiosqlite connection outlives the event loop
that opened it.
"""

from __future__ import annotations

import asyncio
import datetime as dt
from pathlib import Path

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import NullPool

from db import Transaction, TransactionStore, create_session_factory, init_db
from windows import TimeWindow


@pytest.fixture
def store(tmp_path: Path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'finbot.db'}"
    engine, session_factory = create_session_factory(url, poolclass=NullPool)
    asyncio.run(init_db(engine))
    yield TransactionStore(session_factory)
    asyncio.run(engine.dispose())


def make_transaction(
    user_id: int = 1,
    created_at: dt.datetime | None = None,
    operation_type: bool = False,
    quantities: int = 100,
    category: str = "Food",
    description: str = "",
) -> Transaction:
    return Transaction(
        telegram_id=user_id,
        created_at=created_at or dt.datetime(2024, 3, 15, 10, 0, 0),
        operation_type=operation_type,
        quantities=quantities,
        category=category,
        description=description,
    )


class FakeStore:
    """In-memory stand-in for TransactionStore.

    ``grouped_rows`` is returned verbatim from ``fetch_grouped`` so tests can
    feed rows the database would never produce (e.g. repeated categories).
    """

    def __init__(self, grouped_rows: list[tuple[str, int]] | None = None) -> None:
        self.rows: list[Transaction] = []
        self.grouped_rows = grouped_rows
        self.fail = False
        self.inserts = 0
        self.calls: list[tuple[str, int, TimeWindow, bool]] = []

    def _maybe_fail(self) -> None:
        if self.fail:
            raise OperationalError("SELECT", {}, Exception("database is locked"))

    def _matching(self, user_id: int, window: TimeWindow, operation_type: bool) -> list[Transaction]:
        return [
            t
            for t in self.rows
            if t.telegram_id == user_id and t.operation_type == operation_type and window.contains(t.created_at)
        ]

    async def fetch_raw(self, user_id, window, operation_type):
        self.calls.append(("raw", user_id, window, operation_type))
        self._maybe_fail()
        return self._matching(user_id, window, operation_type)

    async def fetch_grouped(self, user_id, window, operation_type):
        self.calls.append(("grouped", user_id, window, operation_type))
        self._maybe_fail()
        if self.grouped_rows is not None:
            return list(self.grouped_rows)
        return [(t.category, t.quantities) for t in self._matching(user_id, window, operation_type)]

    async def find(self, user_id, created_at):
        self._maybe_fail()
        for t in self.rows:
            if t.telegram_id == user_id and t.created_at == created_at:
                return t
        return None

    async def insert(self, transaction):
        self._maybe_fail()
        self.inserts += 1
        self.rows.append(transaction)
        return transaction


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()
