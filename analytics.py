"""
Аналитика по операциям пользователя.

Выборка за окно и свёртка сумм по категориям. Ошибки хранилища
оборачиваются в StoreError с названием упавшей операции; повторов нет.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable, Protocol

from sqlalchemy.exc import SQLAlchemyError

from db import Transaction
from errors import StoreError
from windows import TimeWindow, WindowKind, resolve_window


logger = logging.getLogger(__name__)


class AnalyticsStore(Protocol):
    async def fetch_raw(self, user_id: int, window: TimeWindow, operation_type: bool) -> list[Transaction]: ...

    async def fetch_grouped(
        self, user_id: int, window: TimeWindow, operation_type: bool
    ) -> list[tuple[str, int]]: ...


def domain_label(operation_type: bool) -> str:
    return "income" if operation_type else "expense"


def fold_category_totals(rows: Iterable[tuple[str, int]]) -> dict[str, int]:
    """Сворачивает пары (категория, сумма); повторные категории суммируются."""
    summary: dict[str, int] = {}
    for category, value in rows:
        summary[category] = summary.get(category, 0) + value
    return summary


class TransactionAnalytics:
    def __init__(self, store: AnalyticsStore) -> None:
        self._store = store

    async def fetch_raw(
        self,
        user_id: int,
        window: TimeWindow,
        operation_type: bool,
        kind: WindowKind = WindowKind.DAY,
    ) -> list[Transaction]:
        operation = f"{kind.value} {domain_label(operation_type)} query"
        try:
            transactions = await self._store.fetch_raw(user_id, window, operation_type)
        except SQLAlchemyError as exc:
            logger.error("%s failed for user %s: %s", operation, user_id, exc)
            raise StoreError(operation, exc) from exc
        logger.debug("%s for user %s: %d rows", operation, user_id, len(transactions))
        return transactions

    async def fetch_grouped(
        self,
        user_id: int,
        window: TimeWindow,
        operation_type: bool,
        kind: WindowKind = WindowKind.MONTH,
    ) -> dict[str, int]:
        operation = f"{kind.value} {domain_label(operation_type)} aggregation"
        try:
            rows = await self._store.fetch_grouped(user_id, window, operation_type)
        except SQLAlchemyError as exc:
            logger.error("%s failed for user %s: %s", operation, user_id, exc)
            raise StoreError(operation, exc) from exc
        logger.debug("%s for user %s: %r", operation, user_id, rows)
        return fold_category_totals(rows)

    async def day(self, user_id: int, operation_type: bool, now: dt.datetime) -> list[Transaction]:
        window = resolve_window(WindowKind.DAY, now)
        return await self.fetch_raw(user_id, window, operation_type, WindowKind.DAY)

    async def week(self, user_id: int, operation_type: bool, now: dt.datetime) -> dict[str, int]:
        window = resolve_window(WindowKind.WEEK, now)
        return await self.fetch_grouped(user_id, window, operation_type, WindowKind.WEEK)

    async def month(self, user_id: int, operation_type: bool, now: dt.datetime) -> dict[str, int]:
        window = resolve_window(WindowKind.MONTH, now)
        return await self.fetch_grouped(user_id, window, operation_type, WindowKind.MONTH)
