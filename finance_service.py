"""
Сервисный слой для работы с финансами.

Здесь собирается цепочка поверх БД:
- окно времени -> выборка/агрегация -> текстовый отчёт;
- запись новой операции (доход или расход).
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from analytics import TransactionAnalytics
from bot_config import Settings
from db import Transaction, TransactionStore
from recorder import TransactionRecorder
from reports import daily_report, domain_for, monthly_report, weekly_report
from windows import WindowKind, local_now, valid_timezone


class FinanceService:
    def __init__(
        self,
        analytics: TransactionAnalytics,
        recorder: TransactionRecorder,
        currency: str,
        tz_name: str | None = None,
    ) -> None:
        self.analytics = analytics
        self.recorder = recorder
        self.currency = currency
        self.tz_name = valid_timezone(tz_name)

    def now(self) -> dt.datetime:
        return local_now(self.tz_name)

    async def report(
        self,
        user_id: int,
        kind: WindowKind,
        operation_type: bool,
        now: dt.datetime | None = None,
        currency: str | None = None,
    ) -> str:
        """Готовый к отправке отчёт за день, неделю или месяц."""
        now = now or self.now()
        currency = currency if currency is not None else self.currency
        domain = domain_for(operation_type)

        if kind is WindowKind.DAY:
            transactions = await self.analytics.day(user_id, operation_type, now)
            return daily_report(transactions, currency, domain)
        if kind is WindowKind.WEEK:
            summary = await self.analytics.week(user_id, operation_type, now)
            return weekly_report(summary, currency, domain)
        summary = await self.analytics.month(user_id, operation_type, now)
        return monthly_report(summary, currency, domain)

    async def add_transaction(
        self, user_id: int, operation_type: bool, category: str, payload: str | None
    ) -> Transaction:
        return await self.recorder.record_message(
            user_id=user_id,
            operation_type=operation_type,
            category=category,
            payload=payload,
            created_at=self.now(),
        )


def build_service(session_factory: async_sessionmaker[AsyncSession], settings: Settings) -> FinanceService:
    store = TransactionStore(session_factory)
    tz_name = valid_timezone(settings.timezone)
    return FinanceService(
        analytics=TransactionAnalytics(store),
        recorder=TransactionRecorder(store, clock=lambda: local_now(tz_name)),
        currency=settings.currency,
        tz_name=tz_name,
    )
