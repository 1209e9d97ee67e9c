from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, UniqueConstraint, func, select
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from windows import TimeWindow


class Base(AsyncAttrs, DeclarativeBase):
    pass


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("telegram_id", "created_at", name="uq_transactions_user_created"),
        CheckConstraint("quantities >= 0", name="ck_transactions_quantities_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    telegram_id: Mapped[int] = mapped_column(Integer, index=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, index=True)
    # True — доход, False — расход
    operation_type: Mapped[bool] = mapped_column(Boolean, index=True)
    quantities: Mapped[int] = mapped_column(Integer)
    category: Mapped[str] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(String(255), default="")


def create_session_factory(
    db_url: str, **engine_kwargs: Any
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(db_url, echo=False, **engine_kwargs)
    return engine, async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _window_filter(user_id: int, window: TimeWindow, operation_type: bool) -> list:
    upper = Transaction.created_at <= window.end if window.closed else Transaction.created_at < window.end
    return [
        Transaction.telegram_id == user_id,
        Transaction.operation_type == operation_type,
        Transaction.created_at >= window.start,
        upper,
    ]


class TransactionStore:
    """Доступ к таблице транзакций; сессии берутся из переданной фабрики."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def fetch_raw(self, user_id: int, window: TimeWindow, operation_type: bool) -> list[Transaction]:
        async with self._session_factory() as session:
            res = await session.execute(
                select(Transaction)
                .where(*_window_filter(user_id, window, operation_type))
                .order_by(Transaction.created_at, Transaction.id)
            )
            return list(res.scalars().all())

    async def fetch_grouped(
        self, user_id: int, window: TimeWindow, operation_type: bool
    ) -> list[tuple[str, int]]:
        async with self._session_factory() as session:
            res = await session.execute(
                select(
                    Transaction.category,
                    func.sum(Transaction.quantities).label("total"),
                )
                .where(*_window_filter(user_id, window, operation_type))
                .group_by(Transaction.category)
            )
            return [(category, int(total or 0)) for category, total in res.all()]

    async def find(self, user_id: int, created_at: dt.datetime) -> Transaction | None:
        async with self._session_factory() as session:
            res = await session.execute(
                select(Transaction)
                .where(Transaction.telegram_id == user_id, Transaction.created_at == created_at)
                .limit(1)
            )
            return res.scalars().first()

    async def insert(self, transaction: Transaction) -> Transaction:
        async with self._session_factory() as session:
            session.add(transaction)
            await session.commit()
            await session.refresh(transaction)
            return transaction
