"""
Запись новой операции.

Формат сообщения пользователя: "сумма, описание" (категория выбирается
заранее в меню). Перед вставкой проверяется, нет ли у пользователя записи
с той же отметкой времени; уникальный индекс (telegram_id, created_at)
закрывает гонку между проверкой и вставкой.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
from typing import Callable, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from analytics import domain_label
from db import Transaction
from errors import DuplicateError, StoreError, ValidationError
from windows import local_now


logger = logging.getLogger(__name__)

PAYLOAD_SEPARATOR = ", "
# верхняя граница знакового 64-битного INTEGER в БД
MAX_QUANTITIES = 2**63 - 1
_AMOUNT_RE = re.compile(r"\+?[0-9]+")


class RecorderStore(Protocol):
    async def find(self, user_id: int, created_at: dt.datetime) -> Transaction | None: ...

    async def insert(self, transaction: Transaction) -> Transaction: ...


def parse_quantities(raw: str | int) -> int:
    if isinstance(raw, bool):
        raise ValidationError(f"amount must be an integer, got {raw!r}")
    if isinstance(raw, int):
        value = raw
    else:
        text = str(raw).strip()
        if not _AMOUNT_RE.fullmatch(text):
            raise ValidationError(f"amount must be a non-negative integer, got {raw!r}")
        value = int(text)
    if value < 0:
        raise ValidationError(f"amount must be non-negative, got {value}")
    if value > MAX_QUANTITIES:
        raise ValidationError(f"amount is too large, got {value}")
    return value


def parse_payload(text: str | None) -> tuple[int, str]:
    """Разбирает "сумма, описание" в (сумма, описание)."""
    parts = (text or "").split(PAYLOAD_SEPARATOR, 1)
    if len(parts) < 2:
        raise ValidationError("expected '<amount>, <description>'")
    amount, description = parts
    return parse_quantities(amount), description.strip()


class TransactionRecorder:
    def __init__(self, store: RecorderStore, clock: Callable[[], dt.datetime] = local_now) -> None:
        self._store = store
        self._clock = clock

    async def record(
        self,
        user_id: int,
        created_at: dt.datetime,
        operation_type: bool,
        quantities: str | int,
        category: str,
        description: str | None,
    ) -> Transaction:
        amount = parse_quantities(quantities)
        if description is None:
            raise ValidationError("description is required")
        category = (category or "").strip()
        if not category:
            raise ValidationError("category is required")

        operation = f"{domain_label(operation_type)} insert"
        try:
            existing = await self._store.find(user_id, created_at)
        except SQLAlchemyError as exc:
            raise StoreError(f"{domain_label(operation_type)} duplicate check", exc) from exc
        if existing is not None:
            logger.debug("Transaction for user %s at %s already exists", user_id, created_at)
            raise DuplicateError(user_id, created_at)

        transaction = Transaction(
            telegram_id=user_id,
            created_at=created_at,
            operation_type=operation_type,
            quantities=amount,
            category=category,
            description=description,
        )
        try:
            saved = await self._store.insert(transaction)
        except IntegrityError as exc:
            logger.debug("Unique constraint rejected transaction for user %s at %s", user_id, created_at)
            raise DuplicateError(user_id, created_at) from exc
        except SQLAlchemyError as exc:
            logger.error("%s failed for user %s: %s", operation, user_id, exc)
            raise StoreError(operation, exc) from exc

        logger.info("Recorded %s of %d for user %s [%s]", domain_label(operation_type), amount, user_id, category)
        return saved

    async def record_message(
        self,
        user_id: int,
        operation_type: bool,
        category: str,
        payload: str | None,
        created_at: dt.datetime | None = None,
    ) -> Transaction:
        amount, description = parse_payload(payload)
        return await self.record(
            user_id=user_id,
            created_at=created_at or self._clock(),
            operation_type=operation_type,
            quantities=amount,
            category=category,
            description=description,
        )
