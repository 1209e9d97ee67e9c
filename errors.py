"""Ошибки сервисного слоя."""

from __future__ import annotations

import datetime as dt


class FinanceError(Exception):
    """Базовая ошибка учёта операций."""


class ValidationError(FinanceError):
    """Некорректная сумма, описание или категория."""


class DuplicateError(FinanceError):
    def __init__(self, user_id: int, created_at: dt.datetime) -> None:
        super().__init__(f"transaction already exists for user {user_id} at {created_at.isoformat()}")
        self.user_id = user_id
        self.created_at = created_at


class StoreError(FinanceError):
    """Сбой запроса или вставки; ``operation`` называет упавшую операцию."""

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause
