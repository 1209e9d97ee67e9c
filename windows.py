"""
Временные окна для отчётов.

- день: [полночь, полночь + 24ч);
- неделя: скользящие 7 дней [now - 7д, now);
- месяц: [1-е число, 1-е число следующего месяца - 1с] — верхняя граница включена.
"""

from __future__ import annotations

import datetime as dt
import enum
import logging
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


logger = logging.getLogger(__name__)


class WindowKind(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class TimeWindow:
    start: dt.datetime
    end: dt.datetime
    closed: bool = False

    def contains(self, instant: dt.datetime) -> bool:
        if instant < self.start:
            return False
        if self.closed:
            return instant <= self.end
        return instant < self.end


def valid_timezone(tz_name: str | None) -> str | None:
    """Имя зоны, если она известна, иначе None (берётся локальная зона процесса)."""
    if not tz_name:
        return None
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone %r, falling back to local time", tz_name)
        return None
    return tz_name


def local_now(tz_name: str | None = None) -> dt.datetime:
    """Текущее настенное время без tzinfo (в таком виде оно хранится в БД)."""
    if tz_name:
        return dt.datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)
    return dt.datetime.now()


def resolve_window(kind: WindowKind, now: dt.datetime) -> TimeWindow:
    if kind is WindowKind.DAY:
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return TimeWindow(start=start, end=start + dt.timedelta(hours=24))

    if kind is WindowKind.WEEK:
        return TimeWindow(start=now - dt.timedelta(days=7), end=now)

    if kind is WindowKind.MONTH:
        start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if start.month == 12:
            next_month = start.replace(year=start.year + 1, month=1)
        else:
            next_month = start.replace(month=start.month + 1)
        return TimeWindow(start=start, end=next_month - dt.timedelta(seconds=1), closed=True)

    raise ValueError(f"unknown window kind: {kind!r}")
