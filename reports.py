"""
Текстовые отчёты по операциям.

Каждый отчёт собирается как список строк и склеивается в текст только
в render(), поэтому логику можно проверять отдельно от вёрстки.
Все функции чистые: одинаковый вход даёт одинаковый текст.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

from db import Transaction


@dataclass(frozen=True)
class Domain:
    name: str
    day_empty: str
    day_title: str
    day_total: str
    week_empty: str
    week_title: str
    week_item: str
    week_total: str
    month_empty: str
    month_title: str
    month_total: str
    emoji: Mapping[str, str] = field(default_factory=dict)

    @property
    def categories(self) -> list[str]:
        return list(self.emoji)


EXPENSE_DOMAIN = Domain(
    name="expense",
    day_empty="📉 Сегодня у вас не было расходов.",
    day_title="📉 Отчёт за день:",
    day_total="💸 Итого расходов за день",
    week_empty="📊 За прошедшую неделю расходы отсутствуют.",
    week_title="📊 Отчёт за неделю:",
    week_item="Расход",
    week_total="💸 Общий расход за неделю составил",
    month_empty="📊 За прошедший месяц расходы отсутствуют.",
    month_title="📊 Расходы за месяц:",
    month_total="💸 Общие расходы",
    emoji={
        "Бытовые траты": "🔵",
        "Регулярные платежи": "🔴",
        "Одежда": "🟡",
        "Здоровье": "🟢",
        "Досуг и образование": "🟠",
        "Инвестиции": "🟣",
        "Прочие расходы": "⚪️",
    },
)

INCOME_DOMAIN = Domain(
    name="income",
    day_empty="📈 Сегодня у вас не было доходов.",
    day_title="📈 Отчёт за день:",
    day_total="💵 Итого доходов за день",
    week_empty="📊 За прошедшую неделю доходы отсутствуют.",
    week_title="📊 Отчёт за неделю:",
    week_item="Доход",
    week_total="💵 Общий доход за неделю составил",
    month_empty="📊 За прошедший месяц доходы отсутствуют.",
    month_title="📊 Доходы за месяц:",
    month_total="💸 Общий доход",
    emoji={
        "Заработная плата": "🔵",
        "Побочный доход": "🔴",
        "Доход от бизнеса": "🟡",
        "Гос. выплаты": "🟢",
        "Продажа имущества": "🟠",
        "Доход от инвестиций": "🟣",
        "Прочие доходы": "⚪️",
    },
)


def domain_for(operation_type: bool) -> Domain:
    return INCOME_DOMAIN if operation_type else EXPENSE_DOMAIN


@dataclass(frozen=True)
class CategoryShare:
    category: str
    total: int
    percentage: int
    emoji: str | None = None

    def line(self) -> str:
        prefix = f"{self.emoji} " if self.emoji else ""
        return f"{prefix}{self.category}: {self.total} ({self.percentage}%)"


def percentage_of(value: int, grand_total: int) -> int:
    if grand_total == 0:
        return 0
    return round(100 * value / grand_total)


def _ordered(summary: Mapping[str, int]) -> list[tuple[str, int]]:
    # по убыванию суммы, при равенстве — по названию
    return sorted(summary.items(), key=lambda item: (-item[1], item[0]))


def category_shares(summary: Mapping[str, int], domain: Domain) -> list[CategoryShare]:
    grand_total = sum(summary.values())
    return [
        CategoryShare(
            category=category,
            total=value,
            percentage=percentage_of(value, grand_total),
            emoji=domain.emoji.get(category),
        )
        for category, value in _ordered(summary)
    ]


def render(lines: Sequence[str]) -> str:
    return "\n".join(lines)


def daily_report_lines(transactions: Sequence[Transaction], currency: str, domain: Domain) -> list[str]:
    if not transactions:
        return [domain.day_empty]

    lines = [domain.day_title, ""]
    total = 0
    for t in transactions:
        lines.append(f"▪ Категория: {t.category}")
        lines.append(f"   Сумма: {t.quantities}")
        if t.description:
            lines.append(f"   Комментарий: {t.description}")
        lines.append("")
        total += t.quantities
    lines.append(f"{domain.day_total}: {total} {currency}")
    return lines


def weekly_report_lines(summary: Mapping[str, int], currency: str, domain: Domain) -> list[str]:
    if not summary:
        return [domain.week_empty]

    lines = [domain.week_title, ""]
    for category, value in _ordered(summary):
        lines.append(f"▪ Категория: {category} — {domain.week_item}: {value}")
    lines.append("")
    lines.append(f"{domain.week_total}: {sum(summary.values())} {currency}")
    return lines


def monthly_report_lines(summary: Mapping[str, int], currency: str, domain: Domain) -> list[str]:
    if not summary:
        return [domain.month_empty]

    lines = [domain.month_title, ""]
    lines.extend(share.line() for share in category_shares(summary, domain))
    lines.append("")
    lines.append(f"{domain.month_total}: {sum(summary.values())} {currency}")
    return lines


def daily_report(transactions: Sequence[Transaction], currency: str, domain: Domain) -> str:
    return render(daily_report_lines(transactions, currency, domain))


def weekly_report(summary: Mapping[str, int], currency: str, domain: Domain) -> str:
    return render(weekly_report_lines(summary, currency, domain))


def monthly_report(summary: Mapping[str, int], currency: str, domain: Domain) -> str:
    return render(monthly_report_lines(summary, currency, domain))
