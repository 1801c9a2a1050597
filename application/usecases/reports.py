# application/usecases/reports.py

from dataclasses import dataclass
from decimal import Decimal
from html import escape
from typing import List, Sequence

from application.usecases.users import UserService
from domain.models.balances import (
    BalanceOverview,
    BalanceSummary,
    CounterpartyBalance,
    GroupBalance,
)


def format_money(amount: Decimal, currency: str) -> str:
    return f"{amount:.2f} {currency}"


def format_signed_money(amount: Decimal, currency: str) -> str:
    sign = "+" if amount > 0 else ""
    return f"{sign}{amount:.2f} {currency}"


@dataclass
class ReportService:
    """
    Сервис построения текстовых отчётов по балансам для бота.

    Отчёты:
    - общий баланс (должен / должны мне / итого);
    - балансы по людям (только прямые затраты);
    - балансы по группам с детализацией по участникам;
    - «упрощённый» список: всё сведено в одну сумму на человека.
    """

    users_svc: UserService

    def _name(self, user_id: str) -> str:
        return escape(self.users_svc.display_name(user_id))

    def _person_line(self, balance: CounterpartyBalance) -> str:
        name = self._name(balance.user_id)
        money = format_money(abs(balance.amount), balance.currency)
        if balance.amount > 0:
            return f"{name} должен(на) вам {money}"
        return f"Вы должны {name} {money}"

    def format_summary(self, summary: BalanceSummary, currency: str) -> str:
        """
        Формат:
        Итого: +60.00 USD
        Вы должны: 0.00 USD
        Вам должны: 60.00 USD
        """
        if summary.net_balance == 0:
            net_text = "-"
        else:
            net_text = format_signed_money(summary.net_balance, currency)

        lines: List[str] = [
            f"<b>Итого:</b> {net_text}",
            f"Вы должны: {format_money(summary.total_owed, currency)}",
            f"Вам должны: {format_money(summary.total_owed_to, currency)}",
        ]
        return "\n".join(lines)

    def format_counterparty_report(self, balances: Sequence[CounterpartyBalance]) -> str:
        lines: List[str] = ["<b>Балансы по людям:</b>"]
        lines.extend(self._person_line(b) for b in balances)

        if len(lines) == 1:
            lines.append("Пока нет балансов по личным затратам.")
        return "\n".join(lines)

    def format_group_report(self, groups: Sequence[GroupBalance]) -> str:
        lines: List[str] = ["<b>Балансы по группам:</b>"]

        for group in groups:
            title = escape(group.group_name)
            if group.group_icon:
                title = f"{escape(group.group_icon)} {title}"
            lines.append("")
            lines.append(f"{title}: {format_signed_money(group.net_amount, group.currency)}")
            for member in group.member_balances:
                lines.append(
                    f"  {self._name(member.user_id)}: "
                    f"{format_signed_money(member.amount, group.currency)}"
                )

        if len(lines) == 1:
            lines.append("Пока нет балансов по группам.")
        return "\n".join(lines)

    def format_consolidated_report(self, balances: Sequence[CounterpartyBalance]) -> str:
        lines: List[str] = ["<b>Кто кому должен (упрощённо):</b>"]
        lines.extend(self._person_line(b) for b in balances)

        if len(lines) == 1:
            lines.append("Пока нет балансов. Начните делить счета с друзьями!")
        return "\n".join(lines)

    def format_overview(self, overview: BalanceOverview) -> str:
        """
        Общий баланс плюс «упрощённый» список, как на главном экране.
        """
        return "\n\n".join(
            [
                self.format_summary(overview.summary, overview.primary_currency),
                self.format_consolidated_report(overview.consolidated),
            ]
        )
