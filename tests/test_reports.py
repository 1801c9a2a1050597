import asyncio
from decimal import Decimal

from application.usecases.reports import format_money, format_signed_money
from domain.models.balances import (
    BalanceOverview,
    BalanceSummary,
    CounterpartyBalance,
    GroupBalance,
    MemberBalance,
)
from transport.telegram.balance_handlers import (
    DATA_UNAVAILABLE_TEXT,
    build_balance_text,
    render_balance_view,
)


def _overview(**overrides):
    fields = dict(
        summary=BalanceSummary(Decimal("10.00"), Decimal("40.00"), Decimal("30.00")),
        by_counterparty=(CounterpartyBalance("A", Decimal("-10.00"), "USD"),),
        by_group=(
            GroupBalance(
                group_id="g1",
                group_name="Поездка",
                group_icon="🏔",
                net_amount=Decimal("40.00"),
                currency="USD",
                member_balances=(MemberBalance("B", Decimal("40.00")),),
            ),
        ),
        primary_currency="USD",
        consolidated=(
            CounterpartyBalance("B", Decimal("40.00"), "USD"),
            CounterpartyBalance("A", Decimal("-10.00"), "USD"),
        ),
    )
    fields.update(overrides)
    return BalanceOverview(**fields)


def test_money_formatting():
    assert format_money(Decimal("5"), "USD") == "5.00 USD"
    assert format_signed_money(Decimal("5"), "EUR") == "+5.00 EUR"
    assert format_signed_money(Decimal("-5.5"), "EUR") == "-5.50 EUR"
    assert format_signed_money(Decimal("0"), "EUR") == "0.00 EUR"


def test_summary_report(report_svc):
    text = report_svc.format_summary(BalanceSummary(Decimal("10.00"), Decimal("40.00"), Decimal("30.00")), "USD")

    assert text == "<b>Итого:</b> +30.00 USD\nВы должны: 10.00 USD\nВам должны: 40.00 USD"


def test_summary_report_for_settled_user(report_svc):
    text = report_svc.format_summary(BalanceSummary(Decimal("0"), Decimal("0"), Decimal("0")), "INR")

    assert text.startswith("<b>Итого:</b> -\n")


def test_counterparty_report_uses_names(report_svc):
    text = report_svc.format_counterparty_report(
        [
            CounterpartyBalance("A", Decimal("12.50"), "USD"),
            CounterpartyBalance("Z", Decimal("-3.00"), "EUR"),
        ]
    )

    assert text.splitlines() == [
        "<b>Балансы по людям:</b>",
        "Аня должен(на) вам 12.50 USD",
        "Вы должны Пользователь Z 3.00 EUR",
    ]


def test_group_report_lists_members(report_svc):
    text = report_svc.format_group_report(_overview().by_group)

    assert text.splitlines() == [
        "<b>Балансы по группам:</b>",
        "",
        "🏔 Поездка: +40.00 USD",
        "  Боря: +40.00 USD",
    ]


def test_group_names_are_escaped(report_svc):
    group = GroupBalance("g3", "<Дача & баня>", None, Decimal("-1.00"), "USD")

    text = report_svc.format_group_report([group])

    assert "&lt;Дача &amp; баня&gt;: -1.00 USD" in text


def test_empty_reports(report_svc):
    assert report_svc.format_counterparty_report([]).endswith("Пока нет балансов по личным затратам.")
    assert report_svc.format_group_report([]).endswith("Пока нет балансов по группам.")
    assert report_svc.format_consolidated_report([]).endswith(
        "Пока нет балансов. Начните делить счета с друзьями!"
    )


def test_balance_views(report_svc):
    overview = _overview()

    assert render_balance_view(report_svc, overview, "people") == report_svc.format_counterparty_report(
        overview.by_counterparty
    )
    assert render_balance_view(report_svc, overview, "groups") == report_svc.format_group_report(overview.by_group)
    simple = render_balance_view(report_svc, overview, "simple")
    assert simple.splitlines()[1:] == ["Боря должен(на) вам 40.00 USD", "Вы должны Аня 10.00 USD"]

    full = render_balance_view(report_svc, overview, "overview")
    assert full.startswith("<b>Итого:</b> +30.00 USD")
    assert "Кто кому должен" in full


def test_storage_failure_shows_error_instead_of_zeros(make_services, report_svc):
    _, _, balance_svc = make_services(fail=True)

    for view in ("overview", "summary", "people", "groups", "simple"):
        text = asyncio.run(build_balance_text(balance_svc, report_svc, "U", view))
        assert text == DATA_UNAVAILABLE_TEXT


def test_balance_text_for_reachable_storage(make_services, make_expense, report_svc):
    expense = make_expense("e1", 20, participants={"A": 20}, payers={"U": 20})
    _, _, balance_svc = make_services([expense])

    text = asyncio.run(build_balance_text(balance_svc, report_svc, "U", "people"))

    assert text.splitlines() == ["<b>Балансы по людям:</b>", "Аня должен(на) вам 20.00 USD"]
