# common/money.py

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0")


def round_money(value: Decimal) -> Decimal:
    """
    Округление до копеек: половина — от нуля (ROUND_HALF_UP).
    Везде в расчётах используется только это правило.
    """
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Привести значение (число, строку из таблицы, None) к Decimal.

    Пустые и нечисловые значения превращаются в default.
    Запятая как десятичный разделитель допускается ("12,5").
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    text = str(value).replace(",", ".").strip()
    if not text:
        return default
    try:
        result = Decimal(text)
    except InvalidOperation:
        return default
    return result if result.is_finite() else default


def allocate_cents(total: Decimal, weights: list[Decimal]) -> list[Decimal]:
    """
    Разбить total на части пропорционально weights с точностью до копейки.

    Сумма частей всегда равна round_money(total). Лишние копейки отдаются
    частям с наибольшим дробным остатком, при равных остатках — тем,
    что идут раньше в списке.
    """
    if not weights:
        return []
    weight_sum = sum(weights, ZERO)
    if weight_sum <= 0:
        raise ValueError("weights must have a positive sum")

    total_cents = int(round_money(total) / CENT)
    raw = [total_cents * w / weight_sum for w in weights]
    parts = [int(r) for r in raw]

    leftover = total_cents - sum(parts)
    by_remainder = sorted(range(len(raw)), key=lambda i: raw[i] - parts[i], reverse=True)
    for i in by_remainder[:leftover]:
        parts[i] += 1

    return [Decimal(p) * CENT for p in parts]
