from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from app.states.form import MintInfo
from app.utils.formatting import parse_decimal, precision

# Number.MAX_SAFE_INTEGER: верхняя граница суммы в форме
MAX_SAFE_NUMBER = Decimal(2 ** 53 - 1)
U64_MAX = 2 ** 64 - 1


def get_mint_min_amount_as_decimal(mint: MintInfo) -> Decimal:
    """Минимальная представимая единица токена: 10^-decimals."""
    return Decimal(1).scaleb(-mint.decimals)


def get_mint_natural_amount_from_decimal(amount: Decimal, decimals: int) -> int:
    """Переводит сумму в человеческих единицах в целые единицы минта (lamports и т.п.)."""
    return int((amount.scaleb(decimals)).to_integral_value(rounding=ROUND_HALF_UP))


def normalize_amount(raw, min_unit: Decimal) -> Decimal:
    """Приводит сырую сумму к допустимому диапазону и точности минта.

    Пустое или нечисловое значение считается нулём, поэтому blur по пустому
    полю даёт `min_unit`. Выход за границы не ошибка: значение просто
    зажимается в `[min_unit, MAX_SAFE_NUMBER]`. Округление ROUND_HALF_UP
    до `precision(min_unit)` знаков.

    Args:
        raw: Введённое значение (str, число или None).
        min_unit (Decimal): Минимальная единица актива.

    Returns:
        Decimal: Нормализованная сумма.
    """
    value = parse_decimal(raw)
    if value is None:
        value = Decimal(0)
    clamped = max(min_unit, min(MAX_SAFE_NUMBER, value))
    places = precision(min_unit)
    return clamped.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
