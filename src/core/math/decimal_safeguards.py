"""
Decimal Safeguards: Safe Decimal Primitives

Модуль обеспечивает точную арифметику для всех формул страхового хеджа:
- Конверсия входов (float/int/str/Decimal) в Decimal без binary-float ошибок
- Безопасное деление с фиксированной точностью (20 знаков, ROUND_HALF_UP)
- Нормализация промежуточных результатов к ближайшему IEEE-754 double
- Валидация цен, маржи и периодов (NaN/Inf/отрицательные значения)
- Квантование денежных сумм для вывода

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Деление на ноль никогда не происходит (DegenerateInputError)
2. NaN/Inf никогда не пропагируют (InvalidRangeError)
3. Сложение/умножение точные, округляется только деление
4. Все операции детерминированы и воспроизводимы
"""

from decimal import (
    ROUND_DOWN,
    ROUND_HALF_UP,
    Context,
    Decimal,
    InvalidOperation,
    localcontext,
)
from typing import Final, Union

# =============================================================================
# ПАРАМЕТРЫ ТОЧНОСТИ
# =============================================================================

# Количество знаков после запятой для результата деления
DIVISION_DP: Final[int] = 20

# Точность контекста для сложения/умножения (фактически точная арифметика)
FORMULA_PRECISION: Final[int] = 100

# Контекст для всех формул: точные +, -, *, abs
FORMULA_CONTEXT: Final[Context] = Context(prec=FORMULA_PRECISION, rounding=ROUND_HALF_UP)

# Контекст для деления: усечение, затем ROUND_HALF_UP до DIVISION_DP.
# Усечение не меняет решение half-up, т.к. оно зависит только от первой
# отброшенной цифры.
_TRUNCATING_CONTEXT: Final[Context] = Context(prec=FORMULA_PRECISION, rounding=ROUND_DOWN)

_DIVISION_QUANTUM: Final[Decimal] = Decimal(1).scaleb(-DIVISION_DP)

# Порядок частного, выше которого результат не представим как double
MAX_QUOTIENT_EXPONENT: Final[int] = 308

DecimalLike = Union[Decimal, float, int, str]


# =============================================================================
# EXCEPTIONS
# =============================================================================


class FormulaError(ValueError):
    """Базовая ошибка формул хеджа."""

    pass


class DegenerateInputError(FormulaError):
    """
    Вырожденный вход: деление на ноль или пустая таблица.

    Примеры: p_open = 0, p_stop = p_open, hedge_ratio(x, 0),
    пустая claim-ratio таблица.
    """

    pass


class InvalidRangeError(FormulaError):
    """Отрицательные или не-finite цены, маржа, периоды."""

    pass


# =============================================================================
# КОНВЕРСИЯ
# =============================================================================


def to_decimal(value: DecimalLike, name: str = "value") -> Decimal:
    """
    Конверсия входа в Decimal.

    float конвертируется через кратчайшее десятичное представление
    (repr), поэтому 0.1 становится Decimal("0.1"), а не
    Decimal("0.1000000000000000055511151231257827...").

    Args:
        value: Исходное значение (Decimal, float, int или str)
        name: Имя параметра (для сообщения об ошибке)

    Returns:
        Decimal

    Raises:
        InvalidRangeError: Если значение не парсится как число

    Examples:
        >>> to_decimal(0.1)
        Decimal('0.1')
        >>> to_decimal("6.561")
        Decimal('6.561')
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidRangeError(f"{name} must be numeric, got bool {value}")
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, int):
        return Decimal(value)
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidRangeError(f"{name} must be numeric, got {value!r}") from None


def snap_to_double(value: Decimal) -> Decimal:
    """
    Нормализация к ближайшему IEEE-754 double.

    Значение округляется до double и возвращается как Decimal его
    кратчайшего представления. Применяется к каждой именованной
    промежуточной величине формул, чтобы результат совпадал до цифры
    с float-потребителями этих чисел.

    Examples:
        >>> snap_to_double(Decimal("7.2024399999999999999"))
        Decimal('7.20244')
    """
    if not value.is_finite():
        raise InvalidRangeError(f"Cannot snap non-finite value {value}")
    as_float = float(value)
    if as_float in (float("inf"), float("-inf")):
        raise InvalidRangeError(f"Value {value} overflows double range")
    return Decimal(repr(as_float))


# =============================================================================
# БЕЗОПАСНОЕ ДЕЛЕНИЕ
# =============================================================================


def safe_divide(numerator: Decimal, denominator: Decimal, what: str = "division") -> Decimal:
    """
    Деление с округлением до DIVISION_DP знаков (ROUND_HALF_UP).

    Никогда не возвращает fallback:
    нулевой делитель всегда явная ошибка.

    Точность контекста растёт с порядком частного, поэтому
    p_open / |p_open - p_stop| при очень близком stop остаётся числом.

    Args:
        numerator: Числитель
        denominator: Знаменатель
        what: Описание операции (для сообщения об ошибке)

    Returns:
        numerator / denominator, 20 знаков после запятой

    Raises:
        DegenerateInputError: Если denominator == 0
        InvalidRangeError: Если частное выходит за диапазон double

    Examples:
        >>> safe_divide(Decimal(1), Decimal(3))
        Decimal('0.33333333333333333333')
        >>> safe_divide(Decimal(2), Decimal(3))
        Decimal('0.66666666666666666667')
    """
    if denominator.is_zero():
        raise DegenerateInputError(f"{what}: division by zero ({numerator} / {denominator})")

    magnitude = 0 if numerator.is_zero() else numerator.adjusted() - denominator.adjusted()
    if magnitude > MAX_QUOTIENT_EXPONENT:
        raise InvalidRangeError(
            f"{what}: quotient {numerator} / {denominator} overflows double range"
        )

    with localcontext(_TRUNCATING_CONTEXT) as ctx:
        # Цифры до 10^-21 включительно: первая отброшенная цифра для half-up
        ctx.prec = max(FORMULA_PRECISION, magnitude + DIVISION_DP + 3)
        quotient = numerator / denominator
        ctx.rounding = ROUND_HALF_UP
        return quotient.quantize(_DIVISION_QUANTUM)


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def is_valid_decimal(value: Decimal) -> bool:
    """Проверка, что Decimal конечен (не NaN, не Inf)."""
    return value.is_finite()


def validate_finite(value: DecimalLike, name: str) -> Decimal:
    """
    Конверсия и проверка на NaN/Inf.

    Raises:
        InvalidRangeError: Если значение NaN/Inf
    """
    result = to_decimal(value, name)
    if not is_valid_decimal(result):
        raise InvalidRangeError(f"{name} must be finite (not NaN/Inf), got {value}")
    return result


def validate_positive(value: DecimalLike, name: str) -> Decimal:
    """
    Валидация, что значение строго положительное.

    Args:
        value: Проверяемое значение
        name: Имя параметра (для сообщения об ошибке)

    Returns:
        Значение как Decimal

    Raises:
        InvalidRangeError: Если value <= 0 или NaN/Inf
    """
    result = validate_finite(value, name)
    if result <= 0:
        raise InvalidRangeError(f"{name} must be positive, got {value}")
    return result


def validate_non_negative(value: DecimalLike, name: str) -> Decimal:
    """
    Валидация, что значение неотрицательное.

    Raises:
        InvalidRangeError: Если value < 0 или NaN/Inf
    """
    result = validate_finite(value, name)
    if result < 0:
        raise InvalidRangeError(f"{name} must be non-negative, got {value}")
    return result


# =============================================================================
# КВАНТОВАНИЕ
# =============================================================================


def quantize_amount(value: Decimal, places: int) -> Decimal:
    """
    Округление суммы до places знаков после запятой (ROUND_HALF_UP).

    Examples:
        >>> quantize_amount(Decimal("1.005"), 2)
        Decimal('1.01')
        >>> quantize_amount(Decimal("2.5"), 0)
        Decimal('3')
    """
    if places < 0:
        raise InvalidRangeError(f"places must be non-negative, got {places}")
    with localcontext(FORMULA_CONTEXT) as ctx:
        ctx.prec = max(FORMULA_PRECISION, value.adjusted() + places + 2)
        return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
