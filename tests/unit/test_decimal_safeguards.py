"""
Тесты для модуля Decimal Safeguards

Проверяет:
1. Конверсию float/int/str в Decimal через кратчайшее представление
2. Деление с округлением до 20 знаков (ROUND_HALF_UP)
3. Нормализацию к IEEE-754 double
4. Валидацию параметров (NaN/Inf, знак)
5. Квантование денежных сумм
"""

from decimal import Decimal

import pytest

from src.core.math.decimal_safeguards import (
    DIVISION_DP,
    FORMULA_CONTEXT,
    DegenerateInputError,
    FormulaError,
    InvalidRangeError,
    is_valid_decimal,
    quantize_amount,
    safe_divide,
    snap_to_double,
    to_decimal,
    validate_finite,
    validate_non_negative,
    validate_positive,
)

# =============================================================================
# ТЕСТЫ КОНВЕРСИИ
# =============================================================================


class TestToDecimal:
    """Тесты для to_decimal"""

    def test_float_uses_shortest_repr(self) -> None:
        """float конвертируется без хвоста binary-дроби"""
        assert str(to_decimal(0.1)) == "0.1"
        assert to_decimal(6.561) == Decimal("6.561")

    def test_float_sum_artifact_preserved(self) -> None:
        """Артефакт float сложения сохраняется как есть"""
        assert to_decimal(0.1 + 0.2) == Decimal("0.30000000000000004")

    def test_int_and_str(self) -> None:
        assert to_decimal(500) == Decimal(500)
        assert to_decimal(" 0.0572 ") == Decimal("0.0572")

    def test_decimal_passthrough(self) -> None:
        value = Decimal("1.2345678901234567890123")
        assert to_decimal(value) is value

    def test_bool_rejected(self) -> None:
        with pytest.raises(InvalidRangeError):
            to_decimal(True)

    def test_garbage_rejected(self) -> None:
        with pytest.raises(InvalidRangeError, match="price"):
            to_decimal("abc", "price")


# =============================================================================
# ТЕСТЫ ДЕЛЕНИЯ
# =============================================================================


class TestSafeDivide:
    """Тесты для safe_divide"""

    def test_division_precision(self) -> None:
        """Результат округляется до DIVISION_DP знаков"""
        result = safe_divide(Decimal(1), Decimal(3))
        assert result == Decimal("0.33333333333333333333")
        assert -result.as_tuple().exponent == DIVISION_DP

    def test_division_rounds_half_up(self) -> None:
        assert safe_divide(Decimal(2), Decimal(3)) == Decimal("0.66666666666666666667")
        assert safe_divide(Decimal(5), Decimal("1E+21")) == Decimal("1E-20")
        assert safe_divide(Decimal(-5), Decimal("1E+21")) == Decimal("-1E-20")

    def test_division_below_half_truncates(self) -> None:
        assert safe_divide(Decimal(4), Decimal("1E+21")) == Decimal(0)

    def test_exact_division(self) -> None:
        assert safe_divide(Decimal("0.379"), Decimal("6.561")) > Decimal("0.0577")
        assert safe_divide(Decimal(1), Decimal(4)) == Decimal("0.25")

    def test_large_quotient_keeps_fraction_digits(self) -> None:
        """Частное порядка 10^89: 20 знаков после запятой сохраняются"""
        result = safe_divide(Decimal("2E+90"), Decimal(3))
        assert result == Decimal("6" * 90 + "." + "6" * 19 + "7")

    def test_tiny_divisor(self) -> None:
        assert safe_divide(Decimal(1), Decimal("1E-85")) == Decimal("1E+85")
        assert safe_divide(Decimal("1E+90"), Decimal("1E-10")) == Decimal("1E+100")

    def test_quotient_beyond_double_rejected(self) -> None:
        with pytest.raises(InvalidRangeError, match="hedge ratio"):
            safe_divide(Decimal("1E+300"), Decimal("1E-300"), "hedge ratio")

    def test_shared_context_untouched(self) -> None:
        """Флаги контекста не пишутся в общий FORMULA_CONTEXT"""
        safe_divide(Decimal(2), Decimal(3))
        quantize_amount(Decimal("1.005"), 2)
        assert not any(FORMULA_CONTEXT.flags.values())

    def test_division_by_zero_raises(self) -> None:
        """Деление на ноль: явная ошибка, без fallback"""
        with pytest.raises(DegenerateInputError, match="leverage"):
            safe_divide(Decimal(1), Decimal(0), "leverage")

    def test_errors_are_value_errors(self) -> None:
        assert issubclass(DegenerateInputError, FormulaError)
        assert issubclass(InvalidRangeError, FormulaError)
        assert issubclass(FormulaError, ValueError)


# =============================================================================
# ТЕСТЫ НОРМАЛИЗАЦИИ К DOUBLE
# =============================================================================


class TestSnapToDouble:
    """Тесты для snap_to_double"""

    def test_exact_short_values_unchanged(self) -> None:
        assert snap_to_double(Decimal("0.1")) == Decimal("0.1")
        assert snap_to_double(Decimal("7.20244")) == Decimal("7.20244")

    def test_excess_digits_collapsed(self) -> None:
        """Цифры за пределами точности double отбрасываются"""
        assert snap_to_double(Decimal("0.30000000000000000001")) == Decimal("0.3")
        assert snap_to_double(Decimal("1023.33933720003320001")) == Decimal("1023.3393372000332")

    def test_non_finite_rejected(self) -> None:
        with pytest.raises(InvalidRangeError):
            snap_to_double(Decimal("NaN"))
        with pytest.raises(InvalidRangeError):
            snap_to_double(Decimal("Infinity"))

    def test_overflow_rejected(self) -> None:
        with pytest.raises(InvalidRangeError, match="overflows"):
            snap_to_double(Decimal("1E+400"))


# =============================================================================
# ТЕСТЫ ВАЛИДАЦИИ
# =============================================================================


class TestValidation:
    """Тесты валидации параметров"""

    def test_is_valid_decimal(self) -> None:
        assert is_valid_decimal(Decimal("1.5"))
        assert not is_valid_decimal(Decimal("NaN"))
        assert not is_valid_decimal(Decimal("-Infinity"))

    def test_validate_finite(self) -> None:
        assert validate_finite(-1.5, "x") == Decimal("-1.5")
        with pytest.raises(InvalidRangeError):
            validate_finite(float("nan"), "x")
        with pytest.raises(InvalidRangeError):
            validate_finite("inf", "x")

    def test_validate_positive(self) -> None:
        assert validate_positive("0.16365", "p_open") == Decimal("0.16365")
        with pytest.raises(InvalidRangeError, match="p_open must be positive"):
            validate_positive(0, "p_open")
        with pytest.raises(InvalidRangeError):
            validate_positive(-6.561, "p_open")

    def test_validate_non_negative(self) -> None:
        assert validate_non_negative(0, "margin") == Decimal(0)
        with pytest.raises(InvalidRangeError, match="margin must be non-negative"):
            validate_non_negative(-0.01, "margin")
        with pytest.raises(InvalidRangeError):
            validate_non_negative(float("inf"), "margin")


# =============================================================================
# ТЕСТЫ КВАНТОВАНИЯ
# =============================================================================


class TestQuantizeAmount:
    """Тесты для quantize_amount"""

    def test_half_up(self) -> None:
        assert quantize_amount(Decimal("1.005"), 2) == Decimal("1.01")
        assert quantize_amount(Decimal("-1.005"), 2) == Decimal("-1.01")
        assert quantize_amount(Decimal("2.5"), 0) == Decimal("3")

    def test_pads_zeros(self) -> None:
        assert str(quantize_amount(Decimal("12.3"), 2)) == "12.30"

    def test_large_amount(self) -> None:
        value = Decimal("1" * 120 + ".005")
        assert quantize_amount(value, 2) == Decimal("1" * 120 + ".01")

    def test_negative_places_rejected(self) -> None:
        with pytest.raises(InvalidRangeError):
            quantize_amount(Decimal("1"), -1)
