"""
Core math modules для формул хеджа

Точная десятичная арифметика с гарантией воспроизводимости.
"""

# Decimal Safeguards
from src.core.math.decimal_safeguards import (
    # Precision constants
    DIVISION_DP,
    FORMULA_CONTEXT,
    FORMULA_PRECISION,
    # Exceptions
    DegenerateInputError,
    FormulaError,
    InvalidRangeError,
    # Conversion
    DecimalLike,
    snap_to_double,
    to_decimal,
    # Safe division
    safe_divide,
    # Validation
    is_valid_decimal,
    validate_finite,
    validate_non_negative,
    validate_positive,
    # Quantization
    quantize_amount,
)

__all__ = [
    # Decimal Safeguards: Precision constants
    "DIVISION_DP",
    "FORMULA_CONTEXT",
    "FORMULA_PRECISION",
    # Decimal Safeguards: Exceptions
    "DegenerateInputError",
    "FormulaError",
    "InvalidRangeError",
    # Decimal Safeguards: Conversion
    "DecimalLike",
    "snap_to_double",
    "to_decimal",
    # Decimal Safeguards: Safe division
    "safe_divide",
    # Decimal Safeguards: Validation
    "is_valid_decimal",
    "validate_finite",
    "validate_non_negative",
    "validate_positive",
    # Decimal Safeguards: Quantization
    "quantize_amount",
]
