"""
Contract Validation Module

Модуль для валидации JSON контрактов движка формул.
"""

from .validators import (
    FORMULA_CONFIG_SCHEMA,
    contract_validator,
    load_schema,
    validate_formula_config,
)

__all__ = [
    "FORMULA_CONFIG_SCHEMA",
    "contract_validator",
    "load_schema",
    "validate_formula_config",
]
