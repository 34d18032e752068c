"""Formula: движок формул страхового хеджа и загрузка конфигурации."""

from .engine import InsuranceFormula, InvalidPeriodUnitError, coerce_period_unit
from .loader import formula_config_from_dict, load_formula_config

__all__ = [
    "InsuranceFormula",
    "InvalidPeriodUnitError",
    "coerce_period_unit",
    "formula_config_from_dict",
    "load_formula_config",
]
