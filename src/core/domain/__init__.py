"""
Domain models and value objects.

Contains configuration and result models for the hedge formula engine.
"""

from src.core.domain.claim import ClaimPriceBounds, HedgeQuote, InsuranceSide
from src.core.domain.config import ClaimRatioRow, FormulaConfig, PeriodUnit
from src.core.domain.defaults import DEFAULT_FORMULA_CONFIG

__all__ = [
    # Config
    "ClaimRatioRow",
    "FormulaConfig",
    "PeriodUnit",
    "DEFAULT_FORMULA_CONFIG",
    # Claim results
    "ClaimPriceBounds",
    "HedgeQuote",
    "InsuranceSide",
]
