"""
Default формульные параметры.

Используются, когда движок создаётся без явной конфигурации.
Значения заданы строками, чтобы не проходить через binary float.
"""

from decimal import Decimal
from typing import Final

from src.core.domain.config import ClaimRatioRow, FormulaConfig

# =============================================================================
# РИСК И CAPITAL
# =============================================================================

# Порог system risk: выше него system capital ограничивается пропорционально
RISK_CONFIG: Final[Decimal] = Decimal("0.85")

# =============================================================================
# REFUND И CLAIM
# =============================================================================

# Премия/дисконт refund price (1%)
REFUND_RATIO: Final[Decimal] = Decimal("0.01")

# Haircut прибыли при claim (20%)
DIFF_CLAIM: Final[Decimal] = Decimal("0.2")

# Порог пересечения для average-based lookups
CONSTANT_CLAIM: Final[Decimal] = Decimal("1")

# =============================================================================
# ВЫВОД И ПЕРИОД
# =============================================================================

DECIMAL_USDT: Final[int] = 2

MIN_PERIOD: Final[int] = 1
MAX_PERIOD: Final[int] = 15

# =============================================================================
# CLAIM-RATIO ТАБЛИЦЫ (hedge, x)
# =============================================================================

Q_CLAIM_CONFIG_DAY: Final[tuple[ClaimRatioRow, ...]] = tuple(
    ClaimRatioRow(hedge=Decimal(hedge), x=Decimal(x))
    for hedge, x in (
        ("0.01", "0"),
        ("0.02", "0"),
        ("0.05", "0"),
        ("0.1", "0.05"),
        ("0.15", "0.1"),
        ("0.2", "0.15"),
    )
)

Q_CLAIM_CONFIG_HOUR: Final[tuple[ClaimRatioRow, ...]] = tuple(
    ClaimRatioRow(hedge=Decimal(hedge), x=Decimal(x))
    for hedge, x in (
        ("0.01", "0.05"),
        ("0.05", "0.1"),
        ("0.1", "0.15"),
        ("0.2", "0.2"),
    )
)

DEFAULT_FORMULA_CONFIG: Final[FormulaConfig] = FormulaConfig(
    risk_config=RISK_CONFIG,
    refund_ratio=REFUND_RATIO,
    diff_claim=DIFF_CLAIM,
    constant_claim=CONSTANT_CLAIM,
    decimal_usdt=DECIMAL_USDT,
    min_period=MIN_PERIOD,
    max_period=MAX_PERIOD,
    q_claim_config_day=Q_CLAIM_CONFIG_DAY,
    q_claim_config_hour=Q_CLAIM_CONFIG_HOUR,
)
