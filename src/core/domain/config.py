"""
FormulaConfig: Конфигурация формул страхового хеджа

Immutable Pydantic модель, загружаемая один раз при создании движка.
Содержит пороги риска, коэффициенты refund/claim, точность вывода USDT,
границы периода и claim-ratio таблицы для DAY/HOUR.
"""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.math.decimal_safeguards import to_decimal


# =============================================================================
# ENUMS
# =============================================================================


class PeriodUnit(str, Enum):
    """Единица периода страхования"""

    DAY = "DAY"
    HOUR = "HOUR"


# =============================================================================
# CLAIM-RATIO ROW
# =============================================================================


class ClaimRatioRow(BaseModel):
    """
    Строка claim-ratio таблицы: (hedge ratio, discount ratio x).

    Движок выбирает строку с hedge, ближайшим к запрошенному.
    """

    hedge: Decimal = Field(..., ge=0, description="Hedge ratio (margin / q_covered)")
    x: Decimal = Field(..., ge=0, lt=1, description="Дисконт прибыли для строки")

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def accept_pairs(cls, data: Any) -> Any:
        """Строка может быть задана парой (hedge, x)."""
        if isinstance(data, (list, tuple)):
            if len(data) != 2:
                raise ValueError(f"claim ratio row must be a (hedge, x) pair, got {data!r}")
            return {"hedge": data[0], "x": data[1]}
        return data

    @field_validator("hedge", "x", mode="before")
    @classmethod
    def coerce_decimal(cls, v: Any) -> Decimal:
        return to_decimal(v)


# =============================================================================
# FORMULA CONFIG
# =============================================================================


class FormulaConfig(BaseModel):
    """
    Конфигурация движка формул.

    Immutable модель (frozen=True): движок читает её, но никогда не изменяет.
    Числовые поля принимают float/int/str/Decimal; float конвертируется
    через кратчайшее десятичное представление.
    """

    # Риск и capital
    risk_config: Decimal = Field(..., gt=0, description="Порог system risk для cap system capital")

    # Refund и claim
    refund_ratio: Decimal = Field(..., ge=0, lt=1, description="Премия/дисконт refund price")
    diff_claim: Decimal = Field(..., ge=0, lt=1, description="Haircut прибыли при claim")
    constant_claim: Decimal = Field(
        default=Decimal(1), gt=0, description="Порог пересечения для average-based lookups"
    )

    # Вывод
    decimal_usdt: int = Field(..., ge=0, le=18, description="Знаков после запятой для USDT")

    # Период
    min_period: int = Field(..., ge=1, description="Минимальный период страхования")
    max_period: int = Field(..., ge=1, description="Максимальный период страхования")

    # Claim-ratio таблицы
    q_claim_config_day: tuple[ClaimRatioRow, ...] = Field(
        default=(), description="Claim-ratio таблица для DAY"
    )
    q_claim_config_hour: tuple[ClaimRatioRow, ...] = Field(
        default=(), description="Claim-ratio таблица для HOUR"
    )

    model_config = {"frozen": True}

    @field_validator("risk_config", "refund_ratio", "diff_claim", "constant_claim", mode="before")
    @classmethod
    def coerce_decimal(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @model_validator(mode="after")
    def validate_period_bounds(self) -> "FormulaConfig":
        """min_period не может превышать max_period."""
        if self.min_period > self.max_period:
            raise ValueError(
                f"min_period ({self.min_period}) must be <= max_period ({self.max_period})"
            )
        return self

    def claim_table(self, period_unit: PeriodUnit) -> tuple[ClaimRatioRow, ...]:
        """
        Claim-ratio таблица для единицы периода.

        Args:
            period_unit: DAY или HOUR

        Returns:
            Упорядоченная таблица строк (hedge, x)
        """
        if period_unit == PeriodUnit.HOUR:
            return self.q_claim_config_hour
        return self.q_claim_config_day
