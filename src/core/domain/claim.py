"""
Claim: Результаты расчёта claim/hedge

Immutable Pydantic модели для результатов движка:
- ClaimPriceBounds: допустимый диапазон claim price
- HedgeQuote: полный расчёт хеджа для одной заявки
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class InsuranceSide(str, Enum):
    """Направление благоприятного движения цены"""

    BULL = "BULL"
    BEAR = "BEAR"


# =============================================================================
# CLAIM PRICE BOUNDS
# =============================================================================


class ClaimPriceBounds(BaseModel):
    """
    Границы claim price относительно рыночной цены.

    BEAR: обе границы ниже p_market, BULL: обе выше.
    """

    claim_price_min: Decimal = Field(..., description="Минимальная claim price")
    claim_price_max: Decimal = Field(..., description="Максимальная claim price")

    model_config = {"frozen": True}

    def contains(self, p_claim: Decimal) -> bool:
        """Проверка, что p_claim в пределах [min, max]."""
        return self.claim_price_min <= p_claim <= self.claim_price_max


# =============================================================================
# HEDGE QUOTE
# =============================================================================


class HedgeQuote(BaseModel):
    """
    Полный расчёт хеджа для одной заявки.

    Все значения рассчитаны одним движком на одной конфигурации,
    поэтому согласованы между собой (общие p_stop, leverage, capital).
    """

    p_stop: Decimal = Field(..., description="Защитная stop price")
    leverage: int = Field(..., ge=0, description="Максимальное безопасное плечо")
    system_risk: Decimal = Field(..., ge=0, description="System risk")
    system_capital: Decimal = Field(..., description="Capital контрагента")
    hedge_capital: Decimal = Field(..., description="margin + system capital")
    q_claim: Decimal = Field(..., ge=0, description="Сумма выплаты пользователю при claim")
    quantity_future: Decimal = Field(..., description="Количество для ордера на бирже")
    refund_price: Decimal = Field(..., gt=0, description="Цена досрочного выхода")

    model_config = {"frozen": True}

