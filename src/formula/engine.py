"""
InsuranceFormula: Движок формул страхового хеджа

Модуль вычисляет по марже пользователя, цене открытия, целевой claim price
и волатильности токена:
- защитную stop price и максимальное безопасное плечо
- system risk и capital контрагента
- сумму выплаты при claim (q_claim) и количество для хедж-ордера
- refund price для досрочного выхода
- максимальный страхуемый период и границы claim price
- timestamp экспирации и форматирование сумм USDT

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Вся арифметика в Decimal (FORMULA_CONTEXT), деление до 20 знаков ROUND_HALF_UP
2. Каждая именованная промежуточная величина нормализуется snap_to_double
3. Конфигурация read-only, движок не хранит изменяемого состояния
4. Вырожденный вход → явная ошибка, без Infinity/NaN

ФОРМУЛЫ:
    ratio_profit = |p_claim - p_open| / p_open
    p_stop = p_open * (1 ∓ (ratio_profit + diff_stop(ratio_profit)))
    leverage = floor(p_open / |p_open - p_stop|)
    system_risk = dayChangeToken / (|p_stop - p_open| / p_open)
    system_capital = margin * risk_config / risk            (risk > risk_config)
                   = margin * (1 + risk_config - risk)      (иначе)
    q_claim = ratio_predict * (margin + capital) * leverage
              * (1 - diff_claim) * (1 - x) + margin
    quantity_future = (margin + capital) * leverage / p_open
"""

import logging
from datetime import datetime, timezone
from decimal import ROUND_FLOOR, Decimal, localcontext
from functools import reduce
from typing import Final, Optional, Sequence

from src.core.domain.claim import ClaimPriceBounds, HedgeQuote, InsuranceSide
from src.core.domain.config import ClaimRatioRow, FormulaConfig, PeriodUnit
from src.core.domain.defaults import DEFAULT_FORMULA_CONFIG
from src.core.math.decimal_safeguards import (
    FORMULA_CONTEXT,
    DecimalLike,
    DegenerateInputError,
    FormulaError,
    quantize_amount,
    safe_divide,
    snap_to_double,
    to_decimal,
    validate_finite,
    validate_non_negative,
    validate_positive,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Полосы diff_stop по ratio_profit
DIFF_STOP_BAND_LOW: Final[Decimal] = Decimal("0.01")
DIFF_STOP_BAND_HIGH: Final[Decimal] = Decimal("0.05")

# Шаги stop-дистанции
DIFF_STOP_STEP_NEAR: Final[Decimal] = Decimal("0.02")
DIFF_STOP_STEP_MID: Final[Decimal] = Decimal("0.05")
DIFF_STOP_STEP_FAR: Final[Decimal] = Decimal("0.04")

MS_PER_HOUR: Final[int] = 60 * 60 * 1000
MS_PER_DAY: Final[int] = 24 * MS_PER_HOUR

_PERIOD_UNIT_MS: Final[dict[PeriodUnit, int]] = {
    PeriodUnit.DAY: MS_PER_DAY,
    PeriodUnit.HOUR: MS_PER_HOUR,
}


# =============================================================================
# EXCEPTIONS
# =============================================================================


class InvalidPeriodUnitError(FormulaError):
    """Единица периода вне {DAY, HOUR}."""

    pass


def coerce_period_unit(period_unit: PeriodUnit | str) -> PeriodUnit:
    """
    Приведение входа к PeriodUnit.

    Raises:
        InvalidPeriodUnitError: Если значение не DAY/HOUR
    """
    try:
        return PeriodUnit(period_unit)
    except ValueError:
        raise InvalidPeriodUnitError(
            f"period_unit must be one of {[u.value for u in PeriodUnit]}, got {period_unit!r}"
        ) from None


# =============================================================================
# ENGINE
# =============================================================================


class InsuranceFormula:
    """
    Движок формул страхового хеджа.

    Создаётся один раз из FormulaConfig и далее stateless: все операции являются
    чистыми функциями аргументов и конфигурации и безопасны для вызова
    из нескольких потоков.
    """

    def __init__(self, config: Optional[FormulaConfig] = None):
        """
        Args:
            config: конфигурация формул (опционально, используется default)
        """
        self.config = config or DEFAULT_FORMULA_CONFIG

    # -------------------------------------------------------------------------
    # Risk & Capital
    # -------------------------------------------------------------------------

    def system_risk(
        self,
        day_change_token: DecimalLike,
        p_open: DecimalLike,
        p_stop: DecimalLike,
    ) -> Decimal:
        """
        System risk: волатильность токена относительно дистанции до stop.

        risk = dayChangeToken / (|p_stop - p_open| / p_open)

        Raises:
            DegenerateInputError: Если p_stop == p_open
            InvalidRangeError: Если входы отрицательные или NaN/Inf
        """
        change = validate_non_negative(day_change_token, "day_change_token")
        open_price = validate_positive(p_open, "p_open")
        stop_price = validate_finite(p_stop, "p_stop")

        with localcontext(FORMULA_CONTEXT):
            percent_p_expired = snap_to_double(
                safe_divide(abs(stop_price - open_price), open_price, "expired percentage")
            )
            return snap_to_double(safe_divide(change, percent_p_expired, "system risk"))

    def system_capital(self, margin: DecimalLike, system_risk: DecimalLike) -> Decimal:
        """
        Capital контрагента.

        risk > risk_config: capital ограничивается пропорционально,
        иначе масштабируется на запас риска (1 + risk_config - risk).
        """
        user_margin = validate_non_negative(margin, "margin")
        risk = validate_non_negative(system_risk, "system_risk")
        risk_config = self.config.risk_config

        with localcontext(FORMULA_CONTEXT):
            if risk > risk_config:
                return snap_to_double(
                    safe_divide(user_margin * risk_config, risk, "system capital")
                )
            return snap_to_double(user_margin + (risk_config - risk) * user_margin)

    # -------------------------------------------------------------------------
    # Stop & Leverage
    # -------------------------------------------------------------------------

    def diff_stop(self, ratio_profit: DecimalLike) -> Decimal:
        """
        Шаг stop-дистанции по ratio_profit.

        Returns:
            0.02 если ratio_profit <= 0.05, иначе 0.04
        """
        ratio = validate_finite(ratio_profit, "ratio_profit")

        if ratio <= DIFF_STOP_BAND_HIGH:
            return DIFF_STOP_STEP_NEAR
        # Полоса недостижима после первой проверки, сохранена без изменений
        if ratio <= DIFF_STOP_BAND_LOW and ratio > DIFF_STOP_BAND_HIGH:
            return DIFF_STOP_STEP_MID
        return DIFF_STOP_STEP_FAR

    def stop_price(self, p_open: DecimalLike, p_claim: DecimalLike) -> Decimal:
        """
        Защитная stop price по другую сторону от p_open относительно p_claim.

        BULL (p_claim > p_open): p_stop = p_open * (1 - (ratio_profit + step))
        BEAR:                    p_stop = p_open * (1 + (ratio_profit + step))
        """
        open_price = validate_positive(p_open, "p_open")
        claim_price = validate_positive(p_claim, "p_claim")

        ratio_profit = self._price_ratio(open_price, claim_price)
        future_diff_stop = self.diff_stop(ratio_profit)

        with localcontext(FORMULA_CONTEXT):
            offset = open_price * (ratio_profit + future_diff_stop)
            if claim_price > open_price:
                return snap_to_double(open_price - offset)
            return snap_to_double(open_price + offset)

    def leverage(self, p_open: DecimalLike, p_stop: DecimalLike) -> int:
        """
        Максимальное плечо: floor(p_open / |p_open - p_stop|).

        Raises:
            DegenerateInputError: Если p_stop == p_open
        """
        open_price = validate_positive(p_open, "p_open")
        stop_price = validate_finite(p_stop, "p_stop")

        with localcontext(FORMULA_CONTEXT):
            quotient = snap_to_double(
                safe_divide(open_price, abs(open_price - stop_price), "leverage")
            )
            return int(quotient.to_integral_value(rounding=ROUND_FLOOR))

    # -------------------------------------------------------------------------
    # Claim & Quantity
    # -------------------------------------------------------------------------

    def hedge_ratio(self, number1: DecimalLike, number2: DecimalLike) -> Decimal:
        """Hedge ratio: number1 / number2 (обычно margin / q_covered)."""
        numerator = validate_finite(number1, "number1")
        denominator = validate_finite(number2, "number2")
        return snap_to_double(safe_divide(numerator, denominator, "hedge ratio"))

    def select_claim_ratio(
        self, hedge: DecimalLike, period_unit: PeriodUnit | str
    ) -> ClaimRatioRow:
        """
        Строка claim-ratio таблицы с hedge, ближайшим к запрошенному.

        При равной дистанции выигрывает строка, встреченная раньше
        (строгое сравнение "<" в свёртке).

        Raises:
            DegenerateInputError: Если таблица для period_unit пуста
            InvalidPeriodUnitError: Если period_unit не DAY/HOUR
        """
        unit = coerce_period_unit(period_unit)
        target = validate_finite(hedge, "hedge")
        table = self.config.claim_table(unit)
        if not table:
            raise DegenerateInputError(f"claim ratio table for {unit.value} is empty")

        with localcontext(FORMULA_CONTEXT):
            row = reduce(
                lambda prev, curr: curr
                if abs(curr.hedge - target) < abs(prev.hedge - target)
                else prev,
                table,
            )

        logger.debug(
            "Selected claim ratio row hedge=%s x=%s for hedge=%s (%s)",
            row.hedge,
            row.x,
            target,
            unit.value,
        )
        return row

    def q_claim(
        self,
        margin: DecimalLike,
        p_open: DecimalLike,
        p_claim: DecimalLike,
        hedge: DecimalLike,
        day_change_token: DecimalLike,
        period_unit: PeriodUnit | str,
    ) -> Decimal:
        """
        Сумма выплаты пользователю при claim.

        Порядок:
        1. p_stop, leverage, ratio_predict
        2. system_risk → system_capital
        3. hedge_capital = margin + capital
        4. profit = ratio_predict * hedge_capital * leverage
        5. q_claim = profit * (1 - diff_claim) * (1 - x) + margin

        Args:
            margin: Маржа пользователя
            p_open: Цена открытия
            p_claim: Целевая claim price
            hedge: Hedge ratio для выбора строки claim-ratio таблицы
            day_change_token: Дневное изменение цены токена (доля)
            period_unit: DAY или HOUR

        Returns:
            Сумма выплаты (Decimal)
        """
        user_margin = validate_non_negative(margin, "margin")
        open_price = validate_positive(p_open, "p_open")
        claim_price = validate_positive(p_claim, "p_claim")
        unit = coerce_period_unit(period_unit)

        p_stop = self.stop_price(open_price, claim_price)
        leverage = self.leverage(open_price, p_stop)
        ratio_predict = self._price_ratio(open_price, claim_price)
        system_risk = self.system_risk(day_change_token, open_price, p_stop)
        system_capital = self.system_capital(user_margin, system_risk)
        row = self.select_claim_ratio(hedge, unit)

        with localcontext(FORMULA_CONTEXT):
            hedge_capital = snap_to_double(user_margin + system_capital)
            profit = snap_to_double(ratio_predict * hedge_capital * leverage)
            q_claim = snap_to_double(
                profit * (1 - self.config.diff_claim) * (1 - row.x) + user_margin
            )

        logger.debug(
            "q_claim=%s (p_stop=%s leverage=%d risk=%s capital=%s profit=%s)",
            q_claim,
            p_stop,
            leverage,
            system_risk,
            system_capital,
            profit,
        )
        return q_claim

    def refund_price(self, p_open: DecimalLike, p_claim: DecimalLike) -> Decimal:
        """
        Цена досрочного выхода, смещённая в сторону прогноза.

        p_claim > p_open: p_open * (1 + refund_ratio), иначе p_open * (1 - refund_ratio)
        """
        open_price = validate_positive(p_open, "p_open")
        claim_price = validate_positive(p_claim, "p_claim")
        refund_ratio = self.config.refund_ratio

        with localcontext(FORMULA_CONTEXT):
            if claim_price > open_price:
                factor = 1 + refund_ratio
            else:
                factor = 1 - refund_ratio
            return snap_to_double(open_price * factor)

    def quantity_future(
        self,
        margin: DecimalLike,
        p_open: DecimalLike,
        p_claim: DecimalLike,
        hedge: DecimalLike,
        day_change_token: DecimalLike,
    ) -> Decimal:
        """
        Количество для хедж-ордера на бирже: hedge_capital * leverage / p_open.

        hedge_capital здесь не нормализуется до double перед делением.
        hedge принимается для симметрии с q_claim и в расчёте не участвует.
        """
        user_margin = validate_non_negative(margin, "margin")
        open_price = validate_positive(p_open, "p_open")
        claim_price = validate_positive(p_claim, "p_claim")

        p_stop = self.stop_price(open_price, claim_price)
        leverage = self.leverage(open_price, p_stop)
        system_risk = self.system_risk(day_change_token, open_price, p_stop)
        system_capital = self.system_capital(user_margin, system_risk)

        with localcontext(FORMULA_CONTEXT):
            hedge_capital = user_margin + system_capital
            quantity = snap_to_double(
                safe_divide(hedge_capital * leverage, open_price, "future quantity")
            )

        logger.debug(
            "quantity_future=%s (hedge=%s leverage=%d hedge_capital=%s)",
            quantity,
            hedge,
            leverage,
            hedge_capital,
        )
        return quantity

    def quote(
        self,
        margin: DecimalLike,
        p_open: DecimalLike,
        p_claim: DecimalLike,
        hedge: DecimalLike,
        day_change_token: DecimalLike,
        period_unit: PeriodUnit | str,
    ) -> HedgeQuote:
        """
        Полный расчёт хеджа для одной заявки.

        Returns:
            HedgeQuote с p_stop, leverage, risk, capital, q_claim,
            quantity_future и refund_price
        """
        p_stop = self.stop_price(p_open, p_claim)
        leverage = self.leverage(p_open, p_stop)
        system_risk = self.system_risk(day_change_token, p_open, p_stop)
        system_capital = self.system_capital(margin, system_risk)

        with localcontext(FORMULA_CONTEXT):
            hedge_capital = snap_to_double(to_decimal(margin) + system_capital)

        result = HedgeQuote(
            p_stop=p_stop,
            leverage=leverage,
            system_risk=system_risk,
            system_capital=system_capital,
            hedge_capital=hedge_capital,
            q_claim=self.q_claim(margin, p_open, p_claim, hedge, day_change_token, period_unit),
            quantity_future=self.quantity_future(margin, p_open, p_claim, hedge, day_change_token),
            refund_price=self.refund_price(p_open, p_claim),
        )
        logger.debug("Hedge quote: %s", result)
        return result

    # -------------------------------------------------------------------------
    # Period / Average Analysis
    # -------------------------------------------------------------------------

    def max_period(self, hedge: DecimalLike, list_ratio_change: Sequence[DecimalLike]) -> int:
        """
        Максимальный страхуемый период для hedge.

        Сканирует list_ratio_change (до max_period элементов), пока предыдущее
        значение ниже hedge; на каждом шаге выбирает период, значение которого
        ближе к hedge. Вход должен быть неубывающим.

        Returns:
            Номер периода (1, если цикл не продвинулся)

        Raises:
            InvalidRangeError: Если hedge или элемент списка NaN/Inf
        """
        target = validate_finite(hedge, "hedge")
        values = [validate_finite(v, "list_ratio_change") for v in list_ratio_change]
        max_period_user = 1
        upper = min(len(values), self.config.max_period)

        with localcontext(FORMULA_CONTEXT):
            for i in range(1, upper):
                previous = values[i - 1]
                if not target > previous:
                    break
                diff_previous = abs(previous - target)
                diff_current = abs(values[i] - target)
                if diff_previous < diff_current:
                    max_period_user = i
                else:
                    max_period_user = i + 1

        return max_period_user

    def min_avg(self, list_avg: Sequence[DecimalLike]) -> Decimal:
        """
        Последнее кумулятивное среднее, не превышающее constant_claim.

        Returns:
            Значение перед первым пересечением constant_claim,
            либо последнее просканированное; 0 для входа короче 2

        Raises:
            InvalidRangeError: Если элемент списка NaN/Inf
        """
        values = [validate_finite(v, "list_avg") for v in list_avg]
        upper = min(len(values), self.config.max_period)
        min_avg = Decimal(0)

        for i in range(1, upper):
            if values[i] > self.config.constant_claim:
                min_avg = values[i - 1]
                break
            min_avg = values[i]

        return min_avg

    def claim_price_bounds(
        self,
        p_market: DecimalLike,
        current_avg: DecimalLike,
        list_avg: Sequence[DecimalLike],
        side: InsuranceSide | str,
    ) -> ClaimPriceBounds:
        """
        Границы claim price относительно рыночной цены.

        BEAR: max = (1 - current_avg) * p_market, min = (1 - min_avg) * p_market
        BULL: min = (1 + current_avg) * p_market, max = (1 + min_avg) * p_market
        """
        insurance_side = InsuranceSide(side)
        market_price = validate_positive(p_market, "p_market")
        avg = validate_finite(current_avg, "current_avg")
        min_avg = self.min_avg(list_avg)
        constant = self.config.constant_claim

        with localcontext(FORMULA_CONTEXT):
            if insurance_side == InsuranceSide.BEAR:
                claim_price_max = snap_to_double((constant - avg) * market_price)
                claim_price_min = snap_to_double((constant - min_avg) * market_price)
            else:
                claim_price_min = snap_to_double((constant + avg) * market_price)
                claim_price_max = snap_to_double((constant + min_avg) * market_price)

        return ClaimPriceBounds(claim_price_min=claim_price_min, claim_price_max=claim_price_max)

    def is_period_allowed(self, period: DecimalLike) -> bool:
        """Период (целая часть) в пределах [min_period, max_period]."""
        periods = int(validate_finite(period, "period"))
        return self.config.min_period <= periods <= self.config.max_period

    # -------------------------------------------------------------------------
    # Time & Formatting
    # -------------------------------------------------------------------------

    def expiration(
        self,
        period: DecimalLike,
        period_unit: PeriodUnit | str,
        now_ms: Optional[int] = None,
    ) -> int:
        """
        Timestamp экспирации (UTC, миллисекунды).

        Дробный period усекается до целого.

        Args:
            period: Количество периодов
            period_unit: DAY или HOUR
            now_ms: Текущее время в мс (опционально, по умолчанию системное UTC)

        Raises:
            InvalidPeriodUnitError: Если period_unit не DAY/HOUR
            InvalidRangeError: Если period отрицательный или NaN/Inf
        """
        unit = coerce_period_unit(period_unit)
        periods = int(validate_non_negative(period, "period"))

        if now_ms is None:
            now_ms = int(datetime.now(timezone.utc).timestamp() * 1000)

        return now_ms + periods * _PERIOD_UNIT_MS[unit]

    def format_amount(self, amount: DecimalLike) -> str:
        """Сумма USDT с decimal_usdt знаками после запятой (ROUND_HALF_UP)."""
        value = validate_finite(amount, "amount")
        return format(quantize_amount(value, self.config.decimal_usdt), "f")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _price_ratio(open_price: Decimal, other_price: Decimal) -> Decimal:
        """|other_price - open_price| / open_price, нормализованное до double."""
        with localcontext(FORMULA_CONTEXT):
            return snap_to_double(
                safe_divide(abs(other_price - open_price), open_price, "price ratio")
            )
