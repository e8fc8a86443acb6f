import logging
from decimal import Decimal
from typing import Optional, Union

from ..domain.entities.decision_entity import ExecuteDecision, IndicatorSummary, SkipDecision
from ..domain.entities.market_entity import MarketSnapshot
from ..domain.entities.strategy_entity import StrategyEntity
from ..exceptions import DataUnavailableError
from .indicator_calculation_service import IndicatorCalculationService
from .market_analysis_service import MarketAnalysisService

MIN_MULTIPLIER = 0.5
MAX_MULTIPLIER = 2.0
LIQUIDITY_FLOOR = 0.2


class DecisionService:
    """
    Turns a strategy plus a fresh market snapshot into an ExecutionDecision.

    should_execute() is total: every failure below it becomes a SkipDecision,
    so the scheduler loop never sees an exception from here.
    """

    def __init__(
        self,
        market_analysis: MarketAnalysisService,
        indicators: Optional[IndicatorCalculationService] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._market = market_analysis
        self._ind = indicators or IndicatorCalculationService()
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @staticmethod
    def sizing_multiplier(strategy: StrategyEntity, snapshot: MarketSnapshot) -> float:
        multiplier = 1.0

        if strategy.enable_volatility_adjustment:
            if snapshot.volatility < 2:
                multiplier *= 1.1
            elif snapshot.volatility > 10:
                multiplier *= 0.7

        # dips always buy more, independent of toggles
        if snapshot.price_change_24h <= -10:
            multiplier *= 1.3
        elif snapshot.price_change_24h <= -5:
            multiplier *= 1.15

        if strategy.enable_liquidity_check:
            if snapshot.liquidity_score < 0.3:
                multiplier *= 0.5
            elif snapshot.liquidity_score > 0.8:
                multiplier *= 1.1

        return min(MAX_MULTIPLIER, max(MIN_MULTIPLIER, multiplier))

    def recommended_amount(self, strategy: StrategyEntity, snapshot: MarketSnapshot) -> int:
        if not strategy.enable_smart_sizing:
            return strategy.base_amount
        multiplier = self.sizing_multiplier(strategy, snapshot)
        # exact integer math; rounding the multiplier drops float noise (1.1*1.3*1.1 -> 1.573)
        num, den = Decimal(str(round(multiplier, 12))).as_integer_ratio()
        return strategy.base_amount * num // den

    def _summary(self, snapshot: MarketSnapshot) -> IndicatorSummary:
        return IndicatorSummary(
            price=snapshot.price,
            volatility=snapshot.volatility,
            liquidity=snapshot.liquidity_score,
            trend=snapshot.trend,
            price_change_24h=snapshot.price_change_24h,
            ma7=snapshot.ma7,
            ma30=snapshot.ma30,
            risk=self._ind.assess_risk(snapshot),
        )

    async def should_execute(self, strategy: StrategyEntity) -> Union[ExecuteDecision, SkipDecision]:
        try:
            snapshot = await self._market.analyze_market(strategy.pair_id)
        except DataUnavailableError as exc:
            self._logger.warning("strategy %s: %s", strategy.id, exc)
            return SkipDecision(reason=str(exc))
        except Exception as exc:
            self._logger.exception("strategy %s: market analysis failed: %s", strategy.id, exc)
            return SkipDecision(reason=f"error: {exc}")

        try:
            amount = self.recommended_amount(strategy, snapshot)
            buy = self._ind.should_buy(snapshot)
            summary = self._summary(snapshot)

            if buy.should and snapshot.liquidity_score > LIQUIDITY_FLOOR:
                return ExecuteDecision(
                    recommended_amount=amount,
                    confidence=buy.confidence,
                    reason=buy.reason,
                    indicators=summary,
                )

            reason = buy.reason
            if snapshot.liquidity_score <= LIQUIDITY_FLOOR:
                reason = f"liquidity too low ({snapshot.liquidity_score:.2f}), {buy.reason}"
            return SkipDecision(
                reason=reason,
                recommended_amount=amount,
                confidence=buy.confidence,
                indicators=summary,
            )
        except Exception as exc:
            self._logger.exception("strategy %s: decision failed: %s", strategy.id, exc)
            return SkipDecision(reason=f"error: {exc}")
