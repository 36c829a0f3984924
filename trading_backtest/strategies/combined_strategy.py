"""
다중 전략 가중 합성(StrategyCombinator) 구현.

[ 역할 ]
    N개의 하위 전략을 가중치로 합성하여 하나의 시그널을 만든다.
    자신도 TradingStrategy이므로 엔진 입장에서는 일반 전략과 같다.

[ 합성 규칙 ]
    1. 모든 하위 전략에 오늘 시그널 요청 (실패한 전략은 HOLD로 간주)
    2. BUY면 buy_score += 가중치 × 신뢰도, SELL이면 sell_score에 더함
    3. buy_score > sell_score 이고 buy_score > threshold → BUY
       sell_score > buy_score 이고 sell_score > threshold → SELL
       그 외 (동점 포함) → HOLD
    4. 신뢰도 = round(승리 점수 × 100)을 0~100으로 자른 값 / 100

[ 파라미터 ]
    threshold:         최소 점수 (기본 0.3)
    weights:           {전략 이름: 가중치} (음수 불가, 합이 1일 필요 없음)
    component_params:  {전략 이름: 해당 전략 파라미터}
"""

import logging
import math
from datetime import date
from typing import Any, Optional, Sequence

from trading_backtest.core.data_provider import FinancialMetrics, NewsItem, PriceBar
from trading_backtest.core.trading_strategy import (
    PortfolioSnapshot,
    SignalType,
    TradeSignal,
    TradingStrategy,
)
from trading_backtest.strategies import create_strategy, register

logger = logging.getLogger("trading_backtest.strategies.combined")


def score_to_pct(score: float) -> int:
    """점수를 0~100 정수 신뢰도로 변환 (반올림)."""
    return min(max(math.floor(score * 100 + 0.5), 0), 100)


@register("combined")
class StrategyCombinator(TradingStrategy):
    """가중 합성 전략."""

    DEFAULT_PARAMS = {
        "threshold": 0.3,
        "weights": {"ma_cross": 0.4, "rsi": 0.3, "mean_reversion": 0.3},
        "component_params": {},
    }

    def __init__(
        self,
        params: dict[str, Any] | None = None,
        strategies: Optional[Sequence[tuple[TradingStrategy, float]]] = None,
        financials: Optional[FinancialMetrics] = None,
        news: Optional[Sequence[NewsItem]] = None,
        generator: Any = None,
    ):
        """
        Args:
            params: 파라미터 (DEFAULT_PARAMS 오버라이드)
            strategies: (전략, 가중치) 목록. 주면 params["weights"]는 무시
            financials / news / generator: 하위 전략 생성 시 전달할 의존성
        """
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="combined", params=merged)

        if strategies is None:
            component_params = merged.get("component_params") or {}
            strategies = [
                (
                    create_strategy(
                        name,
                        params=component_params.get(name),
                        financials=financials,
                        news=news,
                        generator=generator,
                    ),
                    weight,
                )
                for name, weight in dict(merged["weights"]).items()
            ]

        self.components: list[tuple[TradingStrategy, float]] = []
        for strategy, weight in strategies:
            weight = float(weight)
            if weight < 0:
                raise ValueError(f"가중치는 음수일 수 없습니다: {strategy.name}={weight}")
            self.components.append((strategy, weight))

        if not self.components:
            raise ValueError("하위 전략이 하나 이상 필요합니다.")

    @property
    def threshold(self) -> float:
        return float(self.params["threshold"])

    def _component_signal(
        self,
        strategy: TradingStrategy,
        bars: Sequence[PriceBar],
        current_date: date,
        portfolio: Optional[PortfolioSnapshot],
    ) -> TradeSignal:
        try:
            signal = strategy.generate_signal(bars, current_date, portfolio)
        except Exception as e:
            logger.warning(f"[{current_date}] 하위 전략 {strategy.name} 실패, HOLD 처리: {e}")
            return TradeSignal.hold()
        return signal if isinstance(signal, TradeSignal) else TradeSignal.hold()

    def generate_signal(
        self,
        bars: Sequence[PriceBar],
        current_date: date,
        portfolio: Optional[PortfolioSnapshot] = None,
    ) -> TradeSignal:
        buy_score = 0.0
        sell_score = 0.0
        votes = []

        for strategy, weight in self.components:
            signal = self._component_signal(strategy, bars, current_date, portfolio)
            if signal.action == SignalType.BUY:
                buy_score += weight * signal.confidence
            elif signal.action == SignalType.SELL:
                sell_score += weight * signal.confidence
            votes.append(f"{strategy.name}={signal.action.value}")

        summary = f"buy {buy_score:.2f} / sell {sell_score:.2f} ({', '.join(votes)})"

        if buy_score > sell_score and buy_score > self.threshold:
            return TradeSignal(SignalType.BUY, score_to_pct(buy_score) / 100, summary)
        if sell_score > buy_score and sell_score > self.threshold:
            return TradeSignal(SignalType.SELL, score_to_pct(sell_score) / 100, summary)
        return TradeSignal.hold(summary)
