"""
평균 회귀(볼린저 밴드) 전략 구현.

[ 전략 흐름 ]
    ├── 어제 종가 < 어제 하단, 오늘 종가 > 오늘 하단 (하단 재진입) → BUY
    └── 어제 종가 > 어제 상단, 오늘 종가 < 오늘 상단 (상단 재진입) → SELL

[ 파라미터 ]
    period:     밴드 기간 (기본 20)
    deviation:  표준편차 배수 (기본 2)
    confidence: BUY/SELL 시그널 신뢰도
"""

from datetime import date
from typing import Any, Optional, Sequence

from trading_backtest.core.data_provider import PriceBar, bars_to_frame
from trading_backtest.core.trading_strategy import (
    PortfolioSnapshot,
    TradeSignal,
    TradingStrategy,
)
from trading_backtest.strategies import register
from trading_backtest.strategies.indicators import bollinger_bands


@register("mean_reversion")
class MeanReversionStrategy(TradingStrategy):
    """볼린저 밴드 재진입 전략."""

    DEFAULT_PARAMS = {
        "period": 20,
        "deviation": 2.0,
        "confidence": 1.0,
    }

    def __init__(self, params: dict[str, Any] | None = None):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="mean_reversion", params=merged)

    def generate_signal(
        self,
        bars: Sequence[PriceBar],
        current_date: date,
        portfolio: Optional[PortfolioSnapshot] = None,
    ) -> TradeSignal:
        period = int(self.params["period"])
        if len(bars) < period + 1:
            return TradeSignal.hold(f"데이터 부족 (최소 {period + 1}일 필요)")

        close = bars_to_frame(bars[-(period + 1):])["close"]
        _, upper, lower = bollinger_bands(close, period, float(self.params["deviation"]))

        prev_close, cur_close = float(close.iloc[-2]), float(close.iloc[-1])
        prev_lower, cur_lower = float(lower.iloc[-2]), float(lower.iloc[-1])
        prev_upper, cur_upper = float(upper.iloc[-2]), float(upper.iloc[-1])

        if prev_close < prev_lower and cur_close > cur_lower:
            return self._buy(f"하단 밴드 재진입 (종가 {cur_close:,.2f} > 하단 {cur_lower:,.2f})")
        if prev_close > prev_upper and cur_close < cur_upper:
            return self._sell(f"상단 밴드 재진입 (종가 {cur_close:,.2f} < 상단 {cur_upper:,.2f})")
        return TradeSignal.hold("밴드 내 움직임")
