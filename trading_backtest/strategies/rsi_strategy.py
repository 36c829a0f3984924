"""
RSI 과매수/과매도 전략.

    RSI < oversold   → BUY
    RSI > overbought → SELL
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
from trading_backtest.strategies.indicators import rsi


@register("rsi")
class RSIStrategy(TradingStrategy):
    """RSI 기준 매매."""

    DEFAULT_PARAMS = {
        "period": 14,
        "oversold": 30,
        "overbought": 70,
        "confidence": 1.0,
    }

    def __init__(self, params: dict[str, Any] | None = None):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="rsi", params=merged)

    def generate_signal(
        self,
        bars: Sequence[PriceBar],
        current_date: date,
        portfolio: Optional[PortfolioSnapshot] = None,
    ) -> TradeSignal:
        period = int(self.params["period"])
        if len(bars) <= period:
            return TradeSignal.hold(f"데이터 부족 (최소 {period + 1}일 필요)")

        value = rsi(bars_to_frame(bars[-(period + 1):])["close"], period)

        if value < float(self.params["oversold"]):
            return self._buy(f"RSI 과매도 ({value:.1f})")
        if value > float(self.params["overbought"]):
            return self._sell(f"RSI 과매수 ({value:.1f})")
        return TradeSignal.hold(f"RSI 중립 ({value:.1f})")
