"""
모멘텀 전략 구현.

[ 역할 ]
    MACrossStrategy를 상속하고 RSI 필터를 더한 전략.

[ 전략 흐름 ]
    ├── 골든 크로스 + RSI < 과매수 기준 → BUY
    └── 데드 크로스 또는 RSI > 과매수 기준 → SELL

[ 파라미터 ]
    short_period:   단기 이동평균 기간 (기본 20)
    long_period:    장기 이동평균 기간 (기본 50)
    rsi_period:     RSI 기간 (기본 14)
    rsi_overbought: 과매수 기준 (기본 70)
    confidence:     BUY/SELL 시그널 신뢰도
"""

from datetime import date
from typing import Any, Optional, Sequence

from trading_backtest.core.data_provider import PriceBar, bars_to_frame
from trading_backtest.core.trading_strategy import PortfolioSnapshot, TradeSignal
from trading_backtest.strategies import register
from trading_backtest.strategies.indicators import rsi
from trading_backtest.strategies.ma_cross_strategy import MACrossStrategy


@register("momentum")
class MomentumStrategy(MACrossStrategy):
    """MA 교차 + RSI 필터."""

    DEFAULT_PARAMS = {
        **MACrossStrategy.DEFAULT_PARAMS,
        "long_period": 50,
        "rsi_period": 14,
        "rsi_overbought": 70,
    }

    INCLUSIVE_CROSS = True

    def __init__(self, params: dict[str, Any] | None = None):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(params=merged)
        self.name = "momentum"

    @property
    def rsi_period(self) -> int:
        return int(self.params["rsi_period"])

    @property
    def rsi_overbought(self) -> float:
        return float(self.params["rsi_overbought"])

    def generate_signal(
        self,
        bars: Sequence[PriceBar],
        current_date: date,
        portfolio: Optional[PortfolioSnapshot] = None,
    ) -> TradeSignal:
        if len(bars) < self.required_bars:
            return TradeSignal.hold(f"데이터 부족 (최소 {self.required_bars}일 필요)")

        lookback = max(self.required_bars, self.rsi_period + 1)
        close = bars_to_frame(bars[-lookback:])["close"]
        cross_up, cross_down, _, _ = self.detect_cross(close)
        current_rsi = rsi(close, self.rsi_period)

        if cross_up and current_rsi < self.rsi_overbought:
            return self._buy(f"골든 크로스, RSI {current_rsi:.1f}")
        if cross_down:
            return self._sell(f"데드 크로스, RSI {current_rsi:.1f}")
        if current_rsi > self.rsi_overbought:
            return self._sell(f"RSI 과매수 ({current_rsi:.1f} > {self.rsi_overbought:.0f})")
        return TradeSignal.hold(f"조건 미충족 (RSI {current_rsi:.1f})")
