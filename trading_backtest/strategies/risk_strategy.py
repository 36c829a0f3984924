"""
변동성 기반 리스크 관리 전략 구현.

[ 전략 흐름 ]
    최근 vol_window(20)일 종가의 상대 변동성(표준편차/평균)과
    최근 range_window(10)일 고가/저가로 판단.
    ├── 변동성 < 5% 이고 종가 > 평균 × 1.05           → BUY
    ├── 변동성 > 10% 또는 종가 < 최저가 × 1.02         → SELL
    └── 종가 > 최고가 × 0.95 이고 변동성 > 8%          → SELL (이익 실현)
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
from trading_backtest.strategies.indicators import relative_volatility


@register("risk")
class RiskManagedStrategy(TradingStrategy):
    """변동성 구간별 매매."""

    DEFAULT_PARAMS = {
        "vol_window": 20,
        "range_window": 10,
        "low_volatility": 0.05,
        "high_volatility": 0.10,
        "take_profit_volatility": 0.08,
        "confidence": 1.0,
    }

    def __init__(self, params: dict[str, Any] | None = None):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="risk", params=merged)

    def generate_signal(
        self,
        bars: Sequence[PriceBar],
        current_date: date,
        portfolio: Optional[PortfolioSnapshot] = None,
    ) -> TradeSignal:
        vol_window = int(self.params["vol_window"])
        range_window = int(self.params["range_window"])
        if len(bars) < max(vol_window, range_window):
            return TradeSignal.hold(f"데이터 부족 (최소 {vol_window}일 필요)")

        df = bars_to_frame(bars[-max(vol_window, range_window):])
        close = df["close"].tail(vol_window)
        mean = float(close.mean())
        volatility = relative_volatility(close)
        highest = float(df["high"].tail(range_window).max())
        lowest = float(df["low"].tail(range_window).min())
        price = bars[-1].close

        if volatility < float(self.params["low_volatility"]) and price > mean * 1.05:
            return self._buy(f"저변동성 상승 (변동성 {volatility:.2%})")
        if volatility > float(self.params["high_volatility"]) or price < lowest * 1.02:
            return self._sell(f"고변동성 또는 저점 근접 (변동성 {volatility:.2%})")
        if price > highest * 0.95 and volatility > float(self.params["take_profit_volatility"]):
            return self._sell(f"고점 근접 이익 실현 (변동성 {volatility:.2%})")
        return TradeSignal.hold(f"변동성 {volatility:.2%}")
