"""
이동평균 교차(MA Cross) 전략 구현.

[ 역할 ]
    core/trading_strategy.py::TradingStrategy의 구현체.
    "단기 이동평균이 장기 이동평균을 상향 돌파하면 매수, 하향 돌파하면 매도"
    momentum_strategy.py의 베이스 클래스 역할.

[ 전략 흐름 ]
    매일 generate_signal() 호출됨 (← backtest/engine.py에서)
        ├── 장기 MA + 1일 분량의 데이터가 없으면 HOLD
        ├── detect_cross()로 어제/오늘의 단기·장기 MA 비교
        ├── 골든 크로스 → BUY
        └── 데드 크로스 → SELL

[ 파라미터 (config.yaml의 strategy 섹션에서 로드) ]
    short_period: 단기 이동평균 기간 (일)
    long_period:  장기 이동평균 기간 (일)
    confidence:   BUY/SELL 시그널 신뢰도 (0 ~ 1)
"""

from datetime import date
from typing import Any, Optional, Sequence

import pandas as pd

from trading_backtest.core.data_provider import PriceBar, bars_to_frame
from trading_backtest.core.trading_strategy import (
    PortfolioSnapshot,
    TradeSignal,
    TradingStrategy,
)
from trading_backtest.strategies import register
from trading_backtest.strategies.indicators import moving_average


@register("ma_cross")
class MACrossStrategy(TradingStrategy):
    """이동평균 교차 전략 구현체."""

    DEFAULT_PARAMS = {
        "short_period": 20,
        "long_period": 60,
        "confidence": 1.0,
    }

    # True면 어제 MA가 같았던 경우도 교차로 인정 (<=, >=)
    INCLUSIVE_CROSS = False

    def __init__(self, params: dict[str, Any] | None = None):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="ma_cross", params=merged)

    @property
    def short_period(self) -> int:
        return int(self.params["short_period"])

    @property
    def long_period(self) -> int:
        return int(self.params["long_period"])

    @property
    def required_bars(self) -> int:
        """교차 판단에 필요한 최소 봉 수 (어제 장기 MA까지)."""
        return max(self.short_period, self.long_period) + 1

    def detect_cross(self, close: pd.Series) -> tuple[bool, bool, float, float]:
        """어제/오늘 MA 비교.

        Returns:
            (골든 크로스 여부, 데드 크로스 여부, 오늘 단기 MA, 오늘 장기 MA)
        """
        short_ma = moving_average(close, self.short_period)
        long_ma = moving_average(close, self.long_period)

        prev_short, cur_short = float(short_ma.iloc[-2]), float(short_ma.iloc[-1])
        prev_long, cur_long = float(long_ma.iloc[-2]), float(long_ma.iloc[-1])

        if self.INCLUSIVE_CROSS:
            cross_up = prev_short <= prev_long and cur_short > cur_long
            cross_down = prev_short >= prev_long and cur_short < cur_long
        else:
            cross_up = prev_short < prev_long and cur_short > cur_long
            cross_down = prev_short > prev_long and cur_short < cur_long
        return cross_up, cross_down, cur_short, cur_long

    def generate_signal(
        self,
        bars: Sequence[PriceBar],
        current_date: date,
        portfolio: Optional[PortfolioSnapshot] = None,
    ) -> TradeSignal:
        """매매 시그널 생성."""
        if len(bars) < self.required_bars:
            return TradeSignal.hold(f"데이터 부족 (최소 {self.required_bars}일 필요)")

        close = bars_to_frame(bars[-self.required_bars:])["close"]
        cross_up, cross_down, short_ma, long_ma = self.detect_cross(close)
        ma_str = f"MA{self.short_period}: {short_ma:,.2f}, MA{self.long_period}: {long_ma:,.2f}"

        if cross_up:
            return self._buy(f"골든 크로스 ({ma_str})")
        if cross_down:
            return self._sell(f"데드 크로스 ({ma_str})")
        return TradeSignal.hold(f"교차 없음 ({ma_str})")
