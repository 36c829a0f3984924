from __future__ import annotations

from datetime import date
from typing import Callable, Optional, Sequence

import pandas as pd
import pytest

from trading_backtest.core.data_provider import PriceBar, PriceSeriesProvider
from trading_backtest.core.trading_strategy import (
    PortfolioSnapshot,
    SignalType,
    TradeSignal,
    TradingStrategy,
)


def make_bars(closes: Sequence[float], start: date = date(2024, 1, 1)) -> list[PriceBar]:
    """영업일마다 봉 하나. open=close, high/low는 ±1%."""
    dates = pd.bdate_range(start=start, periods=len(closes))
    return [
        PriceBar(
            date=d.date(),
            open=float(c),
            high=float(c) * 1.01,
            low=float(c) * 0.99,
            close=float(c),
            volume=1000,
        )
        for d, c in zip(dates, closes)
    ]


class ScriptedStrategy(TradingStrategy):
    """i번째 봉에서 script[i] 시그널을 내는 전략. 받은 입력을 기록한다."""

    def __init__(self, script: Sequence[Optional[TradeSignal]], name: str = "scripted"):
        super().__init__(name=name)
        self.script = list(script)
        self.calls: list[tuple[int, date, date, Optional[PortfolioSnapshot]]] = []

    def generate_signal(self, bars, current_date, portfolio=None) -> TradeSignal:
        i = len(bars) - 1
        self.calls.append((len(bars), bars[-1].date, current_date, portfolio))
        signal = self.script[i] if i < len(self.script) else None
        return signal or TradeSignal.hold()


class FunctionStrategy(TradingStrategy):
    def __init__(self, fn: Callable, name: str = "fn"):
        super().__init__(name=name)
        self.fn = fn

    def generate_signal(self, bars, current_date, portfolio=None) -> TradeSignal:
        return self.fn(bars, current_date, portfolio)


class ListProvider(PriceSeriesProvider):
    def __init__(self, bars: Sequence[PriceBar]):
        self.bars = list(bars)
        self.calls = 0

    def get_bars(self, ticker, start_date, end_date):
        self.calls += 1
        return [b for b in self.bars if start_date <= b.date <= end_date]


def buy(confidence: float = 1.0) -> TradeSignal:
    return TradeSignal(SignalType.BUY, confidence, "test buy")


def sell(confidence: float = 1.0) -> TradeSignal:
    return TradeSignal(SignalType.SELL, confidence, "test sell")


@pytest.fixture
def rising_bars() -> list[PriceBar]:
    return make_bars([100 + i for i in range(30)])


@pytest.fixture
def oscillating_bars() -> list[PriceBar]:
    closes = [100, 102, 98, 105, 95, 110, 90, 108, 96, 104, 99, 101]
    return make_bars(closes)
