from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import date

import pytest

from conftest import FunctionStrategy, ListProvider, ScriptedStrategy, buy, make_bars, sell
from trading_backtest.backtest.engine import BacktestEngine
from trading_backtest.core.data_provider import BarWindow, PriceBar
from trading_backtest.core.errors import (
    BacktestCancelledError,
    InvalidCapitalError,
    InvalidDataError,
    InvalidRangeError,
    NoDataError,
)
from trading_backtest.core.trading_strategy import SignalType, TradeSignal

START = date(2024, 1, 1)
END = date(2024, 12, 31)


def test_strategy_only_sees_bars_up_to_today(rising_bars):
    strategy = ScriptedStrategy([])
    BacktestEngine().run("AAPL", rising_bars, strategy, 100_000)

    assert len(strategy.calls) == len(rising_bars)
    for i, (length, last_date, current_date, _) in enumerate(strategy.calls):
        assert length == i + 1
        assert last_date == rising_bars[i].date
        assert current_date == rising_bars[i].date


def test_window_rejects_future_index(rising_bars):
    window = BarWindow(tuple(rising_bars), 3)

    assert len(window) == 3
    assert window[-1] == rising_bars[2]
    assert window[-2:] == (rising_bars[1], rising_bars[2])
    with pytest.raises(IndexError):
        window[3]


def test_equity_conserved_and_cash_non_negative(oscillating_bars):
    script = [buy(), None, sell(0.5), buy(0.7), sell(), buy(0.3), buy(1.0), sell(0.2), None, sell()]
    engine = BacktestEngine()
    result = engine.run("AAPL", oscillating_bars, ScriptedStrategy(script), 100_000)

    # 재생: 체결 내역으로 현금/수량을 다시 계산해서 자산 곡선과 비교
    cash, qty = 100_000.0, 0
    trades_by_date = {}
    for t in result.trades:
        trades_by_date.setdefault(t.date, []).append(t)

    assert result.equity_curve[0].value == 100_000
    for bar, point in zip(oscillating_bars, result.equity_curve[1:]):
        for t in trades_by_date.get(bar.date, []):
            if t.action == "buy":
                cash -= t.value
                qty += t.quantity
            else:
                cash += t.value
                qty -= t.quantity
        assert cash >= 0
        assert point.date == bar.date
        assert point.value == pytest.approx(cash + qty * bar.close)

    assert engine.portfolio.cash == pytest.approx(cash)


def test_equity_curve_seeded_with_initial_capital(rising_bars):
    result = BacktestEngine().run("AAPL", rising_bars, ScriptedStrategy([]), 50_000)

    assert len(result.equity_curve) == len(rising_bars) + 1
    assert result.equity_curve[0].value == 50_000
    assert result.final_value == 50_000
    assert result.trades == []
    assert result.total_return == 0.0
    assert result.sharpe_ratio == 0.0


def test_buy_and_sell_round_trip():
    bars = make_bars([100, 110])
    result = BacktestEngine().run("AAPL", bars, ScriptedStrategy([buy(), sell()]), 100_000)

    assert result.final_value == pytest.approx(109_000)
    assert result.metrics.winning_trades == 1
    assert result.trades[-1].profit == pytest.approx(9_000)


def test_strategy_exception_resolves_to_hold(rising_bars, caplog):
    def explode(bars, current_date, portfolio):
        if len(bars) == 2:
            raise RuntimeError("boom")
        if len(bars) == 3:
            return TradeSignal(SignalType.BUY, 1.0)
        return TradeSignal.hold()

    with caplog.at_level(logging.WARNING, logger="trading_backtest"):
        result = BacktestEngine().run("AAPL", rising_bars, FunctionStrategy(explode), 100_000)

    assert len(result.trades) == 1
    assert result.trades[0].date == rising_bars[2].date
    assert "boom" in caplog.text


def test_non_signal_return_resolves_to_hold(rising_bars):
    result = BacktestEngine().run(
        "AAPL", rising_bars, FunctionStrategy(lambda *a: "buy"), 100_000
    )

    assert result.trades == []


def test_out_of_order_bars_rejected(rising_bars):
    bars = [rising_bars[1], rising_bars[0]]

    with pytest.raises(InvalidDataError):
        BacktestEngine().run("AAPL", bars, ScriptedStrategy([]), 100_000)


def test_duplicate_dates_rejected(rising_bars):
    with pytest.raises(InvalidDataError):
        BacktestEngine().run("AAPL", [rising_bars[0], rising_bars[0]], ScriptedStrategy([]), 100_000)


def _with_bar(bars, index, **changes):
    bars = list(bars)
    bars[index] = replace(bars[index], **changes)
    return bars


@pytest.mark.parametrize("changes", [
    {"high": 90.0, "low": 110.0},
    {"close": float("nan")},
    {"open": 0.0, "low": 0.0},
])
def test_invalid_bar_rejected_before_simulation(rising_bars, changes):
    strategy = ScriptedStrategy([None, buy()])
    bars = _with_bar(rising_bars, 1, **changes)

    with pytest.raises(InvalidDataError):
        BacktestEngine().run("AAPL", bars, strategy, 100_000)
    assert strategy.calls == []


def test_run_backtest_rejects_bad_provider_data(rising_bars):
    bars = _with_bar(rising_bars, 2, close=float("nan"))
    engine = BacktestEngine(data_provider=ListProvider(bars))

    with pytest.raises(InvalidDataError):
        engine.run_backtest("AAPL", 100_000, START, END, ScriptedStrategy([None, buy()]))


def test_run_backtest_validates_range(rising_bars):
    engine = BacktestEngine(data_provider=ListProvider(rising_bars))

    with pytest.raises(InvalidRangeError):
        engine.run_backtest("AAPL", 100_000, END, START, ScriptedStrategy([]))
    with pytest.raises(InvalidRangeError):
        engine.run_backtest("AAPL", 100_000, START, START, ScriptedStrategy([]))


@pytest.mark.parametrize("capital", [0, -1])
def test_run_backtest_validates_capital(rising_bars, capital):
    engine = BacktestEngine(data_provider=ListProvider(rising_bars))

    with pytest.raises(InvalidCapitalError):
        engine.run_backtest("AAPL", capital, START, END, ScriptedStrategy([]))


def test_run_backtest_without_bars_raises_no_data():
    engine = BacktestEngine(data_provider=ListProvider([]))

    with pytest.raises(NoDataError) as exc:
        engine.run_backtest("AAPL", 100_000, START, END, ScriptedStrategy([]))
    assert exc.value.ticker == "AAPL"


def test_run_backtest_uses_provider_and_requested_dates(rising_bars):
    provider = ListProvider(rising_bars)
    engine = BacktestEngine(data_provider=provider)

    result = engine.run_backtest("AAPL", 100_000, START, END, ScriptedStrategy([buy()]))

    assert provider.calls == 1
    assert result.start_date == START
    assert result.end_date == END
    assert result.equity_curve[0].date == START
    assert engine.generate_report()["trade_count"] == 1


def test_cancel_event_stops_run(rising_bars):
    event = threading.Event()

    def cancel_on_third(bars, current_date, portfolio):
        if len(bars) == 3:
            event.set()
        return TradeSignal.hold()

    engine = BacktestEngine()
    with pytest.raises(BacktestCancelledError):
        engine.run("AAPL", rising_bars, FunctionStrategy(cancel_on_third), 100_000, cancel_event=event)
    assert engine.result is None


def test_portfolio_snapshot_reflects_previous_trades():
    bars = make_bars([100, 100, 100])
    strategy = ScriptedStrategy([buy(0.5)])
    BacktestEngine().run("AAPL", bars, strategy, 100_000)

    first, second = strategy.calls[0][3], strategy.calls[1][3]
    assert first.quantity == 0
    assert second.quantity == 500
    assert second.cash == pytest.approx(50_000)


def test_generate_report_before_run():
    assert "error" in BacktestEngine().generate_report()


def test_bars_are_not_mutated(rising_bars):
    snapshot = list(rising_bars)
    BacktestEngine().run("AAPL", rising_bars, ScriptedStrategy([buy()]), 100_000)

    assert rising_bars == snapshot
    assert all(isinstance(b, PriceBar) for b in rising_bars)
