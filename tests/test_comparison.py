from __future__ import annotations

import threading
import time
from datetime import date

import pytest

from conftest import FunctionStrategy, ListProvider, ScriptedStrategy, buy, make_bars, sell
from trading_backtest.backtest.comparison import ComparisonRunner, comparison_table
from trading_backtest.backtest.engine import BacktestEngine
from trading_backtest.core.errors import InvalidRangeError, NoDataError
from trading_backtest.core.trading_strategy import TradeSignal
from trading_backtest.strategies import create_strategy

START = date(2024, 1, 1)
END = date(2024, 3, 31)


@pytest.fixture
def bars():
    return make_bars([100, 105, 95, 110, 90, 120, 100, 115])


def _strategies():
    return [
        ScriptedStrategy([buy(), None, None, sell()], name="early"),
        ScriptedStrategy([None, None, buy(0.5), None, None, sell()], name="late"),
        ScriptedStrategy([], name="idle"),
    ]


def test_results_in_request_order_and_bars_fetched_once(bars):
    provider = ListProvider(bars)
    results = ComparisonRunner(provider).run("AAPL", 100_000, START, END, _strategies())

    assert list(results) == ["early", "late", "idle"]
    assert provider.calls == 1
    assert results["idle"].final_value == 100_000


def test_each_result_matches_an_independent_run(bars):
    results = ComparisonRunner(ListProvider(bars)).run("AAPL", 100_000, START, END, _strategies())

    for strategy in _strategies():
        solo = BacktestEngine().run("AAPL", bars, strategy, 100_000, START, END)
        assert results[strategy.name].final_value == pytest.approx(solo.final_value)
        assert len(results[strategy.name].trades) == len(solo.trades)


def test_parallel_matches_sequential(bars):
    sequential = ComparisonRunner(ListProvider(bars)).run("AAPL", 100_000, START, END, _strategies())
    parallel = ComparisonRunner(ListProvider(bars), max_workers=3).run("AAPL", 100_000, START, END, _strategies())

    assert list(parallel) == list(sequential)
    for name in sequential:
        assert parallel[name].to_dict() == sequential[name].to_dict()


def test_parallel_runs_overlap(bars):
    barrier = threading.Barrier(2, timeout=5)

    def wait_once(bars, current_date, portfolio):
        if len(bars) == 1:
            barrier.wait()
        return TradeSignal.hold()

    strategies = [FunctionStrategy(wait_once, name="a"), FunctionStrategy(wait_once, name="b")]
    start = time.monotonic()
    results = ComparisonRunner(ListProvider(bars), max_workers=2).run("AAPL", 100_000, START, END, strategies)

    assert set(results) == {"a", "b"}
    assert time.monotonic() - start < 5


def test_strategies_share_bars_but_not_portfolios(bars):
    strategies = [create_strategy("rsi", params={"period": 2}), create_strategy("ma_cross", params={"short_period": 2, "long_period": 3})]
    results = ComparisonRunner(ListProvider(bars), max_workers=2).run("AAPL", 50_000, START, END, strategies)

    for result in results.values():
        assert result.initial_capital == 50_000
        assert result.equity_curve[0].value == 50_000
        assert len(result.equity_curve) == len(bars) + 1


def test_duplicate_names_rejected(bars):
    strategies = [ScriptedStrategy([], name="x"), ScriptedStrategy([], name="x")]

    with pytest.raises(ValueError):
        ComparisonRunner(ListProvider(bars)).run("AAPL", 100_000, START, END, strategies)


def test_validation_and_missing_data(bars):
    with pytest.raises(InvalidRangeError):
        ComparisonRunner(ListProvider(bars)).run("AAPL", 100_000, END, START, _strategies())
    with pytest.raises(NoDataError):
        ComparisonRunner(ListProvider([])).run("AAPL", 100_000, START, END, _strategies())


def test_comparison_table(bars):
    results = ComparisonRunner(ListProvider(bars)).run("AAPL", 100_000, START, END, _strategies())

    table = comparison_table(results)
    assert list(table.index) == ["early", "late", "idle"]
    assert {"total_return", "sharpe_ratio", "max_drawdown", "win_rate"} <= set(table.columns)
    assert table.loc["idle", "total_trades"] == 0


def test_comparison_table_empty():
    assert comparison_table({}).empty
