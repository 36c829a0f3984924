from __future__ import annotations

from datetime import date

import pytest

from trading_backtest.backtest.executor import TradeExecutor
from trading_backtest.core.trading_strategy import SignalType
from trading_backtest.data.portfolio import PortfolioState

D1 = date(2024, 1, 2)
D2 = date(2024, 1, 3)


@pytest.fixture
def portfolio() -> PortfolioState:
    return PortfolioState.create(100_000, date(2024, 1, 1))


@pytest.fixture
def executor() -> TradeExecutor:
    return TradeExecutor()


def test_full_confidence_buy_commits_ninety_percent(portfolio, executor):
    trade = executor.execute(portfolio, SignalType.BUY, "AAPL", 100.0, D1, 1.0)

    assert trade is not None
    assert trade.quantity == 900
    assert trade.value == pytest.approx(90_000)
    assert trade.profit is None
    assert portfolio.cash == pytest.approx(10_000)
    assert portfolio.holding_quantity("AAPL") == 900
    assert portfolio.get_holding("AAPL").cost_basis == pytest.approx(100.0)


def test_full_sell_realizes_profit_and_removes_holding(portfolio, executor):
    executor.execute(portfolio, SignalType.BUY, "AAPL", 100.0, D1, 1.0)
    trade = executor.execute(portfolio, SignalType.SELL, "AAPL", 110.0, D2, 1.0)

    assert trade.quantity == 900
    assert trade.profit == pytest.approx(9_000)
    assert portfolio.cash == pytest.approx(109_000)
    assert portfolio.get_holding("AAPL") is None
    assert [t.action for t in portfolio.trades] == ["buy", "sell"]


def test_sell_without_holding_leaves_state_untouched(portfolio, executor):
    before = (portfolio.cash, dict(portfolio.holdings), list(portfolio.trades))

    trade = executor.execute(portfolio, SignalType.SELL, "AAPL", 100.0, D1, 1.0)

    assert trade is None
    assert (portfolio.cash, dict(portfolio.holdings), list(portfolio.trades)) == before


@pytest.mark.parametrize("action", [SignalType.BUY, SignalType.SELL, SignalType.HOLD])
def test_zero_confidence_is_a_no_op(portfolio, executor, action):
    executor.execute(portfolio, SignalType.BUY, "AAPL", 100.0, D1, 0.5)
    cash, qty, n_trades = portfolio.cash, portfolio.holding_quantity("AAPL"), len(portfolio.trades)

    assert executor.execute(portfolio, action, "AAPL", 100.0, D2, 0.0) is None
    assert portfolio.cash == cash
    assert portfolio.holding_quantity("AAPL") == qty
    assert len(portfolio.trades) == n_trades


def test_hold_never_records_a_trade(portfolio, executor):
    assert executor.execute(portfolio, "hold", "AAPL", 100.0, D1, 1.0) is None
    assert portfolio.trades == []
    assert portfolio.cash == 100_000


@pytest.mark.parametrize("price, confidence", [
    (float("nan"), 1.0),
    (100.0, float("nan")),
    (float("inf"), 1.0),
])
def test_non_finite_price_or_confidence_is_a_no_op(portfolio, executor, price, confidence):
    assert executor.execute(portfolio, SignalType.BUY, "AAPL", price, D1, confidence) is None
    assert portfolio.trades == []
    assert portfolio.cash == 100_000


def test_buy_that_cannot_afford_one_share_is_skipped(executor):
    portfolio = PortfolioState.create(50, date(2024, 1, 1))

    assert executor.execute(portfolio, SignalType.BUY, "AAPL", 100.0, D1, 1.0) is None
    assert portfolio.cash == 50


def test_second_buy_merges_with_weighted_cost_basis(portfolio, executor):
    executor.execute(portfolio, SignalType.BUY, "AAPL", 100.0, D1, 0.5)   # 500주, 현금 50000
    executor.execute(portfolio, SignalType.BUY, "AAPL", 125.0, D2, 0.5)   # 200주

    holding = portfolio.get_holding("AAPL")
    assert holding.quantity == 700
    assert holding.cost_basis == pytest.approx((500 * 100 + 200 * 125) / 700)
    assert portfolio.cash == pytest.approx(25_000)


def test_partial_sell_keeps_cost_basis(portfolio, executor):
    executor.execute(portfolio, SignalType.BUY, "AAPL", 100.0, D1, 1.0)
    trade = executor.execute(portfolio, SignalType.SELL, "AAPL", 90.0, D2, 0.5)

    assert trade.quantity == 450
    assert trade.profit == pytest.approx(-4_500)
    holding = portfolio.get_holding("AAPL")
    assert holding.quantity == 450
    assert holding.cost_basis == pytest.approx(100.0)


def test_buy_confidence_above_cap_is_capped(portfolio):
    executor = TradeExecutor(max_buy_fraction=0.5)

    trade = executor.execute(portfolio, SignalType.BUY, "AAPL", 100.0, D1, 1.0)

    assert trade.quantity == 500


@pytest.mark.parametrize("fraction", [0.0, -0.1, 1.5])
def test_invalid_fraction_rejected(fraction):
    with pytest.raises(ValueError):
        TradeExecutor(max_buy_fraction=fraction)


def test_string_action_accepted(portfolio, executor):
    trade = executor.execute(portfolio, "BUY", "AAPL", 100.0, D1, 0.1)

    assert trade.quantity == 100
