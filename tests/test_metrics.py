from __future__ import annotations

import math
from datetime import date

import numpy as np
import pytest

from trading_backtest.backtest import metrics
from trading_backtest.data.portfolio import EquityPoint, Trade

D = date(2024, 1, 2)


def _sell(profit: float) -> Trade:
    return Trade(D, "sell", "AAPL", 100.0, 1, 100.0, profit=profit)


def _buy() -> Trade:
    return Trade(D, "buy", "AAPL", 100.0, 1, 100.0)


def test_max_drawdown_of_dip_and_recovery():
    assert metrics.max_drawdown([100_000, 110_000, 95_000, 120_000]) == pytest.approx(0.13636, abs=1e-4)


def test_max_drawdown_zero_for_non_decreasing_curve():
    assert metrics.max_drawdown([100, 100, 101, 150]) == 0.0


def test_total_and_annualized_return():
    values = [100.0, 110.0]

    assert metrics.total_return(values) == pytest.approx(0.10)
    assert metrics.annualized_return(values) == pytest.approx(1.1 ** 252 - 1)


def test_annualized_return_zero_without_periods():
    assert metrics.annualized_return([100.0]) == 0.0


def test_sharpe_zero_for_flat_curve():
    assert metrics.sharpe_ratio([100.0] * 10) == 0.0
    assert metrics.sharpe_ratio([100.0]) == 0.0


def test_sharpe_uses_population_std():
    values = [100.0, 101.0, 100.0, 102.0]
    r = np.array([1.01, 100 / 101, 1.02]) - 1

    expected = r.mean() / r.std(ddof=0) * math.sqrt(252)
    assert metrics.sharpe_ratio(values) == pytest.approx(expected)


def test_profit_factor_all_wins_is_gross_profit():
    stats = metrics.calculate_trade_statistics([_sell(100), _sell(50)])

    assert stats.profit_factor == pytest.approx(150)
    assert stats.win_rate == 1.0


def test_profit_factor_is_one_without_sells():
    stats = metrics.calculate_trade_statistics([_buy()])

    assert stats.profit_factor == 1.0
    assert stats.win_rate == 0.0
    assert stats.total_trades == 1


def test_trade_statistics_mixed():
    trades = [_buy(), _sell(100), _sell(200), _sell(-50), _sell(0), _sell(-30), _sell(-20)]

    stats = metrics.calculate_trade_statistics(trades)

    assert stats.total_trades == 7
    assert stats.winning_trades == 2
    assert stats.losing_trades == 3
    assert stats.win_rate == pytest.approx(0.4)
    assert stats.average_win == pytest.approx(150)
    assert stats.average_loss == pytest.approx(-100 / 3)
    assert stats.profit_factor == pytest.approx(300 / 100)
    assert stats.max_consecutive_wins == 2
    # 손익 0 매도가 연속 손실을 끊는다
    assert stats.max_consecutive_losses == 2


def test_build_result_shape():
    curve = [
        EquityPoint(date(2024, 1, 1), 100_000),
        EquityPoint(date(2024, 1, 2), 110_000),
        EquityPoint(date(2024, 1, 3), 95_000),
        EquityPoint(date(2024, 1, 4), 120_000),
    ]
    result = metrics.build_result("AAPL", "test", date(2024, 1, 1), date(2024, 1, 4), 100_000, [], curve)

    data = result.to_dict()
    assert data["finalValue"] == 120_000
    assert data["totalReturn"] == pytest.approx(0.2)
    assert data["maxDrawdown"] == pytest.approx(0.13636, abs=1e-4)
    assert data["equityCurve"][0] == {"date": "2024-01-01", "value": 100_000}
    assert set(data["metrics"]) >= {
        "totalTrades", "winningTrades", "losingTrades", "winRate", "averageWin",
        "averageLoss", "profitFactor", "maxConsecutiveWins", "maxConsecutiveLosses",
    }
    assert result.metrics.total_trading_days == 3
    assert "AAPL" in result.summary()
