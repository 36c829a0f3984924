from __future__ import annotations

import pytest

from conftest import FunctionStrategy, ScriptedStrategy, buy, make_bars, sell
from trading_backtest.core.trading_strategy import SignalType, TradeSignal
from trading_backtest.strategies import create_strategy
from trading_backtest.strategies.combined_strategy import StrategyCombinator, score_to_pct

BARS = make_bars([100])


def _combine(*pairs, threshold=0.3):
    components = [(ScriptedStrategy([signal], name=f"s{i}"), w) for i, (signal, w) in enumerate(pairs)]
    return StrategyCombinator({"threshold": threshold}, strategies=components)


def _signal(combinator):
    return combinator.generate_signal(BARS, BARS[-1].date, None)


def test_weighted_buy_wins():
    signal = _signal(_combine((buy(0.8), 0.6), (sell(0.5), 0.4)))

    assert signal.action == SignalType.BUY
    assert signal.confidence_pct == 48
    assert signal.confidence == pytest.approx(0.48)


def test_equal_scores_hold():
    signal = _signal(_combine((buy(0.5), 0.5), (sell(0.5), 0.5)))

    assert signal.action == SignalType.HOLD
    assert signal.confidence == 0.0


def test_all_hold_is_hold():
    signal = _signal(_combine((TradeSignal.hold(), 0.5), (TradeSignal.hold(), 0.5)))

    assert signal.action == SignalType.HOLD


def test_score_at_threshold_is_not_enough():
    assert _signal(_combine((buy(0.5), 0.6))).action == SignalType.HOLD           # 0.30
    assert _signal(_combine((buy(0.6), 0.6))).action == SignalType.BUY            # 0.36


def test_threshold_is_configurable():
    assert _signal(_combine((sell(0.5), 0.4), threshold=0.1)).action == SignalType.SELL


def test_weights_need_not_sum_to_one():
    signal = _signal(_combine((buy(1.0), 2.0), (buy(1.0), 3.0)))

    assert signal.action == SignalType.BUY
    assert signal.confidence_pct == 100


def test_negative_weight_rejected():
    with pytest.raises(ValueError):
        _combine((buy(), -0.1))


def test_failing_component_counts_as_hold():
    def explode(*args):
        raise RuntimeError("down")

    combinator = StrategyCombinator(
        strategies=[(FunctionStrategy(explode, name="bad"), 0.5), (ScriptedStrategy([buy(0.9)]), 0.5)],
    )

    signal = _signal(combinator)
    assert signal.action == SignalType.BUY
    assert signal.confidence_pct == 45


def test_score_to_pct_rounds_half_up_and_clamps():
    assert score_to_pct(0.125) == 13
    assert score_to_pct(1.7) == 100
    assert score_to_pct(-0.2) == 0


def test_created_from_registry_with_weights():
    combinator = create_strategy(
        "combined",
        params={"weights": {"ma_cross": 0.5, "rsi": 0.5}, "component_params": {"rsi": {"period": 3}}},
    )

    assert [s.name for s, _ in combinator.components] == ["ma_cross", "rsi"]
    assert combinator.components[1][0].params["period"] == 3

    signal = combinator.generate_signal(make_bars([10, 9, 8, 7]), make_bars([10, 9, 8, 7])[-1].date)
    assert signal.action == SignalType.BUY   # rsi 과매도만 투표: 0.5 > 0.3
    assert signal.confidence_pct == 50
