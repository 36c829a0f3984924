from __future__ import annotations

import pytest

from conftest import make_bars
from trading_backtest.backtest.engine import BacktestEngine
from trading_backtest.core.trading_strategy import PortfolioSnapshot, SignalType
from trading_backtest.strategies import create_strategy
from trading_backtest.strategies.llm_strategy import LLMAgentStrategy, parse_response

BARS = make_bars([100, 101, 102])


class FakeGenerator:
    def __init__(self, response: str | Exception):
        self.response = response
        self.prompts: list[tuple[str, str]] = []

    def generate(self, system: str, user: str) -> str:
        self.prompts.append((system, user))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _run(response, portfolio=None):
    generator = FakeGenerator(response)
    strategy = LLMAgentStrategy(generator=generator)
    return strategy.generate_signal(BARS, BARS[-1].date, portfolio), generator


def test_json_response_is_preferred():
    signal, _ = _run('분석 결과: {"action": "buy", "confidence": 0.7, "reasoning": "상승 추세"} 끝')

    assert signal.action == SignalType.BUY
    assert signal.confidence == pytest.approx(0.7)
    assert signal.reasoning == "상승 추세"


def test_percentage_confidence_is_scaled():
    signal, _ = _run('{"action": "SELL", "confidence": 65}')

    assert signal.action == SignalType.SELL
    assert signal.confidence_pct == 65


def test_text_fallback_with_confidence():
    signal = parse_response("The chart looks bullish, I would buy. Confidence: 80")

    assert signal.action == SignalType.BUY
    assert signal.confidence == pytest.approx(0.8)


def test_text_fallback_default_confidence():
    signal = parse_response("Bearish divergence, sell now")

    assert signal.action == SignalType.SELL
    assert signal.confidence == pytest.approx(0.5)


def test_text_hold():
    assert parse_response("I would hold for now").action == SignalType.HOLD


@pytest.mark.parametrize("response", [
    "???",
    '{"action": "moon", "confidence": 1}',
    '{"action": "buy", "confidence": NaN}',
    '{"action": "sell", "confidence": Infinity}',
    RuntimeError("timeout"),
])
def test_failures_resolve_to_hold_with_zero_confidence(response):
    signal, _ = _run(response)

    assert signal.action == SignalType.HOLD
    assert signal.confidence == 0.0


def test_prompt_contains_recent_bars_and_position():
    portfolio = PortfolioSnapshot("AAPL", cash=5_000, quantity=10, cost_basis=95.0)
    _, generator = _run('{"action": "hold", "confidence": 0}', portfolio)

    system, user = generator.prompts[0]
    assert "JSON" in system
    assert BARS[-1].date.isoformat() in user
    assert "보유 10주" in user


def test_registry_injects_generator():
    generator = FakeGenerator('{"action": "buy", "confidence": 0.4}')
    strategy = create_strategy("llm_agent", generator=generator)

    assert strategy.generate_signal(BARS, BARS[-1].date).action == SignalType.BUY


def test_nan_confidence_response_does_not_abort_backtest():
    strategy = LLMAgentStrategy(generator=FakeGenerator('{"action": "buy", "confidence": NaN}'))

    result = BacktestEngine().run("AAPL", BARS, strategy, 100_000)

    assert len(result.trades) == 0
    assert result.final_value == 100_000
