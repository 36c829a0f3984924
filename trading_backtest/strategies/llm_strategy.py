"""
생성 모델(LLM) 기반 전략 구현.

[ 역할 ]
    매 봉마다 최근 일봉과 포지션 정보로 프롬프트를 만들어 생성 모델에 질의하고
    응답을 TradeSignal로 변환한다.

[ 응답 해석 순서 ]
    1. JSON 객체 {"action", "confidence", "reasoning"} (우선)
    2. JSON이 없으면 키워드 추정 (buy/bullish/매수 vs sell/bearish/매도,
       "confidence: NN")
    confidence가 1보다 크면 백분율로 간주 (75 → 0.75).
    호출 실패, 타임아웃, 해석 불가 → HOLD, 신뢰도 0 (WARNING 로그).

[ 의존성 ]
    generator: generate(system, user) -> str 을 가진 객체
               없으면 첫 호출 시 llm/claude_client.py::ClaudeClient 생성
"""

import json
import logging
import math
import re
from datetime import date
from typing import Any, Optional, Protocol, Sequence

from trading_backtest.core.data_provider import PriceBar
from trading_backtest.core.trading_strategy import (
    PortfolioSnapshot,
    SignalType,
    TradeSignal,
    TradingStrategy,
)
from trading_backtest.strategies import register

logger = logging.getLogger("trading_backtest.strategies.llm")

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_CONFIDENCE = re.compile(r"confidence\s*[:=]?\s*(\d+(?:\.\d+)?)\s*(%?)", re.IGNORECASE)

_BUY_WORDS = ("buy", "bullish", "매수")
_SELL_WORDS = ("sell", "bearish", "매도")

SYSTEM_PROMPT = """당신은 일봉 데이터로 단일 종목의 매매 여부를 결정하는 트레이딩 에이전트입니다.
오늘까지의 데이터만 주어지며, 미래 가격은 알 수 없습니다.
반드시 아래 형식의 JSON 객체 하나만 출력하세요.
{"action": "buy" | "sell" | "hold", "confidence": 0.0 ~ 1.0, "reasoning": "<한두 문장>"}"""


class TextGenerator(Protocol):
    def generate(self, system: str, user: str) -> str: ...


def _normalize_confidence(value: Any) -> float:
    confidence = float(value)
    if not math.isfinite(confidence):
        raise ValueError(f"신뢰도 값이 유한하지 않습니다: {value!r}")
    if confidence > 1:
        confidence /= 100
    return confidence


def parse_response(text: str) -> TradeSignal:
    """모델 응답을 TradeSignal로 변환. 해석 불가 시 ValueError."""
    match = _JSON_OBJECT.search(text)
    if match:
        try:
            data = json.loads(match.group())
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict) and "action" in data:
            return TradeSignal(
                action=SignalType(str(data["action"]).strip().lower()),
                confidence=_normalize_confidence(data.get("confidence", 0.0)),
                reasoning=str(data.get("reasoning", "")),
            )
    return _parse_text(text)


def _parse_text(text: str) -> TradeSignal:
    """JSON이 없는 응답의 키워드 추정."""
    lowered = text.lower()
    buy_hits = sum(lowered.count(w) for w in _BUY_WORDS)
    sell_hits = sum(lowered.count(w) for w in _SELL_WORDS)

    if buy_hits == sell_hits:
        if "hold" in lowered or "관망" in lowered:
            return TradeSignal.hold(text.strip()[:200])
        raise ValueError(f"응답 해석 불가: {text[:80]!r}")

    action = SignalType.BUY if buy_hits > sell_hits else SignalType.SELL
    match = _CONFIDENCE.search(text)
    confidence = _normalize_confidence(match.group(1)) if match else 0.5
    if match and match.group(2) == "%":
        confidence = float(match.group(1)) / 100
    return TradeSignal(action, confidence, text.strip()[:200])


@register("llm_agent")
class LLMAgentStrategy(TradingStrategy):
    """생성 모델에 매 봉 질의하는 전략."""

    DEFAULT_PARAMS = {
        "lookback": 20,          # 프롬프트에 넣을 최근 봉 수
        "model": "claude-sonnet-4-5",
        "max_tokens": 512,
        "temperature": 0.0,
        "timeout": 30.0,
    }

    def __init__(
        self,
        params: dict[str, Any] | None = None,
        generator: Optional[TextGenerator] = None,
    ):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="llm_agent", params=merged)
        self.generator = generator

    def _get_generator(self) -> TextGenerator:
        if self.generator is None:
            from trading_backtest.llm.claude_client import ClaudeClient

            self.generator = ClaudeClient(
                model=self.params["model"],
                max_tokens=int(self.params["max_tokens"]),
                temperature=float(self.params["temperature"]),
                timeout=float(self.params["timeout"]),
            )
        return self.generator

    def build_prompt(
        self,
        bars: Sequence[PriceBar],
        current_date: date,
        portfolio: Optional[PortfolioSnapshot],
    ) -> str:
        lookback = int(self.params["lookback"])
        lines = [f"오늘: {current_date.isoformat()}", "", "최근 일봉 (date, open, high, low, close, volume):"]
        for b in bars[-lookback:]:
            lines.append(f"{b.date.isoformat()}, {b.open:.2f}, {b.high:.2f}, {b.low:.2f}, {b.close:.2f}, {b.volume}")

        lines.append("")
        if portfolio is not None:
            lines.append(
                f"포지션: 현금 {portfolio.cash:,.2f}, 보유 {portfolio.quantity}주, "
                f"평균 매수가 {portfolio.cost_basis:,.2f}, "
                f"평가 수익률 {portfolio.unrealized_profit_rate(bars[-1].close):.2f}%"
            )
        else:
            lines.append("포지션: 정보 없음")
        return "\n".join(lines)

    def generate_signal(
        self,
        bars: Sequence[PriceBar],
        current_date: date,
        portfolio: Optional[PortfolioSnapshot] = None,
    ) -> TradeSignal:
        if not bars:
            return TradeSignal.hold("데이터 없음")

        try:
            response = self._get_generator().generate(
                SYSTEM_PROMPT, self.build_prompt(bars, current_date, portfolio)
            )
            return parse_response(response)
        except Exception as e:
            logger.warning(f"[{current_date}] LLM 시그널 실패, HOLD 처리: {e}")
            return TradeSignal.hold(f"LLM 실패: {e}")
