"""
매매 전략 추상 클래스 정의.

[ 역할 ]
    매매 로직의 인터페이스를 정의.
    오늘까지의 일봉과 포트폴리오 스냅샷을 받아 매수/매도/홀드 시그널을 생성.

[ 구현체 ]
    - strategies/ma_cross_strategy.py::MACrossStrategy       (이동평균 교차)
    - strategies/momentum_strategy.py::MomentumStrategy      (MA 교차 + RSI 필터)
    - strategies/rsi_strategy.py::RSIStrategy                (RSI 과매수/과매도)
    - strategies/mean_reversion_strategy.py                  (볼린저 밴드)
    - strategies/value_strategy.py::ValueStrategy            (PER/PBR)
    - strategies/sentiment_strategy.py::SentimentStrategy    (뉴스 감성)
    - strategies/risk_strategy.py::RiskManagedStrategy       (변동성)
    - strategies/llm_strategy.py::LLMAgentStrategy           (생성 모델 호출)
    - strategies/combined_strategy.py::StrategyCombinator    (가중 합성)

[ 호출하는 곳 ]
    - backtest/engine.py::BacktestEngine._request_signal()에서
      매 봉마다 generate_signal()을 호출하여 시그널을 받고 주문 실행

[ 데이터 흐름 ]
    bars(오늘까지, 미래 데이터 없음) + PortfolioSnapshot → generate_signal() → TradeSignal
    TradeSignal.action이 BUY/SELL이면 엔진이 TradeExecutor로 주문 실행
    신뢰도(confidence)는 0~1 범위이며 주문 수량 결정에 사용됨
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Optional, Sequence

from trading_backtest.core.data_provider import PriceBar


class SignalType(Enum):
    """전략이 반환하는 시그널 종류."""
    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


@dataclass
class TradeSignal:
    """generate_signal()의 반환값. 해당 봉에서만 사용되고 저장되지 않는다."""
    action: SignalType
    confidence: float = 0.0   # 0.0 ~ 1.0
    reasoning: str = ""       # 시그널 발생 사유 (로깅용)

    def __post_init__(self):
        if not isinstance(self.action, SignalType):
            self.action = SignalType(str(self.action).lower())
        confidence = float(self.confidence)
        if not math.isfinite(confidence):
            confidence = 0.0
        self.confidence = min(max(confidence, 0.0), 1.0)

    @classmethod
    def hold(cls, reasoning: str = "") -> "TradeSignal":
        """HOLD, 신뢰도 0 시그널."""
        return cls(action=SignalType.HOLD, confidence=0.0, reasoning=reasoning)

    @property
    def confidence_pct(self) -> int:
        """신뢰도를 0~100 정수로 환산."""
        return min(max(round(self.confidence * 100), 0), 100)


@dataclass(frozen=True)
class PortfolioSnapshot:
    """현재 보유 현황. backtest/engine.py가 PortfolioState에서 구성하여 전략에 전달."""
    ticker: str
    cash: float
    quantity: int = 0          # 보유 수량
    cost_basis: float = 0.0    # 평균 매수가

    def unrealized_profit_rate(self, price: float) -> float:
        """현재가 기준 평가 수익률 (%)."""
        if self.quantity <= 0 or self.cost_basis <= 0:
            return 0.0
        return (price - self.cost_basis) / self.cost_basis * 100


class TradingStrategy(ABC):
    """매매 전략 추상 클래스.

    새 전략을 만들려면 이 클래스를 상속받아 generate_signal()을 구현하면 된다.
    실패 시 예외를 던지지 말고 TradeSignal.hold()를 반환해야 한다.
    """

    def __init__(self, name: str, params: dict[str, Any] | None = None):
        self.name = name
        self.params = params or {}  # config.yaml에서 로드된 전략 파라미터

    @abstractmethod
    def generate_signal(
        self,
        bars: Sequence[PriceBar],
        current_date: date,
        portfolio: Optional[PortfolioSnapshot] = None,
    ) -> TradeSignal:
        """매매 시그널 생성.

        Args:
            bars: 오늘(current_date)까지의 일봉. 마지막 원소가 오늘 봉
            current_date: 시뮬레이션 현재일
            portfolio: 현재 포지션 정보 (없을 수 있음)

        Returns:
            TradeSignal: 매수/매도/홀드 시그널
        """
        ...

    @property
    def confidence(self) -> float:
        """규칙 기반 전략이 BUY/SELL 시 사용하는 신뢰도."""
        return float(self.params.get("confidence", 1.0))

    def _buy(self, reasoning: str) -> TradeSignal:
        return TradeSignal(SignalType.BUY, self.confidence, reasoning)

    def _sell(self, reasoning: str) -> TradeSignal:
        return TradeSignal(SignalType.SELL, self.confidence, reasoning)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, params={self.params!r})"
