"""
포트폴리오 상태 모듈.

[ 역할 ]
    현금, 보유 종목(Holding), 거래 기록(Trade), 자산 곡선(EquityPoint)을 통합 관리.
    단일 종목 범위이므로 보유 종목은 최대 1개.

[ 주요 클래스 ]
    Holding        - 보유 수량/평균 매수가 추적
    Trade          - 개별 거래 내역 (매도 시 실현 손익 포함). 기록 후 불변
    EquityPoint    - 일별 총 자산 {date, value}
    PortfolioState - 전체 포트폴리오 (현금 + 보유 + 거래내역 + 자산 곡선)

[ 상태 변경 규칙 ]
    - 현금/보유/거래내역은 backtest/executor.py::TradeExecutor만 변경
    - 자산 곡선은 backtest/engine.py::BacktestEngine이 매 봉마다 추가
    - 불변식: cash + 보유수량 × 최근 종가 == 자산 곡선의 마지막 값
"""

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Optional

from trading_backtest.core.trading_strategy import PortfolioSnapshot


@dataclass
class Holding:
    """보유 종목. 수량이 0이 되면 PortfolioState에서 제거된다."""
    ticker: str
    quantity: int = 0           # 보유 수량
    cost_basis: float = 0.0     # 평균 매수가 (매수 시마다 가중평균 갱신)


@dataclass(frozen=True)
class Trade:
    """개별 거래 기록. metrics.py에서 승률/수익 계산에 사용됨."""
    date: date
    action: str                       # "buy" or "sell"
    ticker: str
    price: float
    quantity: int
    value: float                      # price * quantity
    profit: Optional[float] = None    # 실현 손익 (매도 시에만)
    reasoning: str = ""               # 시그널 사유 (로깅용)

    @property
    def is_sell(self) -> bool:
        return self.action == "sell"

    def to_dict(self) -> dict[str, Any]:
        """API 응답 형태로 변환. 매수 거래는 profit 필드가 없다."""
        data = {
            "date": self.date.isoformat(),
            "action": self.action,
            "ticker": self.ticker,
            "price": self.price,
            "quantity": self.quantity,
            "value": self.value,
        }
        if self.profit is not None:
            data["profit"] = self.profit
        if self.reasoning:
            data["reasoning"] = self.reasoning
        return data


@dataclass(frozen=True)
class EquityPoint:
    """자산 곡선의 한 점."""
    date: date
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "value": self.value}


@dataclass
class PortfolioState:
    """포트폴리오 상태. BacktestEngine이 실행마다 새로 생성한다."""
    cash: float
    holdings: dict[str, Holding] = field(default_factory=dict)   # ticker → Holding (0..1개)
    trades: list[Trade] = field(default_factory=list)            # 전체 거래 내역
    equity_curve: list[EquityPoint] = field(default_factory=list)

    @classmethod
    def create(cls, initial_capital: float, start_date: date) -> "PortfolioState":
        """초기 상태 생성. 자산 곡선은 {start_date, initial_capital}로 시작."""
        return cls(
            cash=initial_capital,
            equity_curve=[EquityPoint(start_date, initial_capital)],
        )

    def get_holding(self, ticker: str) -> Optional[Holding]:
        """보유 종목 조회. 없으면 None."""
        return self.holdings.get(ticker)

    def holding_quantity(self, ticker: str) -> int:
        holding = self.holdings.get(ticker)
        return holding.quantity if holding else 0

    def total_value(self, ticker: str, price: float) -> float:
        """총 자산 = 현금 + 보유수량 × 가격."""
        return self.cash + self.holding_quantity(ticker) * price

    def record_equity(self, current_date: date, value: float) -> EquityPoint:
        """자산 곡선에 한 점 추가."""
        point = EquityPoint(current_date, value)
        self.equity_curve.append(point)
        return point

    def snapshot(self, ticker: str) -> PortfolioSnapshot:
        """전략에 전달할 읽기 전용 스냅샷."""
        holding = self.holdings.get(ticker)
        return PortfolioSnapshot(
            ticker=ticker,
            cash=self.cash,
            quantity=holding.quantity if holding else 0,
            cost_basis=holding.cost_basis if holding else 0.0,
        )

    def get_summary(self) -> dict[str, Any]:
        """포트폴리오 요약."""
        return {
            "cash": self.cash,
            "holdings": [asdict(h) for h in self.holdings.values()],
            "num_trades": len(self.trades),
            "last_value": self.equity_curve[-1].value if self.equity_curve else self.cash,
        }
