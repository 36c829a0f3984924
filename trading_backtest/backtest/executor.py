"""
주문 실행 모듈.

[ 역할 ]
    시그널(action, confidence)을 PortfolioState에 반영.
    자금/보유 수량 제약과 신뢰도 비례 수량 결정을 담당.

[ 수량 결정 ]
    매수: 투입 금액 = 현금 × min(신뢰도, max_buy_fraction)      (기본 0.9)
          수량     = floor(투입 금액 / 가격)
    매도: 수량     = floor(보유 수량 × min(신뢰도, max_sell_fraction)) (기본 1.0)
    항상 정수 주식 단위, 남는 금액은 현금으로 유지.

[ 무시되는 경우 (거래 기록 없음, 상태 불변) ]
    - HOLD 시그널
    - 신뢰도 0 (또는 가격 0 이하)
    - 신뢰도/가격이 NaN 또는 무한대
    - 계산된 매수 수량 0 (현금 부족 / 전액 투자 상태)
    - 보유 없이 매도 시그널

[ 호출하는 곳 ]
    - backtest/engine.py::BacktestEngine의 매 봉 루프에서 execute() 호출
"""

import logging
import math
from datetime import date
from typing import Optional

from trading_backtest.core.trading_strategy import SignalType
from trading_backtest.data.portfolio import Holding, PortfolioState, Trade

# 부동소수점 오차로 899.9999 → 899가 되는 것을 방지
_FLOOR_EPSILON = 1e-9


class TradeExecutor:
    """주문 실행기. 매수/매도 본문은 모든 값을 먼저 계산한 뒤 상태를 한 번에 변경한다."""

    def __init__(
        self,
        max_buy_fraction: float = 0.9,    # 1회 매수 시 현금 대비 최대 비율
        max_sell_fraction: float = 1.0,   # 1회 매도 시 보유 대비 최대 비율
        logger: Optional[logging.Logger] = None,
    ):
        if not 0 < max_buy_fraction <= 1:
            raise ValueError(f"max_buy_fraction은 (0, 1] 범위여야 합니다: {max_buy_fraction}")
        if not 0 < max_sell_fraction <= 1:
            raise ValueError(f"max_sell_fraction은 (0, 1] 범위여야 합니다: {max_sell_fraction}")
        self.max_buy_fraction = max_buy_fraction
        self.max_sell_fraction = max_sell_fraction
        self.logger = logger or logging.getLogger("trading_backtest.backtest.executor")

    def execute(
        self,
        portfolio: PortfolioState,
        action: SignalType | str,
        ticker: str,
        price: float,
        current_date: date,
        confidence: float,
        reasoning: str = "",
    ) -> Optional[Trade]:
        """시그널을 포트폴리오에 반영.

        Returns:
            체결된 Trade, 무시된 경우 None
        """
        action = action if isinstance(action, SignalType) else SignalType(str(action).lower())

        if action == SignalType.HOLD:
            return None
        # NaN/inf 값은 수량 계산(floor)에서 예외를 일으키므로 무시
        if not math.isfinite(confidence) or not math.isfinite(price):
            return None
        if confidence <= 0 or price <= 0:
            return None

        if action == SignalType.BUY:
            return self._execute_buy(portfolio, ticker, price, current_date, confidence, reasoning)
        return self._execute_sell(portfolio, ticker, price, current_date, confidence, reasoning)

    def _execute_buy(
        self,
        portfolio: PortfolioState,
        ticker: str,
        price: float,
        current_date: date,
        confidence: float,
        reasoning: str,
    ) -> Optional[Trade]:
        """매수 실행. 기존 보유분과 가중평균으로 평균 매수가 갱신."""
        committed = portfolio.cash * min(confidence, self.max_buy_fraction)
        quantity = math.floor(committed / price + _FLOOR_EPSILON)
        if quantity <= 0:
            return None

        cost = quantity * price
        holding = portfolio.get_holding(ticker)
        if holding is not None:
            new_quantity = holding.quantity + quantity
            new_cost_basis = (holding.cost_basis * holding.quantity + price * quantity) / new_quantity
        else:
            new_quantity = quantity
            new_cost_basis = price

        trade = Trade(
            date=current_date,
            action=SignalType.BUY.value,
            ticker=ticker,
            price=price,
            quantity=quantity,
            value=cost,
            reasoning=reasoning,
        )

        # 상태 변경 (여기부터 예외 없음)
        if holding is None:
            portfolio.holdings[ticker] = Holding(ticker, new_quantity, new_cost_basis)
        else:
            holding.quantity = new_quantity
            holding.cost_basis = new_cost_basis
        portfolio.cash -= cost
        portfolio.trades.append(trade)

        self.logger.debug(f"[{current_date}] 매수: {ticker} {quantity}주 @ {price:,.2f} ({reasoning})")
        return trade

    def _execute_sell(
        self,
        portfolio: PortfolioState,
        ticker: str,
        price: float,
        current_date: date,
        confidence: float,
        reasoning: str,
    ) -> Optional[Trade]:
        """매도 실행. 전량 매도 시 보유 종목 제거, 일부 매도 시 평균 매수가 유지."""
        holding = portfolio.get_holding(ticker)
        if holding is None or holding.quantity <= 0:
            return None

        quantity = math.floor(holding.quantity * min(confidence, self.max_sell_fraction) + _FLOOR_EPSILON)
        if quantity <= 0:
            return None

        revenue = quantity * price
        profit = revenue - quantity * holding.cost_basis
        remaining = holding.quantity - quantity

        trade = Trade(
            date=current_date,
            action=SignalType.SELL.value,
            ticker=ticker,
            price=price,
            quantity=quantity,
            value=revenue,
            profit=profit,
            reasoning=reasoning,
        )

        # 상태 변경 (여기부터 예외 없음)
        if remaining <= 0:
            del portfolio.holdings[ticker]
        else:
            holding.quantity = remaining
        portfolio.cash += revenue
        portfolio.trades.append(trade)

        self.logger.debug(
            f"[{current_date}] 매도: {ticker} {quantity}주 @ {price:,.2f} -> {profit:+,.2f} ({reasoning})"
        )
        return trade
