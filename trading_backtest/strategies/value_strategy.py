"""
가치 투자(PER/PBR) 전략 구현.

[ 전략 흐름 ]
    ├── 전일 대비 하락 + PER < pe_buy + PBR < pb_buy → BUY
    └── PER > pe_sell 또는 PBR > pb_sell → SELL

[ 의존성 ]
    financials: core/data_provider.py::FinancialMetrics
                (run_backtest.py에서 FundamentalDataProvider로 조회 후 주입)
    없으면 항상 HOLD.
"""

from datetime import date
from typing import Any, Optional, Sequence

from trading_backtest.core.data_provider import FinancialMetrics, PriceBar
from trading_backtest.core.trading_strategy import (
    PortfolioSnapshot,
    TradeSignal,
    TradingStrategy,
)
from trading_backtest.strategies import register


@register("value")
class ValueStrategy(TradingStrategy):
    """저평가 매수 / 고평가 매도."""

    DEFAULT_PARAMS = {
        "pe_buy": 15.0,
        "pb_buy": 1.5,
        "pe_sell": 25.0,
        "pb_sell": 3.0,
        "confidence": 1.0,
    }

    def __init__(
        self,
        params: dict[str, Any] | None = None,
        financials: Optional[FinancialMetrics] = None,
    ):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="value", params=merged)
        self.financials = financials

    def generate_signal(
        self,
        bars: Sequence[PriceBar],
        current_date: date,
        portfolio: Optional[PortfolioSnapshot] = None,
    ) -> TradeSignal:
        if self.financials is None:
            return TradeSignal.hold("재무 데이터 없음")
        if len(bars) < 2:
            return TradeSignal.hold("데이터 부족 (최소 2일 필요)")

        pe = self.financials.pe_ratio
        pb = self.financials.pb_ratio
        price_down = bars[-1].close < bars[-2].close

        if price_down and pe < float(self.params["pe_buy"]) and pb < float(self.params["pb_buy"]):
            return self._buy(f"하락 중 저평가 (PER {pe:.1f}, PBR {pb:.2f})")
        if pe > float(self.params["pe_sell"]) or pb > float(self.params["pb_sell"]):
            return self._sell(f"고평가 (PER {pe:.1f}, PBR {pb:.2f})")
        return TradeSignal.hold(f"적정 가치 (PER {pe:.1f}, PBR {pb:.2f})")
