"""
뉴스 감성 전략 구현.

[ 전략 흐름 ]
    오늘 이전(오늘 포함) 최근 뉴스 window건의 평균 감성 점수로 판단.
    ├── 평균 > buy_threshold  → BUY
    └── 평균 < sell_threshold → SELL
    뉴스가 없으면 평균 0 (HOLD).

[ 의존성 ]
    news: core/data_provider.py::NewsItem 시퀀스 (주입)
"""

from bisect import bisect_right
from datetime import date
from typing import Any, Optional, Sequence

from trading_backtest.core.data_provider import NewsItem, PriceBar
from trading_backtest.core.trading_strategy import (
    PortfolioSnapshot,
    TradeSignal,
    TradingStrategy,
)
from trading_backtest.strategies import register


@register("sentiment")
class SentimentStrategy(TradingStrategy):
    """최근 뉴스 평균 감성 기반 매매."""

    DEFAULT_PARAMS = {
        "window": 5,
        "buy_threshold": 0.6,
        "sell_threshold": -0.3,
        "confidence": 1.0,
    }

    def __init__(
        self,
        params: dict[str, Any] | None = None,
        news: Optional[Sequence[NewsItem]] = None,
    ):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="sentiment", params=merged)
        self.news = sorted(news or [], key=lambda n: n.date)
        self._news_dates = [n.date for n in self.news]

    def recent_score(self, current_date: date) -> tuple[float, int]:
        """(평균 감성 점수, 사용한 뉴스 수). 미래 날짜의 뉴스는 제외."""
        end = bisect_right(self._news_dates, current_date)
        recent = self.news[max(0, end - int(self.params["window"])):end]
        if not recent:
            return 0.0, 0
        return sum(n.sentiment for n in recent) / len(recent), len(recent)

    def generate_signal(
        self,
        bars: Sequence[PriceBar],
        current_date: date,
        portfolio: Optional[PortfolioSnapshot] = None,
    ) -> TradeSignal:
        score, count = self.recent_score(current_date)

        if score > float(self.params["buy_threshold"]):
            return self._buy(f"긍정 감성 ({score:+.2f}, 뉴스 {count}건)")
        if score < float(self.params["sell_threshold"]):
            return self._sell(f"부정 감성 ({score:+.2f}, 뉴스 {count}건)")
        return TradeSignal.hold(f"중립 감성 ({score:+.2f}, 뉴스 {count}건)")
