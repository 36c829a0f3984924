"""
결정적 샘플 데이터 제공자.

[ 역할 ]
    외부 데이터 없이 백테스트를 실행할 수 있도록 일봉/재무 지표/뉴스를 생성.
    같은 ticker면 항상 같은 데이터가 생성된다 (시드 = ticker 문자 코드 합).

[ 생성 규칙 ]
    일봉: 영업일(주말 제외)마다 정규분포 수익률로 종가 생성,
          low <= open, close <= high 유지
    재무: ticker 시드 기반 고정값
    뉴스: 대략 3영업일마다 1건, 감성 -1 ~ 1

[ 호출하는 곳 ]
    - run_backtest.py --source sample (기본값)
    - 테스트
"""

from datetime import date

import numpy as np
import pandas as pd

from trading_backtest.core.data_provider import (
    FinancialMetrics,
    FundamentalDataProvider,
    NewsItem,
    PriceBar,
    PriceSeriesProvider,
)

_HEADLINES = {
    "positive": ["{t} 분기 실적 예상치 상회", "{t} 신제품 호평", "{t} 목표주가 상향"],
    "neutral": ["{t} 정기 주주총회 개최", "{t} 업계 동향 보고서 발표"],
    "negative": ["{t} 실적 부진 우려", "{t} 규제 리스크 부각", "{t} 목표주가 하향"],
}


def ticker_seed(ticker: str) -> int:
    """ticker 문자 코드 합. 프로세스마다 달라지는 hash() 대신 사용."""
    return sum(ord(c) for c in ticker)


def generate_sample_data(
    ticker: str,
    start_date: date,
    end_date: date,
    initial_price: float = 100.0,
    volatility: float = 0.02,
    drift: float = 0.0002,
) -> pd.DataFrame:
    """백테스트용 샘플 주가 데이터 생성 (columns: date, open, high, low, close, volume)."""
    rng = np.random.default_rng(ticker_seed(ticker))

    dates = pd.bdate_range(start=start_date, end=end_date)
    n = len(dates)
    if n == 0:
        return pd.DataFrame(columns=["date", "open", "high", "low", "close", "volume"])

    returns = rng.normal(drift, volatility, n)
    closes = initial_price * np.cumprod(1 + returns)
    opens = closes * (1 + rng.normal(0, 0.005, n))
    highs = np.maximum(opens, closes) * (1 + np.abs(rng.normal(0, 0.01, n)))
    lows = np.minimum(opens, closes) * (1 - np.abs(rng.normal(0, 0.01, n)))
    volumes = rng.lognormal(12, 1, n).astype(int)

    return pd.DataFrame({
        "date": [d.date() for d in dates],
        "open": np.round(opens, 2),
        "high": np.round(highs, 2),
        "low": np.round(lows, 2),
        "close": np.round(closes, 2),
        "volume": volumes,
    })


class SampleDataProvider(PriceSeriesProvider, FundamentalDataProvider):
    """샘플 일봉 + 재무 + 뉴스 제공자."""

    def __init__(self, initial_price: float = 100.0, volatility: float = 0.02):
        self.initial_price = initial_price
        self.volatility = volatility

    def get_bars(self, ticker: str, start_date: date, end_date: date) -> list[PriceBar]:
        df = generate_sample_data(
            ticker, start_date, end_date,
            initial_price=self.initial_price,
            volatility=self.volatility,
        )
        # 반올림 후에도 low <= open, close <= high 유지
        return [
            PriceBar(
                date=row.date,
                open=float(row.open),
                high=float(max(row.high, row.open, row.close)),
                low=float(min(row.low, row.open, row.close)),
                close=float(row.close),
                volume=int(row.volume),
            )
            for row in df.itertuples(index=False)
        ]

    def get_financial_metrics(self, ticker: str) -> FinancialMetrics:
        rng = np.random.default_rng(ticker_seed(ticker) + 1)
        return FinancialMetrics(
            pe_ratio=round(float(rng.uniform(8, 35)), 2),
            pb_ratio=round(float(rng.uniform(0.5, 5)), 2),
            dividend_yield=round(float(rng.uniform(0, 0.05)), 4),
            eps_growth=round(float(rng.uniform(-0.1, 0.3)), 4),
            profit_margin=round(float(rng.uniform(0.02, 0.3)), 4),
            current_ratio=round(float(rng.uniform(0.8, 3)), 2),
            debt_to_equity=round(float(rng.uniform(0.1, 2)), 2),
            market_cap=round(float(rng.uniform(1e9, 5e11)), 0),
            revenue_growth=round(float(rng.uniform(-0.05, 0.25)), 4),
        )

    def get_news(self, ticker: str, start_date: date, end_date: date) -> list[NewsItem]:
        rng = np.random.default_rng(ticker_seed(ticker) + 2)
        news = []
        for d in pd.bdate_range(start=start_date, end=end_date):
            if rng.random() >= 1 / 3:
                continue
            sentiment = round(float(rng.uniform(-1, 1)), 3)
            tone = "positive" if sentiment > 0.3 else "negative" if sentiment < -0.3 else "neutral"
            templates = _HEADLINES[tone]
            headline = templates[int(rng.integers(len(templates)))].format(t=ticker)
            news.append(NewsItem(date=d.date(), headline=headline, sentiment=sentiment, source="sample"))
        return news
