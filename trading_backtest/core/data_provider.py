"""
주가/재무/뉴스 데이터 제공 추상 클래스 정의.

[ 역할 ]
    일봉(PriceBar) 시퀀스와 재무 지표, 뉴스 감성 데이터를 제공하는 인터페이스.
    데이터 소스(샘플 생성기, DataFrame, ClickHouse, Yahoo)에 독립적으로
    전략/백테스트에 데이터 공급.

[ 구현체 ]
    - data/sample_provider.py::SampleDataProvider       (결정적 샘플 데이터)
    - data/frame_provider.py::DataFrameProvider         (DataFrame 기반, 테스트용)
    - data/clickhouse_provider.py::ClickHouseDataProvider
    - data/yahoo_provider.py::YahooDataProvider

[ 호출하는 곳 ]
    - backtest/engine.py::BacktestEngine.run_backtest()에서 get_bars() 호출
    - backtest/comparison.py::ComparisonRunner에서 한 번만 조회 후 공유
    - 전략들은 bars_to_frame()으로 DataFrame 변환 후 지표 계산
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

import pandas as pd

BAR_COLUMNS = ["date", "open", "high", "low", "close", "volume"]


@dataclass(frozen=True)
class PriceBar:
    """단일 일봉 데이터. 불변 객체로 시뮬레이터는 읽기만 한다."""
    date: date
    open: float      # 시가
    high: float      # 고가
    low: float       # 저가
    close: float     # 종가
    volume: int      # 거래량

    @property
    def is_valid(self) -> bool:
        """가격이 유한한 양수이고 low <= open, close <= high 인지."""
        prices = (self.open, self.high, self.low, self.close)
        if not all(math.isfinite(p) and p > 0 for p in prices):
            return False
        return self.low <= min(self.open, self.close) and max(self.open, self.close) <= self.high


@dataclass(frozen=True)
class FinancialMetrics:
    """종목 재무 지표. value 전략이 사용."""
    pe_ratio: float
    pb_ratio: float
    dividend_yield: float = 0.0
    eps_growth: float = 0.0
    profit_margin: float = 0.0
    current_ratio: float = 0.0
    debt_to_equity: float = 0.0
    market_cap: float = 0.0
    revenue_growth: float = 0.0


@dataclass(frozen=True)
class NewsItem:
    """뉴스 한 건. sentiment는 -1.0(부정) ~ 1.0(긍정)."""
    date: date
    headline: str
    sentiment: float
    source: str = ""


class PriceSeriesProvider(ABC):
    """일봉 데이터 제공 추상 클래스."""

    @abstractmethod
    def get_bars(
        self,
        ticker: str,
        start_date: date,
        end_date: date,
    ) -> list[PriceBar]:
        """기간 내 일봉 조회 (시작일/종료일 포함, 주말 제외, 날짜 오름차순).

        Args:
            ticker: 종목 코드
            start_date: 시작일
            end_date: 종료일
        """
        ...


class FundamentalDataProvider(ABC):
    """재무 지표 / 뉴스 감성 데이터 제공 추상 클래스."""

    @abstractmethod
    def get_financial_metrics(self, ticker: str) -> FinancialMetrics:
        """종목 재무 지표 조회."""
        ...

    @abstractmethod
    def get_news(
        self,
        ticker: str,
        start_date: date,
        end_date: date,
    ) -> list[NewsItem]:
        """기간 내 뉴스 조회 (날짜 오름차순)."""
        ...


def bars_to_frame(bars: Sequence[PriceBar]) -> pd.DataFrame:
    """PriceBar 시퀀스를 DataFrame으로 변환 (columns: date, open, high, low, close, volume)."""
    if not bars:
        return pd.DataFrame(columns=BAR_COLUMNS)
    return pd.DataFrame(
        [(b.date, b.open, b.high, b.low, b.close, b.volume) for b in bars],
        columns=BAR_COLUMNS,
    )


def frame_to_bars(df: pd.DataFrame) -> list[PriceBar]:
    """OHLCV DataFrame을 PriceBar 리스트로 변환. date 기준 오름차순 정렬."""
    if df is None or df.empty:
        return []

    df = df.copy()
    df["date"] = pd.to_datetime(df["date"]).dt.date
    df = df.sort_values("date").drop_duplicates("date", keep="last")
    return [
        PriceBar(
            date=row.date,
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=int(row.volume),
        )
        for row in df.itertuples(index=False)
    ]


def find_invalid_bar(bars: Iterable[PriceBar]) -> Optional[PriceBar]:
    """OHLC 조건을 어기거나 NaN 가격을 가진 첫 봉. 모두 정상이면 None."""
    return next((bar for bar in bars if not bar.is_valid), None)


def is_strictly_increasing(bars: Iterable[PriceBar]) -> bool:
    """봉 날짜가 엄격히 증가하는지 확인."""
    previous = None
    for bar in bars:
        if previous is not None and bar.date <= previous:
            return False
        previous = bar.date
    return True


class BarWindow(Sequence[PriceBar]):
    """전체 봉 튜플 중 앞에서부터 end개만 노출하는 읽기 전용 뷰.

    엔진이 매 봉마다 BarWindow(bars, i + 1)을 전략에 넘기므로
    전략은 오늘 이후의 봉에 접근할 수 없다 (미래 데이터 누출 방지).
    """

    __slots__ = ("_bars", "_end")

    def __init__(self, bars: tuple[PriceBar, ...], end: int):
        if not 0 <= end <= len(bars):
            raise ValueError(f"end({end})가 범위를 벗어났습니다 (0 ~ {len(bars)})")
        self._bars = bars
        self._end = end

    def __len__(self) -> int:
        return self._end

    def __getitem__(self, index):
        if isinstance(index, slice):
            return tuple(self._bars[i] for i in range(*index.indices(self._end)))
        if index < 0:
            index += self._end
        if not 0 <= index < self._end:
            raise IndexError("BarWindow index out of range")
        return self._bars[index]

    def __repr__(self) -> str:
        last = self._bars[self._end - 1].date if self._end else None
        return f"BarWindow(len={self._end}, last={last})"
