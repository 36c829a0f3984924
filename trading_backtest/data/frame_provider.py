"""
DataFrame 기반 데이터 제공자.

[ 역할 ]
    미리 로드된 OHLCV DataFrame에서 기간 내 일봉을 제공.
    CSV 등에서 읽은 데이터로 백테스트하거나 단위 테스트에서 사용.
"""

from datetime import date

import pandas as pd

from trading_backtest.core.data_provider import PriceBar, PriceSeriesProvider, frame_to_bars


class DataFrameProvider(PriceSeriesProvider):
    """사용법:
        provider = DataFrameProvider()
        provider.load_data("AAPL", df)   # columns: date, open, high, low, close, volume
        bars = provider.get_bars("AAPL", date(2024, 1, 1), date(2024, 6, 30))
    """

    def __init__(self, data: dict[str, pd.DataFrame] | None = None):
        self._data: dict[str, pd.DataFrame] = {}  # ticker → OHLCV DataFrame
        for ticker, df in (data or {}).items():
            self.load_data(ticker, df)

    def load_data(self, ticker: str, df: pd.DataFrame) -> None:
        """데이터 로드. date 컬럼은 datetime.date로 정규화."""
        df = df.copy()
        df["date"] = pd.to_datetime(df["date"]).dt.date
        self._data[ticker] = df.sort_values("date").reset_index(drop=True)

    def get_tickers(self) -> list[str]:
        return sorted(self._data.keys())

    def get_bars(self, ticker: str, start_date: date, end_date: date) -> list[PriceBar]:
        if ticker not in self._data:
            return []
        df = self._data[ticker]
        mask = (df["date"] >= start_date) & (df["date"] <= end_date)
        return frame_to_bars(df[mask])
