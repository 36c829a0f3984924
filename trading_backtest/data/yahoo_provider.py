"""
Yahoo Finance 데이터 제공자.

[ 역할 ]
    yfinance로 일봉을 내려받아 PriceBar로 변환. 실패 시 재시도.

[ 설정 ]
    utils/config.py::DataIngestionConfig (max_retries, retry_delay)
"""

import logging
import time
from datetime import date, timedelta

import pandas as pd
import yfinance as yf

from trading_backtest.core.data_provider import PriceBar, PriceSeriesProvider, frame_to_bars

logger = logging.getLogger("trading_backtest.data.yahoo")


def validate_data(df: pd.DataFrame, ticker: str) -> bool:
    """수집한 데이터 검증. 필수 컬럼이 없으면 False, 이상값은 경고만."""
    if df is None or df.empty:
        logger.warning(f"빈 데이터: {ticker}")
        return False

    required_columns = ["date", "open", "high", "low", "close", "volume"]
    missing_columns = set(required_columns) - set(df.columns)
    if missing_columns:
        logger.error(f"필수 컬럼 누락 {ticker}: {missing_columns}")
        return False

    for col in ["open", "high", "low", "close"]:
        invalid_count = int((df[col] <= 0).sum())
        if invalid_count:
            logger.warning(f"{ticker} {col} 값 0 이하: {invalid_count}건")

    invalid_count = int((df["high"] < df["low"]).sum())
    if invalid_count:
        logger.warning(f"{ticker} high < low: {invalid_count}건")

    return True


class YahooDataProvider(PriceSeriesProvider):
    """yfinance 기반 데이터 제공자."""

    def __init__(
        self,
        max_retries: int = 3,
        retry_delay: float = 5,
        use_adjusted_close: bool = False,
    ):
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.use_adjusted_close = use_adjusted_close

    def fetch_frame(self, ticker: str, start_date: date, end_date: date) -> pd.DataFrame:
        """yfinance에서 OHLCV DataFrame 조회 (columns: date, open, high, low, close, volume).

        재시도 후에도 실패하면 마지막 예외를 다시 던진다.
        """
        for attempt in range(self.max_retries):
            try:
                logger.info(f"{ticker} 조회 {start_date} ~ {end_date} (시도 {attempt + 1}/{self.max_retries})")
                df = yf.Ticker(ticker).history(
                    start=start_date,
                    end=end_date + timedelta(days=1),  # end_date 포함
                    auto_adjust=False,
                    actions=False,
                )
                break
            except Exception as e:
                logger.error(f"{ticker} 조회 실패 (시도 {attempt + 1}/{self.max_retries}): {e}")
                if attempt == self.max_retries - 1:
                    raise
                time.sleep(self.retry_delay)

        if df.empty:
            logger.warning(f"데이터 없음: {ticker}")
            return df

        df = df.reset_index().rename(columns={
            "Date": "date",
            "Open": "open",
            "High": "high",
            "Low": "low",
            "Close": "close",
            "Adj Close": "adj_close",
            "Volume": "volume",
        })
        if self.use_adjusted_close and "adj_close" in df.columns:
            factor = df["adj_close"] / df["close"]
            for column in ("open", "high", "low"):
                df[column] = df[column] * factor
            df["close"] = df["adj_close"]

        if pd.api.types.is_datetime64_any_dtype(df["date"]):
            df["date"] = df["date"].dt.tz_localize(None) if df["date"].dt.tz is not None else df["date"]
            df["date"] = df["date"].dt.date

        return df[["date", "open", "high", "low", "close", "volume"]]

    def get_bars(self, ticker: str, start_date: date, end_date: date) -> list[PriceBar]:
        df = self.fetch_frame(ticker, start_date, end_date)
        if not validate_data(df, ticker):
            return []
        df = df.dropna(subset=["open", "high", "low", "close"]).fillna({"volume": 0})
        return frame_to_bars(df)
