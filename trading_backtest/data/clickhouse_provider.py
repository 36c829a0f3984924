"""
ClickHouse 기반 데이터 제공자.

[ 역할 ]
    ClickHouse stock_ohlcv 테이블에 저장된 일봉을 조회하여 백테스트에 제공.

[ 테이블 ]
    stock_ohlcv(ticker, date, open, high, low, close, adjusted_close, volume)

[ 호출하는 곳 ]
    - run_backtest.py (--source clickhouse 옵션 사용 시)
"""

from datetime import date
from typing import Optional

import clickhouse_connect
from clickhouse_connect.driver import Client

from trading_backtest.core.data_provider import PriceBar, PriceSeriesProvider


def get_client(
    host: str = "localhost",
    port: int = 8123,
    database: str = "default",
    user: str = "default",
    password: str = "",
) -> Client:
    """ClickHouse 클라이언트 연결 생성."""
    return clickhouse_connect.get_client(
        host=host,
        port=port,
        database=database,
        username=user,
        password=password,
    )


class ClickHouseDataProvider(PriceSeriesProvider):
    """ClickHouse 기반 데이터 제공자.

    사용 예:
        provider = ClickHouseDataProvider("localhost", 8123, "default", password="password")
        bars = provider.get_bars("005930.KS", date(2024, 1, 1), date(2024, 12, 31))
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8123,
        database: str = "default",
        user: str = "default",
        password: str = "",
        use_adjusted_close: bool = True,
        client: Optional[Client] = None,
    ):
        """
        Args:
            use_adjusted_close: True이면 adjusted_close를 close로 사용
            client: 이미 생성된 클라이언트 (주면 연결을 새로 만들지 않음)
        """
        self.client = client or get_client(host, port, database, user, password)
        self.use_adjusted_close = use_adjusted_close

    def get_bars(self, ticker: str, start_date: date, end_date: date) -> list[PriceBar]:
        # 수정주가 사용 시 시가/고가/저가도 같은 비율로 조정
        close_column = "adjusted_close as close, close as raw_close" if self.use_adjusted_close else "close"

        query = f"""
            SELECT
                date,
                open,
                high,
                low,
                volume,
                {close_column}
            FROM stock_ohlcv
            WHERE ticker = %(ticker)s
              AND date >= %(start_date)s
              AND date <= %(end_date)s
            ORDER BY date ASC
        """

        result = self.client.query(
            query,
            parameters={
                "ticker": ticker,
                "start_date": start_date,
                "end_date": end_date,
            },
        )

        bars = []
        for row in result.result_rows:
            bar_date, open_, high, low, volume, close = row[:6]
            factor = 1.0
            if self.use_adjusted_close and row[6]:
                factor = float(close) / float(row[6])
            bars.append(PriceBar(
                date=bar_date,
                open=float(open_) * factor,
                high=float(high) * factor,
                low=float(low) * factor,
                close=float(close),
                volume=int(volume),
            ))
        return bars

    def get_tickers(self) -> list[str]:
        """조회 가능한 종목 코드 목록 (알파벳 순)."""
        result = self.client.query("SELECT DISTINCT ticker FROM stock_ohlcv ORDER BY ticker")
        return [row[0] for row in result.result_rows]

    def get_date_range(self, ticker: str) -> Optional[tuple[date, date]]:
        """특정 티커의 (최소 날짜, 최대 날짜). 데이터가 없으면 None."""
        query = """
            SELECT MIN(date) as min_date, MAX(date) as max_date
            FROM stock_ohlcv
            WHERE ticker = %(ticker)s
        """
        result = self.client.query(query, parameters={"ticker": ticker})
        if not result.result_rows:
            return None
        min_date, max_date = result.result_rows[0]
        if min_date is None or max_date is None:
            return None
        return min_date, max_date
