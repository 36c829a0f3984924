"""
기술 지표 계산 함수 (이동평균, RSI, 볼린저 밴드, 상대 변동성).

모두 오늘까지의 종가 Series만 받아 계산하며, 윈도우가 채워지지 않은 구간은 NaN.
"""

import numpy as np
import pandas as pd


def moving_average(close: pd.Series, period: int) -> pd.Series:
    """단순 이동평균."""
    return close.rolling(window=period, min_periods=period).mean()


def rsi(close: pd.Series, period: int = 14) -> float:
    """최근 period개 변화량의 합으로 계산한 RSI (0 ~ 100).

    데이터가 period 이하이면 중립값 50, 하락분이 없으면 100.
    """
    if len(close) <= period:
        return 50.0

    changes = close.diff().dropna().tail(period)
    gains = float(changes[changes > 0].sum())
    losses = float(-changes[changes < 0].sum())

    if losses == 0:
        return 100.0
    rs = gains / losses
    return 100.0 - 100.0 / (1.0 + rs)


def bollinger_bands(
    close: pd.Series,
    period: int = 20,
    deviation: float = 2.0,
) -> tuple[pd.Series, pd.Series, pd.Series]:
    """(중심선, 상단, 하단). 표준편차는 모집단 기준."""
    middle = moving_average(close, period)
    std = close.rolling(window=period, min_periods=period).std(ddof=0)
    return middle, middle + deviation * std, middle - deviation * std


def relative_volatility(close: pd.Series) -> float:
    """표준편차(모집단) / 평균. 평균이 0이면 0."""
    mean = float(close.mean())
    if mean == 0:
        return 0.0
    return float(np.std(close.to_numpy(dtype=float))) / mean
