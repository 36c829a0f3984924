"""
백테스트 예외 정의.

[ 분류 ]
    (a) 입력 검증 오류  - InvalidRangeError, InvalidCapitalError, UnknownStrategyError
                          시뮬레이션 시작 전에 즉시 발생, 재시도하지 않음
    (b) 데이터 가용성   - NoDataError, InvalidDataError
                          실행 중단, 부분 결과 없음
    (c) 시그널 생성 오류 - 예외로 전파하지 않음. 해당 봉만 HOLD(신뢰도 0)로 처리
                          (backtest/engine.py::BacktestEngine._request_signal)
    (d) 산술 예외       - 0 나눗셈 등은 metrics.py의 대체값으로 처리, 예외 없음

[ 호출하는 곳 ]
    - backtest/engine.py::BacktestEngine.run_backtest() 입력 검증
    - strategies/__init__.py::create_strategy() 알 수 없는 전략
"""

from datetime import date
from typing import Optional


class BacktestError(Exception):
    """백테스트 관련 예외의 최상위 클래스."""


class InvalidRangeError(BacktestError, ValueError):
    """시작일이 종료일보다 같거나 늦은 경우."""

    def __init__(self, start_date: date, end_date: date):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(f"잘못된 기간: start_date({start_date}) >= end_date({end_date})")


class InvalidCapitalError(BacktestError, ValueError):
    """초기 자금이 0 이하인 경우."""

    def __init__(self, initial_capital: float):
        self.initial_capital = initial_capital
        super().__init__(f"초기 자금은 0보다 커야 합니다: {initial_capital}")


class UnknownStrategyError(BacktestError, ValueError):
    """등록되지 않은 전략 이름."""

    def __init__(self, name: str, available: Optional[list[str]] = None):
        self.name = name
        self.available = available or []
        super().__init__(
            f"알 수 없는 전략: '{name}'. 사용 가능: {', '.join(self.available)}"
        )


class NoDataError(BacktestError):
    """데이터 제공자가 기간 내 봉을 하나도 반환하지 않은 경우."""

    def __init__(self, ticker: str, start_date: date, end_date: date):
        self.ticker = ticker
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(f"데이터 없음: {ticker} ({start_date} ~ {end_date})")


class InvalidDataError(BacktestError):
    """봉 데이터의 날짜 순서가 올바르지 않은 경우."""


class BacktestCancelledError(BacktestError):
    """취소 토큰에 의해 실행이 중단된 경우. 부분 결과는 반환하지 않는다."""
