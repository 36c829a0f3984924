"""
백테스팅 엔진 모듈.

[ 역할 ]
    과거 일봉에 전략을 적용하여 가상 매매를 시뮬레이션하고 성과를 측정.
    시스템의 핵심 실행 루프(walk-forward)를 담당.

[ 실행 흐름 ]
    run_backtest() 호출 시:
        1. 입력 검증 (기간, 초기 자금)
        2. data_provider.get_bars()로 일봉 조회 (0건이면 NoDataError)
        3. run()에서 날짜 오름차순으로 각 봉에 대해:
           → strategy.generate_signal(오늘까지의 봉, 오늘, 스냅샷) 호출
           → 시그널이 BUY/SELL이면 TradeExecutor.execute() 실행
           → 총 자산 = 현금 + 보유수량 × 오늘 종가
           → 자산 곡선에 {date, value} 추가
        4. metrics.build_result()로 성과 지표 계산

[ 의존성 ]
    - core/trading_strategy.py::TradingStrategy (전략 인터페이스)
    - backtest/executor.py::TradeExecutor (주문 실행)
    - data/portfolio.py::PortfolioState (현금/보유/거래기록/자산 곡선)
    - backtest/metrics.py::build_result() (성과 계산)

[ 호출하는 곳 ]
    - run_backtest.py (진입점)에서 생성 및 실행
    - backtest/comparison.py::ComparisonRunner에서 전략마다 새로 생성
"""

import logging
import threading
from datetime import date
from typing import Any, Optional, Sequence

from trading_backtest.backtest.executor import TradeExecutor
from trading_backtest.backtest.metrics import BacktestResult, build_result
from trading_backtest.core.data_provider import (
    BarWindow,
    PriceBar,
    PriceSeriesProvider,
    find_invalid_bar,
    is_strictly_increasing,
)
from trading_backtest.core.errors import (
    BacktestCancelledError,
    InvalidCapitalError,
    InvalidDataError,
    InvalidRangeError,
    NoDataError,
)
from trading_backtest.core.trading_strategy import (
    PortfolioSnapshot,
    SignalType,
    TradeSignal,
    TradingStrategy,
)
from trading_backtest.data.portfolio import PortfolioState


def validate_inputs(start_date: date, end_date: date, initial_capital: float) -> None:
    """실행 전 입력 검증. 실패 시 InvalidRangeError / InvalidCapitalError."""
    if start_date >= end_date:
        raise InvalidRangeError(start_date, end_date)
    if initial_capital <= 0:
        raise InvalidCapitalError(initial_capital)


class BacktestEngine:
    """백테스팅 엔진. run_backtest()로 조회 + 시뮬레이션, run()으로 시뮬레이션만 실행."""

    def __init__(
        self,
        data_provider: Optional[PriceSeriesProvider] = None,
        executor: Optional[TradeExecutor] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.data_provider = data_provider
        self.logger = logger or logging.getLogger("trading_backtest.backtest")
        self.executor = executor or TradeExecutor(logger=self.logger)

        # 백테스트 실행 후 채워지는 결과
        self.portfolio: PortfolioState | None = None     # 최종 포트폴리오 상태
        self.result: BacktestResult | None = None        # 최종 성과

    def run_backtest(
        self,
        ticker: str,
        initial_capital: float,
        start_date: date,
        end_date: date,
        strategy: TradingStrategy,
        cancel_event: Optional[threading.Event] = None,
    ) -> BacktestResult:
        """데이터 조회 후 백테스트 실행.

        Raises:
            InvalidRangeError: start_date >= end_date
            InvalidCapitalError: initial_capital <= 0
            NoDataError: 기간 내 봉이 없음
        """
        validate_inputs(start_date, end_date, initial_capital)
        if self.data_provider is None:
            raise ValueError("data_provider가 설정되지 않았습니다.")

        bars = self.data_provider.get_bars(ticker, start_date, end_date)
        if not bars:
            raise NoDataError(ticker, start_date, end_date)

        return self.run(
            ticker=ticker,
            bars=bars,
            strategy=strategy,
            initial_capital=initial_capital,
            start_date=start_date,
            end_date=end_date,
            cancel_event=cancel_event,
        )

    def run(
        self,
        ticker: str,
        bars: Sequence[PriceBar],
        strategy: TradingStrategy,
        initial_capital: float,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BacktestResult:
        """이미 조회된 봉으로 시뮬레이션 실행.

        Args:
            ticker: 종목 코드
            bars: 날짜 오름차순 일봉
            strategy: 매매 전략
            initial_capital: 초기 자금
            start_date: 결과/자산 곡선 시작일 (기본: 첫 봉 날짜)
            end_date: 결과 종료일 (기본: 마지막 봉 날짜)
            cancel_event: 설정되면 다음 봉에서 중단 (BacktestCancelledError)
        """
        if initial_capital <= 0:
            raise InvalidCapitalError(initial_capital)
        history = tuple(bars)
        if not history:
            raise NoDataError(ticker, start_date, end_date)
        if not is_strictly_increasing(history):
            raise InvalidDataError(f"{ticker} 일봉 날짜가 엄격히 증가하지 않습니다.")
        invalid = find_invalid_bar(history)
        if invalid is not None:
            raise InvalidDataError(f"{ticker} {invalid.date} 일봉이 유효하지 않습니다: {invalid}")

        start_date = start_date or history[0].date
        end_date = end_date or history[-1].date

        portfolio = PortfolioState.create(initial_capital, start_date)
        self.portfolio = portfolio
        self.result = None

        self.logger.info(
            f"백테스트 시작: [{strategy.name}] {ticker} "
            f"{history[0].date} ~ {history[-1].date} ({len(history)}일)"
        )

        for i, bar in enumerate(history):
            # 전략에 전달할 데이터: 오늘까지의 봉 (미래 데이터 누출 방지)
            window = BarWindow(history, i + 1)
            signal = self._request_signal(strategy, window, bar.date, portfolio.snapshot(ticker))

            if signal.action != SignalType.HOLD:
                self.executor.execute(
                    portfolio,
                    signal.action,
                    ticker,
                    bar.close,
                    bar.date,
                    signal.confidence,
                    signal.reasoning,
                )

            total_value = portfolio.total_value(ticker, bar.close)

            if cancel_event is not None and cancel_event.is_set():
                self.logger.info(f"백테스트 취소: [{strategy.name}] {ticker} @ {bar.date}")
                raise BacktestCancelledError(f"{strategy.name} 실행이 {bar.date}에 취소되었습니다.")

            portfolio.record_equity(bar.date, total_value)

        self.result = build_result(
            ticker=ticker,
            strategy_name=strategy.name,
            start_date=start_date,
            end_date=end_date,
            initial_capital=initial_capital,
            trades=portfolio.trades,
            equity_curve=portfolio.equity_curve,
        )

        self.logger.info(
            f"백테스트 완료: [{strategy.name}] 총 수익률 {self.result.total_return * 100:.2f}%, "
            f"거래 {len(portfolio.trades)}건"
        )
        return self.result

    def _request_signal(
        self,
        strategy: TradingStrategy,
        window: Sequence[PriceBar],
        current_date: date,
        snapshot: PortfolioSnapshot,
    ) -> TradeSignal:
        """전략 호출. 예외나 잘못된 반환값은 해당 봉만 HOLD(신뢰도 0)로 처리."""
        try:
            signal = strategy.generate_signal(window, current_date, snapshot)
        except Exception as e:
            self.logger.warning(f"[{current_date}] {strategy.name} 시그널 생성 실패, HOLD 처리: {e}")
            return TradeSignal.hold(f"시그널 생성 실패: {e}")

        if not isinstance(signal, TradeSignal):
            self.logger.warning(
                f"[{current_date}] {strategy.name} 잘못된 시그널 타입({type(signal).__name__}), HOLD 처리"
            )
            return TradeSignal.hold("잘못된 시그널")
        return signal

    def generate_report(self) -> dict[str, Any]:
        """백테스트 리포트 생성."""
        if self.result is None or self.portfolio is None:
            return {"error": "백테스트를 먼저 실행하세요."}

        return {
            "result": self.result.to_dict(),
            "portfolio_summary": self.portfolio.get_summary(),
            "trade_count": len(self.result.trades),
        }
