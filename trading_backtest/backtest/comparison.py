"""
다중 전략 비교 실행 모듈.

[ 역할 ]
    같은 종목/기간/초기 자금으로 여러 전략을 각각 백테스트하여 결과를 비교.
    일봉은 한 번만 조회하여 불변 튜플로 모든 실행에 공유하고,
    실행마다 새 BacktestEngine(새 포트폴리오)을 사용하므로 실행 간 공유 상태가 없다.

[ 병렬 실행 ]
    max_workers > 1이면 ThreadPoolExecutor로 동시에 실행.
    결과 dict는 실행 완료 순서와 무관하게 요청 순서를 유지.

[ 호출하는 곳 ]
    - run_backtest.py --compare
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Callable, Optional, Sequence

import pandas as pd

from trading_backtest.backtest.engine import BacktestEngine, validate_inputs
from trading_backtest.backtest.executor import TradeExecutor
from trading_backtest.backtest.metrics import BacktestResult
from trading_backtest.core.data_provider import PriceBar, PriceSeriesProvider
from trading_backtest.core.errors import NoDataError
from trading_backtest.core.trading_strategy import TradingStrategy

logger = logging.getLogger("trading_backtest.backtest.comparison")


class ComparisonRunner:
    """전략별 백테스트를 동일 데이터로 실행."""

    def __init__(
        self,
        data_provider: PriceSeriesProvider,
        executor_factory: Optional[Callable[[], TradeExecutor]] = None,
        max_workers: int = 1,
    ):
        """
        Args:
            data_provider: 일봉 제공자 (한 번만 호출됨)
            executor_factory: 실행마다 새 TradeExecutor를 만드는 함수 (기본: 기본값 TradeExecutor)
            max_workers: 동시 실행 수 (1이면 순차)
        """
        self.data_provider = data_provider
        self.executor_factory = executor_factory or TradeExecutor
        self.max_workers = max(1, int(max_workers))

    def run(
        self,
        ticker: str,
        initial_capital: float,
        start_date: date,
        end_date: date,
        strategies: Sequence[TradingStrategy],
        cancel_event: Optional[threading.Event] = None,
    ) -> dict[str, BacktestResult]:
        """전략마다 백테스트 실행.

        Returns:
            {전략 이름: BacktestResult} (요청 순서)

        Raises:
            InvalidRangeError / InvalidCapitalError / NoDataError: 실행 전 검증
            ValueError: 전략 이름 중복
        """
        validate_inputs(start_date, end_date, initial_capital)

        names = [s.name for s in strategies]
        if len(set(names)) != len(names):
            raise ValueError(f"전략 이름이 중복됩니다: {names}")

        bars: tuple[PriceBar, ...] = tuple(self.data_provider.get_bars(ticker, start_date, end_date))
        if not bars:
            raise NoDataError(ticker, start_date, end_date)

        logger.info(f"전략 비교 시작: {ticker} {len(strategies)}개 전략, {len(bars)}일, workers={self.max_workers}")

        def run_one(strategy: TradingStrategy) -> BacktestResult:
            engine = BacktestEngine(
                executor=self.executor_factory(),
                logger=logging.getLogger(f"trading_backtest.backtest.{strategy.name}"),
            )
            return engine.run(
                ticker=ticker,
                bars=bars,
                strategy=strategy,
                initial_capital=initial_capital,
                start_date=start_date,
                end_date=end_date,
                cancel_event=cancel_event,
            )

        if self.max_workers == 1 or len(strategies) <= 1:
            results = [run_one(s) for s in strategies]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(run_one, strategies))

        return {result.strategy_name: result for result in results}


def comparison_table(results: dict[str, BacktestResult]) -> pd.DataFrame:
    """비교 결과를 DataFrame으로 정리 (행: 전략, 열: 주요 지표)."""
    rows = []
    for name, r in results.items():
        m = r.metrics
        rows.append({
            "strategy": name,
            "final_value": r.final_value,
            "total_return": r.total_return,
            "annualized_return": r.annualized_return,
            "sharpe_ratio": r.sharpe_ratio,
            "max_drawdown": r.max_drawdown,
            "volatility": m.volatility,
            "total_trades": m.total_trades,
            "win_rate": m.win_rate,
            "profit_factor": m.profit_factor,
            "max_consecutive_wins": m.max_consecutive_wins,
            "max_consecutive_losses": m.max_consecutive_losses,
        })
    return pd.DataFrame(rows).set_index("strategy") if rows else pd.DataFrame()
