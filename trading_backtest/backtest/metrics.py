"""
백테스트 성과 지표 계산 모듈.

[ 역할 ]
    백테스트 결과(거래기록 + 자산 곡선)를 받아 성과 지표를 계산.
    calculate_metrics() / build_result() 함수가 핵심.

[ 계산하는 지표 ]
    자산 곡선 E[0..n] (E[0] = 초기 자금) 기준:
    - 총 수익률      E[n]/E[0] - 1
    - 연환산 수익률  (1 + 총 수익률)^(252/n) - 1,  n = 0 이면 0
    - MDD           max((고점 - E[i]) / 고점)
    - 샤프 비율      mean(r) / std(r) * sqrt(252)  (무위험 수익률 0, std = 0 이면 0)
    - 승률, 평균 수익/손실, 수익 팩터, 연속 승/패 (매도 거래만 분석)

[ 0 나눗셈 대체값 ]
    - 승률:      매도 손익이 없으면 0
    - 수익 팩터: 손실 없음 → 총이익 그대로, 이익/손실 모두 없음 → 1

[ 호출하는 곳 ]
    - backtest/engine.py::BacktestEngine.run() 완료 시 build_result() 호출
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Sequence

import numpy as np

from trading_backtest.data.portfolio import EquityPoint, Trade

TRADING_DAYS_PER_YEAR = 252


@dataclass
class TradeStatistics:
    """거래 기반 지표. BacktestResult.metrics에 담긴다."""
    total_trades: int = 0             # 체결된 거래 수 (매수 + 매도)
    winning_trades: int = 0           # 수익 매도 수
    losing_trades: int = 0            # 손실 매도 수
    win_rate: float = 0.0             # 0 ~ 1
    average_win: float = 0.0          # 수익 매도 평균 이익
    average_loss: float = 0.0         # 손실 매도 평균 손실 (음수)
    profit_factor: float = 1.0        # 총이익 / 총손실
    max_consecutive_wins: int = 0
    max_consecutive_losses: int = 0
    volatility: float = 0.0           # 연환산 변동성
    total_trading_days: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalTrades": self.total_trades,
            "winningTrades": self.winning_trades,
            "losingTrades": self.losing_trades,
            "winRate": self.win_rate,
            "averageWin": self.average_win,
            "averageLoss": self.average_loss,
            "profitFactor": self.profit_factor,
            "maxConsecutiveWins": self.max_consecutive_wins,
            "maxConsecutiveLosses": self.max_consecutive_losses,
            "volatility": self.volatility,
            "totalTradingDays": self.total_trading_days,
        }


@dataclass
class BacktestResult:
    """백테스트 결과. 실행마다 한 번 생성되며 읽기 전용으로 취급."""
    ticker: str
    strategy_name: str
    start_date: date
    end_date: date
    initial_capital: float
    final_value: float
    total_return: float = 0.0         # 0.1 = 10%
    annualized_return: float = 0.0
    max_drawdown: float = 0.0         # 0 ~ 1
    sharpe_ratio: float = 0.0
    trades: list[Trade] = field(default_factory=list)
    equity_curve: list[EquityPoint] = field(default_factory=list)
    metrics: TradeStatistics = field(default_factory=TradeStatistics)

    def to_dict(self) -> dict[str, Any]:
        """API/UI 응답 형태 (camelCase)."""
        return {
            "ticker": self.ticker,
            "strategy": self.strategy_name,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "initialCapital": self.initial_capital,
            "finalValue": self.final_value,
            "totalReturn": self.total_return,
            "annualizedReturn": self.annualized_return,
            "maxDrawdown": self.max_drawdown,
            "sharpeRatio": self.sharpe_ratio,
            "trades": [t.to_dict() for t in self.trades],
            "equityCurve": [p.to_dict() for p in self.equity_curve],
            "metrics": self.metrics.to_dict(),
        }

    def summary(self) -> str:
        """성과 요약 문자열."""
        m = self.metrics
        lines = [
            "=" * 50,
            f"백테스트 성과 리포트 [{self.strategy_name}] {self.ticker}",
            f"기간: {self.start_date} ~ {self.end_date}",
            "=" * 50,
            f"초기 자금:       {self.initial_capital:>14,.2f}",
            f"최종 자산:       {self.final_value:>14,.2f}",
            f"총 수익률:       {self.total_return * 100:>13.2f}%",
            f"연환산 수익률:    {self.annualized_return * 100:>13.2f}%",
            f"샤프 비율:       {self.sharpe_ratio:>14.2f}",
            f"최대 낙폭(MDD):  {self.max_drawdown * 100:>13.2f}%",
            f"연환산 변동성:    {m.volatility * 100:>13.2f}%",
            "-" * 50,
            f"총 거래 횟수:    {m.total_trades:>14d}",
            f"승률:            {m.win_rate * 100:>13.2f}%",
            f"수익 거래:       {m.winning_trades:>14d}",
            f"손실 거래:       {m.losing_trades:>14d}",
            f"평균 수익:       {m.average_win:>14,.2f}",
            f"평균 손실:       {m.average_loss:>14,.2f}",
            f"수익 팩터:       {m.profit_factor:>14.2f}",
            "-" * 50,
            f"최대 연속 수익:  {m.max_consecutive_wins:>14d}",
            f"최대 연속 손실:  {m.max_consecutive_losses:>14d}",
            "=" * 50,
        ]
        return "\n".join(lines)


def daily_returns(values: Sequence[float]) -> np.ndarray:
    """r_i = E[i] / E[i-1] - 1."""
    arr = np.asarray(values, dtype=float)
    if len(arr) < 2:
        return np.array([], dtype=float)
    return arr[1:] / arr[:-1] - 1


def total_return(values: Sequence[float]) -> float:
    if not values or values[0] == 0:
        return 0.0
    return values[-1] / values[0] - 1


def annualized_return(values: Sequence[float]) -> float:
    """252 거래일 기준 연환산. n = 곡선 길이 - 1."""
    n = len(values) - 1
    if n <= 0:
        return 0.0
    growth = 1 + total_return(values)
    if growth <= 0:
        return -1.0
    return growth ** (TRADING_DAYS_PER_YEAR / n) - 1


def max_drawdown(values: Sequence[float]) -> float:
    """고점 대비 최대 하락폭 (0 ~ 1). 하락이 없으면 0."""
    if not values:
        return 0.0
    arr = np.asarray(values, dtype=float)
    peaks = np.maximum.accumulate(arr)
    with np.errstate(divide="ignore", invalid="ignore"):
        drawdowns = np.where(peaks > 0, (peaks - arr) / peaks, 0.0)
    return float(max(drawdowns.max(), 0.0))


def sharpe_ratio(values: Sequence[float]) -> float:
    """무위험 수익률 0 가정. 표준편차(모집단)가 0이면 0."""
    returns = daily_returns(values)
    if len(returns) == 0:
        return 0.0
    std = float(np.std(returns))
    if std == 0 or not np.isfinite(std):
        return 0.0
    return float(np.mean(returns) / std * np.sqrt(TRADING_DAYS_PER_YEAR))


def annualized_volatility(values: Sequence[float]) -> float:
    returns = daily_returns(values)
    if len(returns) == 0:
        return 0.0
    return float(np.std(returns) * np.sqrt(TRADING_DAYS_PER_YEAR))


def calculate_trade_statistics(trades: Sequence[Trade]) -> TradeStatistics:
    """거래 기반 지표 계산. 수익 실현은 매도 시에만 발생하므로 매도 거래만 분석."""
    stats = TradeStatistics(total_trades=len(trades))

    profits = [t.profit or 0.0 for t in trades if t.is_sell]
    winners = [p for p in profits if p > 0]
    losers = [p for p in profits if p < 0]

    stats.winning_trades = len(winners)
    stats.losing_trades = len(losers)

    decided = len(winners) + len(losers)
    stats.win_rate = len(winners) / decided if decided else 0.0

    if winners:
        stats.average_win = sum(winners) / len(winners)
    if losers:
        stats.average_loss = sum(losers) / len(losers)

    gross_profit = sum(winners)
    gross_loss = abs(sum(losers))
    if gross_loss > 0:
        stats.profit_factor = gross_profit / gross_loss
    elif winners:
        stats.profit_factor = gross_profit
    else:
        stats.profit_factor = 1.0

    # 연속 승패 (손익 0인 매도는 양쪽 연속을 모두 끊는다)
    consecutive_wins = 0
    consecutive_losses = 0
    for p in profits:
        if p > 0:
            consecutive_wins += 1
            consecutive_losses = 0
        elif p < 0:
            consecutive_losses += 1
            consecutive_wins = 0
        else:
            consecutive_wins = 0
            consecutive_losses = 0
        stats.max_consecutive_wins = max(stats.max_consecutive_wins, consecutive_wins)
        stats.max_consecutive_losses = max(stats.max_consecutive_losses, consecutive_losses)

    return stats


def calculate_metrics(
    trades: Sequence[Trade],
    equity_values: Sequence[float],
) -> dict[str, Any]:
    """곡선 기반 + 거래 기반 지표를 한 번에 계산.

    Args:
        trades: PortfolioState.trades (매수+매도 전체)
        equity_values: 자산 곡선 값 리스트 (첫 값 = 초기 자금)
    """
    stats = calculate_trade_statistics(trades)
    stats.volatility = annualized_volatility(equity_values)
    stats.total_trading_days = max(len(equity_values) - 1, 0)

    return {
        "total_return": total_return(equity_values),
        "annualized_return": annualized_return(equity_values),
        "max_drawdown": max_drawdown(equity_values),
        "sharpe_ratio": sharpe_ratio(equity_values),
        "metrics": stats,
    }


def build_result(
    ticker: str,
    strategy_name: str,
    start_date: date,
    end_date: date,
    initial_capital: float,
    trades: Sequence[Trade],
    equity_curve: Sequence[EquityPoint],
) -> BacktestResult:
    """완료된 실행의 거래기록/자산 곡선으로 BacktestResult 생성."""
    values = [p.value for p in equity_curve]
    computed = calculate_metrics(trades, values)

    return BacktestResult(
        ticker=ticker,
        strategy_name=strategy_name,
        start_date=start_date,
        end_date=end_date,
        initial_capital=initial_capital,
        final_value=values[-1] if values else initial_capital,
        trades=list(trades),
        equity_curve=list(equity_curve),
        **computed,
    )

