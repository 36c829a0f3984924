"""
백테스트 실행 스크립트 (시스템 진입점).

[ 사용법 ]
    # 기본 실행 (config.yaml의 전략 사용, 샘플 데이터)
    python run_backtest.py

    # 전략 지정
    python run_backtest.py --strategy momentum
    python run_backtest.py --strategy combined

    # 파라미터 오버라이드
    python run_backtest.py --strategy ma_cross -p short_period=10 -p long_period=30

    # 데이터 소스
    python run_backtest.py --source clickhouse
    python run_backtest.py --source yahoo

    # 여러 전략 비교 (동시 실행)
    python run_backtest.py --compare ma_cross rsi mean_reversion --workers 3

    # 등록된 전략 목록 확인
    python run_backtest.py --list
"""

import argparse
import logging
from pathlib import Path
from typing import Any

from trading_backtest.backtest.comparison import ComparisonRunner, comparison_table
from trading_backtest.backtest.engine import BacktestEngine
from trading_backtest.backtest.executor import TradeExecutor
from trading_backtest.backtest.metrics import BacktestResult
from trading_backtest.core.data_provider import PriceSeriesProvider
from trading_backtest.core.errors import BacktestError
from trading_backtest.strategies import create_strategy, list_strategies
from trading_backtest.utils.config import Config
from trading_backtest.utils.logger import setup_logger


def parse_param(param_str: str) -> tuple[str, object]:
    """'key=value' 문자열을 파싱하여 (key, value) 반환. 숫자면 자동 변환."""
    key, _, value = param_str.partition("=")
    key = key.strip()
    value = value.strip()

    # 숫자 자동 변환
    try:
        if "." in value:
            return key, float(value)
        return key, int(value)
    except ValueError:
        # bool 변환
        if value.lower() in ("true", "yes"):
            return key, True
        if value.lower() in ("false", "no"):
            return key, False
        return key, value


def build_provider(config: Config, source: str) -> PriceSeriesProvider:
    """데이터 소스에 맞는 제공자 생성."""
    if source == "clickhouse":
        from trading_backtest.data.clickhouse_provider import ClickHouseDataProvider

        db = config.database
        return ClickHouseDataProvider(
            host=db.host,
            port=db.port,
            database=db.database,
            user=db.user,
            password=db.password,
            use_adjusted_close=db.use_adjusted_close,
        )
    if source == "yahoo":
        from trading_backtest.data.yahoo_provider import YahooDataProvider

        return YahooDataProvider(
            max_retries=config.data_ingestion.max_retries,
            retry_delay=config.data_ingestion.retry_delay,
        )

    from trading_backtest.data.sample_provider import SampleDataProvider

    return SampleDataProvider()


def build_dependencies(config: Config, provider: PriceSeriesProvider) -> dict[str, Any]:
    """value/sentiment 전략에 넘길 재무/뉴스 데이터. 제공자가 지원할 때만 조회."""
    from trading_backtest.core.data_provider import FundamentalDataProvider

    if not isinstance(provider, FundamentalDataProvider):
        return {}
    ticker = config.strategy.ticker
    return {
        "financials": provider.get_financial_metrics(ticker),
        "news": provider.get_news(ticker, config.backtest.start, config.backtest.end),
    }


def strategy_params(config: Config, name: str, overrides: dict[str, Any]) -> dict[str, Any]:
    """config 섹션을 전략 파라미터로 병합. 우선순위: CLI > strategy.params > 섹션."""
    params: dict[str, Any] = {}
    if name == "combined":
        params["threshold"] = config.combinator.threshold
        if config.combinator.weights:
            params["weights"] = dict(config.combinator.weights)
    elif name == "llm_agent":
        params.update(
            model=config.llm.model,
            max_tokens=config.llm.max_tokens,
            temperature=config.llm.temperature,
            timeout=config.llm.timeout,
        )
    if name == config.strategy.name:
        params.update(config.strategy.params)
    params.update(overrides)
    return params


def make_executor(config: Config) -> TradeExecutor:
    return TradeExecutor(
        max_buy_fraction=config.executor.max_buy_fraction,
        max_sell_fraction=config.executor.max_sell_fraction,
    )


def print_single_result(result: BacktestResult) -> None:
    """단일 전략 결과 출력."""
    print()
    print(result.summary())

    buys = [t for t in result.trades if not t.is_sell]
    sells = [t for t in result.trades if t.is_sell]
    print(f"\n  매수: {len(buys)}회")
    print(f"  매도: {len(sells)}회")

    if sells:
        print("\n최근 매도 거래 (최대 5건):")
        for t in sells[-5:]:
            print(f"  [{t.date}] {t.ticker} {t.quantity}주 @ {t.price:,.2f} -> {t.profit:+,.2f}")


def print_comparison(results: dict[str, BacktestResult], config: Config) -> None:
    """여러 전략 비교 결과 출력."""
    period = f"{config.backtest.start_date} ~ {config.backtest.end_date}"
    table = comparison_table(results)

    print(f"\n{'=' * 60}")
    print(f"전략 비교 결과 ({config.strategy.ticker}, {period})")
    print(f"{'=' * 60}")
    print(table.T.to_string(float_format=lambda v: f"{v:,.4f}"))
    print(f"{'=' * 60}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="전략 백테스트 실행")
    parser.add_argument("--config", type=str, default="config.yaml", help="설정 파일 경로 (.yaml / .json)")
    parser.add_argument("--strategy", type=str, default=None, help="전략 이름 (config 대신 지정)")
    parser.add_argument("-p", "--param", action="append", default=[], help="파라미터 오버라이드 (예: -p short_period=10)")
    parser.add_argument("--source", type=str, default="sample", choices=["sample", "clickhouse", "yahoo"], help="데이터 소스")
    parser.add_argument("--compare", nargs="+", metavar="STRATEGY", help="여러 전략 비교 (예: --compare ma_cross rsi)")
    parser.add_argument("--workers", type=int, default=1, help="비교 모드 동시 실행 수")
    parser.add_argument("--list", action="store_true", help="등록된 전략 목록 출력")
    args = parser.parse_args(argv)

    # 전략 목록 출력
    if args.list:
        print("등록된 전략:")
        for name in list_strategies():
            print(f"  - {name}")
        return 0

    # 설정 로드
    config_path = Path(args.config)
    if config_path.exists():
        config = Config.from_file(config_path)
    else:
        print(f"설정 파일 없음: {config_path}, 기본값 사용")
        config = Config()

    # 로거
    logger = setup_logger(level=config.log_level, log_dir=config.log_dir)

    overrides = dict(parse_param(p) for p in args.param)
    ticker = config.strategy.ticker
    start, end = config.backtest.start, config.backtest.end
    capital = config.backtest.initial_capital

    try:
        provider = build_provider(config, args.source)
        dependencies = build_dependencies(config, provider)

        # ─── 비교 모드 ───────────────────────────────────────────────────────
        if args.compare:
            print(f"\n{len(args.compare)}개 전략 비교 실행...")
            if overrides:
                print(f"파라미터 오버라이드 (모든 전략): {overrides}")
            strategies = [
                create_strategy(name, params=strategy_params(config, name, overrides), **dependencies)
                for name in args.compare
            ]
            runner = ComparisonRunner(
                provider,
                executor_factory=lambda: make_executor(config),
                max_workers=args.workers,
            )
            results = runner.run(ticker, capital, start, end, strategies)
            print_comparison(results, config)
            return 0

        # ─── 단일 실행 모드 ─────────────────────────────────────────────────
        strategy_name = args.strategy or config.strategy.name
        print(f"\n전략: {strategy_name}")
        if overrides:
            print(f"파라미터 오버라이드: {overrides}")

        strategy = create_strategy(
            strategy_name,
            params=strategy_params(config, strategy_name, overrides),
            **dependencies,
        )
        engine = BacktestEngine(
            data_provider=provider,
            executor=make_executor(config),
            logger=logging.getLogger("trading_backtest.backtest"),
        )
        result = engine.run_backtest(ticker, capital, start, end, strategy)
        print_single_result(result)
        return 0

    except BacktestError as e:
        logger.error(f"백테스트 실패: {e}")
        print(f"\n오류: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
