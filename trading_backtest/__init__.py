"""
=============================================================================
전략 백테스트 엔진 (Trading Backtest)
=============================================================================

[ 시스템 전체 구조 ]

    run_backtest.py (진입점)
         │
         ├── utils/config.py        ← config.yaml 설정 로드
         ├── utils/logger.py        ← 로깅
         │
         ├── data/                  ← 일봉/재무/뉴스 제공자
         │     ├── sample_provider.py      (결정적 샘플)
         │     ├── frame_provider.py       (DataFrame)
         │     ├── clickhouse_provider.py  (ClickHouse)
         │     └── yahoo_provider.py       (yfinance)
         │
         ├── strategies/            ← 매매 전략 (시그널 생성, 이름으로 등록)
         │     ├── ma_cross / momentum / rsi / mean_reversion
         │     ├── value / sentiment / risk
         │     ├── llm_agent        (llm/claude_client.py)
         │     └── combined         (가중 합성)
         │
         └── backtest/
               ├── engine.py        ← 봉 단위 walk-forward 루프
               ├── executor.py      ← 시그널 → 주문 체결
               ├── metrics.py       ← 성과 지표 계산
               └── comparison.py    ← 여러 전략 동일 데이터 비교


[ 핵심 추상 클래스 (core/) ]

    core/data_provider.py    → PriceSeriesProvider / FundamentalDataProvider
    core/trading_strategy.py → TradingStrategy (generate_signal)
    core/errors.py           → BacktestError 계열 예외


[ 데이터 흐름 ]

    1. config.yaml에서 설정 로드
    2. PriceSeriesProvider가 기간 내 일봉 제공
    3. 매 봉마다 TradingStrategy가 오늘까지의 일봉 + 포지션으로 시그널 생성
    4. TradeExecutor가 신뢰도 비례 수량으로 PortfolioState에 체결
    5. 총 자산을 자산 곡선에 기록
    6. metrics.py가 자산 곡선 + 거래 기록으로 BacktestResult 생성
"""

__version__ = "0.1.0"
