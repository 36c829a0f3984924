"""
설정 관리 모듈.

[ 역할 ]
    config.yaml (또는 .json) 파일을 파싱하여 Config 객체로 변환.
    전략/백테스트/합성/주문/LLM/DB/수집/로깅 설정을 통합 관리.

[ 설정 파일 구조 (config.yaml) ]
    strategy:         → StrategyConfig (전략 이름, 종목, 파라미터)
    backtest:         → BacktestConfig (기간, 초기 자금)
    combinator:       → CombinatorConfig (combined 전략의 threshold, weights)
    executor:         → ExecutorConfig (1회 매수/매도 최대 비율)
    llm:              → LLMConfig (llm_agent 전략의 모델 설정)
    database:         → DatabaseConfig (ClickHouse 연결)
    data_ingestion:   → DataIngestionConfig (Yahoo 재시도)
    log_level:        → "INFO" / "DEBUG"
    log_dir:          → 로그 디렉토리 경로
    알 수 없는 키는 무시한다.

[ 호출하는 곳 ]
    - run_backtest.py에서 Config.from_yaml()로 로드 후 각 컴포넌트에 명시적으로 전달
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

import yaml


@dataclass
class StrategyConfig:
    """전략 설정. config.yaml의 strategy 섹션에 대응.

    전략별 파라미터는 params dict에 자유롭게 넣는다.
    각 전략 클래스의 DEFAULT_PARAMS가 기본값 역할을 하므로,
    여기서는 오버라이드할 값만 지정하면 된다.
    """
    name: str = "ma_cross"
    ticker: str = "AAPL"
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class BacktestConfig:
    """백테스트 설정. config.yaml의 backtest 섹션에 대응."""
    start_date: str = "2023-01-01"
    end_date: str = "2023-12-31"
    initial_capital: float = 100_000

    @property
    def start(self) -> date:
        return date.fromisoformat(str(self.start_date))

    @property
    def end(self) -> date:
        return date.fromisoformat(str(self.end_date))


@dataclass
class CombinatorConfig:
    """combined 전략 설정."""
    threshold: float = 0.3
    weights: dict[str, float] = field(default_factory=dict)   # 비어 있으면 전략 기본값


@dataclass
class ExecutorConfig:
    """주문 실행 설정."""
    max_buy_fraction: float = 0.9
    max_sell_fraction: float = 1.0


@dataclass
class LLMConfig:
    """llm_agent 전략 설정."""
    model: str = "claude-sonnet-4-5"
    max_tokens: int = 512
    temperature: float = 0.0
    timeout: float = 30.0


@dataclass
class DatabaseConfig:
    """데이터베이스 설정. config.yaml의 database 섹션에 대응."""
    host: str = "localhost"
    port: int = 8123
    database: str = "default"
    user: str = "default"
    password: str = ""
    use_adjusted_close: bool = True


@dataclass
class DataIngestionConfig:
    """데이터 수집 설정. config.yaml의 data_ingestion 섹션에 대응."""
    max_retries: int = 3
    retry_delay: int = 5


def _section(cls, data: dict[str, Any] | None):
    """dataclass 필드에 해당하는 키만 골라 생성."""
    data = data or {}
    return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class Config:
    """전체 설정. from_yaml() 또는 from_json()으로 파일에서 로드."""
    strategy: StrategyConfig = field(default_factory=StrategyConfig)
    backtest: BacktestConfig = field(default_factory=BacktestConfig)
    combinator: CombinatorConfig = field(default_factory=CombinatorConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    data_ingestion: DataIngestionConfig = field(default_factory=DataIngestionConfig)
    log_level: str = "INFO"
    log_dir: str = "logs"

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """YAML 파일에서 설정 로드."""
        with open(Path(path), "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str | Path) -> "Config":
        """JSON 파일에서 설정 로드."""
        with open(Path(path), "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """확장자로 YAML/JSON 판단."""
        if Path(path).suffix.lower() == ".json":
            return cls.from_json(path)
        return cls.from_yaml(path)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """딕셔너리에서 Config 생성."""
        strategy_data = dict(data.get("strategy") or {})

        # params가 명시적으로 있으면 그것을 사용, 없으면 name/ticker 외 나머지를 params로
        if "params" in strategy_data:
            strategy_params = dict(strategy_data["params"] or {})
        else:
            strategy_params = {
                k: v for k, v in strategy_data.items()
                if k not in ("name", "ticker")
            }
        strategy = StrategyConfig(
            name=strategy_data.get("name", StrategyConfig.name),
            ticker=strategy_data.get("ticker", StrategyConfig.ticker),
            params=strategy_params,
        )

        backtest_data = dict(data.get("backtest") or {})
        for key in ("start_date", "end_date"):
            # YAML은 따옴표 없는 날짜를 date로 읽는다
            if isinstance(backtest_data.get(key), date):
                backtest_data[key] = backtest_data[key].isoformat()

        return cls(
            strategy=strategy,
            backtest=_section(BacktestConfig, backtest_data),
            combinator=_section(CombinatorConfig, data.get("combinator")),
            executor=_section(ExecutorConfig, data.get("executor")),
            llm=_section(LLMConfig, data.get("llm")),
            database=_section(DatabaseConfig, data.get("database")),
            data_ingestion=_section(DataIngestionConfig, data.get("data_ingestion")),
            log_level=data.get("log_level", "INFO"),
            log_dir=data.get("log_dir", "logs"),
        )

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환."""
        return asdict(self)

    def save_yaml(self, path: str | Path) -> None:
        """YAML 파일로 저장."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, allow_unicode=True, default_flow_style=False)
