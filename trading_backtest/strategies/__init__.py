"""
전략 모듈.

[ 전략 등록 방식 ]
    @register("전략이름") 데코레이터를 붙이면 STRATEGY_REGISTRY에 자동 등록.
    run_backtest.py / ComparisonRunner에서 이름만으로 전략을 생성할 수 있다.

[ 새 전략 추가 방법 ]
    1. 이 디렉토리에 새 .py 파일 생성
    2. TradingStrategy를 상속받는 클래스 작성
    3. @register("이름") 데코레이터 추가
    4. config.yaml에서 strategy.name을 해당 이름으로 설정
    → 끝. run_backtest.py 수정 불필요.

[ 의존성 주입 ]
    create_strategy(name, params, **dependencies)의 dependencies 중
    전략 생성자가 받는 인자만 전달된다 (예: financials, news, generator).
"""

import inspect
from importlib import import_module
from pathlib import Path
from typing import Any

from trading_backtest.core.errors import UnknownStrategyError
from trading_backtest.core.trading_strategy import TradingStrategy

# 전략 이름 → 전략 클래스 매핑
STRATEGY_REGISTRY: dict[str, type[TradingStrategy]] = {}


def register(name: str):
    """전략 클래스를 STRATEGY_REGISTRY에 등록하는 데코레이터."""
    def decorator(cls: type[TradingStrategy]):
        STRATEGY_REGISTRY[name] = cls
        return cls
    return decorator


def create_strategy(
    name: str,
    params: dict[str, Any] | None = None,
    **dependencies: Any,
) -> TradingStrategy:
    """이름으로 전략 인스턴스를 생성.

    Args:
        name: 등록된 전략 이름 (예: "ma_cross", "combined")
        params: 전략 파라미터 (각 전략의 DEFAULT_PARAMS를 오버라이드)
        **dependencies: 외부 데이터/클라이언트 (생성자가 받는 것만 전달)

    Raises:
        UnknownStrategyError: 등록되지 않은 전략 이름
    """
    if name not in STRATEGY_REGISTRY:
        raise UnknownStrategyError(name, list_strategies())

    cls = STRATEGY_REGISTRY[name]
    accepted = inspect.signature(cls.__init__).parameters
    kwargs = {k: v for k, v in dependencies.items() if k in accepted}
    return cls(params=params, **kwargs)


def list_strategies() -> list[str]:
    """등록된 전략 이름 목록 반환."""
    return sorted(STRATEGY_REGISTRY.keys())


def _auto_discover():
    """이 디렉토리의 모든 전략 모듈을 자동 임포트하여 @register가 실행되게 한다."""
    strategies_dir = Path(__file__).parent
    for py_file in sorted(strategies_dir.glob("*.py")):
        if py_file.name.startswith("_"):
            continue
        import_module(f"trading_backtest.strategies.{py_file.stem}")


# 모듈 로드 시 자동 탐색
_auto_discover()
