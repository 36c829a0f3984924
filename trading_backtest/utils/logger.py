"""
로깅 모듈.

[ 역할 ]
    파일 + 콘솔 로거를 설정. 체결 내역, 실행 시작/종료, 시그널 실패 등을 기록.

[ 로그 파일 위치 ]
    {log_dir}/{name}_{YYYYMMDD}.log (예: logs/trading_backtest_20240601.log)

[ 로그 레벨 사용 ]
    DEBUG   - 개별 매수/매도 체결 (backtest/executor.py)
    INFO    - 백테스트 시작/완료 (backtest/engine.py)
    WARNING - 전략 시그널 생성 실패 → HOLD 처리

[ 호출하는 곳 ]
    - run_backtest.py에서 setup_logger() 호출
    - 각 모듈은 logging.getLogger("trading_backtest.<하위>") 사용 (상위 로거로 전파)
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


def setup_logger(
    name: str = "trading_backtest",
    level: str = "INFO",
    log_dir: Optional[str] = "logs",
    console: bool = True,
) -> logging.Logger:
    """로거 설정. 파일 핸들러(일별) + 콘솔 핸들러 등록.

    log_dir이 None이면 파일 핸들러를 만들지 않는다.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # 파일 핸들러
    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime("%Y%m%d")
        file_handler = logging.FileHandler(
            log_path / f"{name}_{today}.log",
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # 콘솔 핸들러
    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
