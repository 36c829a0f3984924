"""
Claude 텍스트 생성 클라이언트.

[ 역할 ]
    strategies/llm_strategy.py::LLMAgentStrategy의 기본 generator.
    generate(system, user) -> str 한 가지 인터페이스만 제공하므로
    테스트에서는 같은 메서드를 가진 가짜 객체로 대체한다.

[ 설정 ]
    utils/config.py::LLMConfig (model, max_tokens, temperature, timeout)
    API 키는 환경변수 ANTHROPIC_API_KEY (anthropic SDK 기본 동작)
"""

import logging
from typing import Optional

from anthropic import Anthropic

logger = logging.getLogger("trading_backtest.llm")

DEFAULT_MODEL = "claude-sonnet-4-5"


class ClaudeClient:
    """anthropic SDK 래퍼. 호출마다 timeout(초)이 적용된다."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 512,
        temperature: float = 0.0,
        timeout: float = 30.0,
        api_key: Optional[str] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = Anthropic(api_key=api_key, timeout=timeout)
        logger.info(f"Claude 클라이언트 준비: {model} (timeout {timeout}s)")

    def generate(self, system: str, user: str) -> str:
        r = self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=system,
            messages=[{"role": "user", "content": user}],
        )
        return "".join(block.text for block in r.content if getattr(block, "type", "") == "text")
