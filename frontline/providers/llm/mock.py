"""Scripted provider behind ``mock/*`` model strings."""

import asyncio
from collections import deque
from typing import Any

from frontline.providers.llm.base import LLMMessage, TokenUsage


class MockLLMProvider:
    """Returns canned responses without any network call.

    Scripted errors are raised first, one per call, before responses are
    served. ``delay_seconds`` makes every call slow, for timeout tests.
    """

    def __init__(
        self,
        default_response: str = "Mock response",
        responses: list[str] | None = None,
        errors: list[Exception] | None = None,
        delay_seconds: float = 0.0,
    ) -> None:
        self._default_response = default_response
        self._responses: deque[str] = deque(responses or [])
        self._errors: deque[Exception] = deque(errors or [])
        self._delay_seconds = delay_seconds
        self.calls: list[dict[str, Any]] = []

    def queue_response(self, content: str) -> None:
        self._responses.append(content)

    def queue_error(self, error: Exception) -> None:
        self._errors.append(error)

    async def complete(
        self,
        model: str,
        messages: list[LLMMessage],
        *,
        max_tokens: int,
        temperature: float,
    ) -> tuple[str, TokenUsage]:
        self.calls.append({
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)
        if self._errors:
            raise self._errors.popleft()

        content = self._responses.popleft() if self._responses else self._default_response
        usage = TokenUsage(
            prompt_tokens=sum(len(m.content) // 4 for m in messages),
            completion_tokens=len(content) // 4,
        )
        return content, usage
