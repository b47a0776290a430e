from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from market_scan.llm.models import LLMResponse


class LLMProvider(ABC):
    """Abstract interface for LLM providers.

    ``complete`` is a free-text call. ``complete_structured`` asks the provider
    to constrain generation to ``json_schema``; the returned content is still
    JSON text and is validated by the caller.
    """

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 4096,
    ) -> LLMResponse: ...

    @abstractmethod
    async def complete_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        json_schema: dict[str, Any],
        max_tokens: int = 4096,
    ) -> LLMResponse: ...

    @abstractmethod
    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float: ...

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    @property
    @abstractmethod
    def model_name(self) -> str: ...
