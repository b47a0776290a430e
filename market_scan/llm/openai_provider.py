from __future__ import annotations

from typing import Any

import openai

from market_scan.errors import UpstreamError, ValidationError
from market_scan.llm.models import LLMResponse
from market_scan.llm.provider import LLMProvider


class OpenAIProvider(LLMProvider):
    # Pricing per million tokens: (input, output)
    _PRICING = {
        "gpt-4o": (2.5, 10.0),
        "gpt-4o-mini": (0.15, 0.60),
        "gpt-4.1": (2.0, 8.0),
        "gpt-4.1-mini": (0.40, 1.60),
        "gpt-5": (1.25, 10.0),
        "gpt-5-mini": (0.25, 2.0),
    }

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        client: openai.AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or openai.AsyncOpenAI(api_key=api_key)
        self._model = model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 4096,
    ) -> LLMResponse:
        return await self._create(system_prompt, user_prompt, max_tokens)

    async def complete_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        json_schema: dict[str, Any],
        max_tokens: int = 4096,
    ) -> LLMResponse:
        return await self._create(
            system_prompt,
            user_prompt,
            max_tokens,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": json_schema},
            },
        )

    async def _create(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        **extra: Any,
    ) -> LLMResponse:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                max_completion_tokens=max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                **extra,
            )
        except openai.APIError as e:
            raise UpstreamError(f"OpenAI request failed ({type(e).__name__}): {e}") from e

        message = response.choices[0].message
        if getattr(message, "refusal", None):
            raise ValidationError(f"Model refused the request: {message.refusal}")

        usage = response.usage
        return LLMResponse(
            content=message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            finish_reason=response.choices[0].finish_reason,
        )

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        input_cost, output_cost = self._PRICING.get(self._model, (2.5, 10.0))
        return (input_tokens / 1_000_000 * input_cost
                + output_tokens / 1_000_000 * output_cost)

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model
