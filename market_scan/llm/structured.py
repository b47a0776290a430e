"""Schema-conforming generation on top of an LLMProvider.

Models that accept a JSON-schema response format are called in structured
mode. Search models (and, depending on the profile, the gpt-5 family) do not,
so they are asked for JSON in the prompt and the text is parsed afterwards.
Both paths validate the result locally against the same pydantic schema.
"""

from __future__ import annotations

import enum
import json
import logging
import time
from typing import TypeVar

from pydantic import BaseModel

from market_scan.errors import ValidationError
from market_scan.llm.models import LLMResponse
from market_scan.llm.provider import LLMProvider
from market_scan.schemas import parse_contract

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

JSON_ONLY_SYSTEM_SUFFIX = (
    "\n\nIMPORTANT: You MUST respond with valid JSON only. "
    "Do not include any explanatory text, only valid JSON."
)
JSON_ONLY_USER_SUFFIX = "\n\nRespond with valid JSON only, no additional text."


class Capability(str, enum.Enum):
    STRUCTURED = "structured"
    TEXT_ONLY = "text_only"


class CapabilityRule(str, enum.Enum):
    """Which model names are treated as lacking structured output."""
    SEARCH_OR_GPT5 = "search_or_gpt5"
    SEARCH_ONLY = "search_only"


def resolve_capability(
    model_name: str, rule: CapabilityRule = CapabilityRule.SEARCH_OR_GPT5
) -> Capability:
    if "search" in model_name:
        return Capability.TEXT_ONLY
    if rule is CapabilityRule.SEARCH_OR_GPT5 and model_name.startswith("gpt-5"):
        return Capability.TEXT_ONLY
    return Capability.STRUCTURED


def strip_code_fence(text: str) -> str:
    """Remove a ```json fence wrapping the whole response, if the model added one."""
    text = text.strip()
    if not text.startswith("```"):
        return text
    first_newline = text.find("\n")
    if first_newline == -1:
        return text
    body = text[first_newline + 1:].rstrip()
    if body.endswith("```"):
        body = body[:-3]
    return body.strip()


def _log_usage(provider: LLMProvider, response: LLMResponse, duration_ms: int, mode: Capability) -> None:
    cost = provider.estimate_cost(response.input_tokens, response.output_tokens)
    logger.info(
        f"LLM call {response.provider}/{response.model} ({mode.value}): "
        f"{response.input_tokens} in / {response.output_tokens} out "
        f"(${cost:.4f}, {duration_ms}ms)"
    )


async def generate_structured(
    provider: LLMProvider,
    schema: type[T],
    system_prompt: str,
    user_prompt: str,
    *,
    capability: Capability | None = None,
    max_tokens: int = 4096,
) -> T:
    """Ask the model for data conforming to ``schema``.

    Raises ValidationError when the output cannot be parsed or validated, and
    lets UpstreamError from the provider propagate. No retries.
    """
    capability = capability or resolve_capability(provider.model_name)

    start = time.monotonic()
    if capability is Capability.TEXT_ONLY:
        response = await provider.complete(
            system_prompt=system_prompt + JSON_ONLY_SYSTEM_SUFFIX,
            user_prompt=user_prompt + JSON_ONLY_USER_SUFFIX,
            max_tokens=max_tokens,
        )
    else:
        response = await provider.complete_structured(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            schema_name=schema.__name__,
            json_schema=schema.model_json_schema(by_alias=True),
            max_tokens=max_tokens,
        )
    _log_usage(provider, response, int((time.monotonic() - start) * 1000), capability)

    if response.finish_reason == "length":
        logger.warning(
            f"Model output hit the token limit ({max_tokens}); JSON may be truncated"
        )

    text = response.content
    payload = strip_code_fence(text) if capability is Capability.TEXT_ONLY else text
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.error(f"Model response that failed to parse:\n{text}")
        raise ValidationError(
            f"Failed to parse {capability.value} model response as valid JSON: {e}",
            raw_text=text,
        ) from e

    return parse_contract(schema, parsed, raw_text=text)
