from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from market_scan.config import Settings
from market_scan.llm.models import LLMResponse
from market_scan.llm.provider import LLMProvider
from market_scan.prompts import load_profile

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"


class FakeProvider(LLMProvider):
    """Replays queued responses (dicts, raw strings or exceptions) and records calls."""

    def __init__(self, responses: list[Any], model: str = "gpt-4o-mini") -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []
        self._model = model

    async def complete(self, system_prompt, user_prompt, max_tokens=4096):
        self.calls.append({
            "mode": "text",
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
        })
        return self._next()

    async def complete_structured(self, system_prompt, user_prompt, schema_name, json_schema, max_tokens=4096):
        self.calls.append({
            "mode": "structured",
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "schema_name": schema_name,
            "json_schema": json_schema,
        })
        return self._next()

    def _next(self) -> LLMResponse:
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        content = item if isinstance(item, str) else json.dumps(item, ensure_ascii=False)
        return LLMResponse(
            content=content,
            input_tokens=100,
            output_tokens=200,
            model=self._model,
            provider="fake",
        )

    def estimate_cost(self, input_tokens, output_tokens):
        return 0.0

    @property
    def provider_name(self):
        return "fake"

    @property
    def model_name(self):
        return self._model


def make_case(i: int = 1, **overrides) -> dict[str, Any]:
    case = {
        "brand": f"Brand {i}",
        "campaignName": f"Campaign {i}",
        "geography": "Japan",
        "summary": f"Summary of campaign {i}",
        "influencers": [{"name": f"Creator {i}", "platform": "Instagram"}],
        "sources": [f"https://example.com/{i}"],
    }
    case.update(overrides)
    return case


def make_metric(name: str = "売上", value: str = "1億円", **overrides) -> dict[str, Any]:
    metric = {"metric": name, "value": value}
    metric.update(overrides)
    return metric


def make_enriched(i: int = 1, metrics: list[dict] | None = None, **overrides) -> dict[str, Any]:
    case = make_case(i, **overrides)
    case["metrics"] = metrics if metrics is not None else [make_metric()]
    return case


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "OPENAI_API_KEY",
        "OPENAI_MODEL",
        "SLACK_WEBHOOK_URL",
        "SLACK_USERNAME",
        "MARKET_SCAN_PROFILE",
        "LLM_MAX_TOKENS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, openai_api_key="sk-test", prompts_dir=PROMPTS_DIR)


@pytest.fixture
def profile():
    return load_profile("market_research", PROMPTS_DIR)


@pytest.fixture
def commerce_profile():
    return load_profile("commerce_influencer", PROMPTS_DIR)
