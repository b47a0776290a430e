from __future__ import annotations

import pytest

from conftest import FakeProvider, make_case
from market_scan.errors import ValidationError
from market_scan.llm.structured import Capability
from market_scan.research.collector import CaseCollector
from market_scan.schemas import PipelineInput


def _input(**overrides) -> PipelineInput:
    data = {"focusKeyword": "SaaS x AI", "minExamples": 2, "metricFocus": ["ARR", "CVR"]}
    data.update(overrides)
    return PipelineInput.model_validate(data)


async def test_collects_cases_and_carries_fields_through(profile):
    provider = FakeProvider([{"cases": [make_case(1), make_case(2)]}])
    collector = CaseCollector(provider, profile, Capability.STRUCTURED)

    out = await collector.run(_input(language="en", includeSources=False))

    assert [c.brand for c in out.cases] == ["Brand 1", "Brand 2"]
    assert out.metric_focus == ["ARR", "CVR"]
    assert out.language == "en"
    assert out.include_sources is False


async def test_user_prompt_embeds_request(profile):
    provider = FakeProvider([{"cases": [make_case(1)]}])
    collector = CaseCollector(provider, profile, Capability.STRUCTURED)

    await collector.run(_input(geography="USA", language="en"))

    prompt = provider.calls[0]["user_prompt"]
    assert "Research topic: SaaS x AI" in prompt
    assert "Find at least 2 distinct case studies" in prompt
    assert "Respond in English." in prompt
    assert '"geography": "USA"' in prompt
    assert "research analyst" in provider.calls[0]["system_prompt"]


async def test_fewer_cases_than_requested_is_accepted(profile):
    provider = FakeProvider([{"cases": [make_case(1)]}])
    collector = CaseCollector(provider, profile, Capability.STRUCTURED)

    out = await collector.run(_input(minExamples=3))
    assert len(out.cases) == 1


async def test_zero_cases_fails(profile):
    provider = FakeProvider([{"cases": []}])
    collector = CaseCollector(provider, profile, Capability.STRUCTURED)

    with pytest.raises(ValidationError):
        await collector.run(_input())


async def test_more_than_six_cases_fails(profile):
    provider = FakeProvider([{"cases": [make_case(i) for i in range(7)]}])
    collector = CaseCollector(provider, profile, Capability.STRUCTURED)

    with pytest.raises(ValidationError):
        await collector.run(_input())


async def test_case_without_influencer_fails(profile):
    provider = FakeProvider([{"cases": [make_case(1, influencers=[])]}])
    collector = CaseCollector(provider, profile, Capability.STRUCTURED)

    with pytest.raises(ValidationError):
        await collector.run(_input())


async def test_empty_keyword_fails_before_model_call(profile):
    provider = FakeProvider([])
    collector = CaseCollector(provider, profile, Capability.STRUCTURED)

    with pytest.raises(ValidationError):
        await collector.run({"focusKeyword": ""})
    assert provider.calls == []


async def test_text_mode_malformed_json_fails(profile):
    provider = FakeProvider(["{not json"], model="gpt-5-mini")
    collector = CaseCollector(provider, profile, Capability.TEXT_ONLY)

    with pytest.raises(ValidationError):
        await collector.run(_input())
