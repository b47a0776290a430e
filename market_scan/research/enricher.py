from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from market_scan.errors import ValidationError
from market_scan.llm.provider import LLMProvider
from market_scan.llm.structured import Capability, generate_structured
from market_scan.prompts import UNAVAILABLE_VALUE, WorkflowProfile, language_name, render_prompt
from market_scan.schemas import (
    Case,
    CollectedCases,
    EnrichedCase,
    EnrichedCaseList,
    EnrichedCases,
    parse_contract,
)

logger = logging.getLogger(__name__)


def attach_metrics(cases: list[Case], enriched: list[EnrichedCase]) -> list[EnrichedCase]:
    """Copy the model's metrics onto the original cases.

    The model echoes the cases back; only its ``metrics`` are kept so every
    other field stays exactly as collected. Entries are matched by
    (brand, campaignName) first; unmatched cases then take the
    unmatched entries in order.
    """
    if len(enriched) != len(cases):
        raise ValidationError(
            f"Enrichment returned {len(enriched)} cases for {len(cases)} collected"
        )

    by_key: dict[tuple[str, str], int] = {}
    for i, e in enumerate(enriched):
        by_key.setdefault((e.brand, e.campaign_name), i)

    # first pass: exact (brand, campaignName) matches
    assigned: list[int | None] = [None] * len(cases)
    used: set[int] = set()
    for i, case in enumerate(cases):
        idx = by_key.get((case.brand, case.campaign_name))
        if idx is not None and idx not in used:
            assigned[i] = idx
            used.add(idx)

    # second pass: leftover cases take the leftover entries in order
    leftovers = iter(i for i in range(len(enriched)) if i not in used)
    result: list[EnrichedCase] = []
    for i, case in enumerate(cases):
        idx = assigned[i]
        if idx is None:
            idx = next(leftovers)
        result.append(EnrichedCase.from_case(case, enriched[idx].metrics))
    return result


@dataclass(frozen=True)
class MetricEnricher:
    """Stage 2: attach numeric KPIs to each collected case."""

    provider: LLMProvider
    profile: WorkflowProfile
    capability: Capability
    max_tokens: int = 4096

    def build_prompts(self, data: CollectedCases) -> tuple[str, str]:
        cases_json = json.dumps(
            [c.to_wire() for c in data.cases], ensure_ascii=False
        )
        values = {
            "cases_json": cases_json,
            "metric_focus": ", ".join(data.metric_focus),
            "metric_example": " or ".join(data.metric_focus),
            "language_name": language_name(data.language),
            "unavailable": UNAVAILABLE_VALUE,
        }
        return (
            render_prompt(self.profile.enrich.system_prompt, values),
            render_prompt(self.profile.enrich.user_prompt, values),
        )

    async def run(self, data: CollectedCases) -> EnrichedCases:
        data = parse_contract(CollectedCases, data)
        system_prompt, user_prompt = self.build_prompts(data)

        logger.info(
            f"Enriching {len(data.cases)} cases with KPIs: {', '.join(data.metric_focus)}"
        )
        structured = await generate_structured(
            self.provider,
            EnrichedCaseList,
            system_prompt,
            user_prompt,
            capability=self.capability,
            max_tokens=self.max_tokens,
        )
        cases = attach_metrics(data.cases, structured.cases)

        return parse_contract(EnrichedCases, {
            "cases": cases,
            "metric_focus": data.metric_focus,
            "language": data.language,
            "include_sources": data.include_sources,
        })
