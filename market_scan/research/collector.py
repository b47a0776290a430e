from __future__ import annotations

import logging
from dataclasses import dataclass

from market_scan.llm.provider import LLMProvider
from market_scan.llm.structured import Capability, generate_structured
from market_scan.prompts import WorkflowProfile, language_name, render_prompt
from market_scan.schemas import CaseList, CollectedCases, PipelineInput, parse_contract

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaseCollector:
    """Stage 1: ask the model for case studies matching the keyword."""

    provider: LLMProvider
    profile: WorkflowProfile
    capability: Capability
    max_tokens: int = 4096

    def build_prompts(self, data: PipelineInput) -> tuple[str, str]:
        values = {
            "focus_keyword": data.focus_keyword,
            "geography": data.geography,
            "min_examples": data.min_examples,
            "language_name": language_name(data.language),
        }
        return (
            render_prompt(self.profile.collect.system_prompt, values),
            render_prompt(self.profile.collect.user_prompt, values),
        )

    async def run(self, data: PipelineInput) -> CollectedCases:
        data = parse_contract(PipelineInput, data)
        system_prompt, user_prompt = self.build_prompts(data)

        logger.info(
            f"Collecting cases for '{data.focus_keyword}' in {data.geography} "
            f"(min {data.min_examples})"
        )
        structured = await generate_structured(
            self.provider,
            CaseList,
            system_prompt,
            user_prompt,
            capability=self.capability,
            max_tokens=self.max_tokens,
        )
        if len(structured.cases) < data.min_examples:
            logger.warning(
                f"Model returned {len(structured.cases)} cases, fewer than the "
                f"{data.min_examples} requested"
            )

        return parse_contract(CollectedCases, {
            "cases": structured.cases,
            "metric_focus": data.metric_focus,
            "language": data.language,
            "include_sources": data.include_sources,
        })
