from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic.alias_generators import to_camel

from market_scan.config import Settings, load_settings
from market_scan.errors import SuspendedError
from market_scan.llm.openai_provider import OpenAIProvider
from market_scan.llm.provider import LLMProvider
from market_scan.llm.structured import resolve_capability
from market_scan.notify.slack import SlackNotifier
from market_scan.prompts import WorkflowProfile, load_profile
from market_scan.research.collector import CaseCollector
from market_scan.research.enricher import MetricEnricher
from market_scan.research.summarizer import Summarizer
from market_scan.schemas import PipelineInput, PipelineResult, parse_contract

logger = logging.getLogger(__name__)


class RunStatus(str, enum.Enum):
    COLLECTING = "collecting"
    ENRICHING = "enriching"
    SUMMARIZING = "summarizing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SUSPENDED = "suspended"


@dataclass
class RunOutcome:
    """Terminal state of one run. ``stage`` is where a failed or suspended run stopped."""
    status: RunStatus
    result: PipelineResult | None = None
    error: Exception | None = None
    stage: RunStatus | None = None


def _wire_keys(overrides: dict[str, Any]) -> dict[str, Any]:
    return {(to_camel(k) if "_" in k else k): v for k, v in overrides.items()}


class Pipeline:
    """Collect → enrich → summarize, strictly in sequence.

    Settings, provider and notifier are built once and shared by every run;
    per-run data never leaves ``execute``.
    """

    def __init__(
        self,
        settings: Settings,
        profile: WorkflowProfile | str | None = None,
        provider: LLMProvider | None = None,
        notifier: SlackNotifier | None = None,
    ) -> None:
        if not isinstance(profile, WorkflowProfile):
            profile = load_profile(profile or settings.workflow_profile, settings.prompts_dir)
        self.profile = profile
        self.provider = provider or OpenAIProvider(
            api_key=settings.openai_api_key, model=settings.openai_model
        )
        if notifier is None and settings.webhook_url:
            notifier = SlackNotifier(settings.webhook_url, username=settings.slack_username)
        self.notifier = notifier
        self.capability = resolve_capability(self.provider.model_name, profile.capability_rule)

        self.collector = CaseCollector(
            self.provider, profile, self.capability, max_tokens=settings.llm_max_tokens
        )
        self.enricher = MetricEnricher(
            self.provider, profile, self.capability, max_tokens=settings.llm_max_tokens
        )
        self.summarizer = Summarizer(profile, notifier)

    @property
    def stages(self) -> list[tuple[RunStatus, Callable[[Any], Awaitable[Any]]]]:
        return [
            (RunStatus.COLLECTING, self.collector.run),
            (RunStatus.ENRICHING, self.enricher.run),
            (RunStatus.SUMMARIZING, self.summarizer.run),
        ]

    def build_input(self, overrides: dict[str, Any] | None = None) -> PipelineInput:
        """Merge caller overrides over the profile defaults and validate."""
        merged = {**self.profile.defaults, **_wire_keys(overrides or {})}
        return parse_contract(PipelineInput, merged)

    async def execute(self, overrides: dict[str, Any] | None = None) -> RunOutcome:
        state = RunStatus.COLLECTING
        try:
            data: Any = self.build_input(overrides)
            logger.info(
                f"Run started ({self.profile.name}, {self.provider.provider_name}/"
                f"{self.provider.model_name}, {self.capability.value})"
            )
            for state, step in self.stages:
                logger.info(f"Stage {state.value} started")
                data = await step(data)
                if data is None:
                    logger.error(f"Stage {state.value} produced no output; run suspended")
                    return RunOutcome(status=RunStatus.SUSPENDED, stage=state)
        except Exception as e:
            logger.warning(f"Run failed during {state.value}: {type(e).__name__}: {e}")
            return RunOutcome(status=RunStatus.FAILED, error=e, stage=state)

        logger.info(f"Run succeeded with {len(data.cases)} cases")
        return RunOutcome(status=RunStatus.SUCCEEDED, result=data)

    async def run(self, overrides: dict[str, Any] | None = None) -> PipelineResult:
        """Run to completion, raising the triggering error if the run did not succeed."""
        outcome = await self.execute(overrides)
        if outcome.status is RunStatus.SUCCEEDED and outcome.result is not None:
            return outcome.result
        if outcome.status is RunStatus.FAILED and outcome.error is not None:
            raise outcome.error
        stage = outcome.stage.value if outcome.stage else "unknown"
        raise SuspendedError(f"Workflow suspended before completion (stopped at {stage}).")


async def run_pipeline(
    overrides: dict[str, Any] | None = None,
    *,
    settings: Settings | None = None,
    profile: WorkflowProfile | str | None = None,
    provider: LLMProvider | None = None,
    notifier: SlackNotifier | None = None,
) -> PipelineResult:
    """Entry point: one scan with ``overrides`` merged over the profile defaults."""
    settings = settings or load_settings()
    pipeline = Pipeline(settings, profile=profile, provider=provider, notifier=notifier)

    data = pipeline.build_input(overrides)
    logger.info("=" * 60)
    logger.info(f"Market Research Workflow - {pipeline.profile.name}")
    logger.info(f"Focus Keyword: {data.focus_keyword}")
    logger.info(f"Geography: {data.geography}")
    logger.info(f"Language: {data.language}")
    logger.info(f"Min Examples: {data.min_examples}")
    logger.info("=" * 60)

    return await pipeline.run(overrides)
