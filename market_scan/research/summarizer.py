from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from market_scan.notify.slack import MAX_BLOCKS, SlackNotifier
from market_scan.prompts import WorkflowProfile
from market_scan.schemas import EnrichedCase, EnrichedCases, Language, Metric, PipelineResult, parse_contract

logger = logging.getLogger(__name__)


def kpi_label(language: Language) -> str:
    return "主要KPI" if language == "ja" else "Key KPIs"


def sources_label(language: Language) -> str:
    return "参考" if language == "ja" else "Sources"


def format_metric_line(metric: Metric) -> str:
    line = f"- {metric.metric}: {metric.value}"
    if metric.currency:
        line += f" {metric.currency}"
    if metric.timeframe:
        line += f" ({metric.timeframe})"
    if metric.note:
        line += f"｜{metric.note}"
    return line


def render_summary(cases: list[EnrichedCase], language: Language, include_sources: bool) -> str:
    """Render cases as a numbered plain-text list, one block per case."""
    label = kpi_label(language)
    blocks = []
    for idx, c in enumerate(cases, start=1):
        metrics = "\n".join(format_metric_line(m) for m in c.metrics)
        text = f"{idx}. {c.brand} / {c.campaign_name}\n{c.summary}\n{label}:\n{metrics}"
        if include_sources and c.sources:
            text += f"\n{sources_label(language)}: {', '.join(c.sources)}"
        blocks.append(text)
    return "\n\n".join(blocks)


def build_slack_blocks(cases: list[EnrichedCase], language: Language, title: str) -> list[dict[str, Any]]:
    """Header plus one section per case, capped at Slack's block limit."""
    label = kpi_label(language)
    blocks: list[dict[str, Any]] = [
        {"type": "header", "text": {"type": "plain_text", "text": title}},
    ]
    for idx, c in enumerate(cases[: MAX_BLOCKS - 1], start=1):
        kpis = " / ".join(f"{m.metric}: {m.value}" for m in c.metrics)
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f"*{idx}. {c.brand} — {c.campaign_name}*\n{c.summary}\n{label}: {kpis}",
            },
        })
    return blocks


@dataclass(frozen=True)
class Summarizer:
    """Stage 3: format enriched cases and notify Slack when configured."""

    profile: WorkflowProfile
    notifier: SlackNotifier | None = None

    async def run(self, data: EnrichedCases) -> PipelineResult:
        data = parse_contract(EnrichedCases, data)
        summary = render_summary(data.cases, data.language, data.include_sources)

        sent_to_slack = False
        if self.notifier is not None:
            blocks = build_slack_blocks(
                data.cases, data.language, self.profile.title_for(data.language)
            )
            await self.notifier.send(summary, blocks)
            sent_to_slack = True
        else:
            logger.warning("SLACK_WEBHOOK_URL is not set; skipping Slack notification.")

        return PipelineResult(summary=summary, sent_to_slack=sent_to_slack, cases=data.cases)
