"""Data contracts for every value that crosses a stage boundary.

Wire names are camelCase (``campaignName``, ``focusKeyword``) because that is
what the model is prompted with and what the CLI accepts; attributes are
snake_case.
"""

from __future__ import annotations

from typing import Any, Literal, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from market_scan.errors import ValidationError

Language = Literal["ja", "en"]

MAX_CASES = 6
DEFAULT_METRIC_FOCUS = ["売上", "GMV", "CVR"]

T = TypeVar("T", bound=BaseModel)


class Contract(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Influencer(Contract):
    """A creator who promoted the campaign."""
    name: str
    platform: str | None = None      # Instagram, YouTube, TikTok...
    handle: str | None = None        # @username
    followers: str | None = None     # "1.2M" etc, kept as text
    positioning: str | None = None   # beauty, fashion...


class Case(Contract):
    """One market example collected in the first stage."""
    brand: str
    campaign_name: str
    geography: str
    timeframe: str | None = None
    summary: str
    product_focus: str | None = None
    offer_type: str | None = None
    influencers: list[Influencer] = Field(min_length=1)
    sources: list[str] | None = Field(default=None, min_length=1)


class Metric(Contract):
    metric: str
    value: str  # may be the "unavailable" sentinel, so never numeric
    currency: str | None = None
    timeframe: str | None = None
    note: str | None = None


class EnrichedCase(Case):
    metrics: list[Metric] = Field(min_length=1)

    @classmethod
    def from_case(cls, case: Case, metrics: list[Metric]) -> EnrichedCase:
        return cls.model_validate({**dict(case), "metrics": metrics})

    def base_case(self) -> Case:
        return Case.model_validate({k: v for k, v in dict(self).items() if k != "metrics"})


class CaseList(Contract):
    """Model response for case collection."""
    cases: list[Case] = Field(max_length=MAX_CASES)


class EnrichedCaseList(Contract):
    """Model response for metric enrichment (no upper bound)."""
    cases: list[EnrichedCase]


class PipelineInput(Contract):
    focus_keyword: str = Field(min_length=1)
    geography: str = "Japan"
    min_examples: int = Field(default=3, ge=1, le=MAX_CASES)
    language: Language = "ja"
    metric_focus: list[str] = Field(
        default_factory=lambda: list(DEFAULT_METRIC_FOCUS), min_length=1
    )
    include_sources: bool = True


class _CarryThrough(Contract):
    metric_focus: list[str] = Field(min_length=1)
    language: Language
    include_sources: bool


class CollectedCases(_CarryThrough):
    """Output of the collector, input of the enricher."""
    cases: list[Case] = Field(min_length=1, max_length=MAX_CASES)


class EnrichedCases(_CarryThrough):
    """Output of the enricher, input of the summarizer."""
    cases: list[EnrichedCase] = Field(min_length=1)


class PipelineResult(Contract):
    summary: str
    sent_to_slack: bool
    cases: list[EnrichedCase] = Field(min_length=1)


def parse_contract(schema: type[T], data: Any, *, raw_text: str | None = None) -> T:
    """Validate ``data`` against ``schema``, raising our ValidationError."""
    try:
        if isinstance(data, schema):
            return schema.model_validate(data.model_dump())
        return schema.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(
            f"{schema.__name__} validation failed: {e}", raw_text=raw_text
        ) from e
