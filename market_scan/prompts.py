from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from market_scan.errors import ConfigError
from market_scan.llm.structured import CapabilityRule
from market_scan.schemas import Language

# Sentinel the enricher writes when a KPI cannot be sourced.
UNAVAILABLE_VALUE = "情報なし"

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class PromptPair(BaseModel):
    system_prompt: str
    user_prompt: str


class WorkflowProfile(BaseModel):
    """One pipeline variant: defaults, prompt templates and Slack header titles."""
    name: str
    description: str = ""
    capability_rule: CapabilityRule = CapabilityRule.SEARCH_OR_GPT5
    header_title: dict[Language, str]
    defaults: dict[str, Any] = Field(default_factory=dict)
    collect: PromptPair
    enrich: PromptPair

    def title_for(self, language: Language) -> str:
        return self.header_title.get(language) or self.header_title.get("en", self.name)


def language_name(language: Language) -> str:
    return "Japanese" if language == "ja" else "English"


def load_profile(name: str, prompts_dir: Path) -> WorkflowProfile:
    """Load a workflow profile from ``prompts_dir/<name>.yaml``."""
    path = prompts_dir / f"{name}.yaml"
    if not path.exists():
        raise ConfigError(f"Workflow profile not found: {path}")
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    data.setdefault("name", name)
    return WorkflowProfile.model_validate(data)


def list_profiles(prompts_dir: Path) -> list[str]:
    return sorted(p.stem for p in prompts_dir.glob("*.yaml"))


def render_prompt(template: str, values: dict[str, Any]) -> str:
    """Fill ``{name}`` placeholders in one pass.

    Unknown placeholders are left as written, so JSON examples and
    substituted values containing braces are never rewritten.
    """

    def _sub(match: re.Match) -> str:
        key = match.group(1)
        if key not in values:
            return match.group(0)
        return str(values[key])

    return _PLACEHOLDER.sub(_sub, template)
