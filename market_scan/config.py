from __future__ import annotations

from pathlib import Path

import pydantic
import yaml
from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from market_scan.errors import ConfigError

_ROOT = Path(__file__).resolve().parent.parent
_CONFIG_PATH = _ROOT / "config.yaml"


def _load_yaml_config() -> dict:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml = _load_yaml_config()


class Settings(BaseSettings):
    """Process-wide configuration, read once at startup and frozen afterwards."""

    model_config = SettingsConfigDict(
        env_file=_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    # LLM
    openai_api_key: str = Field(min_length=1)
    openai_model: str = _yaml.get("llm", {}).get("openai", {}).get("model", "gpt-4o-mini")
    llm_max_tokens: int = Field(
        default=_yaml.get("llm", {}).get("max_tokens", 4096), gt=0
    )

    # Slack
    slack_webhook_url: HttpUrl | None = None
    slack_username: str = _yaml.get("slack", {}).get("username", "market-scan")

    # Workflow
    workflow_profile: str = Field(
        default=_yaml.get("workflow", {}).get("profile", "market_research"),
        validation_alias="MARKET_SCAN_PROFILE",
    )
    prompts_dir: Path = Field(default=_ROOT / "prompts")

    @field_validator("openai_api_key", "openai_model", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("slack_webhook_url", mode="before")
    @classmethod
    def _blank_url_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("slack_username", mode="before")
    @classmethod
    def _blank_username_is_default(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return "market-scan"
        return value

    @property
    def webhook_url(self) -> str | None:
        return str(self.slack_webhook_url) if self.slack_webhook_url else None


def load_settings(**overrides) -> Settings:
    """Build Settings from the environment, raising ConfigError when invalid."""
    try:
        return Settings(**overrides)
    except pydantic.ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e
