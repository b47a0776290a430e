from __future__ import annotations


class MarketScanError(Exception):
    """Base class for errors that terminate a scan."""


class ConfigError(MarketScanError):
    """Missing or invalid configuration, raised before any stage runs."""


class ValidationError(MarketScanError):
    """Model output (or pipeline input) that does not satisfy its schema.

    ``raw_text`` holds the unparsed model response when one is available.
    """

    def __init__(self, message: str, raw_text: str | None = None) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class UpstreamError(MarketScanError):
    """Network, auth or rate-limit failure from the LLM or Slack clients."""


class SuspendedError(MarketScanError):
    """The run stopped in a non-terminal state without success or failure."""
