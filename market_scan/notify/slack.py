from __future__ import annotations

import logging
from typing import Any

import httpx

from market_scan.errors import UpstreamError

logger = logging.getLogger(__name__)

# Slack rejects messages with more blocks than this.
MAX_BLOCKS = 50


class SlackNotifier:
    """Posts messages to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: str,
        username: str = "market-scan",
        client: httpx.AsyncClient | None = None,
        timeout: float = 20.0,
    ) -> None:
        self.webhook_url = webhook_url
        self.username = username
        self._client = client
        self._timeout = timeout

    async def send(self, text: str, blocks: list[dict[str, Any]] | None = None) -> None:
        payload: dict[str, Any] = {"text": text, "username": self.username}
        if blocks:
            payload["blocks"] = blocks[:MAX_BLOCKS]

        try:
            if self._client is not None:
                resp = await self._client.post(self.webhook_url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Slack webhook request failed: {type(e).__name__}: {e}") from e

        if resp.status_code >= 300:
            raise UpstreamError(f"Slack webhook failed: {resp.status_code} {resp.text}")
        logger.info(f"Sent Slack message ({len(payload.get('blocks', []))} blocks)")
