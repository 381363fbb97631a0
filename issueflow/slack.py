"""Thin async client for the Slack Web API calls issueflow makes."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import SlackConfig

logger = logging.getLogger(__name__)


class SlackApiError(Exception):
    """Slack answered with ``ok: false``."""

    def __init__(self, method: str, error: str) -> None:
        self.method = method
        self.error = error
        super().__init__(f"Slack API {method} failed: {error}")


class SlackClient:
    """Slack Web API client.

    Scopes needed: channels:history, groups:history (for history search) and
    the interactivity needed to open and update views.
    """

    def __init__(
        self,
        bot_token: str,
        api_url: str = "https://slack.com/api",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {bot_token}"}
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(
        cls, config: SlackConfig, http_client: Optional[httpx.AsyncClient] = None
    ) -> "SlackClient":
        return cls(
            config.bot_token,
            api_url=config.api_url,
            http_client=http_client,
            timeout=config.timeout,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http.aclose()

    async def _call(
        self,
        method: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self._api_url}/{method}"
        if json is not None:
            resp = await self.http.post(url, headers=self._headers, json=json)
        else:
            resp = await self.http.get(url, headers=self._headers, params=params)
        resp.raise_for_status()
        data = resp.json()
        if not data.get("ok"):
            raise SlackApiError(method, data.get("error", "unknown"))
        return data

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    async def open_view(self, trigger_id: str, view: Dict[str, Any]) -> str:
        """Open a modal and return its view id."""
        data = await self._call("views.open", json={"trigger_id": trigger_id, "view": view})
        return data.get("view", {}).get("id", "")

    async def update_view(self, view_id: str, view: Dict[str, Any]) -> None:
        await self._call("views.update", json={"view_id": view_id, "view": view})

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def conversation_history(
        self,
        channel: str,
        limit: int,
        latest: Optional[str] = None,
        inclusive: bool = False,
    ) -> List[Dict[str, Any]]:
        """Most recent messages of ``channel``, newest first, with metadata."""
        params: Dict[str, Any] = {
            "channel": channel,
            "limit": limit,
            "include_all_metadata": "true",
        }
        if latest:
            params["latest"] = latest
        if inclusive:
            params["inclusive"] = "true"
        data = await self._call("conversations.history", params=params)
        messages = data.get("messages", [])
        logger.debug(f"Fetched {len(messages)} messages from {channel}")
        return messages
