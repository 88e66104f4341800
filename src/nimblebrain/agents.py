"""Agent listing for the current workspace."""

from __future__ import annotations

from typing import Any

from nimblebrain._client import NimbleBrainHttpClient
from nimblebrain.schemas import Agent

AGENTS_PATH = "/v1/agents"


class Agents:
    def __init__(self, http: NimbleBrainHttpClient) -> None:
        self._http = http

    @staticmethod
    def _parse_list(payload: Any) -> list[Agent]:
        items = payload.get("agents") if isinstance(payload, dict) else None
        return [Agent.model_validate(item) for item in items or []]

    def list(self) -> list[Agent]:
        """List all agents in the workspace. An empty workspace gives an empty list."""
        return self._parse_list(self._http.get(AGENTS_PATH).json())

    async def alist(self) -> list[Agent]:
        response = await self._http.aget(AGENTS_PATH)
        return self._parse_list(response.json())
