"""Playbook listing and execution."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from nimblebrain._client import NimbleBrainHttpClient
from nimblebrain.schemas import Playbook, PlaybookExecution

PLAYBOOKS_PATH = "/v1/playbooks"


def _execute_path(playbook_id: str) -> str:
    return f"{PLAYBOOKS_PATH}/{quote(playbook_id, safe='')}/execute"


def _execute_body(parameters: dict[str, Any] | None) -> dict[str, Any]:
    # Omitted rather than sent as null.
    return {"parameters": parameters} if parameters is not None else {}


class Playbooks:
    def __init__(self, http: NimbleBrainHttpClient) -> None:
        self._http = http

    @staticmethod
    def _parse_list(payload: Any) -> list[Playbook]:
        items = payload.get("playbooks") if isinstance(payload, dict) else None
        return [Playbook.model_validate(item) for item in items or []]

    def list(self) -> list[Playbook]:
        return self._parse_list(self._http.get(PLAYBOOKS_PATH).json())

    async def alist(self) -> list[Playbook]:
        response = await self._http.aget(PLAYBOOKS_PATH)
        return self._parse_list(response.json())

    def execute(self, playbook_id: str, parameters: dict[str, Any] | None = None) -> PlaybookExecution:
        """
        Queue a playbook execution.

        Args:
            playbook_id: The playbook to run.
            parameters: Optional playbook parameters.

        Returns:
            The queued execution. Poll it with ``Executions.wait_for_completion``.
        """
        response = self._http.post_json(_execute_path(playbook_id), _execute_body(parameters))
        return PlaybookExecution.model_validate(response.json())

    async def aexecute(
        self, playbook_id: str, parameters: dict[str, Any] | None = None
    ) -> PlaybookExecution:
        response = await self._http.apost_json(_execute_path(playbook_id), _execute_body(parameters))
        return PlaybookExecution.model_validate(response.json())
