"""Conversations between a user and an agent."""

from __future__ import annotations

from urllib.parse import quote

from nimblebrain._client import NimbleBrainHttpClient
from nimblebrain.schemas import Conversation

DEFAULT_CONVERSATION_TITLE = "SDK Conversation"


def conversations_path(agent_id: str) -> str:
    return f"/v1/agents/{quote(agent_id, safe='')}/conversations"


def conversation_path(agent_id: str, conversation_id: str) -> str:
    return f"{conversations_path(agent_id)}/{quote(conversation_id, safe='')}"


class Conversations:
    def __init__(self, http: NimbleBrainHttpClient) -> None:
        self._http = http

    def create(self, agent_id: str, title: str | None = None) -> Conversation:
        """
        Create a new conversation with an agent.

        Args:
            agent_id: The agent to talk to.
            title: Optional title, "SDK Conversation" when omitted.
        """
        body = {"title": title or DEFAULT_CONVERSATION_TITLE}
        response = self._http.post_json(conversations_path(agent_id), body)
        return Conversation.model_validate(response.json())

    async def acreate(self, agent_id: str, title: str | None = None) -> Conversation:
        body = {"title": title or DEFAULT_CONVERSATION_TITLE}
        response = await self._http.apost_json(conversations_path(agent_id), body)
        return Conversation.model_validate(response.json())

    def get(self, agent_id: str, conversation_id: str) -> Conversation:
        response = self._http.get(conversation_path(agent_id, conversation_id))
        return Conversation.model_validate(response.json())

    async def aget(self, agent_id: str, conversation_id: str) -> Conversation:
        response = await self._http.aget(conversation_path(agent_id, conversation_id))
        return Conversation.model_validate(response.json())
