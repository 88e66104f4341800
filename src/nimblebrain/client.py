"""
High-level NimbleBrain client exposing agents, playbooks, conversations,
messages (including SSE streaming) and executions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from nimblebrain._auth import AuthConfig
from nimblebrain._client import HttpConfig, NimbleBrainHttpClient
from nimblebrain.agents import Agents
from nimblebrain.conversations import Conversations
from nimblebrain.executions import Executions
from nimblebrain.messages import Messages
from nimblebrain.playbooks import Playbooks

DEFAULT_BASE_URL = "https://api.nimblebrain.ai"


@dataclass(slots=True)
class NimbleBrain:
    """
    Entry point of the SDK. All resources share one HTTP client.

    Example:
        >>> nb = NimbleBrain(api_key="nb_live_...")
        >>> agents = nb.agents.list()
        >>> conversation = nb.conversations.create(agents[0].id)
        >>> for event in nb.messages.stream(agents[0].id, conversation.id, "Hello!"):
        ...     print(event.text, end="")
    """
    api_key: str | None = field(default=None, repr=False)
    base_url: str = DEFAULT_BASE_URL
    timeout_s: float = 120.0

    _http: NimbleBrainHttpClient = field(init=False, repr=False)
    agents: Agents = field(init=False, repr=False)
    playbooks: Playbooks = field(init=False, repr=False)
    conversations: Conversations = field(init=False, repr=False)
    messages: Messages = field(init=False, repr=False)
    executions: Executions = field(init=False, repr=False)

    def __post_init__(self) -> None:
        auth = AuthConfig.from_env_or_value(self.api_key)
        self._http = NimbleBrainHttpClient(
            config=HttpConfig(base_url=self.base_url, timeout_s=self.timeout_s),
            api_key=auth.api_key,
        )
        self.agents = Agents(self._http)
        self.playbooks = Playbooks(self._http)
        self.conversations = Conversations(self._http)
        self.messages = Messages(self._http)
        self.executions = Executions(self._http)

    def close(self) -> None:
        self._http.close()

    async def aclose(self) -> None:
        await self._http.aclose()

    def __enter__(self) -> NimbleBrain:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def __aenter__(self) -> NimbleBrain:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
