"""
Conversation messages: history, blocking send and streamed responses.
"""

from __future__ import annotations

from typing import Any, AsyncGenerator, Generator

from nimblebrain._client import NimbleBrainHttpClient
from nimblebrain._sse import AsyncEventStream, EventStream, StreamEvent, aiter_sse_events, iter_sse_events
from nimblebrain.conversations import conversation_path
from nimblebrain.schemas import Message


def messages_path(agent_id: str, conversation_id: str) -> str:
    return f"{conversation_path(agent_id, conversation_id)}/messages"


def _send_body(content: str, *, async_mode: bool = False, stream: bool = False) -> dict[str, Any]:
    body: dict[str, Any] = {"content": content, "role": "user"}
    if async_mode:
        body["async"] = True
    if stream:
        body["stream"] = True
    return body


class Messages:
    def __init__(self, http: NimbleBrainHttpClient) -> None:
        self._http = http

    @staticmethod
    def _parse_list(payload: Any) -> list[Message]:
        items = payload.get("messages") if isinstance(payload, dict) else None
        return [Message.model_validate(item) for item in items or []]

    def list(self, agent_id: str, conversation_id: str) -> list[Message]:
        response = self._http.get(messages_path(agent_id, conversation_id))
        return self._parse_list(response.json())

    async def alist(self, agent_id: str, conversation_id: str) -> list[Message]:
        response = await self._http.aget(messages_path(agent_id, conversation_id))
        return self._parse_list(response.json())

    def send(
        self,
        agent_id: str,
        conversation_id: str,
        content: str,
        *,
        async_mode: bool = False,
    ) -> Message:
        """
        Send a user message and wait for the complete assistant reply.

        Args:
            agent_id: The agent owning the conversation.
            conversation_id: The conversation to post to.
            content: Message text.
            async_mode: Ask the server to return immediately; the reply is then
                fetched later with ``list``.
        """
        body = _send_body(content, async_mode=async_mode)
        response = self._http.post_json(messages_path(agent_id, conversation_id), body)
        return Message.model_validate(response.json())

    async def asend(
        self,
        agent_id: str,
        conversation_id: str,
        content: str,
        *,
        async_mode: bool = False,
    ) -> Message:
        body = _send_body(content, async_mode=async_mode)
        response = await self._http.apost_json(messages_path(agent_id, conversation_id), body)
        return Message.model_validate(response.json())

    def stream(self, agent_id: str, conversation_id: str, content: str) -> EventStream:
        """
        Send a user message and stream the agent's reply as it is produced.

        Nothing is sent until the first event is requested. Errors raised by
        the server (bad key, unknown agent...) surface on that first step.

        Example:
            >>> nb = NimbleBrain(api_key="nb_live_...")
            >>> with nb.messages.stream(agent_id, conversation_id, "Hello!") as events:
            ...     for event in events:
            ...         if event.type == "content":
            ...             print(event.data["text"], end="")
            ...         elif event.type == "tool.start":
            ...             print(f"\\nUsing tool: {event.data.get('display')}")
        """
        path = messages_path(agent_id, conversation_id)
        return EventStream(self._stream_events(path, _send_body(content, stream=True)))

    def astream(self, agent_id: str, conversation_id: str, content: str) -> AsyncEventStream:
        """Async version of stream(); iterate it with ``async for``."""
        path = messages_path(agent_id, conversation_id)
        return AsyncEventStream(self._astream_events(path, _send_body(content, stream=True)))

    def _stream_events(self, path: str, payload: dict[str, Any]) -> Generator[StreamEvent, None, None]:
        # The terminal event is handed out only after the response is closed.
        terminal: StreamEvent | None = None
        with self._http.open_event_stream(path, payload) as chunks:
            for event in iter_sse_events(chunks):
                if event.is_terminal:
                    terminal = event
                    break
                yield event
        if terminal is not None:
            yield terminal

    async def _astream_events(self, path: str, payload: dict[str, Any]) -> AsyncGenerator[StreamEvent, None]:
        terminal: StreamEvent | None = None
        async with self._http.aopen_event_stream(path, payload) as chunks:
            events = aiter_sse_events(chunks)
            try:
                async for event in events:
                    if event.is_terminal:
                        terminal = event
                        break
                    yield event
            finally:
                await events.aclose()
        if terminal is not None:
            yield terminal
