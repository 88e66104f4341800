"""
Incremental decoder for the Server-Sent Events (SSE) streams returned by the
messages endpoint.

Bytes go in as they arrive from the network, typed ``StreamEvent`` objects
come out as soon as a complete frame (a block ended by a blank line) is
buffered. A ``done`` event ends decoding; anything after it is discarded.
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, AsyncIterable, Generator, Iterable, Iterator, Literal, cast, get_args

logger = logging.getLogger(__name__)

EventKind = Literal[
    "message.start",
    "content",
    "tool.start",
    "tool.complete",
    "message.complete",
    "done",
    "error",
]

EVENT_KINDS: frozenset[str] = frozenset(get_args(EventKind))
DEFAULT_EVENT_KIND: EventKind = "content"
TERMINAL_EVENT_KIND: EventKind = "done"

_FRAME_DELIMITER = "\n\n"


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """
    One decoded application event.

    ``data`` is the JSON object carried by the frame, ``{}`` when the frame had
    no data line, or ``{"raw": <text>}`` when the payload was not a JSON object.
    """

    type: EventKind
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.type == TERMINAL_EVENT_KIND

    @property
    def text(self) -> str:
        """Text delta of a ``content`` event, empty string otherwise."""
        if self.type != "content":
            return ""
        value = self.data.get("text")
        return value if isinstance(value, str) else ""


def _field_value(line: str, name: str) -> str | None:
    prefix = f"{name}:"
    if not line.startswith(prefix):
        return None
    return line[len(prefix):].lstrip()


def _decode_payload(data_text: str) -> dict[str, Any]:
    try:
        obj = json.loads(data_text)
    except (ValueError, RecursionError):
        obj = None
    if isinstance(obj, dict):
        return obj
    logger.debug("SSE payload is not a JSON object, keeping raw text (%d chars)", len(data_text))
    return {"raw": data_text}


def parse_frame(block: str) -> StreamEvent | None:
    """
    Parse one blank-line delimited block into a StreamEvent.

    - ``event:`` sets the type; a later ``event:`` line overwrites an earlier one.
    - ``data:`` lines are joined with newlines, in order.
    - Data without any ``event:`` line is a ``content`` event.
    - Other lines (``id:``, ``retry:``, ``:`` comments) are ignored.

    Returns None for blocks with nothing to emit: no recognized line at all,
    or an event type this client does not know.
    """
    event_type: str | None = None
    data_lines: list[str] = []

    for line in block.split("\n"):
        value = _field_value(line, "event")
        if value is not None:
            event_type = value.strip() or None
            continue
        value = _field_value(line, "data")
        if value is not None:
            data_lines.append(value)

    if event_type is None:
        if not data_lines:
            return None
        event_type = DEFAULT_EVENT_KIND

    if event_type not in EVENT_KINDS:
        logger.debug("Skipping SSE frame with unknown event type %r", event_type)
        return None

    data = _decode_payload("\n".join(data_lines)) if data_lines else {}
    return StreamEvent(type=cast(EventKind, event_type), data=data)


class SSEDecoder:
    """
    Push-style frame decoder holding the text not yet resolved into a frame.

    UTF-8 decoding state survives chunk boundaries, so a multi-byte character
    split across two chunks is decoded once both halves are in. CRLF line
    endings are normalized to LF.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._scanned = 0
        self._pending_cr = False

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Consume one chunk and return the events of every frame it completes."""
        text = self._decoder.decode(chunk)
        if self._pending_cr:
            text = "\r" + text
            self._pending_cr = False
        # A trailing CR may be the first half of a CRLF.
        if text.endswith("\r"):
            text = text[:-1]
            self._pending_cr = True
        self._buffer += text.replace("\r\n", "\n")

        events: list[StreamEvent] = []
        # Text before _scanned holds no delimiter, except one straddling the old end.
        pos = 0
        search_from = max(0, self._scanned - 1)
        while True:
            idx = self._buffer.find(_FRAME_DELIMITER, max(pos, search_from))
            if idx < 0:
                break
            event = parse_frame(self._buffer[pos:idx])
            pos = idx + len(_FRAME_DELIMITER)
            if event is not None:
                events.append(event)
        if pos:
            self._buffer = self._buffer[pos:]
        self._scanned = len(self._buffer)
        return events


def iter_sse_events(chunks: Iterable[bytes]) -> Iterator[StreamEvent]:
    """
    Lazily decode a byte-chunk stream into StreamEvents.

    A new chunk is pulled only once every event of the previous one has been
    consumed. Stops right after a ``done`` event; a stream that ends without
    one simply ends the sequence, dropping any unterminated tail.
    """
    decoder = SSEDecoder()
    for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
            if event.is_terminal:
                return


async def aiter_sse_events(chunks: AsyncIterable[bytes]) -> AsyncGenerator[StreamEvent, None]:
    decoder = SSEDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
            if event.is_terminal:
                return


class EventStream:
    """
    Single-pass iterator over the events of one streaming response.

    The HTTP response is released when the stream is exhausted, when a
    ``done`` event arrives, or when ``close()`` is called. Use it as a context
    manager to release the connection when breaking out early:

        with nb.messages.stream(agent_id, conversation_id, "Hello!") as events:
            for event in events:
                ...
    """

    def __init__(self, events: Generator[StreamEvent, None, None]) -> None:
        self._events = events

    def __iter__(self) -> EventStream:
        return self

    def __next__(self) -> StreamEvent:
        return next(self._events)

    def close(self) -> None:
        self._events.close()

    def __enter__(self) -> EventStream:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def collect_text(self) -> str:
        """Drain the stream and return the concatenated ``content`` text."""
        return "".join(event.text for event in self)


class AsyncEventStream:
    """Async counterpart of EventStream."""

    def __init__(self, events: AsyncGenerator[StreamEvent, None]) -> None:
        self._events = events

    def __aiter__(self) -> AsyncEventStream:
        return self

    async def __anext__(self) -> StreamEvent:
        return await self._events.__anext__()

    async def aclose(self) -> None:
        await self._events.aclose()

    async def __aenter__(self) -> AsyncEventStream:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def collect_text(self) -> str:
        pieces = [event.text async for event in self]
        return "".join(pieces)
