from __future__ import annotations

from nimblebrain.client import NimbleBrain
from nimblebrain.schemas import Agent, Conversation, Execution, Message, Playbook, PlaybookExecution
from nimblebrain._errors import (
    ExecutionTimeoutError,
    NimbleBrainAPIError,
    NimbleBrainError,
    NoResponseBodyError,
    TransportInterruptedError,
)
from nimblebrain._sse import AsyncEventStream, EventKind, EventStream, StreamEvent

__all__ = [
    "Agent",
    "AsyncEventStream",
    "Conversation",
    "EventKind",
    "EventStream",
    "Execution",
    "ExecutionTimeoutError",
    "Message",
    "NimbleBrain",
    "NimbleBrainAPIError",
    "NimbleBrainError",
    "NoResponseBodyError",
    "Playbook",
    "PlaybookExecution",
    "StreamEvent",
    "TransportInterruptedError",
]

__version__ = "0.1.0"
