"""
Response models for the NimbleBrain REST resources.

The API speaks camelCase; fields are exposed in snake_case and unknown keys
are kept on the model so newer server fields are not lost.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

AgentType = Literal["custom", "nira", "system"]
MessageRole = Literal["user", "assistant", "system"]
ExecutionStatus = Literal[
    "queued",
    "pending",
    "running",
    "completed",
    "completed_with_errors",
    "failed",
    "cancelled",
]

TERMINAL_EXECUTION_STATUSES: frozenset[str] = frozenset(
    {"completed", "completed_with_errors", "failed", "cancelled"}
)


class _ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class Agent(_ApiModel):
    id: str
    name: Optional[str] = None
    type: Optional[AgentType] = None
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Playbook(_ApiModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Conversation(_ApiModel):
    id: str
    title: Optional[str] = None
    context: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[str] = None


class Message(_ApiModel):
    """
    A conversation message.

    ``send`` answers with ``messageId`` instead of ``id``; both are accepted.
    """

    id: Optional[str] = None
    message_id: Optional[str] = None
    role: Optional[MessageRole] = None
    content: Optional[str] = None
    created_at: Optional[str] = None


class PlaybookExecution(_ApiModel):
    """Handle returned when a playbook execution is queued."""

    id: str
    status: Optional[ExecutionStatus] = None


class Execution(_ApiModel):
    id: str
    status: ExecutionStatus
    target_type: Optional[Literal["playbook", "agent"]] = None
    target_id: Optional[str] = None
    target_name: Optional[str] = None
    result: Any = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_ms: Optional[int] = None

    @property
    def is_finished(self) -> bool:
        return self.status in TERMINAL_EXECUTION_STATUSES
