from __future__ import annotations
from dataclasses import dataclass
from typing import Any


class NimbleBrainError(RuntimeError):
    """Base error of the library."""


@dataclass(slots=True)
class NimbleBrainAPIError(NimbleBrainError):
    """
    The server rejected a request with a non-2xx status.

    Raised both for plain JSON calls and for streaming calls, in which case it
    surfaces before the first event is produced. When the backend returns a
    JSON error body, one of these shapes is recognized:

        {"error": "Agent not found"}
        {"error": {"code": "UNAUTHORIZED", "message": "...", "requestId": "req_...", "details": {...}}}
        {"message": "..."}

    Anything else leaves the structured fields as None and keeps the raw text
    as the message.
    """
    status_code: int
    message: str
    body: str | None = None

    error_code: str | None = None
    request_id: str | None = None
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        parts = [f"NimbleBrainAPIError(status_code={self.status_code}"]
        if self.error_code:
            parts.append(f", code={self.error_code!r}")
        parts.append(f", message={self.message!r}")
        if self.request_id:
            parts.append(f", request_id={self.request_id!r}")
        if self.body:
            parts.append(f", body={len(self.body)} chars")
        parts.append(")")
        return "".join(parts)

    def __repr__(self) -> str:
        return (
            f"NimbleBrainAPIError("
            f"status_code={self.status_code}, "
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"request_id={self.request_id!r}, "
            f"details={self.details!r}, "
            f"body={'...' if self.body else None})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Error as a dict for structured logging."""
        return {
            "status_code": self.status_code,
            "message": self.message,
            "error_code": self.error_code,
            "request_id": self.request_id,
            "details": self.details,
            "body": self.body,
        }

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status_code < 600

    @property
    def is_auth_error(self) -> bool:
        """True for 401 (bad key) and 403 (key without access)."""
        return self.status_code in (401, 403)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class NoResponseBodyError(NimbleBrainError):
    """A streaming request succeeded but the response carries no body to read."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"No response body (status {status_code})")
        self.status_code = status_code


class TransportInterruptedError(NimbleBrainError):
    """The event stream broke while reading, before the server closed it cleanly."""


class ExecutionTimeoutError(NimbleBrainError):
    """An execution did not reach a terminal status within the polling budget."""

    def __init__(self, execution_id: str, timeout_s: float) -> None:
        super().__init__(f"Execution {execution_id} timed out after {timeout_s}s")
        self.execution_id = execution_id
        self.timeout_s = timeout_s
