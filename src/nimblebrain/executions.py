"""
Execution status lookups and polling helpers for playbook runs.
"""

from __future__ import annotations

import asyncio
import logging
import time
from urllib.parse import quote

from nimblebrain._client import NimbleBrainHttpClient
from nimblebrain._errors import ExecutionTimeoutError
from nimblebrain.schemas import Execution

logger = logging.getLogger(__name__)

EXECUTIONS_PATH = "/v1/executions"
DEFAULT_WAIT_TIMEOUT_S = 60.0
DEFAULT_POLL_INTERVAL_S = 1.0


def _execution_path(execution_id: str) -> str:
    return f"{EXECUTIONS_PATH}/{quote(execution_id, safe='')}"


class Executions:
    def __init__(self, http: NimbleBrainHttpClient) -> None:
        self._http = http

    def get(self, execution_id: str) -> Execution:
        response = self._http.get(_execution_path(execution_id))
        return Execution.model_validate(response.json())

    async def aget(self, execution_id: str) -> Execution:
        response = await self._http.aget(_execution_path(execution_id))
        return Execution.model_validate(response.json())

    def wait_for_completion(
        self,
        execution_id: str,
        *,
        timeout_s: float = DEFAULT_WAIT_TIMEOUT_S,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
    ) -> Execution:
        """
        Poll an execution until it reaches a terminal status.

        Terminal statuses are ``completed``, ``completed_with_errors``,
        ``failed`` and ``cancelled``; a failed execution is returned, not raised.

        Args:
            execution_id: The id returned by ``Playbooks.execute``.
            timeout_s: Overall polling budget in seconds.
            poll_interval_s: Delay between two status checks.

        Raises:
            ExecutionTimeoutError: If the budget runs out first.
        """
        deadline = time.monotonic() + timeout_s
        while time.monotonic() < deadline:
            execution = self.get(execution_id)
            if execution.is_finished:
                return execution
            logger.debug("Execution %s is %s, polling again in %ss", execution_id, execution.status, poll_interval_s)
            time.sleep(poll_interval_s)
        raise ExecutionTimeoutError(execution_id, timeout_s)

    async def await_for_completion(
        self,
        execution_id: str,
        *,
        timeout_s: float = DEFAULT_WAIT_TIMEOUT_S,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
    ) -> Execution:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_s
        while loop.time() < deadline:
            execution = await self.aget(execution_id)
            if execution.is_finished:
                return execution
            logger.debug("Execution %s is %s, polling again in %ss", execution_id, execution.status, poll_interval_s)
            await asyncio.sleep(poll_interval_s)
        raise ExecutionTimeoutError(execution_id, timeout_s)
