import json
from typing import Any

import httpx
import pytest

from nimblebrain import ExecutionTimeoutError, NimbleBrain, NimbleBrainAPIError
from nimblebrain._auth import ENV_API_KEY
from nimblebrain.client import DEFAULT_BASE_URL
from nimblebrain.schemas import Agent, Execution, PlaybookExecution


class Router:
    """Minimal MockTransport handler: (method, path) -> queue of JSON bodies."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[tuple[int, Any]]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, body: Any, status: int = 200) -> None:
        self.routes.setdefault((method, path), []).append((status, body))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": f"no route {request.method} {request.url.path}"})
        status, body = queue[0] if len(queue) == 1 else queue.pop(0)
        return httpx.Response(status, json=body)


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
def nb(router) -> NimbleBrain:
    client = NimbleBrain(api_key="test-api-key", base_url="https://api.test.com")
    client._http._client = httpx.Client(transport=httpx.MockTransport(router))
    client._http._aclient = httpx.AsyncClient(transport=httpx.MockTransport(router))
    return client


def test_client_defaults(monkeypatch):
    monkeypatch.setenv(ENV_API_KEY, "nb_test_env")

    client = NimbleBrain()

    assert client.base_url == DEFAULT_BASE_URL == "https://api.nimblebrain.ai"
    assert client.timeout_s == 120.0
    assert client._http._api_key == "nb_test_env"
    assert client._http.config.base_url == DEFAULT_BASE_URL
    client.close()


def test_client_requires_api_key(monkeypatch):
    monkeypatch.delenv(ENV_API_KEY, raising=False)

    with pytest.raises(ValueError, match="API key missing"):
        NimbleBrain()


def test_resources_share_http_client(nb):
    for resource in (nb.agents, nb.playbooks, nb.conversations, nb.messages, nb.executions):
        assert resource._http is nb._http


def test_client_context_manager_closes(nb):
    with nb as client:
        assert client is nb

    assert nb._http._client.is_closed


@pytest.mark.asyncio
async def test_client_async_context_manager_closes(nb):
    async with nb:
        pass

    assert nb._http._aclient.is_closed


# Agents --------------------------------------------------------------------


def test_list_agents(nb, router):
    router.add("GET", "/v1/agents", {
        "agents": [
            {"id": "agent-1", "name": "Agent 1", "type": "custom", "createdAt": "2026-01-01"},
            {"id": "agent-2", "name": "Agent 2", "type": "nira"},
        ],
        "total": 2,
    })

    agents = nb.agents.list()

    assert agents == [
        Agent(id="agent-1", name="Agent 1", type="custom", created_at="2026-01-01"),
        Agent(id="agent-2", name="Agent 2", type="nira"),
    ]
    assert router.requests[0].headers["Authorization"] == "Bearer test-api-key"


def test_list_agents_missing_key_gives_empty_list(nb, router):
    router.add("GET", "/v1/agents", {"agents": None, "total": 0})

    assert nb.agents.list() == []


def test_agent_keeps_unknown_fields(nb, router):
    router.add("GET", "/v1/agents", {"agents": [{"id": "a", "model": "fast"}]})

    agent = nb.agents.list()[0]

    assert agent.model_extra == {"model": "fast"}


@pytest.mark.asyncio
async def test_alist_agents(nb, router):
    router.add("GET", "/v1/agents", {"agents": [{"id": "agent-1"}]})

    agents = await nb.agents.alist()

    assert [a.id for a in agents] == ["agent-1"]


def test_list_agents_error(nb, router):
    router.add("GET", "/v1/agents", {"error": {"code": "UNAUTHORIZED", "message": "Invalid API key"}}, status=401)

    with pytest.raises(NimbleBrainAPIError) as exc:
        nb.agents.list()

    assert exc.value.is_auth_error
    assert exc.value.error_code == "UNAUTHORIZED"


# Playbooks -----------------------------------------------------------------


def test_list_playbooks(nb, router):
    router.add("GET", "/v1/playbooks", {"playbooks": [{"id": "pb-1", "name": "Playbook 1"}, {"id": "pb-2"}]})

    playbooks = nb.playbooks.list()

    assert [p.id for p in playbooks] == ["pb-1", "pb-2"]
    assert playbooks[0].name == "Playbook 1"


def test_execute_playbook_without_parameters(nb, router):
    router.add("POST", "/v1/playbooks/pb-1/execute", {"id": "exec-1", "status": "queued"})

    result = nb.playbooks.execute("pb-1")

    assert result == PlaybookExecution(id="exec-1", status="queued")
    assert json.loads(router.requests[0].content) == {}


@pytest.mark.asyncio
async def test_aexecute_playbook_with_parameters(nb, router):
    router.add("POST", "/v1/playbooks/pb-1/execute", {"id": "exec-2", "status": "queued"})

    result = await nb.playbooks.aexecute("pb-1", {"param1": "value1"})

    assert result.id == "exec-2"
    assert json.loads(router.requests[0].content) == {"parameters": {"param1": "value1"}}


@pytest.mark.asyncio
async def test_alist_playbooks(nb, router):
    router.add("GET", "/v1/playbooks", {"playbooks": []})

    assert await nb.playbooks.alist() == []


# Conversations -------------------------------------------------------------


def test_create_conversation(nb, router):
    router.add("POST", "/v1/agents/agent-1/conversations", {"id": "conv-1", "title": "Test Chat", "status": "active"})

    conversation = nb.conversations.create("agent-1", "Test Chat")

    assert conversation.id == "conv-1"
    assert conversation.status == "active"
    assert json.loads(router.requests[0].content) == {"title": "Test Chat"}


def test_create_conversation_default_title(nb, router):
    router.add("POST", "/v1/agents/agent-1/conversations", {"id": "conv-1"})

    nb.conversations.create("agent-1")

    assert json.loads(router.requests[0].content) == {"title": "SDK Conversation"}


def test_get_conversation(nb, router):
    router.add("GET", "/v1/agents/agent-1/conversations/conv-1", {"id": "conv-1", "messageCount": 5})

    conversation = nb.conversations.get("agent-1", "conv-1")

    assert conversation.id == "conv-1"
    assert conversation.model_extra == {"messageCount": 5}


@pytest.mark.asyncio
async def test_acreate_and_aget_conversation(nb, router):
    router.add("POST", "/v1/agents/agent-1/conversations", {"id": "conv-9", "title": "SDK Conversation"})
    router.add("GET", "/v1/agents/agent-1/conversations/conv-9", {"id": "conv-9", "title": "SDK Conversation"})

    created = await nb.conversations.acreate("agent-1")
    fetched = await nb.conversations.aget("agent-1", created.id)

    assert fetched == created


# Executions ----------------------------------------------------------------


def test_get_execution(nb, router):
    router.add("GET", "/v1/executions/exec-1", {
        "id": "exec-1",
        "status": "running",
        "targetType": "playbook",
        "durationMs": None,
    })

    execution = nb.executions.get("exec-1")

    assert execution.status == "running"
    assert execution.target_type == "playbook"
    assert not execution.is_finished


def test_wait_for_completion_immediate(nb, router):
    router.add("GET", "/v1/executions/exec-1", {"id": "exec-1", "status": "completed", "result": "Success!"})

    execution = nb.executions.wait_for_completion("exec-1")

    assert execution.result == "Success!"
    assert len(router.requests) == 1


def test_wait_for_completion_polls_until_complete(nb, router):
    router.add("GET", "/v1/executions/exec-1", {"id": "exec-1", "status": "running"})
    router.add("GET", "/v1/executions/exec-1", {"id": "exec-1", "status": "running"})
    router.add("GET", "/v1/executions/exec-1", {"id": "exec-1", "status": "completed", "result": "Done!"})

    execution = nb.executions.wait_for_completion("exec-1", poll_interval_s=0.01)

    assert execution.status == "completed"
    assert len(router.requests) == 3


@pytest.mark.parametrize("status", ["failed", "cancelled", "completed_with_errors"])
def test_wait_for_completion_returns_other_terminal_statuses(nb, router, status):
    router.add("GET", "/v1/executions/exec-1", {"id": "exec-1", "status": status})

    assert nb.executions.wait_for_completion("exec-1").status == status


def test_wait_for_completion_times_out(nb, router):
    router.add("GET", "/v1/executions/exec-1", {"id": "exec-1", "status": "running"})

    with pytest.raises(ExecutionTimeoutError, match="timed out"):
        nb.executions.wait_for_completion("exec-1", timeout_s=0.05, poll_interval_s=0.02)


@pytest.mark.asyncio
async def test_await_for_completion_polls(nb, router):
    router.add("GET", "/v1/executions/exec-1", {"id": "exec-1", "status": "queued"})
    router.add("GET", "/v1/executions/exec-1", {"id": "exec-1", "status": "failed"})

    execution = await nb.executions.await_for_completion("exec-1", poll_interval_s=0.01)

    assert isinstance(execution, Execution)
    assert execution.status == "failed"


@pytest.mark.asyncio
async def test_await_for_completion_times_out(nb, router):
    router.add("GET", "/v1/executions/exec-1", {"id": "exec-1", "status": "pending"})

    with pytest.raises(ExecutionTimeoutError):
        await nb.executions.await_for_completion("exec-1", timeout_s=0.05, poll_interval_s=0.02)
