# services/business-rules-service/tests/test_siddhi_engine.py
from typing import List, Union

import httpx
import pytest

from app.clients import http_utils
from app.clients.siddhi_engine import SiddhiEngineClient
from app.errors import DeployError, UndeployRequestError

BASE_URL = "http://engine.test:9090"


class ScriptedEngine:
    """
    Answers requests from a queue of status codes or transport errors to
    raise; once the queue is empty every request gets 200.
    """

    def __init__(self) -> None:
        self.outcomes: List[Union[int, type]] = []
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if self.outcomes else 200
        if isinstance(outcome, type):
            raise outcome("engine trouble", request=request)
        return httpx.Response(outcome, text="")

    def methods(self) -> List[str]:
        return [r.method for r in self.requests]


@pytest.fixture
async def remote():
    remote = ScriptedEngine()
    http_utils._clients[BASE_URL] = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(remote))
    try:
        yield remote
    finally:
        await http_utils.close_http_clients()


@pytest.fixture
def client() -> SiddhiEngineClient:
    return SiddhiEngineClient(BASE_URL, username="admin", password="admin")


async def test_deploy_sends_app_text(remote, client):
    remote.outcomes = [201]

    await client.deploy("r1_0", "@App:name('r1_0')")

    request = remote.requests[0]
    assert (request.method, request.url.path) == ("POST", "/siddhi-apps")
    assert request.headers["content-type"] == "text/plain"
    assert request.content == b"@App:name('r1_0')"


async def test_deploy_is_not_resent_after_a_read_timeout(remote, client):
    remote.outcomes = [httpx.ReadTimeout, 409]

    with pytest.raises(DeployError):
        await client.deploy("r1_0", "@App:name('r1_0')")

    assert remote.methods() == ["POST"]


async def test_deploy_is_retried_when_the_engine_was_not_reached(remote, client):
    remote.outcomes = [httpx.ConnectError, 201]

    await client.deploy("r1_0", "@App:name('r1_0')")

    assert remote.methods() == ["POST", "POST"]


async def test_deploy_rejection_carries_status(remote, client):
    remote.outcomes = [400]

    with pytest.raises(DeployError) as exc:
        await client.deploy("r1_0", "bad app")

    assert exc.value.status == 400
    assert remote.methods() == ["POST"]


async def test_update_is_retried_after_a_read_timeout(remote, client):
    remote.outcomes = [httpx.ReadTimeout, 200]

    assert await client.update("r1_0", "@App:name('r1_0')") is True
    assert remote.methods() == ["PUT", "PUT"]


async def test_update_refusal(remote, client):
    remote.outcomes = [500]
    assert await client.update("r1_0", "@App:name('r1_0')") is False


async def test_delete_escapes_the_app_name(remote, client):
    assert await client.delete("odd name/x") is True
    assert remote.requests[0].url.raw_path == b"/siddhi-apps/odd%20name%2Fx"


async def test_delete_of_unknown_app_counts_as_undeployed(remote, client):
    remote.outcomes = [404]
    assert await client.delete("r1_0") is True


async def test_delete_refusal(remote, client):
    remote.outcomes = [500]
    assert await client.delete("r1_0") is False


async def test_delete_of_unreachable_engine_raises_engine_error(remote, client):
    remote.outcomes = [httpx.ConnectError] * 10

    with pytest.raises(UndeployRequestError) as exc:
        await client.delete("r1_0")

    assert exc.value.app_name == "r1_0"
