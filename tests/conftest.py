import asyncio
import json
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from config import Config
from raindrop_client import RaindropClient

API_PREFIX = "/rest/v1"
TEST_TOKEN = "test-token-123"


class RecordedRequest(NamedTuple):
    method: str
    path: str
    query: Dict[str, str]
    body: Any
    headers: Dict[str, str]


class FakeRaindropAPI:
    """In-process stand-in for api.raindrop.io that records every request"""

    def __init__(self):
        self.requests: List[RecordedRequest] = []
        self.responses: Dict[Tuple[str, str], Tuple[int, bytes]] = {}
        self.delay = 0.0

    def respond(
        self,
        method: str,
        path: str,
        status: int = 200,
        json_body: Any = None,
        text: Optional[str] = None,
        raw: Optional[bytes] = None,
    ):
        if raw is None:
            if text is None:
                text = json.dumps(json_body)
            raw = text.encode("utf-8")
        self.responses[(method, path)] = (status, raw)

    @property
    def last(self) -> RecordedRequest:
        return self.requests[-1]

    async def handle(self, request: web.Request) -> web.Response:
        raw = await request.read()
        path = request.path[len(API_PREFIX):]
        self.requests.append(
            RecordedRequest(
                method=request.method,
                path=path,
                query=dict(request.query),
                body=json.loads(raw) if raw else None,
                headers=dict(request.headers),
            )
        )
        if self.delay:
            await asyncio.sleep(self.delay)

        status, payload = self.responses.get(
            (request.method, path), (200, b'{"result": true}')
        )
        return web.Response(status=status, body=payload, content_type="application/json")

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self.handle)
        return app


@pytest.fixture
def fake_api() -> FakeRaindropAPI:
    return FakeRaindropAPI()


@pytest_asyncio.fixture
async def api_server(fake_api):
    server = TestServer(fake_api.make_app())
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def config(api_server) -> Config:
    return Config(
        token=TEST_TOKEN,
        base_url=str(api_server.make_url(API_PREFIX)),
        request_timeout=5,
    )


@pytest_asyncio.fixture
async def client(config):
    async with RaindropClient(config) as c:
        yield c
