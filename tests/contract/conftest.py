"""Fake upstream provider shared by the contract tests."""

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer


class FakeUpstream:
    """按顺序返回预设响应的假服务商，最后一个响应重复使用"""

    def __init__(self):
        self.url = ""
        self.requests = []
        self.responses = [(200, {})]
        self.delay = 0

    def respond(self, *responses):
        self.responses = list(responses)

    async def handle(self, request: web.Request) -> web.Response:
        body = await request.json() if request.can_read_body else None
        self.requests.append({
            "method": request.method,
            "path": request.path,
            "headers": dict(request.headers),
            "json": body,
        })
        if self.delay:
            await asyncio.sleep(self.delay)

        status, payload = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(payload, (dict, list)):
            return web.json_response(payload, status=status)
        return web.Response(text=payload, status=status, content_type="text/plain")


@pytest.fixture
async def upstream():
    fake = FakeUpstream()
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", fake.handle)

    server = TestServer(app)
    await server.start_server()
    fake.url = f"http://{server.host}:{server.port}"
    yield fake
    await server.close()


@pytest.fixture
def recorded_sleeps(mocker):
    """记录退避等待时长，不真正等待"""
    delays = []

    def record(seconds, token=None):
        delays.append(seconds)
        if token is not None:
            token.raise_if_cancelled()

    mocker.patch("adapters.http_client.cancellable_sleep", side_effect=record)
    return delays
