"""Shared fixtures: a gateway wired to a recording fake upstream."""

from typing import Callable, List

import httpx
import pytest

from llm_relay.auth import RequestSigner
from llm_relay.config import GatewaySettings
from llm_relay.main import create_app

SECRET = "000102030405060708090a0b0c0d0e0f101112131415161718191a1b1c1d1e1f"
CHAT_UPSTREAM = "https://upstream.test/openai/deployments/"
TTS_UPSTREAM = "https://speech.test/openai/deployments/tts/audio/speech?api-version=2025-03-01-preview"
UPSTREAM_KEY = "upstream-secret-key"


class FakeUpstream:
    """Records every request and answers with the configured handler."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json={"choices": [{"message": {"content": "ok"}}]}
        )

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def gateway_settings() -> GatewaySettings:
    return GatewaySettings(
        secret=SECRET,
        chat_upstream_url=CHAT_UPSTREAM,
        chat_upstream_api_key=UPSTREAM_KEY,
        tts_upstream_url=TTS_UPSTREAM,
        tts_upstream_api_key=UPSTREAM_KEY,
    )


@pytest.fixture
def signer() -> RequestSigner:
    return RequestSigner(SECRET)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
async def gateway(gateway_settings, upstream):
    """HTTP client talking to the gateway app in-process."""
    upstream_client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    app = create_app(gateway_settings, http_client=upstream_client)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://gateway") as client:
        yield client
    await upstream_client.aclose()
