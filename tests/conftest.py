"""Pytest configuration - loads .env for integration tests and fakes the Timing API."""

from pathlib import Path

import httpx
import pytest
from dotenv import load_dotenv

from timing_cli.sdk import TimingClient

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

BASE_URL = "https://timing.test"


class FakeAPI:
    """Mock transport handler: records requests and replays canned responses in order."""

    def __init__(self, responses: list[httpx.Response]):
        self.requests: list[httpx.Request] = []
        self._responses = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        return self._responses.pop(0)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def fake_api():
    """Build a (TimingClient, FakeAPI) pair answering with the given responses."""

    def factory(*responses: httpx.Response) -> tuple[TimingClient, FakeAPI]:
        api = FakeAPI(list(responses))
        client = TimingClient(
            api_key="test-key",
            base_url=BASE_URL,
            transport=httpx.MockTransport(api),
        )
        return client, api

    return factory
