"""Shared fixtures: a settable clock and a stub token issuer."""

import json

import httpx
import pytest
import structlog


class FakeClock:
    """Callable clock returning a settable epoch time."""

    def __init__(self, now: float = 1_700_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubIssuer:
    """Token vending endpoint served through httpx.MockTransport."""

    def __init__(self, status_code: int = 200, body=None):
        self.status_code = status_code
        self.body = {"accessToken": "tok1", "expiresIn": 600} if body is None else body
        self.requests = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        token_number = len(self.requests)
        body = dict(self.body) if isinstance(self.body, dict) else self.body
        if isinstance(body, dict) and body.get("accessToken") == "tok{n}":
            body["accessToken"] = f"tok{token_number}"
        if isinstance(body, str):
            return httpx.Response(self.status_code, text=body)
        return httpx.Response(self.status_code, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def issuer():
    return StubIssuer()
