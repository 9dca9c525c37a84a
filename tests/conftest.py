"""Pytest configuration and fixtures."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from settings import Settings

_ENV_VARS = (
    "SECRET_KEY",
    "RECAPTCHA_SECRET",
    "REDIRECT_URL",
    "ALLOWED_ORIGIN",
    "ALLOWED_ORIGINS",
    "ENVIRONMENT",
    "RATE_LIMIT",
    "PORT",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings():
    """Settings with a secret and a known redirect, no .env involved."""
    return Settings(
        _env_file=None,
        secret_key="test-secret",
        redirect_url="https://app.example.com/home",
    )


class FakeSiteverify:
    """Records outbound calls and answers them with a canned response."""

    def __init__(self, payload=None, status_code=200, exc=None, text=None):
        self.payload = payload
        self.status_code = status_code
        self.exc = exc
        self.text = text
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc(f"simulated {self.exc.__name__}", request=request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, content=json.dumps(self.payload).encode())

    @property
    def calls(self) -> int:
        return len(self.requests)

    def form(self, index: int = -1) -> dict:
        body = self.requests[index].content.decode()
        return {k: v[0] for k, v in parse_qs(body).items()}

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def fake_siteverify():
    return FakeSiteverify
