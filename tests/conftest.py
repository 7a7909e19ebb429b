# tests/conftest.py
"""Shared test fixtures for all unit and integration tests.

Provides settings pointed at a temp cache file, a scripted completion
client, a controllable clock and sample specifications. No network access.
"""

from __future__ import annotations

import json
from typing import Any

import pytest

from loadspec.config.settings import Settings
from loadspec.core.models import Duration, LoadPattern, RequestSpec, TestSpecification
from loadspec.llm.base_client import BaseLLMClient
from loadspec.llm.models import CompletionRequest, CompletionResponse, TokenUsage


# === HELPERS ===


class FakeClock:
    """Manually advanced clock for TTL and rate-window tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLLMClient(BaseLLMClient):
    """Completion client replaying scripted outputs.

    Each script item is either response text, a dict (serialized to JSON)
    or an exception instance to raise. The last item repeats once the
    script is exhausted.
    """

    def __init__(self, *script: Any):
        self.script = list(script)
        self.requests: list[CompletionRequest] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        index = min(len(self.requests), len(self.script)) - 1
        item = self.script[index]
        if isinstance(item, BaseException):
            raise item
        text = json.dumps(item) if isinstance(item, dict) else str(item)
        return CompletionResponse(
            text=text,
            token_usage=TokenUsage(input_tokens=100, output_tokens=50),
            provider="fake",
            model="fake-model",
            latency_ms=5,
        )


def single_response(
    url: str = "https://api.example.com/users",
    method: str = "GET",
    users: int = 5,
    duration: tuple[float, str] = (2, "minutes"),
    **extra: Any,
) -> dict[str, Any]:
    """Single-test completion output in wire form."""
    request: dict[str, Any] = {"method": method, "url": url}
    request.update(extra)
    return {
        "testType": "baseline",
        "requests": [request],
        "loadPattern": {"type": "constant", "virtualUsers": users},
        "duration": {"value": duration[0], "unit": duration[1]},
    }


# === FIXTURES ===


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from .env, with the cache under tmp_path and no retry delay."""
    return Settings(
        _env_file=None,
        anthropic_api_key="test-key",
        cache_file=tmp_path / "cache" / "parse-cache.json",
        llm_retry_base_delay_s=0.0,
        llm_retry_max_delay_s=0.0,
        llm_timeout_s=5.0,
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sample_spec() -> TestSpecification:
    """Minimal valid single-request specification."""
    return TestSpecification(
        id="baseline-get-api-example-com-0000000000",
        name="Baseline Test - GET users",
        description="send 5 GET requests to https://api.example.com/users for 2 minutes",
        test_type="baseline",
        requests=[RequestSpec(method="GET", url="https://api.example.com/users")],
        load_pattern=LoadPattern(type="constant", virtual_users=5),
        duration=Duration(value=2, unit="minutes"),
    )


@pytest.fixture
def no_sleep(monkeypatch):
    """Make retry backoff instantaneous; yields the requested delays."""
    delays: list[float] = []

    async def _sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr("loadspec.llm.retry.asyncio.sleep", _sleep)
    return delays
