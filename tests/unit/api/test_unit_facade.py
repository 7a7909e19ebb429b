# tests/unit/api/test_unit_facade.py
"""Tests for api/facade.py: coordinator wiring and the parse entry point."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from loadspec.api.facade import build_coordinator, parse_command
from loadspec.cache.result_cache import ResultCache
from loadspec.config.settings import Settings
from loadspec.core.models import ParseOutcome
from loadspec.llm.adapters.ollama_adapter import OllamaAdapter
from tests.conftest import FakeLLMClient, single_response

COMMAND = "send 5 GET requests to https://shop.test/users for 2 minutes"


@pytest.fixture
def keyless(settings):
    return settings.model_copy(update={"anthropic_api_key": ""})


class TestBuildCoordinator:
    def test_default_components(self, settings):
        coordinator = build_coordinator(settings)
        assert isinstance(coordinator.cache, ResultCache)
        assert coordinator.governor.stats()["burst_size"] == settings.rate_burst_size

    def test_components_disabled(self, settings):
        coordinator = build_coordinator(settings, cache=None, governor=None)
        assert coordinator.cache is None
        assert coordinator.governor is None

    def test_cache_disabled_in_settings(self, settings):
        off = settings.model_copy(update={"cache_enabled": False})
        assert build_coordinator(off).cache is None

    def test_missing_key_disables_completion(self, keyless):
        assert build_coordinator(keyless)._orchestrator is None

    @pytest.mark.parametrize("provider", ["gemini", "openrouter"])
    def test_keyed_providers_need_their_own_key(self, settings, provider):
        other = settings.model_copy(update={"llm_provider": provider})
        assert build_coordinator(other)._orchestrator is None

    def test_unknown_provider_disables_completion(self, settings):
        other = settings.model_copy(update={"llm_provider": "nope"})
        assert build_coordinator(other)._orchestrator is None

    def test_keyless_local_provider(self, settings):
        local = settings.model_copy(update={"llm_provider": "ollama", "anthropic_api_key": ""})
        orchestrator = build_coordinator(local)._orchestrator
        assert orchestrator is not None
        assert orchestrator.provider_name == "ollama"
        assert isinstance(orchestrator._client, OllamaAdapter)


class TestParseCommand:
    @pytest.mark.asyncio
    async def test_with_injected_client(self, settings):
        client = FakeLLMClient(single_response(url="https://shop.test/users"))
        coordinator = build_coordinator(settings, llm_client=client)
        outcome = await parse_command(COMMAND, coordinator=coordinator)
        assert outcome.source == "completion"
        assert client.calls == 1

    @pytest.mark.asyncio
    async def test_without_key_uses_fallback(self, keyless):
        outcome = await parse_command(COMMAND, settings=keyless)
        assert outcome.used_fallback
        assert outcome.spec.requests[0].url == "https://shop.test/users"

    @pytest.mark.asyncio
    async def test_delegates_to_coordinator(self, sample_spec):
        expected = ParseOutcome(spec=sample_spec, confidence=0.9)
        coordinator = MagicMock()
        coordinator.parse = AsyncMock(return_value=expected)
        assert await parse_command("anything", coordinator=coordinator) is expected
        coordinator.parse.assert_awaited_once_with("anything")

    def test_settings_default_loaded(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("ANTHROPIC_API_KEY", "")
        monkeypatch.setenv("CACHE_ENABLED", "false")
        coordinator = build_coordinator()
        assert coordinator.cache is None
        assert isinstance(coordinator._settings, Settings)
