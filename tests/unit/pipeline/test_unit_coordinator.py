# tests/unit/pipeline/test_unit_coordinator.py
"""Tests for pipeline/coordinator.py: every route through the state machine."""

from __future__ import annotations

import pytest

from loadspec.cache.result_cache import ResultCache
from loadspec.core.models import Duration, LoadPattern, RequestSpec, TestSpecification
from loadspec.llm.rate_governor import RateGovernor
from loadspec.logging.context import get_context
from loadspec.parser.orchestrator import CompletionOrchestrator
from loadspec.parser.validator import SpecValidator
from loadspec.pipeline.coordinator import PipelineCoordinator, adapt_cached_spec
from tests.conftest import FakeLLMClient, single_response

COMMAND = "send 5 GET requests to https://shop.test/users for 2 minutes"
RESPONSE = single_response(url="https://shop.test/users")

COMPLETION_TRACE = ["cache_lookup", "rate_check", "completion_attempt", "enhance", "cache_write", "return"]
FALLBACK_TRACE = ["cache_lookup", "rate_check", "fallback", "return"]


@pytest.fixture
def cache(settings, fake_clock):
    return ResultCache(settings.cache_path, clock=fake_clock)


def make_coordinator(settings, client=None, cache=None, governor=None, **kwargs):
    orchestrator = CompletionOrchestrator(client, settings) if client is not None else None
    return PipelineCoordinator(orchestrator, settings, cache=cache, governor=governor, **kwargs)


class TestCompletionPath:
    @pytest.mark.asyncio
    async def test_completion_accepted_and_cached(self, settings, cache):
        client = FakeLLMClient(RESPONSE)
        outcome = await make_coordinator(settings, client, cache).parse(COMMAND)

        assert outcome.source == "completion"
        assert outcome.trace == COMPLETION_TRACE
        assert not outcome.used_fallback
        assert outcome.can_proceed
        assert outcome.confidence == 1.0
        assert outcome.spec.id and outcome.spec.name
        assert cache.size() > 0

    @pytest.mark.asyncio
    async def test_without_cache(self, settings):
        outcome = await make_coordinator(settings, FakeLLMClient(RESPONSE)).parse(COMMAND)
        assert outcome.trace == COMPLETION_TRACE
        assert outcome.source == "completion"

    @pytest.mark.asyncio
    async def test_log_stage_reset(self, settings):
        await make_coordinator(settings, FakeLLMClient(RESPONSE)).parse(COMMAND)
        assert get_context().stage is None


class TestCachePath:
    @pytest.mark.asyncio
    async def test_hit_adapts_explicit_values(self, settings, cache):
        client = FakeLLMClient(RESPONSE)
        coordinator = make_coordinator(settings, client, cache)
        first = await coordinator.parse(COMMAND)

        second = await coordinator.parse("send 10 GET requests to https://shop.test/users for 3 minutes")
        assert client.calls == 1
        assert second.source == "cache"
        assert second.cache_hit == "primary"
        assert second.trace == ["cache_lookup", "adapt_and_return", "return"]
        assert second.spec.load_pattern.virtual_users == 10
        assert second.spec.duration == Duration(value=3, unit="minutes")
        assert second.spec.id != first.spec.id

    @pytest.mark.asyncio
    async def test_identical_command_hits(self, settings, cache):
        coordinator = make_coordinator(settings, FakeLLMClient(RESPONSE), cache)
        first = await coordinator.parse(COMMAND)
        second = await coordinator.parse(COMMAND)
        assert second.source == "cache"
        assert second.spec.id == first.spec.id

    @pytest.mark.asyncio
    async def test_numeric_path_segment_is_not_shared(self, settings, cache):
        client = FakeLLMClient(
            single_response(url="https://api.shop.io/users/5"),
            single_response(url="https://api.shop.io/users/7"),
        )
        coordinator = make_coordinator(settings, client, cache)
        await coordinator.parse("send 3 GET requests to https://api.shop.io/users/5 for 1 minute")

        second = await coordinator.parse("send 3 GET requests to https://api.shop.io/users/7 for 1 minute")
        assert client.calls == 2
        assert second.source == "completion"
        assert second.cache_hit is None
        assert second.spec.requests[0].url == "https://api.shop.io/users/7"

    @pytest.mark.asyncio
    async def test_cache_write_failure_is_warning(self, settings, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        coordinator = make_coordinator(settings, FakeLLMClient(RESPONSE), ResultCache(blocker / "c.json"))
        outcome = await coordinator.parse(COMMAND)
        assert outcome.source == "completion"
        assert any("could not be cached" in w for w in outcome.warnings)


class TestFallbackRoutes:
    @pytest.mark.asyncio
    async def test_no_completion_service(self, settings, cache):
        outcome = await make_coordinator(settings, cache=cache).parse(COMMAND)
        assert outcome.trace == FALLBACK_TRACE
        assert outcome.used_fallback
        assert outcome.warnings[0] == "No completion service configured; used rule-based parsing"
        assert cache.size() == 0

    @pytest.mark.asyncio
    async def test_rate_refusal(self, settings, fake_clock):
        client = FakeLLMClient(RESPONSE)
        governor = RateGovernor(max_per_minute=1, burst_size=1, clock=fake_clock)
        governor.can_make_request()
        outcome = await make_coordinator(settings, client, governor=governor).parse(COMMAND)

        assert client.calls == 0
        assert outcome.trace == FALLBACK_TRACE
        assert "rate limit" in outcome.warnings[0]
        assert outcome.spec.load_pattern.virtual_users == 5

    @pytest.mark.asyncio
    async def test_transport_failure(self, settings, no_sleep):
        client = FakeLLMClient(ConnectionError("refused"))
        outcome = await make_coordinator(settings, client).parse(COMMAND)
        assert outcome.trace == ["cache_lookup", "rate_check", "completion_attempt", "fallback", "return"]
        assert "TransportError" in outcome.warnings[0]
        assert outcome.spec.requests[0].url == "https://shop.test/users"

    @pytest.mark.asyncio
    async def test_malformed_output(self, settings):
        client = FakeLLMClient("no json here")
        outcome = await make_coordinator(settings, client).parse(COMMAND)
        assert client.calls == 1
        assert outcome.used_fallback
        assert "MalformedOutputError" in outcome.warnings[0]

    @pytest.mark.asyncio
    async def test_unexpected_client_error(self, settings):
        client = FakeLLMClient(KeyError("boom"))
        outcome = await make_coordinator(settings, client).parse(COMMAND)
        assert outcome.source == "fallback"
        assert "KeyError" in outcome.warnings[0]

    @pytest.mark.asyncio
    async def test_low_confidence(self, settings, cache):
        strict = settings.model_copy(update={"confidence_threshold": 0.95})
        response = single_response(url="https://shop.test/users")
        response["loadPattern"] = {"type": "constant"}
        outcome = await make_coordinator(strict, FakeLLMClient(response), cache).parse(
            "load test https://shop.test/users for 1 minute"
        )
        assert outcome.trace == ["cache_lookup", "rate_check", "completion_attempt", "fallback", "return"]
        assert "below threshold" in outcome.warnings[0]
        assert cache.size() == 0

    @pytest.mark.asyncio
    async def test_critical_validation_error(self, settings):
        response = single_response(url="https://shop.test/users", users=0)
        outcome = await make_coordinator(settings, FakeLLMClient(response)).parse(COMMAND)
        assert outcome.trace[-3:] == ["enhance", "fallback", "return"]
        assert "failed validation" in outcome.warnings[0]
        assert outcome.spec.load_pattern.virtual_users == 5

    @pytest.mark.asyncio
    async def test_fallback_merges_suggestions(self, settings):
        outcome = await make_coordinator(settings).parse("hammer the api")
        assert "Specify number of virtual users for load testing" in outcome.suggestions
        assert "Include the complete API endpoint URL you want to test" in outcome.suggestions
        assert len(outcome.suggestions) == len(set(outcome.suggestions))


class TestRecovery:
    @pytest.mark.asyncio
    async def test_unexpected_error_yields_recovery(self, settings):
        class ExplodingValidator(SpecValidator):
            def validate(self, *args, **kwargs):
                raise RuntimeError("validator bug")

        outcome = await make_coordinator(settings, validator=ExplodingValidator()).parse(COMMAND)
        assert outcome.source == "recovery"
        assert outcome.confidence == 0.0
        assert outcome.spec.id == "recovery-default"
        assert outcome.trace == FALLBACK_TRACE
        assert "validator bug" in outcome.warnings[-1]


class TestAdaptCachedSpec:
    def _spec(self):
        return TestSpecification(
            id="old",
            test_type="baseline",
            requests=[RequestSpec(url="https://shop.test/users")],
            load_pattern=LoadPattern(virtual_users=5),
            duration=Duration(value=2, unit="minutes"),
        )

    def test_rate_added_to_pattern(self):
        adapted = adapt_cached_spec(self._spec(), "GET https://shop.test/users at 30 rps")
        assert adapted.load_pattern.requests_per_second == 30
        assert adapted.load_pattern.virtual_users == 5

    def test_nothing_explicit(self):
        original = self._spec()
        adapted = adapt_cached_spec(original, "GET https://shop.test/users")
        assert adapted.load_pattern == original.load_pattern
        assert adapted.id != "old"
        assert original.id == "old"

    def test_missing_pattern_created(self):
        spec = self._spec()
        spec.load_pattern = None
        assert adapt_cached_spec(spec, "with 7 users").load_pattern.virtual_users == 7
