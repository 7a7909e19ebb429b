# src/pipeline/coordinator.py
"""Pipeline coordinator: the command interpretation state machine.

cache_lookup -> adapt_and_return | rate_check
rate_check -> fallback | completion_attempt
completion_attempt -> enhance -> cache_write -> return | fallback
fallback -> return

Every path yields a TestSpecification. Unexpected exceptions are caught
at the top and converted into the recovery specification.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from loadspec.cache.fingerprint import compute_fingerprint
from loadspec.core.errors import CacheWriteError, LoadSpecError
from loadspec.core.models import LoadPattern, ParseOutcome, TestSpecification
from loadspec.core.signals import DEFAULT_EXTRACTOR, TextSignalExtractor
from loadspec.logging.context import set_command_context, set_stage
from loadspec.parser.enhancer import ResponseEnhancer, generate_spec_id
from loadspec.parser.fallback import FallbackParser, recovery_spec
from loadspec.parser.orchestrator import CompletionResult, calculate_confidence
from loadspec.parser.validator import SpecValidator
from loadspec.pipeline.state import ParseRun

if TYPE_CHECKING:
    from loadspec.cache.base_cache_store import BaseCacheStore
    from loadspec.config.settings import Settings
    from loadspec.llm.rate_governor import RateGovernor
    from loadspec.parser.orchestrator import CompletionOrchestrator

logger = logging.getLogger(__name__)


def adapt_cached_spec(
    spec: TestSpecification,
    command: str,
    extractor: TextSignalExtractor | None = None,
) -> TestSpecification:
    """Re-apply the explicit load values of command onto a copy of a cached spec."""
    ex = extractor or DEFAULT_EXTRACTOR
    spec = spec.model_copy(deep=True)
    count = ex.request_count(command)
    rps = ex.requests_per_second(command)
    duration = ex.duration(command)

    if count is not None or rps is not None:
        pattern = spec.load_pattern or LoadPattern()
        if count is not None:
            pattern.virtual_users = count
        if rps is not None:
            pattern.requests_per_second = rps
        spec.load_pattern = pattern
    if duration is not None:
        spec.duration = duration
    spec.id = generate_spec_id(spec)
    return spec


class PipelineCoordinator:
    """Interprets commands through cache, completion service and fallback parser.

    Cache and governor are optional: without a cache the lookup and write
    states are a miss and a no-op; without a governor every request is
    admitted. Without an orchestrator every miss goes to the fallback parser.
    """

    def __init__(
        self,
        orchestrator: CompletionOrchestrator | None,
        settings: Settings,
        cache: BaseCacheStore | None = None,
        governor: RateGovernor | None = None,
        enhancer: ResponseEnhancer | None = None,
        validator: SpecValidator | None = None,
        fallback: FallbackParser | None = None,
        extractor: TextSignalExtractor | None = None,
    ) -> None:
        self._extractor = extractor or DEFAULT_EXTRACTOR
        self._orchestrator = orchestrator
        self._settings = settings
        self._cache = cache
        self._governor = governor
        self._enhancer = enhancer or ResponseEnhancer(self._extractor)
        self._validator = validator or SpecValidator()
        self._fallback = fallback or FallbackParser(self._extractor, self._enhancer)

    @property
    def cache(self) -> BaseCacheStore | None:
        return self._cache

    @property
    def governor(self) -> RateGovernor | None:
        return self._governor

    async def parse(self, command: str) -> ParseOutcome:
        """Interpret one command. Never raises."""
        run = ParseRun(command=command)
        set_command_context(run.command_id)
        logger.info("Interpreting command (%d chars)", len(command))
        try:
            outcome = await self._run(run)
        except Exception as e:
            logger.exception("Command interpretation failed; returning recovery spec")
            outcome = self._recovery(run, e)
        finally:
            set_stage(None)
        logger.info(
            "Outcome source=%s confidence=%.2f trace=%s",
            outcome.source, outcome.confidence, ",".join(outcome.trace),
        )
        return outcome

    async def _run(self, run: ParseRun) -> ParseOutcome:
        command = run.command

        run.enter("cache_lookup")
        outcome = self._lookup(run)
        if outcome is not None:
            return outcome

        run.enter("rate_check")
        if self._orchestrator is None:
            run.warn("No completion service configured; used rule-based parsing")
            return self._run_fallback(run)
        if self._governor is not None and not self._governor.can_make_request():
            wait = self._governor.get_wait_time()
            run.warn(f"Completion rate limit reached; retry in {wait:.0f}s for full interpretation")
            return self._run_fallback(run)

        run.enter("completion_attempt")
        result = await self._attempt_completion(run)
        if result is None:
            return self._run_fallback(run)
        if result.confidence < self._settings.confidence_threshold:
            run.warn(
                f"Completion confidence {result.confidence:.2f} below threshold "
                f"{self._settings.confidence_threshold:.2f}"
            )
            return self._run_fallback(run)

        run.enter("enhance")
        spec = self._enhancer.enhance(result.spec, command)
        report = self._validator.validate(spec, command, result.confidence, result.ambiguities)
        if not report.can_proceed:
            critical = "; ".join(e.message for e in report.errors if e.severity == "critical")
            run.warn(f"Completion result failed validation: {critical}")
            return self._run_fallback(run)

        run.enter("cache_write")
        self._store(run, spec, result.file_dependencies)

        run.enter("return")
        return ParseOutcome(
            spec=spec,
            confidence=report.confidence,
            warnings=run.warnings,
            ambiguities=result.ambiguities,
            suggestions=report.actionable_suggestions,
            issues=report.issues,
            can_proceed=report.can_proceed,
            source="completion",
            trace=run.trace,
        )

    # --- States ---

    def _lookup(self, run: ParseRun) -> ParseOutcome | None:
        if self._cache is None:
            return None
        run.fingerprint = compute_fingerprint(run.command, self._extractor)
        lookup = self._cache.get(run.fingerprint)
        if not lookup.is_hit:
            return None

        run.enter("adapt_and_return")
        logger.info("Cache %s hit on %s", lookup.hit_level, lookup.matched_key)
        spec = adapt_cached_spec(lookup.entry.spec, run.command, self._extractor)
        report = self._validator.validate(
            spec, run.command, calculate_confidence(spec, run.command)
        )
        run.enter("return")
        return ParseOutcome(
            spec=spec,
            confidence=report.confidence,
            warnings=run.warnings,
            suggestions=report.actionable_suggestions,
            issues=report.issues,
            can_proceed=report.can_proceed,
            source="cache",
            cache_hit=lookup.hit_level,
            trace=run.trace,
        )

    async def _attempt_completion(self, run: ParseRun) -> CompletionResult | None:
        try:
            return await self._orchestrator.complete(run.command)
        except LoadSpecError as e:
            logger.warning("Completion failed (%s): %s", type(e).__name__, e)
            run.warn(f"Completion service failed ({type(e).__name__}); used rule-based parsing")
        except Exception as e:
            logger.exception("Completion service raised an unexpected error")
            run.warn(f"Completion service error ({type(e).__name__}); used rule-based parsing")
        return None

    def _store(self, run: ParseRun, spec: TestSpecification, file_dependencies: list[str]) -> None:
        if self._cache is None or run.fingerprint is None:
            return
        try:
            if not self._cache.set(run.fingerprint, spec, file_dependencies):
                logger.debug("Result not cached")
        except CacheWriteError as e:
            logger.warning("Cache write failed: %s", e)
            run.warn(f"Result could not be cached: {e}")

    def _run_fallback(self, run: ParseRun) -> ParseOutcome:
        run.enter("fallback")
        outcome = self._fallback.parse(run.command)
        report = self._validator.validate(outcome.spec, run.command, outcome.confidence)
        suggestions = list(outcome.suggestions)
        for suggestion in report.actionable_suggestions:
            if suggestion not in suggestions:
                suggestions.append(suggestion)
        run.enter("return")
        return outcome.model_copy(update={
            "warnings": run.warnings + outcome.warnings,
            "suggestions": suggestions,
            "issues": report.issues,
            "can_proceed": report.can_proceed,
            "trace": run.trace,
        })

    @staticmethod
    def _recovery(run: ParseRun, error: Exception) -> ParseOutcome:
        return ParseOutcome(
            spec=recovery_spec(),
            confidence=0.0,
            used_fallback=True,
            warnings=[*run.warnings, f"Command interpretation failed: {error}"],
            suggestions=["Try rephrasing your command with more specific details"],
            source="recovery",
            trace=[*run.trace, "return"],
        )
