# src/parser/fallback.py
"""Rule-based parser used when the completion service is unavailable or unreliable.

Works only from text signals. Never raises: every guess it makes is
reported as a warning, and the result always carries a usable request,
load pattern and duration.
"""

from __future__ import annotations

import logging

from loadspec.core.models import (
    BatchSpec,
    BatchTestItem,
    Duration,
    LoadPattern,
    ParseOutcome,
    RequestSpec,
    TestSpecification,
    WorkflowRequest,
    WorkflowStep,
)
from loadspec.core.signals import DEFAULT_EXTRACTOR, TextSignalExtractor
from loadspec.parser.enhancer import ResponseEnhancer, infer_load_pattern
from loadspec.parser.payloads import apply_file_reference, apply_increment_fields

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.3
PLACEHOLDER_URL = "http://localhost:3000/api/endpoint"
RECOVERY_URL = "http://localhost:3000"


def recovery_spec() -> TestSpecification:
    """Minimal hardcoded specification used when interpretation fails outright."""
    return TestSpecification(
        id="recovery-default",
        name="Default Recovery Test",
        description="Created when command interpretation failed",
        test_type="baseline",
        requests=[RequestSpec(method="GET", url=RECOVERY_URL)],
        load_pattern=LoadPattern(type="constant", virtual_users=1),
        duration=Duration(value=60, unit="seconds"),
    )


class FallbackParser:
    """Deterministic text-signal parser."""

    def __init__(
        self,
        extractor: TextSignalExtractor | None = None,
        enhancer: ResponseEnhancer | None = None,
    ) -> None:
        self._extractor = extractor or DEFAULT_EXTRACTOR
        self._enhancer = enhancer or ResponseEnhancer(self._extractor)

    def parse(self, command: str) -> ParseOutcome:
        try:
            return self._parse(command)
        except Exception as e:
            logger.exception("Fallback parsing failed")
            return ParseOutcome(
                spec=recovery_spec(),
                confidence=FALLBACK_CONFIDENCE,
                used_fallback=True,
                warnings=[f"Fallback parsing failed: {e}"],
                source="fallback",
            )

    def _parse(self, command: str) -> ParseOutcome:
        ex = self._extractor
        warnings = ["Used rule-based fallback parsing; results may be less accurate"]
        suggestions: list[str] = []

        test_type = ex.test_type(command)
        count = ex.request_count(command)
        rps = ex.requests_per_second(command)
        duration = ex.duration(command)
        if count is None and rps is None:
            warnings.append("No request count found; assuming 1 virtual user")
            suggestions.append("Specify number of virtual users for load testing")
        if duration is None:
            warnings.append("No duration found; assuming 60 seconds")
            suggestions.append('Specify how long the test should run (e.g., "5 minutes")')

        pairs = ex.method_url_pairs(command)
        if len(pairs) >= 2:
            spec = self._multi_request_spec(command, pairs)
        else:
            spec = TestSpecification(
                test_type=test_type,
                requests=[self._single_request(command, warnings, suggestions)],
            )
        spec.load_pattern = infer_load_pattern(test_type, count, rps)
        spec.duration = duration or Duration(value=60, unit="seconds")

        spec = self._enhancer.enhance(spec, command)
        logger.info("Fallback produced %s spec %s", spec.test_type, spec.id)
        return ParseOutcome(
            spec=spec,
            confidence=FALLBACK_CONFIDENCE,
            used_fallback=True,
            warnings=warnings,
            suggestions=suggestions,
            source="fallback",
        )

    def _single_request(self, command: str, warnings: list[str], suggestions: list[str]) -> RequestSpec:
        ex = self._extractor
        body = ex.inline_json(command)
        methods = ex.methods(command)
        if methods:
            method = methods[0]
        elif body is not None:
            method = "POST"
            warnings.append("No HTTP method found; assuming POST because a body was given")
        else:
            method = "GET"
            warnings.append("No HTTP method found; assuming GET")

        url = ex.primary_url(command)
        if url is None:
            url = PLACEHOLDER_URL
            warnings.append(f"No URL found; using placeholder {PLACEHOLDER_URL}")
            suggestions.append("Add a target URL to your command")
        elif not url.lower().startswith(("http://", "https://")):
            warnings.append(f"Relative URL {url} kept as given; no host was named")

        request = RequestSpec(method=method, url=url, headers=ex.headers(command) or None)
        if body is not None and method != "GET":
            request.body = body
        apply_increment_fields(request, ex.increment_fields(command))
        apply_file_reference(request, ex.file_references(command))
        return request

    def _multi_request_spec(self, command: str, pairs: list[tuple[str, str]]) -> TestSpecification:
        ex = self._extractor
        headers = ex.headers(command) or None
        if ex.wants_batch(command):
            tests = []
            for index, (method, url, segment) in enumerate(_segments(command, pairs), start=1):
                item_type = ex.test_type(segment)
                tests.append(BatchTestItem(
                    id=f"test_{index}",
                    test_type=item_type,
                    requests=[RequestSpec(method=method, url=url, headers=headers)],
                    load_pattern=infer_load_pattern(item_type, ex.request_count(segment)),
                ))
            batch = BatchSpec(
                tests=tests,
                execution_mode="sequential" if "sequential" in command.lower() else "parallel",
            )
            return TestSpecification(test_type="batch", batch=batch)

        steps = [
            WorkflowRequest(id=f"request_{index}", method=method, url=url, headers=headers, request_count=1)
            for index, (method, url) in enumerate(pairs, start=1)
        ]
        step = WorkflowStep(id="step_1", type=ex.workflow_mode(command), steps=steps)
        return TestSpecification(test_type="workflow", workflow=[step])


def _segments(command: str, pairs: list[tuple[str, str]]) -> list[tuple[str, str, str]]:
    """Attach to each (method, url) the slice of text describing it."""
    positions = []
    cursor = 0
    for method, url in pairs:
        found = command.find(url, cursor)
        start = found if found != -1 else cursor
        positions.append(start)
        cursor = start + len(url)
    segments = []
    for index, (method, url) in enumerate(pairs):
        begin = positions[index - 1] + len(pairs[index - 1][1]) if index else 0
        end = positions[index] + len(url)
        segments.append((method, url, command[begin:end]))
    return segments
