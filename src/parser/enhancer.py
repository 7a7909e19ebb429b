# src/parser/enhancer.py
"""Fill absent specification fields with inferred defaults.

Only missing values are filled; anything the completion service (or the
fallback parser) supplied is left untouched. Applies to top-level
requests, batch items and workflow leaf requests.
"""

from __future__ import annotations

import hashlib
import logging
import re
from urllib.parse import urlparse

from loadspec.core.models import (
    BODY_METHODS,
    Duration,
    LoadPattern,
    PayloadSpec,
    RequestSpec,
    TestSpecification,
    TestType,
    VariableDefinition,
)
from loadspec.core.signals import DEFAULT_EXTRACTOR, TextSignalExtractor
from loadspec.parser.payloads import PLACEHOLDER_RE, apply_file_reference

logger = logging.getLogger(__name__)

DEFAULT_DURATION = Duration(value=60, unit="seconds")
ENDURANCE_MAX_USERS = 50

_VARIABLE_DEFAULTS: dict[str, dict[str, object]] = {
    "random_string": {"length": 10},
    "random_id": {"min": 1000, "max": 999999},
    "sequence": {"start": 1, "step": 1},
    "incremental": {"baseValue": "1"},
}


def infer_load_pattern(
    test_type: TestType,
    request_count: int | None,
    requests_per_second: float | None = None,
) -> LoadPattern:
    """Type-conditioned default load pattern.

    spike -> spike; stress -> ramp-up over 2 minutes; endurance -> constant
    capped at 50 users; anything else constant users, or rate-based when a
    rate was stated.
    """
    users = max(1, request_count or 1)
    if test_type == "spike":
        return LoadPattern(type="spike", virtual_users=users)
    if test_type == "stress":
        return LoadPattern(
            type="ramp-up",
            virtual_users=users,
            ramp_up_time=Duration(value=2, unit="minutes"),
        )
    if test_type == "endurance":
        return LoadPattern(type="constant", virtual_users=min(users, ENDURANCE_MAX_USERS))
    if requests_per_second:
        return LoadPattern(type="constant", requests_per_second=requests_per_second)
    return LoadPattern(type="constant", virtual_users=users)


def guess_variable_kind(name: str) -> str:
    lowered = name.lower()
    if "uuid" in lowered:
        return "uuid"
    if "id" in lowered:
        return "random_id"
    if "time" in lowered or "date" in lowered:
        return "timestamp"
    return "random_string"


def enhance_variable(variable: VariableDefinition) -> VariableDefinition:
    """Fill kind-specific parameter defaults that are missing."""
    for key, value in _VARIABLE_DEFAULTS.get(variable.kind, {}).items():
        variable.parameters.setdefault(key, value)
    return variable


def enhance_payload(payload: PayloadSpec) -> PayloadSpec:
    """Synthesize variables for unmatched {{name}} placeholders, then fill defaults."""
    if not payload.is_file_reference:
        known = {v.name for v in payload.variables}
        for name in PLACEHOLDER_RE.findall(payload.template):
            if name not in known:
                payload.variables.append(
                    VariableDefinition(name=name, kind=guess_variable_kind(name))
                )
                known.add(name)
    for variable in payload.variables:
        enhance_variable(variable)
    return payload


def endpoint_label(url: str) -> str:
    """Last path segment of a URL, or "API"."""
    path = urlparse(url).path if "://" in url else url
    segments = [s for s in path.split("/") if s]
    return segments[-1] if segments else "API"


def generate_test_name(test_type: str, method: str, url: str | None) -> str:
    return f"{test_type.capitalize()} Test - {method} {endpoint_label(url or '')}"


def generate_spec_id(spec: TestSpecification) -> str:
    """Deterministic id from test type, method, target and load shape."""
    request = spec.primary_request
    method = request.method if request else "GET"
    url = request.url if request else ""
    host = urlparse(url).netloc or "local"
    slug = re.sub(r"[^a-z0-9]+", "-", host.lower()).strip("-")
    load = spec.load_pattern.to_wire() if spec.load_pattern else {}
    duration = spec.duration.to_seconds() if spec.duration else 0
    digest = hashlib.sha256(
        f"{spec.test_type}:{method}:{url}:{sorted(load.items())}:{duration}".encode("utf-8")
    ).hexdigest()[:10]
    return f"{spec.test_type}-{method.lower()}-{slug}-{digest}"


class ResponseEnhancer:
    """Default-filling pass applied to every accepted specification."""

    def __init__(self, extractor: TextSignalExtractor | None = None) -> None:
        self._extractor = extractor or DEFAULT_EXTRACTOR

    def enhance(self, spec: TestSpecification, command: str) -> TestSpecification:
        """Return an enhanced deep copy of spec."""
        fields_set = spec.model_fields_set
        spec = spec.model_copy(deep=True)
        ex = self._extractor

        if "test_type" not in fields_set:
            spec.test_type = ex.test_type(command)

        for request in spec.iter_requests():
            self.enhance_request(request)

        if spec.load_pattern is None:
            spec.load_pattern = infer_load_pattern(
                spec.test_type, ex.request_count(command), ex.requests_per_second(command)
            )
        elif spec.load_pattern.virtual_users is None and spec.load_pattern.requests_per_second is None:
            spec.load_pattern.virtual_users = max(1, ex.request_count(command) or 1)

        if spec.duration is None:
            spec.duration = ex.duration(command) or DEFAULT_DURATION.model_copy()

        self._enhance_multi_step(spec)

        request = spec.primary_request
        if not spec.name:
            spec.name = generate_test_name(
                spec.test_type,
                request.method if request else ex.method(command),
                request.url if request else ex.primary_url(command),
            )
        if not spec.description:
            spec.description = command.strip()
        if not spec.id:
            spec.id = generate_spec_id(spec)
        logger.debug("Enhanced spec %s (%s)", spec.id, spec.test_type)
        return spec

    def enhance_request(self, request: RequestSpec) -> RequestSpec:
        """Payload variables and Content-Type for one request, in place."""
        apply_file_reference(request, [])
        if request.payload is not None:
            enhance_payload(request.payload)
        has_body = request.body is not None or request.payload is not None
        if request.method in BODY_METHODS and has_body:
            headers = dict(request.headers or {})
            if not any(k.lower() == "content-type" for k in headers):
                headers["Content-Type"] = "application/json"
            request.headers = headers
        return request

    @staticmethod
    def _enhance_multi_step(spec: TestSpecification) -> None:
        counter = 0
        for root in spec.workflow or []:
            for step in root.iter_steps():
                counter += 1
                if not step.id:
                    step.id = f"step_{counter}"
        if spec.batch is not None:
            if not spec.batch.id:
                spec.batch.id = "batch"
            if not spec.batch.name:
                spec.batch.name = f"Batch of {len(spec.batch.tests)} tests"
            for index, item in enumerate(spec.batch.tests, start=1):
                if not item.id:
                    item.id = f"test_{index}"
                if not item.name:
                    first = item.requests[0] if item.requests else None
                    item.name = generate_test_name(
                        item.test_type,
                        first.method if first else "GET",
                        first.url if first else None,
                    )
