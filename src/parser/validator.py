# src/parser/validator.py
"""Diagnostic pass over an enhanced specification.

Produces ValidationIssues without mutating the spec. Confidence is
penalized per error and warning; only critical errors stop the
specification from being used.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Callable

from loadspec.core.errors import SpecValidationError
from loadspec.core.models import (
    BODY_METHODS,
    RequestSpec,
    TestSpecification,
    ValidationIssue,
    ValidationReport,
)
from loadspec.parser.payloads import PLACEHOLDER_RE
from loadspec.parser.response_shapes import is_absolute_http_url

logger = logging.getLogger(__name__)

ERROR_PENALTY = 0.2
WARNING_PENALTY = 0.1
LOW_CONFIDENCE = 0.5

MAX_VIRTUAL_USERS = 10_000
MAX_REQUESTS_PER_SECOND = 1_000
MIN_DURATION_S = 10
MAX_DURATION_S = 3_600

_PLACEHOLDER_URLS = ("example.com", "/api/endpoint")
_DIGIT_RE = re.compile(r"\d")
_QUOTED_PLACEHOLDER_RE = re.compile(r'"\{\{\w+\}\}"')

Check = Callable[[TestSpecification], list[ValidationIssue]]


def _issue(type_: str, field: str, message: str, severity: str, suggestion: str | None = None) -> ValidationIssue:
    return ValidationIssue(
        type=type_, field=field, message=message, severity=severity, suggestion=suggestion
    )


def is_valid_url(url: str) -> bool:
    """Absolute http(s) URL, or a root-relative path longer than "/"."""
    return is_absolute_http_url(url) or (url.startswith("/") and len(url) > 1)


def substitute_placeholders(template: str, value: str = "test_value") -> str:
    """Replace quoted and bare {{name}} placeholders with a JSON string."""
    quoted = json.dumps(value)
    return PLACEHOLDER_RE.sub(quoted, _QUOTED_PLACEHOLDER_RE.sub(quoted, template))


def template_variables(template: str) -> list[str]:
    names: list[str] = []
    for name in PLACEHOLDER_RE.findall(template):
        if name not in names:
            names.append(name)
    return names


class SpecValidator:
    """Runs every rule over a specification and folds the results into a report."""

    def __init__(self) -> None:
        self._checks: list[Check] = [
            self.check_required_fields,
            self.check_urls,
            self.check_load_parameters,
            self.check_payloads,
            self.check_bodies,
            self.check_duration,
            self.check_test_type_consistency,
            self.check_workflow_integrity,
        ]

    def validate(
        self,
        spec: TestSpecification,
        command: str,
        confidence: float = 1.0,
        ambiguities: list[str] | None = None,
    ) -> ValidationReport:
        issues: list[ValidationIssue] = []
        for check in self._checks:
            issues.extend(check(spec))

        errors = [i for i in issues if i.type == "error"]
        warnings = [i for i in issues if i.type == "warning"]
        adjusted = confidence - ERROR_PENALTY * len(errors) - WARNING_PENALTY * len(warnings)
        can_proceed = not any(e.severity == "critical" for e in errors)

        if errors or warnings:
            logger.debug(
                "Validation: %d error(s), %d warning(s), can_proceed=%s",
                len(errors), len(warnings), can_proceed,
            )
        return ValidationReport(
            issues=issues,
            actionable_suggestions=self.actionable_suggestions(
                issues, command, confidence, ambiguities or []
            ),
            can_proceed=can_proceed,
            confidence=adjusted,
        )

    def ensure_valid(self, spec: TestSpecification, command: str = "") -> ValidationReport:
        """Strict variant of validate().

        Raises:
            SpecValidationError: If any critical error is found.
        """
        report = self.validate(spec, command)
        if not report.can_proceed:
            critical = [e for e in report.errors if e.severity == "critical"]
            raise SpecValidationError(
                "; ".join(e.message for e in critical), issues=critical
            )
        return report

    # --- Rules ---

    def check_required_fields(self, spec: TestSpecification) -> list[ValidationIssue]:
        issues = []
        if not spec.id:
            issues.append(_issue(
                "error", "id", "Test ID is required", "critical",
                "A unique test ID will be generated automatically",
            ))
        if not spec.name.strip():
            issues.append(_issue(
                "error", "name", "Test name is required", "high",
                "Provide a descriptive name for your load test",
            ))
        if not spec.is_multi_step and not spec.requests:
            issues.append(_issue(
                "error", "requests", "At least one request specification is required", "critical",
                "Specify the API endpoint and HTTP method you want to test",
            ))
        if spec.test_type == "workflow" and not spec.workflow:
            issues.append(_issue(
                "error", "workflow", "Workflow test has no steps", "critical",
                "Describe the ordered requests the workflow should make",
            ))
        if spec.test_type == "batch" and (spec.batch is None or not spec.batch.tests):
            issues.append(_issue(
                "error", "batch", "Batch test has no tests", "critical",
                "List the individual tests the batch should run",
            ))
        return issues

    def check_urls(self, spec: TestSpecification) -> list[ValidationIssue]:
        issues = []
        for index, request in enumerate(spec.iter_requests()):
            field = f"requests[{index}].url"
            if not request.url:
                issues.append(_issue(
                    "error", field, f"Request {index + 1}: URL is required", "critical",
                    "Provide the complete API endpoint URL (e.g., https://api.example.com/endpoint)",
                ))
                continue
            if not is_valid_url(request.url):
                issues.append(_issue(
                    "warning", field, f"Request {index + 1}: URL format may be invalid", "medium",
                    "Ensure URL is complete with protocol (https://) or starts with /",
                ))
            if any(marker in request.url for marker in _PLACEHOLDER_URLS):
                issues.append(_issue(
                    "warning", field, f"Request {index + 1}: URL appears to be a placeholder", "high",
                    "Replace with your actual API endpoint URL",
                ))
        return issues

    def check_load_parameters(self, spec: TestSpecification) -> list[ValidationIssue]:
        pattern = spec.load_pattern
        if pattern is None:
            return [_issue(
                "error", "loadPattern", "Load pattern is required", "critical",
                "Specify load parameters like virtual users or requests per second",
            )]

        issues = []
        if pattern.virtual_users is None and pattern.requests_per_second is None:
            issues.append(_issue(
                "error", "loadPattern",
                "Either virtual users or requests per second must be specified", "critical",
                'Add "virtualUsers" or "requestsPerSecond" to your load pattern',
            ))
        if pattern.virtual_users is not None:
            if pattern.virtual_users <= 0:
                issues.append(_issue(
                    "error", "loadPattern.virtualUsers", "Virtual users must be greater than 0",
                    "critical", "Set a positive number of virtual users (e.g., 10, 50, 100)",
                ))
            elif pattern.virtual_users > MAX_VIRTUAL_USERS:
                issues.append(_issue(
                    "warning", "loadPattern.virtualUsers",
                    "Very high number of virtual users may cause resource issues", "medium",
                    "Consider starting with a smaller number and scaling up",
                ))
        if pattern.requests_per_second is not None:
            if pattern.requests_per_second <= 0:
                issues.append(_issue(
                    "error", "loadPattern.requestsPerSecond",
                    "Requests per second must be greater than 0", "critical",
                    "Set a positive RPS value (e.g., 10, 50, 100)",
                ))
            elif pattern.requests_per_second > MAX_REQUESTS_PER_SECOND:
                issues.append(_issue(
                    "warning", "loadPattern.requestsPerSecond",
                    "Very high RPS may overwhelm the target system", "medium",
                    "Consider starting with a lower RPS and increasing gradually",
                ))
        if pattern.type == "ramp-up" and pattern.ramp_up_time is None:
            issues.append(_issue(
                "warning", "loadPattern.rampUpTime", "Ramp-up time not specified for ramp-up test",
                "medium", 'Specify how long the ramp-up should take (e.g., "2 minutes")',
            ))
        return issues

    def check_payloads(self, spec: TestSpecification) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for index, request in enumerate(spec.iter_requests()):
            issues.extend(self._check_payload(request, index))
        return issues

    def _check_payload(self, request: RequestSpec, index: int) -> list[ValidationIssue]:
        issues = []
        field = f"requests[{index}].payload"
        payload = request.payload
        if payload is None:
            if request.method in BODY_METHODS and request.body is None:
                issues.append(_issue(
                    "suggestion", field,
                    f"Request {index + 1}: {request.method} request typically includes a payload",
                    "low", "Consider adding a payload template for this request",
                ))
            return issues
        if payload.is_file_reference:
            return issues

        try:
            json.loads(substitute_placeholders(payload.template))
        except json.JSONDecodeError:
            issues.append(_issue(
                "error", f"{field}.template",
                f"Request {index + 1}: Payload template is not valid JSON", "high",
                "Ensure payload template is valid JSON with {{variable}} placeholders",
            ))

        used = template_variables(payload.template)
        defined = [v.name for v in payload.variables]
        missing = [name for name in used if name not in defined]
        unused = [name for name in defined if name not in used]
        if missing:
            issues.append(_issue(
                "warning", f"{field}.variables",
                f"Request {index + 1}: Variables {', '.join(missing)} used in template but not defined",
                "medium", "Define variable types for all template placeholders",
            ))
        if unused:
            issues.append(_issue(
                "suggestion", f"{field}.variables",
                f"Request {index + 1}: Variables {', '.join(unused)} defined but not used in template",
                "low", "Remove unused variable definitions or add them to the template",
            ))
        return issues

    def check_bodies(self, spec: TestSpecification) -> list[ValidationIssue]:
        issues = []
        for index, request in enumerate(spec.iter_requests()):
            body = request.body
            if not isinstance(body, dict):
                continue
            if "increment" in body:
                issues.append(_issue(
                    "error", f"requests[{index}].body",
                    "Invalid 'increment' field found in JSON body", "critical",
                    "Remove the 'increment' field from the JSON body",
                ))
            items = body.get("payload")
            if isinstance(items, list):
                for item_index, item in enumerate(items):
                    if isinstance(item, dict) and not (item.get("externalId") or item.get("requestId")):
                        issues.append(_issue(
                            "warning", f"requests[{index}].body.payload[{item_index}]",
                            "Payload item missing common identifier fields", "medium",
                            "Consider adding externalId or requestId for better tracking",
                        ))
        return issues

    def check_duration(self, spec: TestSpecification) -> list[ValidationIssue]:
        if spec.duration is None or spec.duration.value <= 0:
            return [_issue(
                "error", "duration", "Test duration is required and must be positive", "critical",
                'Specify how long the test should run (e.g., "5 minutes", "30 seconds")',
            )]
        seconds = spec.duration.to_seconds()
        if seconds < MIN_DURATION_S:
            return [_issue(
                "warning", "duration", "Very short test duration may not provide meaningful results",
                "medium", "Consider running the test for at least 30 seconds",
            )]
        if seconds > MAX_DURATION_S:
            return [_issue(
                "warning", "duration", "Very long test duration may consume significant resources",
                "medium", "Consider starting with shorter tests and increasing duration gradually",
            )]
        return []

    def check_test_type_consistency(self, spec: TestSpecification) -> list[ValidationIssue]:
        pattern_type = spec.load_pattern.type if spec.load_pattern else None
        if spec.test_type == "spike" and pattern_type != "spike":
            return [_issue(
                "warning", "testType", 'Test type "spike" should use spike load pattern', "medium",
                'Change load pattern type to "spike" or adjust test type',
            )]
        if spec.test_type == "stress" and pattern_type != "ramp-up":
            return [_issue(
                "suggestion", "testType", "Stress tests typically use ramp-up load pattern", "low",
                'Consider using "ramp-up" load pattern for stress testing',
            )]
        return []

    def check_workflow_integrity(self, spec: TestSpecification) -> list[ValidationIssue]:
        if not spec.workflow:
            return []
        issues = []
        step_ids = [
            node.id
            for root in spec.workflow
            for node in [*root.iter_steps(), *root.iter_requests()]
            if node.id
        ]
        duplicates = sorted({i for i in step_ids if step_ids.count(i) > 1})
        if duplicates:
            issues.append(_issue(
                "error", "workflow", f"Duplicate workflow step IDs: {', '.join(duplicates)}", "high",
                "Ensure all workflow step IDs are unique",
            ))
        for index, rule in enumerate(spec.data_correlation or []):
            for attr, step_id in (("sourceStep", rule.source_step), ("targetStep", rule.target_step)):
                if step_id not in step_ids:
                    issues.append(_issue(
                        "error", f"dataCorrelation[{index}].{attr}",
                        f"Data correlation references non-existent step: {step_id}", "high",
                        "Ensure correlation rules reference valid workflow step IDs",
                    ))
        return issues

    # --- Suggestions ---

    @staticmethod
    def actionable_suggestions(
        issues: list[ValidationIssue],
        command: str,
        confidence: float,
        ambiguities: list[str],
    ) -> list[str]:
        suggestions: list[str] = []

        def add(text: str) -> None:
            if text not in suggestions:
                suggestions.append(text)

        for issue in issues:
            if issue.suggestion:
                add(issue.suggestion)
        if confidence < LOW_CONFIDENCE:
            add("Try rephrasing your command with more specific details")
        if ambiguities:
            add("Provide more specific information to reduce ambiguity")
        lowered = command.lower()
        if "http" not in lowered and "/" not in lowered:
            add("Include the complete API endpoint URL you want to test")
        if not _DIGIT_RE.search(command):
            add("Specify numeric values for load parameters (users, requests, duration)")
        return suggestions
