# tests/unit/core/test_unit_models.py
"""Tests for core/models.py: wire aliases, workflow union, confidence clamping."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from loadspec.core.models import (
    Duration,
    LoadPattern,
    ParseOutcome,
    PayloadSpec,
    RequestSpec,
    TestSpecification,
    ValidationReport,
    VariableDefinition,
    WorkflowRequest,
    WorkflowStep,
    clamp_confidence,
)


class TestDuration:
    def test_to_seconds(self):
        assert Duration(value=2, unit="minutes").to_seconds() == 120
        assert Duration(value=1, unit="hours").to_seconds() == 3600
        assert Duration(value=30).to_seconds() == 30

    def test_rejects_non_positive(self):
        with pytest.raises(ValidationError):
            Duration(value=0)


class TestWireForm:
    def test_camel_case_dump(self):
        pattern = LoadPattern(type="ramp-up", virtual_users=10, ramp_up_time=Duration(value=2, unit="minutes"))
        wire = pattern.to_wire()
        assert wire["virtualUsers"] == 10
        assert wire["rampUpTime"] == {"value": 2.0, "unit": "minutes"}
        assert "requestsPerSecond" not in wire

    def test_accepts_both_forms(self):
        a = LoadPattern.model_validate({"virtualUsers": 3})
        b = LoadPattern.model_validate({"virtual_users": 3})
        assert a.virtual_users == b.virtual_users == 3

    def test_variable_kind_wire_key_is_type(self):
        var = VariableDefinition.model_validate({"name": "orderId", "type": "incremental"})
        assert var.kind == "incremental"
        assert var.to_wire()["type"] == "incremental"

    def test_payload_file_reference(self):
        assert PayloadSpec(template="@payload.json").is_file_reference
        assert not PayloadSpec(template='{"a": 1}').is_file_reference


class TestWorkflow:
    def test_nested_steps_discriminated(self):
        step = WorkflowStep.model_validate({
            "type": "sequential",
            "steps": [
                {"method": "GET", "url": "https://a.io/users"},
                {"type": "parallel", "steps": [
                    {"method": "POST", "url": "https://a.io/orders"},
                    {"method": "GET", "url": "https://a.io/stock"},
                ]},
            ],
        })
        assert isinstance(step.steps[0], WorkflowRequest)
        assert isinstance(step.steps[1], WorkflowStep)
        assert [r.url for r in step.iter_requests()] == [
            "https://a.io/users", "https://a.io/orders", "https://a.io/stock",
        ]
        assert len(list(step.iter_steps())) == 2

    def test_step_requires_steps(self):
        with pytest.raises(ValidationError):
            WorkflowStep.model_validate({"type": "sequential"})


class TestTestSpecification:
    def test_iter_requests_covers_workflow(self):
        spec = TestSpecification(
            test_type="workflow",
            workflow=[WorkflowStep(steps=[WorkflowRequest(url="https://a.io/x")])],
        )
        assert spec.is_multi_step
        assert spec.primary_request.url == "https://a.io/x"

    def test_primary_request_none_when_empty(self):
        assert TestSpecification().primary_request is None

    def test_round_trip_through_wire(self, sample_spec):
        restored = TestSpecification.model_validate(sample_spec.to_wire())
        assert restored == sample_spec


class TestConfidence:
    def test_clamp(self):
        assert clamp_confidence(1.4) == 1.0
        assert clamp_confidence(-0.2) == 0.0
        assert clamp_confidence(0.42) == 0.42

    def test_outcome_clamps(self, sample_spec):
        assert ParseOutcome(spec=sample_spec, confidence=3).confidence == 1.0

    def test_report_clamps(self):
        assert ValidationReport(confidence=-1).confidence == 0.0

    def test_report_partitions_issues(self):
        report = ValidationReport.model_validate({
            "issues": [
                {"type": "error", "field": "a", "message": "x", "severity": "critical"},
                {"type": "warning", "field": "b", "message": "y"},
                {"type": "suggestion", "field": "c", "message": "z", "severity": "low"},
            ]
        })
        assert len(report.errors) == len(report.warnings) == len(report.suggestions) == 1
        assert not report.is_valid


class TestRequestSpec:
    def test_default_method(self):
        assert RequestSpec(url="https://a.io").method == "GET"

    def test_unknown_method_rejected(self):
        with pytest.raises(ValidationError):
            RequestSpec(method="FETCH", url="https://a.io")
