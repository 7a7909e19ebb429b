# tests/unit/parser/test_unit_enhancer.py
"""Tests for parser/enhancer.py: default filling without overriding."""

from __future__ import annotations

import pytest

from loadspec.core.models import (
    BatchSpec,
    BatchTestItem,
    Duration,
    LoadPattern,
    PayloadSpec,
    RequestSpec,
    TestSpecification,
    VariableDefinition,
    WorkflowRequest,
    WorkflowStep,
)
from loadspec.parser.enhancer import (
    ResponseEnhancer,
    endpoint_label,
    enhance_payload,
    generate_spec_id,
    generate_test_name,
    guess_variable_kind,
    infer_load_pattern,
)


@pytest.fixture
def enhancer() -> ResponseEnhancer:
    return ResponseEnhancer()


class TestInferLoadPattern:
    def test_spike(self):
        pattern = infer_load_pattern("spike", 100)
        assert (pattern.type, pattern.virtual_users) == ("spike", 100)

    def test_stress_ramps_over_two_minutes(self):
        pattern = infer_load_pattern("stress", 40)
        assert pattern.type == "ramp-up"
        assert pattern.ramp_up_time == Duration(value=2, unit="minutes")

    def test_endurance_capped(self):
        assert infer_load_pattern("endurance", 500).virtual_users == 50

    def test_rate_based(self):
        pattern = infer_load_pattern("baseline", None, 25.0)
        assert pattern.requests_per_second == 25.0
        assert pattern.virtual_users is None

    def test_minimum_one_user(self):
        assert infer_load_pattern("baseline", None).virtual_users == 1
        assert infer_load_pattern("baseline", 0).virtual_users == 1


class TestVariables:
    @pytest.mark.parametrize("name, kind", [
        ("userUuid", "uuid"),
        ("orderId", "random_id"),
        ("createdTime", "timestamp"),
        ("birthDate", "timestamp"),
        ("label", "random_string"),
    ])
    def test_guess_kind(self, name, kind):
        assert guess_variable_kind(name) == kind

    def test_synthesizes_missing_variables(self):
        payload = enhance_payload(PayloadSpec(template='{"id": "{{orderId}}", "tag": "{{label}}"}'))
        kinds = {v.name: v.kind for v in payload.variables}
        assert kinds == {"orderId": "random_id", "label": "random_string"}
        assert payload.variables[0].parameters == {"min": 1000, "max": 999999}
        assert payload.variables[1].parameters == {"length": 10}

    def test_existing_parameters_kept(self):
        var = VariableDefinition(name="n", kind="sequence", parameters={"start": 50})
        payload = enhance_payload(PayloadSpec(template='{"n": "{{n}}"}', variables=[var]))
        assert payload.variables[0].parameters == {"start": 50, "step": 1}

    def test_file_reference_untouched(self):
        payload = enhance_payload(PayloadSpec(template="@{{weird}}.json"))
        assert payload.variables == []


class TestNaming:
    def test_endpoint_label(self):
        assert endpoint_label("https://a.io/api/users/") == "users"
        assert endpoint_label("https://a.io") == "API"
        assert endpoint_label("/orders") == "orders"

    def test_generate_test_name(self):
        assert generate_test_name("spike", "POST", "https://a.io/orders") == "Spike Test - POST orders"

    def test_spec_id_deterministic_and_load_sensitive(self, sample_spec):
        first = generate_spec_id(sample_spec)
        assert first == generate_spec_id(sample_spec.model_copy(deep=True))
        assert first.startswith("baseline-get-api-example-com-")

        changed = sample_spec.model_copy(deep=True)
        changed.load_pattern.virtual_users = 10
        assert generate_spec_id(changed) != first


class TestEnhance:
    def test_fills_everything_missing(self, enhancer):
        spec = TestSpecification(requests=[RequestSpec(method="GET", url="https://a.io/users")])
        out = enhancer.enhance(spec, "spike test GET https://a.io/users with 200 users for 30s")
        assert out.test_type == "spike"
        assert out.load_pattern.type == "spike"
        assert out.load_pattern.virtual_users == 200
        assert out.duration == Duration(value=30, unit="seconds")
        assert out.name == "Spike Test - GET users"
        assert out.description.startswith("spike test")
        assert out.id.startswith("spike-get-a-io-")

    def test_does_not_override_supplied_values(self, enhancer, sample_spec):
        out = enhancer.enhance(sample_spec, "spike test with 99 users for 10 minutes")
        assert out.test_type == "baseline"
        assert out.load_pattern.virtual_users == 5
        assert out.duration == Duration(value=2, unit="minutes")
        assert out.name == sample_spec.name
        assert out.id == sample_spec.id

    def test_input_not_mutated(self, enhancer):
        spec = TestSpecification(requests=[RequestSpec(method="POST", url="https://a.io", body={"a": 1})])
        enhancer.enhance(spec, "POST https://a.io")
        assert spec.requests[0].headers is None
        assert spec.duration is None

    def test_default_duration(self, enhancer):
        spec = TestSpecification(requests=[RequestSpec(url="https://a.io")])
        assert enhancer.enhance(spec, "GET https://a.io").duration == Duration(value=60, unit="seconds")

    def test_users_filled_when_pattern_has_neither(self, enhancer):
        spec = TestSpecification(
            requests=[RequestSpec(url="https://a.io")],
            load_pattern=LoadPattern(type="step"),
        )
        out = enhancer.enhance(spec, "run 12 users")
        assert out.load_pattern.type == "step"
        assert out.load_pattern.virtual_users == 12


class TestEnhanceRequest:
    def test_content_type_added_for_body(self, enhancer):
        request = enhancer.enhance_request(RequestSpec(method="POST", url="https://a.io", body={"a": 1}))
        assert request.headers == {"Content-Type": "application/json"}

    def test_existing_content_type_any_case(self, enhancer):
        request = RequestSpec(
            method="PUT", url="https://a.io", body="x", headers={"content-type": "text/plain"}
        )
        enhancer.enhance_request(request)
        assert request.headers == {"content-type": "text/plain"}

    def test_no_content_type_for_get(self, enhancer):
        assert enhancer.enhance_request(RequestSpec(url="https://a.io")).headers is None

    def test_at_body_turned_into_template(self, enhancer):
        request = enhancer.enhance_request(RequestSpec(method="POST", url="https://a.io", body="@p.json"))
        assert request.payload.template == "@p.json"
        assert request.body is None
        assert request.headers["Content-Type"] == "application/json"


class TestMultiStep:
    def test_workflow_step_ids(self, enhancer):
        spec = TestSpecification(
            test_type="workflow",
            workflow=[WorkflowStep(steps=[
                WorkflowRequest(url="https://a.io/a"),
                WorkflowStep(id="custom", type="parallel", steps=[WorkflowRequest(url="https://a.io/b")]),
                WorkflowStep(steps=[WorkflowRequest(url="https://a.io/c")]),
            ])],
        )
        out = enhancer.enhance(spec, "first GET https://a.io/a then GET https://a.io/b")
        ids = [s.id for s in out.workflow[0].iter_steps()]
        assert ids == ["step_1", "custom", "step_3"]
        assert out.test_type == "workflow"

    def test_batch_items_named(self, enhancer):
        spec = TestSpecification(
            test_type="batch",
            batch=BatchSpec(tests=[
                BatchTestItem(requests=[RequestSpec(method="DELETE", url="https://a.io/items")]),
                BatchTestItem(name="Mine", requests=[RequestSpec(url="https://a.io/x")]),
            ]),
        )
        out = enhancer.enhance(spec, "batch test")
        assert out.batch.id == "batch"
        assert out.batch.name == "Batch of 2 tests"
        assert [t.id for t in out.batch.tests] == ["test_1", "test_2"]
        assert out.batch.tests[0].name == "Baseline Test - DELETE items"
        assert out.batch.tests[1].name == "Mine"
