# src/core/models.py
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
Attributes are snake_case in Python and camelCase on the wire (completion
service JSON, persisted cache, CLI output). Both forms are accepted on input.
"""

from __future__ import annotations

from typing import Annotated, Any, Iterator, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, field_validator
from pydantic.alias_generators import to_camel

HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]
HTTP_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")
BODY_METHODS: frozenset[str] = frozenset({"POST", "PUT", "PATCH"})

TestType = Literal[
    "baseline", "spike", "stress", "endurance", "volume", "workflow", "batch"
]
LoadPatternType = Literal["constant", "ramp-up", "spike", "step"]
DurationUnit = Literal["seconds", "minutes", "hours"]
VariableKind = Literal[
    "incremental", "random_id", "uuid", "timestamp", "random_string", "sequence", "bulk_data"
]

_UNIT_SECONDS: dict[str, int] = {"seconds": 1, "minutes": 60, "hours": 3600}


def clamp_confidence(value: float) -> float:
    """Clamp a confidence score into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


class WireModel(BaseModel):
    """Base for models serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump with camelCase keys, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# === LOAD SHAPE ===


class Duration(WireModel):
    """Test duration (value > 0)."""

    value: float = Field(gt=0)
    unit: DurationUnit = "seconds"

    def to_seconds(self) -> float:
        return self.value * _UNIT_SECONDS[self.unit]


class LoadPattern(WireModel):
    """How virtual users or request rate evolve over the test."""

    type: LoadPatternType = "constant"
    virtual_users: int | None = None
    requests_per_second: float | None = None
    ramp_up_time: Duration | None = None
    plateau_time: Duration | None = None
    ramp_down_time: Duration | None = None


# === PAYLOADS ===


class VariableDefinition(WireModel):
    """Generator for a dynamic value inserted into a payload template."""

    name: str
    kind: VariableKind = Field(default="random_string", alias="type")
    parameters: dict[str, Any] = Field(default_factory=dict)


class PayloadSpec(WireModel):
    """Templated request body.

    template is either JSON text with {{name}} placeholders or an
    unresolved "@path" file reference.
    """

    template: str
    variables: list[VariableDefinition] = Field(default_factory=list)

    @property
    def is_file_reference(self) -> bool:
        return self.template.strip().startswith("@")


class RequestSpec(WireModel):
    """Single HTTP request description."""

    method: HttpMethod = "GET"
    url: str
    headers: dict[str, str] | None = None
    body: Any = None
    payload: PayloadSpec | None = None


# === WORKFLOW / BATCH ===


class WorkflowRequest(RequestSpec):
    """A request inside a workflow step, optionally exchanging data."""

    id: str | None = None
    name: str | None = None
    request_count: int | None = None
    extract_data: Any = None
    use_data: Any = None


def _step_kind(value: Any) -> str:
    if isinstance(value, dict):
        return "step" if "steps" in value else "request"
    return "step" if isinstance(value, WorkflowStep) else "request"


StepItem = Annotated[
    Union[
        Annotated[WorkflowRequest, Tag("request")],
        Annotated["WorkflowStep", Tag("step")],
    ],
    Discriminator(_step_kind),
]


class WorkflowStep(WireModel):
    """Group of requests or nested steps run sequentially or in parallel."""

    id: str | None = None
    name: str | None = None
    type: Literal["sequential", "parallel"] = "sequential"
    steps: list[StepItem]
    think_time: Duration | None = None

    def iter_requests(self) -> Iterator[WorkflowRequest]:
        for step in self.steps:
            if isinstance(step, WorkflowStep):
                yield from step.iter_requests()
            else:
                yield step

    def iter_steps(self) -> Iterator[WorkflowStep]:
        yield self
        for step in self.steps:
            if isinstance(step, WorkflowStep):
                yield from step.iter_steps()


WorkflowStep.model_rebuild()


class CorrelationRule(WireModel):
    """Carries a value extracted from one step into another."""

    source_step: str
    source_field: str
    target_step: str
    target_field: str


class BatchTestItem(WireModel):
    """One independent test within a batch."""

    id: str = ""
    name: str = ""
    description: str = ""
    test_type: TestType = "baseline"
    requests: list[RequestSpec] = Field(default_factory=list)
    workflow: list[WorkflowStep] | None = None
    load_pattern: LoadPattern | None = None
    duration: Duration | None = None


class BatchSpec(WireModel):
    """Several tests executed together."""

    id: str = ""
    name: str = ""
    description: str = ""
    tests: list[BatchTestItem] = Field(default_factory=list)
    execution_mode: Literal["parallel", "sequential"] = "parallel"
    aggregation_mode: Literal["combined", "separate"] = "combined"


# === TEST SPECIFICATION ===


class TestSpecification(WireModel):
    """Canonical structured description of a load test.

    requests must be non-empty unless test_type is batch or workflow.
    """

    __test__ = False

    id: str = ""
    name: str = ""
    description: str = ""
    test_type: TestType = "baseline"
    requests: list[RequestSpec] = Field(default_factory=list)
    workflow: list[WorkflowStep] | None = None
    batch: BatchSpec | None = None
    load_pattern: LoadPattern | None = None
    duration: Duration | None = None
    data_correlation: list[CorrelationRule] | None = None

    @property
    def is_multi_step(self) -> bool:
        return self.test_type in ("batch", "workflow")

    def iter_requests(self) -> Iterator[RequestSpec]:
        """Yield every request: top-level, batch items and workflow leaves."""
        yield from self.requests
        for step in self.workflow or []:
            yield from step.iter_requests()
        if self.batch is not None:
            for item in self.batch.tests:
                yield from item.requests
                for step in item.workflow or []:
                    yield from step.iter_requests()

    @property
    def primary_request(self) -> RequestSpec | None:
        return next(self.iter_requests(), None)


# === DIAGNOSTICS ===


class ValidationIssue(WireModel):
    """Single diagnostic produced by the validator."""

    type: Literal["error", "warning", "suggestion"]
    field: str
    message: str
    suggestion: str | None = None
    severity: Literal["critical", "high", "medium", "low"] = "medium"


class ValidationReport(WireModel):
    """Outcome of the diagnostic pass over a specification."""

    issues: list[ValidationIssue] = Field(default_factory=list)
    actionable_suggestions: list[str] = Field(default_factory=list)
    can_proceed: bool = True
    confidence: float = 1.0

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return clamp_confidence(v)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.type == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.type == "warning"]

    @property
    def suggestions(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.type == "suggestion"]

    @property
    def is_valid(self) -> bool:
        return not self.errors


class ParseOutcome(WireModel):
    """Final result of interpreting one command. Never carries an exception."""

    spec: TestSpecification
    confidence: float = 0.0
    used_fallback: bool = False
    warnings: list[str] = Field(default_factory=list)
    ambiguities: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    issues: list[ValidationIssue] = Field(default_factory=list)
    can_proceed: bool = True
    source: Literal["cache", "completion", "fallback", "recovery"] = "completion"
    cache_hit: Literal["primary", "variant"] | None = None
    trace: list[str] = Field(default_factory=list)

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return clamp_confidence(v)
