# src/parser/response_shapes.py
"""Decode completion text into one of the three accepted specification shapes.

The shape is a tagged union discriminated by an explicit testType or by
the presence of batch / workflow / requests keys (plus the bare
{method, url, ...} single-request form). Every request is checked for a
known HTTP verb and an absolute http(s) URL before model validation.
Anything else raises MalformedOutputError; nothing is coerced.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Literal
from urllib.parse import urlparse

from pydantic import ValidationError

from loadspec.core.errors import MalformedOutputError
from loadspec.core.models import HTTP_METHODS, TestSpecification

ShapeKind = Literal["single", "batch", "workflow"]

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_REQUEST_KEYS = ("method", "url", "headers", "body", "payload")


def clean_json_text(text: str) -> str:
    """Strip markdown fences and surrounding prose, keeping the outermost object."""
    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1)
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return text.strip()
    return text[start : end + 1]


def decode_response(text: str) -> dict[str, Any]:
    """Parse completion text into a JSON object."""
    cleaned = clean_json_text(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"Response is not valid JSON: {e}", raw_text=text) from e
    if not isinstance(data, dict):
        raise MalformedOutputError("Response JSON is not an object", raw_text=text)
    return data


def is_absolute_http_url(url: Any) -> bool:
    if not isinstance(url, str):
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def classify_shape(data: dict[str, Any]) -> ShapeKind:
    """Discriminate the response shape."""
    test_type = data.get("testType") or data.get("test_type")
    if test_type == "batch" or data.get("batch"):
        return "batch"
    if test_type == "workflow" or data.get("workflow"):
        return "workflow"
    if data.get("requests") or ("method" in data and "url" in data):
        return "single"
    raise MalformedOutputError(
        "Response matches no accepted shape (requests, workflow or batch)",
        raw_text=json.dumps(data)[:500],
    )


def parse_completion(text: str) -> tuple[ShapeKind, TestSpecification]:
    """Decode, classify and structurally validate a completion response.

    Raises:
        MalformedOutputError: On non-JSON text or any structural violation.
    """
    data = decode_response(text)
    kind = classify_shape(data)
    payload = _SHAPE_PARSERS[kind](data)
    try:
        spec = TestSpecification.model_validate(payload)
    except ValidationError as e:
        raise MalformedOutputError(
            f"{kind} response failed validation: {e.error_count()} error(s)",
            raw_text=text,
        ) from e
    return kind, spec


# --- Shape parsers ---


def _parse_single(data: dict[str, Any]) -> dict[str, Any]:
    payload = dict(data)
    if not data.get("requests"):
        # Bare single-request form
        payload["requests"] = [{k: data[k] for k in _REQUEST_KEYS if k in data}]
        count = data.get("requestCount")
        if not data.get("loadPattern") and isinstance(count, int) and count > 0:
            payload["loadPattern"] = {"type": "constant", "virtualUsers": count}
    requests = payload["requests"]
    if not isinstance(requests, list):
        raise MalformedOutputError("'requests' must be a list")
    payload["requests"] = [_check_request(r, f"requests[{i}]") for i, r in enumerate(requests)]
    if payload.get("testType") in ("batch", "workflow"):
        payload.pop("testType")
    return payload


def _parse_workflow(data: dict[str, Any]) -> dict[str, Any]:
    payload = dict(data)
    payload["workflow"] = _check_workflow(data.get("workflow"), "workflow")
    payload["requests"] = [
        _check_request(r, f"requests[{i}]") for i, r in enumerate(data.get("requests") or [])
    ]
    payload["testType"] = "workflow"
    return payload


def _parse_batch(data: dict[str, Any]) -> dict[str, Any]:
    payload = dict(data)
    batch = data.get("batch")
    if isinstance(batch, list):
        batch = {"tests": batch}
    if not isinstance(batch, dict):
        raise MalformedOutputError("batch response has no 'batch' object")
    tests = batch.get("tests")
    if not isinstance(tests, list) or not tests:
        raise MalformedOutputError("batch response has no tests")

    checked_tests = []
    for i, test in enumerate(tests):
        if not isinstance(test, dict):
            raise MalformedOutputError(f"batch.tests[{i}] is not an object")
        item = dict(test)
        if not item.get("requests") and "method" in item and "url" in item:
            item["requests"] = [{k: item[k] for k in _REQUEST_KEYS if k in item}]
        if not item.get("requests") and not item.get("workflow"):
            raise MalformedOutputError(f"batch.tests[{i}] has no requests")
        item["requests"] = [
            _check_request(r, f"batch.tests[{i}].requests[{j}]")
            for j, r in enumerate(item.get("requests") or [])
        ]
        if item.get("workflow"):
            item["workflow"] = _check_workflow(item["workflow"], f"batch.tests[{i}].workflow")
        if item.get("testType") in ("batch", "workflow") and not item.get("workflow"):
            item.pop("testType")
        checked_tests.append(item)

    payload["batch"] = {**batch, "tests": checked_tests}
    payload["requests"] = []
    payload["testType"] = "batch"
    return payload


_SHAPE_PARSERS: dict[ShapeKind, Callable[[dict[str, Any]], dict[str, Any]]] = {
    "single": _parse_single,
    "workflow": _parse_workflow,
    "batch": _parse_batch,
}


# --- Structural checks ---


def _check_request(raw: Any, where: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise MalformedOutputError(f"{where} is not an object")
    request = dict(raw)
    method = request.get("method")
    if not isinstance(method, str) or method.upper() not in HTTP_METHODS:
        raise MalformedOutputError(f"{where}.method {method!r} is not a supported HTTP method")
    request["method"] = method.upper()
    if not is_absolute_http_url(request.get("url")):
        raise MalformedOutputError(f"{where}.url {request.get('url')!r} is not an absolute http(s) URL")
    return request


def _check_step(raw: Any, where: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise MalformedOutputError(f"{where} is not an object")
    if "steps" not in raw:
        return _check_request(raw, where)
    step = dict(raw)
    steps = step.get("steps")
    if not isinstance(steps, list) or not steps:
        raise MalformedOutputError(f"{where}.steps is empty")
    step["steps"] = [_check_step(s, f"{where}.steps[{i}]") for i, s in enumerate(steps)]
    return step


def _check_workflow(raw: Any, where: str) -> list[dict[str, Any]]:
    workflow = [raw] if isinstance(raw, dict) else raw
    if not isinstance(workflow, list) or not workflow:
        raise MalformedOutputError(f"{where} has no steps")
    if any(isinstance(s, dict) and "steps" not in s for s in workflow):
        # Bare requests at top level: one sequential step
        workflow = [{"type": "sequential", "steps": workflow}]
    return [_check_step(s, f"{where}[{i}]") for i, s in enumerate(workflow)]
