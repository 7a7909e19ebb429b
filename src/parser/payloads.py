# src/parser/payloads.py
"""Payload helpers: increment rewriting and @file references.

"increment <field>" turns a literal body value into a {{field}} placeholder
backed by an incremental variable seeded from the literal. "@path"
references stay unresolved payload templates; they are only located on
disk to track cache dependencies.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from pathlib import Path
from typing import Any, Callable

from loadspec.core.models import BODY_METHODS, PayloadSpec, RequestSpec, VariableDefinition

logger = logging.getLogger(__name__)

FileResolver = Callable[[str], "Path | None"]

PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")
_MISSING = object()


def placeholder_name(field: str) -> str:
    """Variable name for a (possibly dotted) field path."""
    return re.sub(r"\W", "_", field)


def resolve_file_reference(ref: str, search_dirs: list[Path] | None = None) -> Path | None:
    """Locate an @path reference on disk: absolute, working directory, then search dirs."""
    ref = ref.lstrip("@")
    candidate = Path(ref).expanduser()
    if candidate.is_absolute():
        return candidate if candidate.is_file() else None
    for base in [Path.cwd(), *(search_dirs or [])]:
        path = base / candidate
        if path.is_file():
            return path.resolve()
    return None


def find_field_value(obj: Any, field: str) -> Any:
    """Value of field (dotted path or key searched at any depth), or _MISSING."""
    if "." in field:
        current = obj
        for part in field.split("."):
            if not isinstance(current, dict) or part not in current:
                return _MISSING
            current = current[part]
        return current
    if isinstance(obj, dict):
        if field in obj:
            return obj[field]
        children = list(obj.values())
    elif isinstance(obj, list):
        children = obj
    else:
        return _MISSING
    for child in children:
        found = find_field_value(child, field)
        if found is not _MISSING:
            return found
    return _MISSING


def replace_field(obj: Any, field: str, replacement: Any) -> bool:
    """Replace the first occurrence of field in place. True if replaced."""
    if "." in field:
        *parents, last = field.split(".")
        current = obj
        for part in parents:
            if not isinstance(current, dict) or part not in current:
                return False
            current = current[part]
        if isinstance(current, dict) and last in current:
            current[last] = replacement
            return True
        return False
    if isinstance(obj, dict):
        if field in obj:
            obj[field] = replacement
            return True
        children = list(obj.values())
    elif isinstance(obj, list):
        children = obj
    else:
        return False
    return any(replace_field(child, field, replacement) for child in children)


def build_increment_payload(body: Any, fields: list[str]) -> PayloadSpec:
    """Template body with {{field}} placeholders and incremental variables.

    Fields absent from a dict body are added at the top level with seed "1".
    """
    template_body = copy.deepcopy(body) if body is not None else {}
    variables: list[VariableDefinition] = []
    for field in fields:
        name = placeholder_name(field)
        literal = find_field_value(template_body, field)
        if literal is _MISSING or literal is None or literal == "":
            seed = "1"
            if isinstance(template_body, dict):
                template_body[name] = f"{{{{{name}}}}}"
            else:
                logger.debug("Increment field %s not found in non-object body", field)
                continue
        else:
            seed = str(literal)
            replace_field(template_body, field, f"{{{{{name}}}}}")
        variables.append(
            VariableDefinition(name=name, kind="incremental", parameters={"baseValue": seed})
        )
    return PayloadSpec(template=json.dumps(template_body), variables=variables)


def apply_increment_fields(request: RequestSpec, fields: list[str]) -> bool:
    """Rewrite a request's body into an incrementing payload. True if changed."""
    if not fields:
        return False
    if request.payload is not None:
        if request.payload.is_file_reference or request.payload.variables:
            return False
        try:
            body = json.loads(request.payload.template)
        except json.JSONDecodeError:
            return False
    elif isinstance(request.body, (dict, list)):
        body = request.body
    elif request.body is None and request.method in BODY_METHODS:
        body = {}
    else:
        return False

    request.payload = build_increment_payload(body, fields)
    request.body = None
    return True


def apply_file_reference(request: RequestSpec, file_refs: list[str]) -> bool:
    """Turn an "@path" body, or the first command-level @ref, into a payload template."""
    if request.payload is not None:
        return False
    if isinstance(request.body, str) and request.body.strip().startswith("@"):
        request.payload = PayloadSpec(template=request.body.strip())
        request.body = None
        return True
    if request.body is None and file_refs and request.method in BODY_METHODS:
        request.payload = PayloadSpec(template=f"@{file_refs[0]}")
        return True
    return False
