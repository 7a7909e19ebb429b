# src/parser/api_description.py
"""Recognize OpenAPI/Swagger files named in a command and summarize them for the prompt.

Recognition only reads the head of the file and looks for a top-level
openapi/swagger key; files that do not match are ignored, never an error.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

API_DESCRIPTION_EXTENSIONS = (".yaml", ".yml", ".json")

_HEAD_BYTES = 4096
_MARKER_RE = re.compile(r"^\s*\{?\s*[\"']?(openapi|swagger)[\"']?\s*:", re.MULTILINE)
_HTTP_OPERATIONS = ("get", "post", "put", "delete", "patch", "head", "options")


def has_api_description_extension(path: Path | str) -> bool:
    return Path(path).suffix.lower() in API_DESCRIPTION_EXTENSIONS


def looks_like_api_description(path: Path | str) -> bool:
    """True if the file head carries a top-level openapi or swagger key."""
    path = Path(path)
    if not has_api_description_extension(path):
        return False
    try:
        with path.open("rb") as fh:
            head = fh.read(_HEAD_BYTES).decode("utf-8", errors="replace")
    except OSError as e:
        logger.debug("Cannot read %s: %s", path, e)
        return False
    return bool(_MARKER_RE.search(head))


def load_api_description(path: Path | str) -> dict[str, Any] | None:
    """Parse the document as JSON or YAML. None when unreadable."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            doc = json.loads(text)
        else:
            doc = yaml.safe_load(text)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        logger.debug("Cannot parse API description %s: %s", path, e)
        return None
    return doc if isinstance(doc, dict) else None


def summarize_api_description(path: Path | str, max_endpoints: int = 30) -> str | None:
    """Short plain-text endpoint listing for prompt enrichment.

    Returns:
        Summary text, or None if the file is not a recognizable API description.
    """
    if not looks_like_api_description(path):
        return None
    doc = load_api_description(path)
    if doc is None:
        return None

    info = doc.get("info") or {}
    lines = [f"API: {info.get('title', Path(path).name)} {info.get('version', '')}".rstrip()]
    base_url = _base_url(doc)
    if base_url:
        lines.append(f"Base URL: {base_url}")

    endpoints: list[str] = []
    for route, operations in (doc.get("paths") or {}).items():
        if not isinstance(operations, dict):
            continue
        for method in _HTTP_OPERATIONS:
            op = operations.get(method)
            if not isinstance(op, dict):
                continue
            summary = op.get("summary") or op.get("operationId") or ""
            endpoints.append(f"- {method.upper()} {route}" + (f": {summary}" if summary else ""))

    if not endpoints:
        return None
    lines.append("Endpoints:")
    lines.extend(endpoints[:max_endpoints])
    if len(endpoints) > max_endpoints:
        lines.append(f"- ... {len(endpoints) - max_endpoints} more")
    return "\n".join(lines)


def _base_url(doc: dict[str, Any]) -> str | None:
    servers = doc.get("servers")
    if isinstance(servers, list) and servers and isinstance(servers[0], dict):
        return servers[0].get("url")
    host = doc.get("host")
    if host:
        scheme = (doc.get("schemes") or ["https"])[0]
        return f"{scheme}://{host}{doc.get('basePath', '')}"
    return None
