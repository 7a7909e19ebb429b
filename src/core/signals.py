# src/core/signals.py
"""Text signal extraction: pure functions of the raw command text.

TextSignalExtractor is the strategy interface consumed by the fingerprint
builder, completion orchestrator, enhancer, validator and fallback parser.
RegexSignalExtractor is the default rule-based implementation; another
strategy can be injected into any of those components.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Literal
from urllib.parse import urlparse

from loadspec.core.models import HTTP_METHODS, Duration, TestType

logger = logging.getLogger(__name__)

_URL_CHARS = r"[^\s,;\"'\]\)<>]+"
_TRAILING_PUNCT = ".,;:!?)'\""

_ABSOLUTE_URL_RE = re.compile(rf"https?://{_URL_CHARS}", re.IGNORECASE)
_RELATIVE_URL_RE = re.compile(rf"(?:^|(?<=\s))(/{_URL_CHARS})")

# HEAD/OPTIONS are only honoured in upper case: "head" and "options" are common words.
_UPPER_METHOD_RE = re.compile(r"\b(GET|POST|PUT|DELETE|PATCH|HEAD|OPTIONS)\b")
_ANY_CASE_METHOD_RE = re.compile(r"\b(get|post|put|delete|patch)\b", re.IGNORECASE)

_METHOD_URL_RE = re.compile(
    r"\b(GET|POST|PUT|DELETE|PATCH|HEAD|OPTIONS)\b\s+"
    r"(?:\d[\d,]*\s+)?(?:requests?\s+)?(?:to\s+|at\s+|on\s+|against\s+)?"
    rf"(https?://{_URL_CHARS}|/{_URL_CHARS})",
    re.IGNORECASE,
)

_NOT_RATE = r"(?!\s*(?:per\s+sec|/\s*s(?:ec)?\b))"
_COUNT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(?:send|make|fire|issue|execute|run)\s+(\d[\d,]*)\b", re.IGNORECASE),
    re.compile(rf"\b(\d[\d,]*)\s+(?:[a-z]+\s+)?(?:requests?|calls?|times)\b{_NOT_RATE}", re.IGNORECASE),
    re.compile(r"\b(\d[\d,]*)\s+(?:virtual\s+|concurrent\s+)?(?:users?|vus?)\b", re.IGNORECASE),
    re.compile(r"\b(\d[\d,]*)\s+concurrent\b", re.IGNORECASE),
)

_RPS_RE = re.compile(
    r"\b(\d+(?:\.\d+)?)\s*(?:rps\b|req/s\b|requests?\s*/\s*s(?:ec(?:ond)?)?\b"
    r"|requests?\s+per\s+second\b)",
    re.IGNORECASE,
)

_UNIT_WORDS: dict[str, str] = {
    "s": "seconds", "sec": "seconds", "secs": "seconds", "second": "seconds", "seconds": "seconds",
    "m": "minutes", "min": "minutes", "mins": "minutes", "minute": "minutes", "minutes": "minutes",
    "h": "hours", "hr": "hours", "hrs": "hours", "hour": "hours", "hours": "hours",
}
_DURATION_WITH_PREP_RE = re.compile(
    r"\b(?:for|over|during|lasting|duration(?:\s+of)?:?)\s+(\d+(?:\.\d+)?)\s*"
    r"(seconds?|secs?|s|minutes?|mins?|m|hours?|hrs?|h)\b",
    re.IGNORECASE,
)
_DURATION_LONG_RE = re.compile(
    r"\b(\d+(?:\.\d+)?)\s*(seconds?|secs?|minutes?|mins?|hours?|hrs?)\b", re.IGNORECASE
)

_TEST_TYPE_KEYWORDS: tuple[tuple[TestType, re.Pattern[str]], ...] = (
    ("spike", re.compile(r"\b(spike|burst|sudden)\b", re.IGNORECASE)),
    ("stress", re.compile(r"\b(stress|ramp(?:ing)?(?:[- ]up)?|gradually|overload)\b", re.IGNORECASE)),
    ("endurance", re.compile(r"\b(endurance|sustained|soak|long[- ]running)\b", re.IGNORECASE)),
    ("volume", re.compile(r"\b(volume|bulk)\b", re.IGNORECASE)),
)

_INCREMENT_RE = re.compile(r"\bincrement\s+(.+?)(?=\.(?:\s|$)|[\n;]|$)", re.IGNORECASE)
_FIELD_SPLIT_RE = re.compile(r",|\band\b", re.IGNORECASE)
_IDENT_RE = re.compile(r"[A-Za-z_][\w.]*")
_FIELD_STOPWORDS = frozenset(
    {"the", "a", "an", "field", "fields", "each", "every", "by", "value", "values", "its"}
)

_FILE_REF_RE = re.compile(r"(?<![\w.])@([\w./\-]+\.\w+)")

_API_KEY_RE = re.compile(r"\bx-api-key\s*[:=]\s*([A-Za-z0-9\-_]+)", re.IGNORECASE)
_HEADER_RE = re.compile(
    r"\bheader\s+([A-Za-z][\w-]*)\s*[:=]\s*(.+?)(?=\s+(?:and|with)\b|[,\r\n]|$)",
    re.IGNORECASE,
)
_BEARER_RE = re.compile(r"\bbearer\s+(?:token\s+)?([A-Za-z0-9\-._~+/]+=*)", re.IGNORECASE)

_PARALLEL_RE = re.compile(
    r"\b(in parallel|parallel|simultaneously|at the same time|concurrently)\b", re.IGNORECASE
)
_BATCH_RE = re.compile(r"\bbatch\b", re.IGNORECASE)


def clean_url(url: str) -> str:
    """Strip trailing sentence punctuation picked up by permissive URL patterns."""
    return url.rstrip(_TRAILING_PUNCT)


def _to_int(raw: str) -> int:
    return int(raw.replace(",", ""))


class TextSignalExtractor(ABC):
    """Strategy interface for pulling intent signals out of command text."""

    @abstractmethod
    def methods(self, text: str) -> list[str]:
        """HTTP verbs in order of appearance (upper-cased)."""

    @abstractmethod
    def urls(self, text: str) -> list[str]:
        """Absolute URLs in order; root-relative paths only when no absolute URL exists."""

    @abstractmethod
    def request_count(self, text: str) -> int | None:
        """Explicit request or user count, if stated."""

    @abstractmethod
    def requests_per_second(self, text: str) -> float | None:
        """Explicit request rate, if stated."""

    @abstractmethod
    def duration(self, text: str) -> Duration | None:
        """Explicit test duration, if stated."""

    @abstractmethod
    def test_type(self, text: str) -> TestType:
        """Keyword-inferred test type; baseline when nothing matches."""

    @abstractmethod
    def increment_fields(self, text: str) -> list[str]:
        """Field names named after "increment"."""

    @abstractmethod
    def file_references(self, text: str) -> list[str]:
        """Inline @path references, without the leading @."""

    @abstractmethod
    def headers(self, text: str) -> dict[str, str]:
        """Explicit request headers."""

    @abstractmethod
    def inline_json(self, text: str) -> Any | None:
        """First JSON object or array embedded in the text."""

    @abstractmethod
    def method_url_pairs(self, text: str) -> list[tuple[str, str]]:
        """(METHOD, url) pairs in order of appearance."""

    # --- Derived signals ---

    def method(self, text: str, default: str = "GET") -> str:
        found = self.methods(text)
        return found[0] if found else default

    def primary_url(self, text: str) -> str | None:
        found = self.urls(text)
        return found[0] if found else None

    def domain(self, text: str) -> str | None:
        """Host of the first absolute URL, lower-cased."""
        for url in self.urls(text):
            host = urlparse(url).netloc.lower()
            if host:
                return host
        return None

    def endpoint(self, text: str) -> str | None:
        """Host plus path of the first URL."""
        url = self.primary_url(text)
        if url is None:
            return None
        parsed = urlparse(url)
        return f"{parsed.netloc.lower()}{parsed.path.rstrip('/') or '/'}"

    def workflow_mode(self, text: str) -> Literal["sequential", "parallel"]:
        return "parallel" if _PARALLEL_RE.search(text) else "sequential"

    def wants_batch(self, text: str) -> bool:
        return bool(_BATCH_RE.search(text))


class RegexSignalExtractor(TextSignalExtractor):
    """Default rule-based extractor built on regular expressions."""

    def methods(self, text: str) -> list[str]:
        found = [m.group(1) for m in _UPPER_METHOD_RE.finditer(text)]
        if found:
            return found
        return [m.group(1).upper() for m in _ANY_CASE_METHOD_RE.finditer(text)]

    def urls(self, text: str) -> list[str]:
        absolute = [clean_url(m.group(0)) for m in _ABSOLUTE_URL_RE.finditer(text)]
        if absolute:
            return absolute
        return [
            clean_url(m.group(1))
            for m in _RELATIVE_URL_RE.finditer(text)
            if len(clean_url(m.group(1))) > 1
        ]

    def request_count(self, text: str) -> int | None:
        for pattern in _COUNT_PATTERNS:
            match = pattern.search(text)
            if match:
                return _to_int(match.group(1))
        return None

    def requests_per_second(self, text: str) -> float | None:
        match = _RPS_RE.search(text)
        return float(match.group(1)) if match else None

    def duration(self, text: str) -> Duration | None:
        match = _DURATION_WITH_PREP_RE.search(text) or _DURATION_LONG_RE.search(text)
        if not match:
            return None
        value = float(match.group(1))
        if value <= 0:
            return None
        return Duration(value=value, unit=_UNIT_WORDS[match.group(2).lower()])

    def test_type(self, text: str) -> TestType:
        for test_type, pattern in _TEST_TYPE_KEYWORDS:
            if pattern.search(text):
                return test_type
        return "baseline"

    def increment_fields(self, text: str) -> list[str]:
        fields: list[str] = []
        for match in _INCREMENT_RE.finditer(text):
            for part in _FIELD_SPLIT_RE.split(match.group(1)):
                for token in _IDENT_RE.findall(part):
                    token = token.rstrip(".")
                    if not token or token.lower() in _FIELD_STOPWORDS:
                        continue
                    if token not in fields:
                        fields.append(token)
                    break
        return fields

    def file_references(self, text: str) -> list[str]:
        refs: list[str] = []
        for match in _FILE_REF_RE.finditer(text):
            ref = match.group(1).rstrip(".")
            if ref not in refs:
                refs.append(ref)
        return refs

    def headers(self, text: str) -> dict[str, str]:
        headers: dict[str, str] = {}
        for match in _HEADER_RE.finditer(text):
            headers[match.group(1)] = match.group(2).strip().strip("\"'")
        api_key = _API_KEY_RE.search(text)
        if api_key:
            headers["x-api-key"] = api_key.group(1)
        bearer = _BEARER_RE.search(text)
        if bearer and "Authorization" not in headers:
            headers["Authorization"] = f"Bearer {bearer.group(1)}"
        return headers

    def inline_json(self, text: str) -> Any | None:
        decoder = json.JSONDecoder()
        for idx, char in enumerate(text):
            if char not in "{[":
                continue
            try:
                value, _ = decoder.raw_decode(text, idx)
            except json.JSONDecodeError:
                continue
            except RecursionError:
                # Nesting deeper than the decoder can follow is never a body
                logger.debug("Inline JSON nesting too deep at offset %d", idx)
                return None
            if isinstance(value, (dict, list)) and value:
                return value
        return None

    def method_url_pairs(self, text: str) -> list[tuple[str, str]]:
        return [
            (m.group(1).upper(), clean_url(m.group(2)))
            for m in _METHOD_URL_RE.finditer(text)
            if m.group(1).upper() in HTTP_METHODS
        ]


DEFAULT_EXTRACTOR: TextSignalExtractor = RegexSignalExtractor()
