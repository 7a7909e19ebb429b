# src/cache/fingerprint.py
"""Multi-level command fingerprinting for result-cache lookup.

Level 1 (primary): SHA-256 of the normalized command salted with the
endpoint (host + path), prefixed with the extracted HTTP method and domain.
Levels 2-4 (variants): numbers generalized to X, URLs generalized to URL,
then a minimal "METHOD <type> requests" pattern. Variants are salted with
method and endpoint (host + path).

Keys are truncated SHA-256 digests; a collision returns another command's
cached spec.
"""

from __future__ import annotations

import hashlib
import re
from urllib.parse import urlparse

from loadspec.cache.models import CommandFingerprint
from loadspec.core.signals import DEFAULT_EXTRACTOR, TextSignalExtractor

_HASH_LENGTH = 16

_URL_RE = re.compile(r"https?://[^\s,;\"'\]\)<>]+", re.IGNORECASE)
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_HTTP_VERB_RE = re.compile(r"\b(get|post|put|delete|patch|head|options)\b")
_SEND_VERB_RE = re.compile(r"\b(send|make|execute|run|fire|issue|perform)\b")
_REQUEST_RE = re.compile(r"\b(requests?|calls?|hits?)\b")
_TIME_UNITS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b(seconds?|secs?)\b"), "seconds"),
    (re.compile(r"\b(minutes?|mins?)\b"), "minutes"),
    (re.compile(r"\b(hours?|hrs?)\b"), "hours"),
)
_PUNCT_RE = re.compile(r"[!\"#$%&'()*+,;<=>?@\[\\\]^`|~]")
_SENTENCE_DOT_RE = re.compile(r"\.(?=\s|$)")
_PLACEHOLDER_RE = re.compile(r"PROTOCOL://DOMAIN\S*")


def _hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:_HASH_LENGTH]


def _generalize_url(match: re.Match[str]) -> str:
    path = urlparse(match.group(0).rstrip(".,;:!?")).path.rstrip("/")
    return "PROTOCOL://DOMAIN" + _NUMBER_RE.sub("NUM", path)


def normalize_command(text: str) -> str:
    """Canonical form of a command used for hashing.

    Case-folds, generalizes URLs and numbers, canonicalizes verbs and
    time units, strips punctuation and collapses whitespace.
    """
    normalized = text.lower()
    normalized = _URL_RE.sub(_generalize_url, normalized)
    normalized = _NUMBER_RE.sub("NUM", normalized)
    normalized = _HTTP_VERB_RE.sub(lambda m: m.group(1).upper(), normalized)
    normalized = _SEND_VERB_RE.sub("send", normalized)
    normalized = _REQUEST_RE.sub("requests", normalized)
    for pattern, unit in _TIME_UNITS:
        normalized = pattern.sub(unit, normalized)
    normalized = _PUNCT_RE.sub(" ", normalized)
    normalized = _SENTENCE_DOT_RE.sub("", normalized)
    return re.sub(r"\s+", " ", normalized).strip()


def compute_fingerprint(
    text: str,
    extractor: TextSignalExtractor | None = None,
) -> CommandFingerprint:
    """Compute primary and variant cache keys for a command.

    Args:
        text: Raw command text.
        extractor: Signal extractor used for method, domain and test type.

    Returns:
        CommandFingerprint with de-duplicated variant keys.
    """
    extractor = extractor or DEFAULT_EXTRACTOR
    method = extractor.method(text)
    domain = extractor.domain(text)
    endpoint = extractor.endpoint(text) or "none"
    normalized = normalize_command(text)

    # Path numbers are generalized in normalized; the endpoint keeps them
    primary_key = f"cmd:{method}:{domain or 'none'}:{_hash(endpoint + ' ' + normalized)}"

    numbers_generalized = normalized.replace("NUM", "X")
    urls_generalized = _PLACEHOLDER_RE.sub("URL", numbers_generalized)
    minimal = f"{method} {extractor.test_type(text)} requests"

    variant_keys: list[str] = []
    for level in (numbers_generalized, urls_generalized, minimal):
        key = f"var:{method}:{endpoint}:{_hash(level)}"
        if key not in variant_keys:
            variant_keys.append(key)

    return CommandFingerprint(
        primary_key=primary_key,
        variant_keys=variant_keys,
        normalized=normalized,
        method=method,
        domain=domain,
    )
