# src/parser/orchestrator.py
"""Completion orchestrator: one structured interpretation via the completion service.

Builds the prompt (optionally enriched with referenced API descriptions),
calls the service with bounded transport retry, decodes the response into
one of the accepted shapes and applies increment / @file rewriting.
Structural failures raise MalformedOutputError and are never retried.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from loadspec.core.models import TestSpecification, clamp_confidence
from loadspec.core.signals import DEFAULT_EXTRACTOR, TextSignalExtractor
from loadspec.llm.models import CompletionRequest, CompletionResponse
from loadspec.llm.retry import RetryConfig, with_retry
from loadspec.parser.api_description import (
    has_api_description_extension,
    looks_like_api_description,
    summarize_api_description,
)
from loadspec.parser.payloads import (
    FileResolver,
    apply_file_reference,
    apply_increment_fields,
    resolve_file_reference,
)
from loadspec.parser.prompt_builder import SYSTEM_PROMPT, build_user_prompt
from loadspec.parser.response_shapes import ShapeKind, parse_completion

if TYPE_CHECKING:
    from loadspec.config.settings import Settings
    from loadspec.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)


class CompletionResult(BaseModel):
    """Accepted completion-path interpretation, before enhancement."""

    spec: TestSpecification
    kind: ShapeKind
    confidence: float
    ambiguities: list[str] = Field(default_factory=list)
    response: CompletionResponse
    file_dependencies: list[str] = Field(default_factory=list)


def calculate_confidence(spec: TestSpecification, command: str) -> float:
    """Heuristic confidence of a decoded spec against the command that produced it."""
    confidence = 1.0
    requests = list(spec.iter_requests())
    if not requests:
        confidence -= 0.3
    if any(not r.url or r.url == "/" for r in requests):
        confidence -= 0.2
    pattern = spec.load_pattern
    if pattern is None or (not pattern.virtual_users and not pattern.requests_per_second):
        confidence -= 0.1

    lowered = command.lower()
    if spec.test_type in lowered:
        confidence += 0.1
    if any(r.method.lower() in lowered for r in requests):
        confidence += 0.1
    return clamp_confidence(confidence)


def identify_ambiguities(
    spec: TestSpecification,
    command: str,
    extractor: TextSignalExtractor | None = None,
) -> list[str]:
    ex = extractor or DEFAULT_EXTRACTOR
    ambiguities = []
    if any(not r.url or r.url == "/" or "." not in r.url for r in spec.iter_requests()):
        ambiguities.append("URL endpoint is unclear or missing")
    if ex.request_count(command) is None and ex.requests_per_second(command) is None:
        ambiguities.append("Load parameters (users or RPS) are unclear")
    if any(
        r.payload is not None and r.payload.template.strip() in ("", "{}")
        for r in spec.iter_requests()
    ):
        ambiguities.append("Request payload structure is unclear")
    if ex.duration(command) is None:
        ambiguities.append("Test duration was not specified, using default")
    return ambiguities


class CompletionOrchestrator:
    """Runs the completion path for one command."""

    def __init__(
        self,
        client: BaseLLMClient,
        settings: Settings | None = None,
        extractor: TextSignalExtractor | None = None,
        file_resolver: FileResolver | None = None,
    ) -> None:
        if settings is None:
            from loadspec.config.settings import load_settings
            settings = load_settings()
        self._client = client
        self._settings = settings
        self._extractor = extractor or DEFAULT_EXTRACTOR
        search_dirs = settings.file_search_dirs_list
        self._resolve = file_resolver or (lambda ref: resolve_file_reference(ref, search_dirs))
        self._retry = RetryConfig(
            max_attempts=settings.llm_retry_attempts,
            base_delay_s=settings.llm_retry_base_delay_s,
            max_delay_s=settings.llm_retry_max_delay_s,
        )

    @property
    def provider_name(self) -> str:
        return self._client.provider_name

    def resolve_dependencies(self, command: str) -> dict[str, Path]:
        """Map each @ref in the command to its file on disk, skipping unresolved ones."""
        resolved: dict[str, Path] = {}
        for ref in self._extractor.file_references(command):
            path = self._resolve(ref)
            if path is None:
                logger.debug("File reference @%s not found", ref)
                continue
            resolved[ref] = path
        return resolved

    def api_summaries(self, files: dict[str, Path]) -> list[str]:
        summaries = []
        for ref, path in files.items():
            if not has_api_description_extension(path) or not looks_like_api_description(path):
                continue
            summary = summarize_api_description(path)
            if summary:
                logger.info("Including API description %s in prompt", ref)
                summaries.append(summary)
        return summaries

    def build_request(self, command: str, api_summaries: list[str] | None = None) -> CompletionRequest:
        return CompletionRequest(
            prompt=build_user_prompt(command, api_summaries),
            system=SYSTEM_PROMPT,
            temperature=self._settings.llm_temperature,
            max_tokens=self._settings.llm_max_tokens,
            desired_format="json",
        )

    async def complete(self, command: str) -> CompletionResult:
        """Interpret a command through the completion service.

        Raises:
            TransportError: Transient transport failures exhausted the retry budget.
            MalformedOutputError: The response is not one of the accepted shapes.
        """
        files = self.resolve_dependencies(command)
        request = self.build_request(command, self.api_summaries(files))

        start = time.monotonic()
        response: CompletionResponse = await with_retry(
            self._complete_once, request, config=self._retry, operation="completion"
        )
        logger.info(
            "Completion from %s/%s in %.0fms (%d output tokens)",
            response.provider, response.model,
            (time.monotonic() - start) * 1000, response.token_usage.output_tokens,
        )

        kind, spec = parse_completion(response.text)
        fields = self._extractor.increment_fields(command)
        # API descriptions only enrich the prompt; they are never payloads
        refs = [
            ref for ref in self._extractor.file_references(command)
            if ref not in files or not looks_like_api_description(files[ref])
        ]
        for req in spec.iter_requests():
            apply_increment_fields(req, fields)
            apply_file_reference(req, refs)

        return CompletionResult(
            spec=spec,
            kind=kind,
            confidence=calculate_confidence(spec, command),
            ambiguities=identify_ambiguities(spec, command, self._extractor),
            response=response,
            file_dependencies=[str(p) for p in files.values()],
        )

    async def _complete_once(self, request: CompletionRequest) -> CompletionResponse:
        return await asyncio.wait_for(
            self._client.complete(request), timeout=self._settings.llm_timeout_s
        )
