# tests/integration/conftest.py
"""Shared fixtures for integration tests.

Pipeline tests run fully in-process against the scripted completion
client. Tests marked "ollama" talk to a live Ollama server and are
skipped unless OLLAMA_IT_URL points at one.
"""

from __future__ import annotations

import os

import pytest

OLLAMA_LLM_MODEL = os.environ.get("OLLAMA_IT_MODEL", "qwen2.5:0.5b")


def pytest_configure(config):
    config.addinivalue_line("markers", "ollama: marks tests requiring a running Ollama server")


@pytest.fixture
def ollama_llm():
    url = os.environ.get("OLLAMA_IT_URL")
    if not url:
        pytest.skip("OLLAMA_IT_URL not set")
    from loadspec.llm.adapters.ollama_adapter import OllamaAdapter
    return OllamaAdapter(model=OLLAMA_LLM_MODEL, host=url, timeout_s=120)
