# src/parser/__init__.py
