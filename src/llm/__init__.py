# src/llm/__init__.py
