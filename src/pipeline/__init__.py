# src/pipeline/__init__.py
