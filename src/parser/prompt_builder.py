# src/parser/prompt_builder.py
"""System and user prompts for the completion service.

The system prompt documents the three accepted output shapes (single
test, workflow, batch) with one worked example each.
"""

from __future__ import annotations

SYSTEM_PROMPT = """You convert natural-language load test commands into structured load test specifications.

Extract from the command:
- HTTP method (GET, POST, PUT, DELETE, PATCH, HEAD, OPTIONS) and the exact target URL
- Request headers and body, if any
- Load pattern (constant, ramp-up, spike, step), virtual users or requests per second
- Test duration
- Test type (baseline, spike, stress, endurance, volume, workflow, batch)

RULES:
- Respond with ONLY one JSON object, no prose and no markdown fences.
- Use the exact URLs and methods from the command. URLs must be absolute http(s) URLs.
- For file references like "@payload.json", use the reference as the request "body" string unchanged.
- Default to POST for requests with a body, GET otherwise.
- Use realistic concrete values in bodies, never template syntax.
- Use camelCase keys exactly as in the examples.

SINGLE TEST OUTPUT (command: "send 20 POST requests to https://api.example.com/users for 2 minutes"):
{
  "testType": "baseline",
  "requests": [
    {
      "method": "POST",
      "url": "https://api.example.com/users",
      "headers": {"Content-Type": "application/json"},
      "body": {"name": "John Doe", "email": "john@example.com"}
    }
  ],
  "loadPattern": {"type": "constant", "virtualUsers": 20},
  "duration": {"value": 2, "unit": "minutes"}
}

WORKFLOW OUTPUT (command: "first GET https://api.example.com/users, then POST https://api.example.com/orders"):
{
  "testType": "workflow",
  "workflow": [
    {
      "type": "sequential",
      "steps": [
        {"id": "list_users", "method": "GET", "url": "https://api.example.com/users", "requestCount": 1},
        {"id": "create_order", "method": "POST", "url": "https://api.example.com/orders",
         "body": {"userId": "user123", "items": [{"name": "Product 1"}]}, "requestCount": 1}
      ]
    }
  ],
  "loadPattern": {"type": "constant", "virtualUsers": 1},
  "duration": {"value": 30, "unit": "seconds"}
}

BATCH OUTPUT (command: "batch test in parallel: 100 GET requests to https://api.example.com/health, 50 POST requests to https://api.example.com/login"):
{
  "testType": "batch",
  "batch": {
    "executionMode": "parallel",
    "aggregationMode": "combined",
    "tests": [
      {"name": "Health check", "testType": "baseline",
       "requests": [{"method": "GET", "url": "https://api.example.com/health"}],
       "loadPattern": {"type": "constant", "virtualUsers": 100}},
      {"name": "Login", "testType": "baseline",
       "requests": [{"method": "POST", "url": "https://api.example.com/login",
                     "body": {"username": "jane", "password": "secret"}}],
       "loadPattern": {"type": "constant", "virtualUsers": 50}}
    ]
  },
  "loadPattern": {"type": "constant", "virtualUsers": 1},
  "duration": {"value": 60, "unit": "seconds"}
}"""

USER_PROMPT_TEMPLATE = """Convert this load test command into a specification JSON:

Command: "{command}"
{context}
Respond with only valid JSON, no additional text or explanation."""


def build_user_prompt(command: str, api_summaries: list[str] | None = None) -> str:
    """User prompt for one command, optionally enriched with API descriptions."""
    context = ""
    if api_summaries:
        context = "\nReferenced API descriptions:\n" + "\n\n".join(api_summaries) + "\n"
    return USER_PROMPT_TEMPLATE.format(command=command.strip(), context=context)
