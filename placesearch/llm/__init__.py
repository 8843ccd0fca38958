"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Issue JSON-mode chat completions.
- Validate every completion against a pydantic schema before it is used.
"""
