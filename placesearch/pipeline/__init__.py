"""
Search pipeline orchestration.

Responsibilities:
- Run extraction, geocoding, retrieval, filtering, grouping and response
  building in order for one request.
- Thread an immutable request context that accumulates stage timings,
  filter stats and degradation flags.
- Turn fatal stage errors into a structured failure.
"""
