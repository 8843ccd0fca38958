"""
Constraint extraction.

Responsibilities:
- Turn query text into an Intent, BaseConstraints and PostConstraints.
- Race the LLM extractor against the deterministic pattern matcher and fall
  back to the pattern result when the LLM is slow, down or off-schema.
- Flag single-token or location-less "near me" queries for clarification.
"""
