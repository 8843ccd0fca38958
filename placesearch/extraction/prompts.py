from __future__ import annotations

import json

from pydantic import BaseModel

from .models import LLMIntentOutput, LLMPostConstraintsOutput

# ---------------------------------------------------------------------------
# LLM Prompts
# ---------------------------------------------------------------------------

INTENT_PROMPT = """\
You classify a place-search query (usually food or restaurants) and extract \
where the user wants to search.

Return ONLY valid JSON with ALL of these fields (never omit a field, use null \
when unknown):
{
  "route": "TEXTSEARCH" | "NEARBY",
  "confidence": 0.0-1.0,
  "reason": "short snake_case tag, e.g. explicit_city, near_me, street_named",
  "language": "ISO 639-1 code of the query, e.g. en, he, fr",
  "city_text": "city named in the query, or null",
  "street_text": "street or landmark named in the query, or null"
}

Rules:
- NEARBY only when the user asks for places around themselves ("near me", \
"around here", "לידי") and names no city or street.
- TEXTSEARCH for everything else, including queries that name a city or street.
- Copy city_text and street_text as written by the user. Do not translate.
- Do not invent a location that is not in the query."""

POST_CONSTRAINTS_PROMPT = """\
You extract post-search constraints from a place-search query.

Return ONLY valid JSON with ALL fields (never omit any field):
{
  "openState": "OPEN_NOW" | "CLOSED_NOW" | "OPEN_AT" | "OPEN_BETWEEN" | null,
  "openAt": {"day": 0-6 | null, "timeHHmm": "HH:mm" | null} | null,
  "openBetween": {"day": 0-6 | null, "startHHmm": "HH:mm" | null, "endHHmm": "HH:mm" | null} | null,
  "priceLevel": 1 | 2 | 3 | 4 | null,
  "minRating": 3.5 | 4.0 | 4.5 | null,
  "isKosher": true | false | null,
  "isGlutenFree": true | null,
  "requirements": {"accessible": true | false | null, "parking": true | false | null}
}

Rules:
- OPEN_AT sets openAt (day 0=Sunday, 24h time). OPEN_BETWEEN sets openBetween.
- priceLevel: 1=cheap, 2=moderate, 3=expensive, 4=very expensive.
- minRating: 4.0 for "highly rated" or "good reviews", 4.5 for "best rated" or "top rated", otherwise the bucket at or below the number the user asks for.
- isKosher false only for an explicit "not kosher". isGlutenFree is true or null.
- requirements: true only if mentioned, false only if explicitly excluded.
- Everything not mentioned is null."""


def with_schema(instructions: str, schema: type[BaseModel]) -> str:
    """Append the JSON schema the completion is validated against."""
    return f"{instructions}\n\nJSON schema:\n{json.dumps(schema.model_json_schema(), sort_keys=True)}"


INTENT_SYSTEM_PROMPT = with_schema(INTENT_PROMPT, LLMIntentOutput)
POST_CONSTRAINTS_SYSTEM_PROMPT = with_schema(POST_CONSTRAINTS_PROMPT, LLMPostConstraintsOutput)


def build_user_message(text: str, locale: str | None, has_origin: bool) -> str:
    lines = [f"Query: {text}"]
    if locale:
        lines.append(f"UI language: {locale}")
    lines.append(f"User location known: {'yes' if has_origin else 'no'}")
    return "\n".join(lines)
