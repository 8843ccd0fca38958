from __future__ import annotations

import asyncio
import logging
from typing import TypeVar

from groq import APITimeoutError, AsyncGroq
from pydantic import BaseModel, ValidationError

from ..errors import ExtractionTimeout, LLMError, SchemaInvalid
from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


async def complete_json(
    system_prompt: str,
    user_content: str,
    schema: type[ModelT],
    config: LLMConfig = DEFAULT_LLM_CONFIG,
    temperature: float = 0.0,
) -> ModelT:
    """
    Ask Groq for a JSON object and validate it against ``schema``.

    The completion is treated as untrusted input. Raises ``ExtractionTimeout``
    when the deadline passes, ``SchemaInvalid`` when the output does not
    validate and ``LLMError`` for everything else.
    """
    if not config.enabled or not config.api_key:
        raise LLMError("LLM disabled or GROQ_API_KEY missing")

    client = AsyncGroq(api_key=config.api_key, timeout=config.timeout)
    try:
        response = await asyncio.wait_for(
            client.chat.completions.create(
                model=config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                max_tokens=config.max_tokens,
                temperature=temperature,
                response_format={"type": "json_object"},
            ),
            timeout=config.timeout,
        )
    except (asyncio.TimeoutError, APITimeoutError) as exc:
        raise ExtractionTimeout(f"{schema.__name__} call exceeded {config.timeout}s") from exc
    except Exception as exc:  # noqa: BLE001
        raise LLMError(f"{schema.__name__} call failed: {exc}") from exc

    content = response.choices[0].message.content or ""
    try:
        return schema.model_validate_json(content)
    except ValidationError as exc:
        logger.info("LLM output rejected by %s: %d error(s)", schema.__name__, exc.error_count())
        raise SchemaInvalid(f"{schema.__name__} validation failed") from exc
