import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from placesearch.errors import ExtractionTimeout, LLMError, SchemaInvalid
from placesearch.extraction.models import LLMIntentOutput, SearchRoute
from placesearch.llm.config import LLMConfig
from placesearch.llm.groq_client import complete_json

ENABLED_CONFIG = LLMConfig(api_key="test-key", enabled=True, timeout=0.5)
DISABLED_CONFIG = LLMConfig(api_key="test-key", enabled=False)

VALID_INTENT = {
    "route": "TEXTSEARCH",
    "confidence": 0.9,
    "reason": "explicit city",
    "language": "en",
    "city_text": "Tel Aviv",
    "street_text": None,
}


def _mock_groq_response(content: str) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


def _complete(config=ENABLED_CONFIG):
    return asyncio.run(complete_json("system", "Query: pizza in Tel Aviv", LLMIntentOutput, config))


@patch("placesearch.llm.groq_client.AsyncGroq")
def test_complete_json_returns_validated_model(mock_groq_cls):
    create = AsyncMock(return_value=_mock_groq_response(json.dumps(VALID_INTENT)))
    mock_groq_cls.return_value.chat.completions.create = create

    result = _complete()

    assert result.route is SearchRoute.TEXTSEARCH
    assert result.city_text == "Tel Aviv"
    kwargs = create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["temperature"] == 0.0
    assert kwargs["messages"][0]["role"] == "system"


@patch("placesearch.llm.groq_client.AsyncGroq")
def test_complete_json_rejects_unknown_keys(mock_groq_cls):
    payload = dict(VALID_INTENT, extra_field="nope")
    mock_groq_cls.return_value.chat.completions.create = AsyncMock(
        return_value=_mock_groq_response(json.dumps(payload))
    )

    with pytest.raises(SchemaInvalid):
        _complete()


@patch("placesearch.llm.groq_client.AsyncGroq")
def test_complete_json_rejects_missing_keys(mock_groq_cls):
    payload = {k: v for k, v in VALID_INTENT.items() if k != "street_text"}
    mock_groq_cls.return_value.chat.completions.create = AsyncMock(
        return_value=_mock_groq_response(json.dumps(payload))
    )

    with pytest.raises(SchemaInvalid):
        _complete()


@patch("placesearch.llm.groq_client.AsyncGroq")
def test_complete_json_rejects_bad_json(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create = AsyncMock(
        return_value=_mock_groq_response("not valid json{{{")
    )

    with pytest.raises(SchemaInvalid):
        _complete()


@patch("placesearch.llm.groq_client.AsyncGroq")
def test_complete_json_api_error_becomes_llm_error(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create = AsyncMock(side_effect=Exception("boom"))

    with pytest.raises(LLMError) as excinfo:
        _complete()

    assert not isinstance(excinfo.value, (SchemaInvalid, ExtractionTimeout))
    assert excinfo.value.recoverable


@patch("placesearch.llm.groq_client.AsyncGroq")
def test_complete_json_slow_call_times_out(mock_groq_cls):
    async def slow(**kwargs):
        await asyncio.sleep(5)

    mock_groq_cls.return_value.chat.completions.create = slow

    with pytest.raises(ExtractionTimeout):
        _complete(LLMConfig(api_key="test-key", enabled=True, timeout=0.05))


@patch("placesearch.llm.groq_client.AsyncGroq")
def test_complete_json_disabled(mock_groq_cls):
    with pytest.raises(LLMError):
        _complete(DISABLED_CONFIG)

    mock_groq_cls.assert_not_called()


def test_complete_json_without_key():
    with pytest.raises(LLMError):
        _complete(LLMConfig(api_key="", enabled=True))
