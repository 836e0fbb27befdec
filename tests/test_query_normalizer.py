import asyncio
from unittest.mock import patch

import pytest

from api.base_client import AIClientError, BaseAIClient
from config.config import Config
from search.query_normalizer import (
    FALLBACK_CONFIDENCE,
    AIQueryNormalizer,
    DialectQueryNormalizer,
    FallbackQueryNormalizer,
    create_ai_client,
    create_query_normalizer,
    parse_payload,
)


class ScriptedClient(BaseAIClient):
    """Client double that replays a fixed reply or raises a fixed error."""

    provider = "scripted"

    def __init__(self, reply=None, error=None):
        super().__init__("test-key")
        self.reply = reply
        self.error = error
        self.prompts = []

    def get_completion(self, prompt, **kwargs):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply, None


def _normalize(normalizer, text):
    return asyncio.run(normalizer.normalize(text))


@pytest.fixture
def fallback(dialect):
    return DialectQueryNormalizer(dialect)


def _with_ai(fallback, reply=None, error=None, min_confidence=0.5):
    client = ScriptedClient(reply=reply, error=error)
    return FallbackQueryNormalizer(fallback, AIQueryNormalizer(client), min_confidence), client


# ---------- dialect normalizer ----------


def test_dialect_normalizer_rewrites_and_flags(fallback):
    result = _normalize(fallback, "bghit filtre")
    assert result.normalized == "je veux filtre"
    assert result.dialect_detected
    assert result.source == "dialect"
    assert result.confidence == FALLBACK_CONFIDENCE


def test_dialect_normalizer_passes_standard_french_through(fallback):
    result = _normalize(fallback, "  amortisseur avant ")
    assert result.normalized == "amortisseur avant"
    assert not result.dialect_detected


def test_dialect_normalizer_detects_greeting_and_thanks(fallback):
    assert _normalize(fallback, "salem").is_greeting
    assert _normalize(fallback, "3aychek").is_thanks


# ---------- AI normalizer behind the fallback ----------


def test_ai_result_used_when_confident(fallback):
    reply = 'Voici : {"normalized": "je veux filtre", "isGreeting": false, "isThanks": false, "confidence": 0.92}'
    normalizer, client = _with_ai(fallback, reply=reply)

    result = _normalize(normalizer, "bghit filtre")
    assert result.source == "ai"
    assert result.normalized == "je veux filtre"
    assert result.dialect_detected
    assert result.confidence == pytest.approx(0.92)
    assert '"bghit filtre"' in client.prompts[0]


def test_ai_greeting_flag_is_kept(fallback):
    normalizer, _ = _with_ai(fallback, reply='{"normalized": "bonjour", "isGreeting": true, "confidence": 0.95}')
    result = _normalize(normalizer, "ahla")
    assert result.is_greeting
    assert not result.is_thanks


def test_provider_error_falls_back_to_dialect(fallback):
    normalizer, _ = _with_ai(fallback, error=AIClientError("scripted", "timeout"))
    result = _normalize(normalizer, "bghit filtre")
    assert result.source == "dialect"
    assert result.normalized == "je veux filtre"


@pytest.mark.parametrize(
    "reply",
    [
        "désolé, je ne peux pas",
        '{"normalized": ""}',
        '{"normalized": "filtre", "confidence": 7}',
    ],
)
def test_unusable_reply_falls_back_to_dialect(fallback, reply):
    normalizer, _ = _with_ai(fallback, reply=reply)
    assert _normalize(normalizer, "plakete frain").normalized == "plaquette frein"


def test_low_confidence_falls_back_to_dialect(fallback):
    normalizer, _ = _with_ai(fallback, reply='{"normalized": "plaquette", "confidence": 0.3}')
    result = _normalize(normalizer, "plakete")
    assert result.source == "dialect"


def test_no_primary_uses_dialect_directly(fallback):
    normalizer = FallbackQueryNormalizer(fallback)
    assert _normalize(normalizer, "batri").normalized == "batterie"


def test_parse_payload_defaults_and_errors():
    payload = parse_payload('```json\n{"normalized": "merci", "isThanks": true}\n```')
    assert payload.normalized == "merci"
    assert payload.isThanks
    assert payload.confidence == pytest.approx(0.9)

    with pytest.raises(ValueError):
        parse_payload("")


# ---------- construction from configuration ----------


@pytest.fixture
def env(monkeypatch):
    for name in ["QUERY_NORMALIZER_PROVIDER", "OPENAI_API_KEY", "GOOGLE_GEMINI_API_KEY"]:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_no_provider_means_no_client(env):
    assert create_ai_client(Config()) is None


def test_missing_key_rejected(env):
    env.setenv("QUERY_NORMALIZER_PROVIDER", "openai")
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        create_ai_client(Config())


def test_unknown_provider_rejected(env):
    env.setenv("QUERY_NORMALIZER_PROVIDER", "mistral")
    with pytest.raises(ValueError, match="Unsupported"):
        create_ai_client(Config())


def test_missing_key_degrades_to_dialect_only(env, dialect):
    env.setenv("QUERY_NORMALIZER_PROVIDER", "gemini")
    normalizer = create_query_normalizer(Config(), dialect)
    assert normalizer.primary is None


@patch("openai.OpenAI")
def test_configured_provider_becomes_primary(mock_openai, env, dialect):
    env.setenv("QUERY_NORMALIZER_PROVIDER", "openai")
    env.setenv("OPENAI_API_KEY", "sk-test")
    env.setenv("AI_NORMALIZER_MIN_CONFIDENCE", "0.7")

    normalizer = create_query_normalizer(Config(), dialect)
    assert isinstance(normalizer.primary, AIQueryNormalizer)
    assert normalizer.primary.client.model_name == "gpt-4o-mini"
    assert normalizer.min_confidence == pytest.approx(0.7)
    mock_openai.assert_called_once()


@pytest.mark.parametrize(
    "provider, keys, valid",
    [
        ("none", {}, True),
        ("openai", {}, False),
        ("openai", {"OPENAI_API_KEY": "sk-test"}, True),
        ("gemini", {"GOOGLE_GEMINI_API_KEY": "g-test"}, True),
        ("mistral", {"OPENAI_API_KEY": "sk-test"}, False),
    ],
)
def test_config_validate(env, provider, keys, valid):
    env.setenv("QUERY_NORMALIZER_PROVIDER", provider)
    for name, value in keys.items():
        env.setenv(name, value)
    assert Config().validate() is valid


def test_unknown_provider_degrades_to_dialect_only(env, dialect):
    env.setenv("QUERY_NORMALIZER_PROVIDER", "mistral")
    assert create_query_normalizer(Config(), dialect).primary is None
