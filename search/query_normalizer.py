"""
Query normalization capability.

Two implementations sit behind one interface: an LLM-backed normalizer and
the rule-based dialect normalizer. FallbackQueryNormalizer picks between them
by availability and confidence, so callers never branch on which one ran.
"""

import asyncio
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from pydantic import BaseModel, Field, ValidationError

from api.base_client import AIClientError, BaseAIClient
from config.config import Config, NormalizerProvider
from search.dialect import DialectDictionary
from search.normalizer import normalize_text
from utils.logger import get_logger

logger = get_logger(__name__)

FALLBACK_CONFIDENCE = 0.6

NORMALIZATION_PROMPT = """Normalize to French. Fix typos, translate Tunisian dialect.

EXAMPLES:
- "salem" -> "bonjour" (greeting)
- "amortiseeur" -> "amortisseur" (typo)
- "bghit filtre" -> "je veux filtre" (Tunisian)
- "plakette frain" -> "plaquette frein" (typos)
- "merci" -> "merci" (thanks)
- "3aychek" -> "merci" (thanks, Tunisian)
- "barcha" -> "merci beaucoup" (thanks, Tunisian)

Keep part references (e.g. 13780M62S00) unchanged.

QUERY: "{query}"

JSON only:
{{"normalized":"...","isGreeting":true/false,"isThanks":true/false,"confidence":0.0-1.0}}"""

_JSON_OBJECT = re.compile(r"\{[^{}]*\}", re.DOTALL)


@dataclass(frozen=True)
class NormalizationResult:
    normalized: str
    is_greeting: bool = False
    is_thanks: bool = False
    confidence: float = 1.0
    dialect_detected: bool = False
    source: str = "passthrough"


class AINormalizationPayload(BaseModel):
    normalized: str = Field(..., min_length=1)
    isGreeting: bool = False
    isThanks: bool = False
    confidence: float = Field(0.9, ge=0.0, le=1.0)


class QueryNormalizer(ABC):
    @abstractmethod
    async def normalize(self, text: str) -> NormalizationResult:
        """Rewrite a raw user message into standard French."""


class DialectQueryNormalizer(QueryNormalizer):
    """Static dictionary rewrite with pattern-based greeting/thanks detection."""

    def __init__(self, dictionary: DialectDictionary):
        self.dictionary = dictionary

    async def normalize(self, text: str) -> NormalizationResult:
        return self.normalize_sync(text)

    def normalize_sync(self, text: str) -> NormalizationResult:
        rewritten = self.dictionary.apply(text)
        return NormalizationResult(
            normalized=rewritten if rewritten is not None else text.strip(),
            is_greeting=self.dictionary.starts_with_greeting(text),
            is_thanks=self.dictionary.starts_with_thanks(text),
            confidence=FALLBACK_CONFIDENCE,
            dialect_detected=rewritten is not None,
            source="dialect",
        )


class AIQueryNormalizer(QueryNormalizer):
    """LLM-backed normalizer; raises on provider or payload errors."""

    def __init__(self, client: BaseAIClient):
        self.client = client

    async def normalize(self, text: str) -> NormalizationResult:
        reply, _usage = await asyncio.to_thread(
            self.client.get_completion, NORMALIZATION_PROMPT.format(query=text)
        )
        payload = parse_payload(reply)
        normalized = payload.normalized.strip()
        return NormalizationResult(
            normalized=normalized,
            is_greeting=payload.isGreeting,
            is_thanks=payload.isThanks,
            confidence=payload.confidence,
            dialect_detected=normalize_text(normalized) != normalize_text(text),
            source="ai",
        )


def parse_payload(reply: str) -> AINormalizationPayload:
    """
    Extract and validate the first JSON object of an LLM reply.

    Raises:
        ValueError: If the reply holds no JSON object
        ValidationError: If the object does not match the payload schema
    """
    match = _JSON_OBJECT.search(reply or "")
    if not match:
        raise ValueError("No JSON object in normalizer reply")
    return AINormalizationPayload.model_validate_json(match.group(0))


class FallbackQueryNormalizer(QueryNormalizer):
    """
    Primary (AI) normalizer with the dialect normalizer as safety net.

    The fallback runs when there is no primary, when the primary fails, or
    when its confidence is below min_confidence.
    """

    def __init__(
        self,
        fallback: DialectQueryNormalizer,
        primary: QueryNormalizer | None = None,
        min_confidence: float = 0.5,
    ):
        self.primary = primary
        self.fallback = fallback
        self.min_confidence = min_confidence

    async def normalize(self, text: str) -> NormalizationResult:
        if self.primary is None:
            return await self.fallback.normalize(text)

        try:
            result = await self.primary.normalize(text)
        except (AIClientError, ValueError, ValidationError) as e:
            logger.warning(
                "AI normalization failed, using dialect fallback",
                extra={"extra_fields": {"error": str(e), "error_type": type(e).__name__}},
            )
            return await self.fallback.normalize(text)

        if result.confidence < self.min_confidence:
            logger.info(
                "AI normalization below confidence threshold",
                extra={"extra_fields": {"confidence": result.confidence, "threshold": self.min_confidence}},
            )
            return await self.fallback.normalize(text)

        logger.info(
            "AI normalization succeeded",
            extra={"extra_fields": {"input": text, "normalized": result.normalized, "confidence": result.confidence}},
        )
        return result


def create_ai_client(config: Config) -> BaseAIClient | None:
    """Client for the configured provider, or None when AI normalization is off."""
    provider = config.QUERY_NORMALIZER_PROVIDER
    if provider == NormalizerProvider.OPENAI.value:
        from api.openai_client import OpenAIClient

        if not config.OPENAI_API_KEY:
            raise ValueError("OPENAI_API_KEY not found in environment variables")
        return OpenAIClient(api_key=config.OPENAI_API_KEY, model_name=config.DEFAULT_OPENAI_MODEL)

    if provider == NormalizerProvider.GEMINI.value:
        from api.google_gemini_client import GeminiClient

        if not config.GOOGLE_GEMINI_API_KEY:
            raise ValueError("GOOGLE_GEMINI_API_KEY not found in environment variables")
        return GeminiClient(api_key=config.GOOGLE_GEMINI_API_KEY, model_name=config.DEFAULT_GEMINI_MODEL)

    if provider == NormalizerProvider.NONE.value:
        return None
    raise ValueError(f"Unsupported QUERY_NORMALIZER_PROVIDER: {provider}")


def create_query_normalizer(config: Config, dictionary: DialectDictionary) -> FallbackQueryNormalizer:
    fallback = DialectQueryNormalizer(dictionary)
    client = None
    if config.validate():
        client = create_ai_client(config)
    else:
        logger.warning(
            "AI normalizer not available, using dialect fallback only",
            extra={"extra_fields": {"provider": config.QUERY_NORMALIZER_PROVIDER}},
        )

    primary = AIQueryNormalizer(client) if client else None
    logger.info(
        "Query normalizer initialized",
        extra={"extra_fields": {"normalizer": config.get_normalizer_info(), "ai_enabled": primary is not None}},
    )
    return FallbackQueryNormalizer(
        fallback=fallback,
        primary=primary,
        min_confidence=config.AI_NORMALIZER_MIN_CONFIDENCE,
    )
