import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

CONFIG_DIR = Path(__file__).resolve().parent


class NormalizerProvider(Enum):
    """Supported AI normalization providers."""
    OPENAI = "openai"
    GEMINI = "gemini"
    NONE = "none"


class Config:
    """Configuration management for the parts lookup core."""

    def __init__(self):
        """Initialize configuration with environment variables."""
        # Load environment variables from .env file if it exists
        env_path = CONFIG_DIR.parent / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # AI normalization capability
        self.QUERY_NORMALIZER_PROVIDER = os.getenv(
            "QUERY_NORMALIZER_PROVIDER", NormalizerProvider.NONE.value
        ).lower()
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
        self.GOOGLE_GEMINI_API_KEY = os.getenv("GOOGLE_GEMINI_API_KEY")
        self.DEFAULT_OPENAI_MODEL = os.getenv("DEFAULT_OPENAI_MODEL", "gpt-4o-mini")
        self.DEFAULT_GEMINI_MODEL = os.getenv("DEFAULT_GEMINI_MODEL", "gemini-2.5-flash-lite")
        self.AI_NORMALIZER_MIN_CONFIDENCE = float(os.getenv("AI_NORMALIZER_MIN_CONFIDENCE", "0.5"))

        # Session state lifetimes
        self.CLARIFICATION_TTL_SECONDS = int(os.getenv("CLARIFICATION_TTL_SECONDS", "600"))
        self.CLARIFICATION_SWEEP_INTERVAL_SECONDS = int(
            os.getenv("CLARIFICATION_SWEEP_INTERVAL_SECONDS", "300")
        )
        self.CONTEXT_CACHE_TTL_SECONDS = int(os.getenv("CONTEXT_CACHE_TTL_SECONDS", "300"))

        # Retrieval limits
        self.CANDIDATE_LIMIT = int(os.getenv("CANDIDATE_LIMIT", "100"))
        self.REFERENCE_EXACT_LIMIT = int(os.getenv("REFERENCE_EXACT_LIMIT", "5"))
        self.REFERENCE_PARTIAL_LIMIT = int(os.getenv("REFERENCE_PARTIAL_LIMIT", "10"))
        self.PREDICATE_MAX_TERMS = int(os.getenv("PREDICATE_MAX_TERMS", "10"))

        self.DEFAULT_VEHICLE_MODEL = os.getenv("DEFAULT_VEHICLE_MODEL", "S-PRESSO")

        # Declarative data files
        self.LEXICON_PATH = Path(os.getenv("LEXICON_PATH") or CONFIG_DIR / "lexicon.yaml")
        self.DIALECT_PATH = Path(os.getenv("DIALECT_PATH") or CONFIG_DIR / "dialect.yaml")

    def validate(self) -> bool:
        """
        Validate that the AI normalization provider has what it needs.

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        provider = self.QUERY_NORMALIZER_PROVIDER
        if provider == NormalizerProvider.OPENAI.value:
            return bool(self.OPENAI_API_KEY)
        if provider == NormalizerProvider.GEMINI.value:
            return bool(self.GOOGLE_GEMINI_API_KEY)
        return provider == NormalizerProvider.NONE.value

    def get_normalizer_info(self) -> str:
        """
        Describe the configured normalization capability.

        Returns:
            str: Formatted string with provider information
        """
        if self.QUERY_NORMALIZER_PROVIDER == NormalizerProvider.OPENAI.value:
            return f"OpenAI ({self.DEFAULT_OPENAI_MODEL}) with dialect fallback"
        if self.QUERY_NORMALIZER_PROVIDER == NormalizerProvider.GEMINI.value:
            return f"Google Gemini ({self.DEFAULT_GEMINI_MODEL}) with dialect fallback"
        return "Dialect dictionary only"
