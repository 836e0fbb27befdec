from typing import Optional, Dict, Any, Tuple

from google import genai

from utils.logger import get_logger
from .base_client import AIClientError, BaseAIClient

logger = get_logger(__name__)


class GeminiClient(BaseAIClient):
    """
    A client for the Google Gemini API using the google.genai package.
    """

    provider = "gemini"

    def __init__(self, api_key: str, model_name: str = "gemini-2.5-flash-lite", **kwargs):
        """
        Initialize the Gemini client.

        Args:
            api_key: The Google Gemini API key
            model_name: The name of the model to use (default: gemini-2.5-flash-lite)
        """
        super().__init__(api_key, **kwargs)
        self.client = genai.Client(api_key=api_key)
        self.model_name = model_name

    def get_completion(self, prompt: str, **kwargs) -> Tuple[str, Optional[Dict[str, int]]]:
        """
        Get a completion from the Gemini API.

        Args:
            prompt: The input prompt to send to the model
            **kwargs: Additional parameters for the API call
                - model: Override the default model for this call
                - temperature: Controls randomness (default 0.1)
                - max_output_tokens: Maximum number of tokens to generate

        Returns:
            A tuple of (response_text, usage_dict)
        """
        model_name = kwargs.get("model", self.model_name)

        try:
            response = self.client.models.generate_content(
                model=model_name,
                contents=prompt,
                config={
                    "temperature": kwargs.get("temperature", 0.1),
                    "max_output_tokens": kwargs.get("max_output_tokens", 200),
                },
            )
        except Exception as e:
            logger.warning(
                "Gemini completion failed",
                extra={"extra_fields": {"model": model_name, "error": str(e)}},
            )
            raise AIClientError(self.provider, str(e)) from e

        text = getattr(response, "text", None)
        if not text:
            raise AIClientError(self.provider, "empty completion")
        return text, self.get_token_usage(response)

    def get_token_usage(self, response: Any) -> Optional[Dict[str, int]]:
        usage_metadata = getattr(response, "usage_metadata", None)
        if usage_metadata is None:
            return None
        return {
            "prompt_tokens": getattr(usage_metadata, "prompt_token_count", 0),
            "completion_tokens": getattr(usage_metadata, "candidates_token_count", 0),
            "total_tokens": getattr(usage_metadata, "total_token_count", 0),
        }
