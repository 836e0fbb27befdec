import openai
from typing import Optional, Dict, Any, Tuple

from utils.logger import get_logger
from .base_client import AIClientError, BaseAIClient

logger = get_logger(__name__)


class OpenAIClient(BaseAIClient):
    """
    A client for the OpenAI chat completions API.
    Used for short, deterministic normalization prompts.
    """

    provider = "openai"

    def __init__(self, api_key: str, model_name: str = "gpt-4o-mini", **kwargs):
        """
        Initialize the OpenAI client.

        Args:
            api_key: The OpenAI API key
            model_name: The name of the model to use (default: gpt-4o-mini)
            **kwargs: Additional keyword arguments (timeout)
        """
        super().__init__(api_key, **kwargs)
        self.client = openai.OpenAI(api_key=api_key, timeout=kwargs.get("timeout", 10.0))
        self.model_name = model_name

    def get_completion(self, prompt: str, **kwargs) -> Tuple[str, Optional[Dict[str, int]]]:
        """
        Get a completion from the OpenAI API.

        Args:
            prompt: The input prompt to send to the model
            **kwargs: Additional parameters for the API call
                - model: Override the default model for this call
                - temperature: Controls randomness (default 0.1)
                - max_tokens: Maximum number of tokens to generate

        Returns:
            A tuple of (response_text, usage_dict)
        """
        model = kwargs.get("model", self.model_name)
        temperature = kwargs.get("temperature", 0.1)
        max_tokens = kwargs.get("max_tokens", 200)

        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.warning(
                "OpenAI completion failed",
                extra={"extra_fields": {"model": model, "error": str(e)}},
            )
            raise AIClientError(self.provider, str(e)) from e

        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise AIClientError(self.provider, "empty completion")
        return text, self.get_token_usage(response)

    def get_token_usage(self, response: Any) -> Optional[Dict[str, int]]:
        usage = getattr(response, "usage", None)
        if usage is None:
            return None
        return {
            "prompt_tokens": usage.prompt_tokens,
            "completion_tokens": usage.completion_tokens,
            "total_tokens": usage.total_tokens,
        }
