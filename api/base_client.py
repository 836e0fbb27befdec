from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple


class AIClientError(Exception):
    """Raised when a provider call fails or returns no usable text."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class BaseAIClient(ABC):
    """
    Abstract base class for the LLM clients behind the query normalizer.
    Clients only need to turn a prompt into text; anything else is the caller's job.
    """

    provider: str = "unknown"

    @abstractmethod
    def __init__(self, api_key: str, **kwargs):
        """
        Initialize the AI client.

        Args:
            api_key: API key for the AI service
            **kwargs: Additional model-specific parameters
        """
        if not api_key:
            raise ValueError(f"API key is required for {self.provider}")
        self.api_key = api_key
        self.model_name = kwargs.get("model_name")

    @abstractmethod
    def get_completion(self, prompt: str, **kwargs) -> Tuple[str, Optional[Dict[str, int]]]:
        """
        Get a completion from the AI model.

        Args:
            prompt: The input prompt to send to the model
            **kwargs: Additional parameters for the API call

        Returns:
            A tuple containing:
                - The generated text response
                - A dictionary with token usage information (or None if not available)

        Raises:
            AIClientError: If the call fails or the reply is empty
        """

    def get_token_usage(self, response: Any) -> Optional[Dict[str, int]]:
        """
        Extract token usage information from the API response.
        Subclasses override this when the provider reports usage.
        """
        return None
