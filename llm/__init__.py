"""LLM clients used by the generative service behind the response gate."""

from .base_client import BaseLLMClient, LLMError, LLMResponse, Message
from .factory import create_llm_client, LLMProvider

__all__ = [
    "BaseLLMClient",
    "LLMError",
    "LLMResponse",
    "Message",
    "create_llm_client",
    "LLMProvider",
]
