from orderbot.services.llm.base import LLMProvider, LLMResponse
from orderbot.services.llm.openai_provider import LLMProviderError, OpenAIProvider

__all__ = ["LLMProvider", "LLMResponse", "LLMProviderError", "OpenAIProvider"]
