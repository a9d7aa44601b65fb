"""
LLM client abstraction and implementations.

Components:
- BaseLLMClient: Abstract base class for LLM clients
- ChatCompletionClient: OpenAI-compatible chat-completions client
- PromptBuilder: Constructs batch classification prompts
- text_utils: Text processing utilities (whitespace collapsing, truncation)
- exceptions: LLM-specific exceptions
"""

from classification_proxy.llm.base_client import BaseLLMClient
from classification_proxy.llm.chat_completion_client import ChatCompletionClient
from classification_proxy.llm.prompt_builder import PromptBuilder
from classification_proxy.llm.exceptions import (
    LLMClientError,
    LLMConnectionError,
    LLMCredentialError,
    LLMGenerationError,
    LLMResponseFormatError,
    LLMTimeoutError,
)

__all__ = [
    "BaseLLMClient",
    "ChatCompletionClient",
    "PromptBuilder",
    "LLMClientError",
    "LLMConnectionError",
    "LLMCredentialError",
    "LLMGenerationError",
    "LLMResponseFormatError",
    "LLMTimeoutError",
]
