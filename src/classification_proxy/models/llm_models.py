"""
LLM-specific data models for request/response cycle.

These models are internal to the LLM layer and handle the raw communication
with the completion provider. They are separate from the classification
models to allow swapping the underlying client implementation.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict


class ChatMessage(BaseModel):
    """One message in a chat-completion conversation."""
    model_config = ConfigDict(frozen=True)

    role: str = Field(..., description="system, user or assistant")
    content: str


class LLMGenerationRequest(BaseModel):
    """
    Internal request model for LLM generation.

    This is the standardized format sent to any LLM client implementation.
    It abstracts away provider-specific details.
    """
    model_config = ConfigDict(frozen=True)

    messages: list[ChatMessage] = Field(..., min_length=1, description="System + user messages")
    model: str = Field(..., description="Model name/identifier (e.g., 'gpt-4-turbo')")
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(default=50, ge=1, le=8192, description="Maximum tokens to generate")
    seed: Optional[int] = Field(default=None, description="Random seed for reproducibility")


class LLMGenerationResponse(BaseModel):
    """
    Internal response model from LLM generation.

    Contains the raw generated text plus metadata for logging.
    """
    model_config = ConfigDict(frozen=True)

    content: str = Field(..., description="Generated text (one label per line)")
    model_version: str = Field(..., description="Actual model version used")
    finish_reason: str = Field(
        ...,
        description="Why generation stopped: 'stop', 'length', etc."
    )
    usage_tokens: Optional[int] = Field(
        default=None,
        description="Total tokens used (prompt + completion)"
    )
    prompt_tokens: Optional[int] = Field(default=None, description="Tokens in prompt")
    completion_tokens: Optional[int] = Field(default=None, description="Tokens in completion")
    latency_ms: int = Field(..., ge=0, description="Generation latency in milliseconds")
    raw_metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Provider-specific metadata (for debugging)"
    )
