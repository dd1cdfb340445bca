"""
LLM Provider Module
===================

Abstraction layer for the language model backends.

Supported backends (one per deployment, chosen by LLM_BACKEND):
- AWS Bedrock Converse API (binary event-stream)
- OpenAI-compatible chat completions (text SSE)

Usage:
    from shared.llm import get_llm_provider, LLMMessage

    provider = get_llm_provider()

    async for chunk in provider.stream(
        [
            LLMMessage(role="system", content="You are a regulatory expert."),
            LLMMessage(role="user", content="Explain ICH E6 monitoring."),
        ]
    ):
        print(chunk, end="")
"""

from shared.llm.provider import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    MessageRole,
    ModelUnavailable,
    get_llm_provider,
    reset_llm_provider,
)
from shared.llm.bedrock import BedrockProvider
from shared.llm.openai import OpenAIProvider

__all__ = [
    # Base
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "MessageRole",
    "ModelUnavailable",
    "get_llm_provider",
    "reset_llm_provider",
    # Providers
    "BedrockProvider",
    "OpenAIProvider",
]
