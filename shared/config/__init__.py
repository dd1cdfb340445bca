"""
Configuration Module
====================

Exposes the process-wide ``settings`` object and its enums.

Usage:
    from shared.config import settings

    settings.opensearch.search_url
    settings.llm.backend
"""

from shared.config.settings import (
    EmbeddingBackend,
    Environment,
    LLMBackend,
    LogLevel,
    Settings,
    get_settings,
)


settings = get_settings()

__all__ = [
    "EmbeddingBackend",
    "Environment",
    "LLMBackend",
    "LogLevel",
    "Settings",
    "get_settings",
    "settings",
]
