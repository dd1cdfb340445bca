"""
Shared Library
==============

Building blocks for the regulatory search service that do not depend on the
search pipeline itself.

- config: environment settings
- logging: structlog setup and context binding
- aws: SigV4 signing and event-stream framing
- llm: Bedrock and OpenAI-compatible chat backends
- models: HTTP response envelopes

Version: 0.1.0
"""

__version__ = "0.1.0"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = ["__version__", "get_logger", "settings", "setup_logging"]
