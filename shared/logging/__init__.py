"""
Logging Module
==============

structlog configuration with secret censoring.

Usage:
    from shared.logging import bind_context, get_logger, setup_logging

    setup_logging(json_logs=True)
    logger = get_logger(__name__)

    bind_context(request_id="4f1c")
    logger.warning("opensearch_error", status_code=403)
"""

from shared.logging.logger import bind_context, clear_context, get_logger, setup_logging


__all__ = ["bind_context", "clear_context", "get_logger", "setup_logging"]
