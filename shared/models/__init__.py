"""
Shared Models
=============

Pydantic models shared across services.

Models:
- ErrorResponse: JSON error envelope
- HealthResponse: health check payload
"""

from shared.models.common import ErrorResponse, HealthResponse


__all__ = [
    "ErrorResponse",
    "HealthResponse",
]
