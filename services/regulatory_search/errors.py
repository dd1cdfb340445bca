"""
Pipeline Errors
===============

Failure taxonomy for the search pipeline.

- MalformedRequest: reported as an error event, nothing else runs
- EmbeddingUnavailable / RetrievalUnavailable: one sub-query yields zero hits
- DecompositionUnavailable: single-query fallback
- ModelUnavailable (shared.llm): fails the synthesize stage
- TransportCancelled: the caller went away, nothing more is emitted

Version: 0.1.0
"""

from shared.llm import ModelUnavailable


class MalformedRequest(Exception):
    """The request body is missing, undecodable, or has an empty query."""


class EmbeddingUnavailable(Exception):
    """The embedding call failed or returned no usable vector."""


class RetrievalUnavailable(Exception):
    """The index search failed or returned a non-success status."""


class DecompositionUnavailable(Exception):
    """The model could not produce a usable sub-query list."""


class TransportCancelled(Exception):
    """The event stream consumer disconnected."""


__all__ = [
    "DecompositionUnavailable",
    "EmbeddingUnavailable",
    "MalformedRequest",
    "ModelUnavailable",
    "RetrievalUnavailable",
    "TransportCancelled",
]
