"""
Regulatory Search Service
=========================

Streaming search over regulatory documents: decomposes a question into
sub-queries, runs hybrid retrieval against OpenSearch, and streams a
cited answer synthesized by the configured model.

Features:
- Query decomposition with single-query fallback
- Hybrid k-NN + keyword retrieval with SigV4 signing
- Source de-duplication and ranking
- Server-sent event progress stream

Port: 8001
"""

__version__ = "0.1.0"
