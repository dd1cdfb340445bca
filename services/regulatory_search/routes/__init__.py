"""
Regulatory Search Routes
========================

API route handlers for the Regulatory Search Service.

Routes:
- search: streaming search and synthesis endpoint
"""

from services.regulatory_search.routes import search


__all__ = ["search"]
