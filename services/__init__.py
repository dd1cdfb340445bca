"""
Services
========

HTTP services built on the shared library.

Services:
- regulatory_search: streaming regulatory search and answer synthesis
"""

__all__ = [
    "regulatory_search",
]
