"""
Regulatory Search Test Suite
============================

Test organization:
- tests/unit/                          - Shared library (signing, framing, backends)
- tests/services/regulatory_search/    - Service pipeline and HTTP API

Run tests:
    pytest                                   # All tests
    pytest tests/unit                        # Unit tests only
    pytest tests/services/regulatory_search  # Service tests only
"""
