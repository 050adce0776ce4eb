"""
Site adapters for violation lookups.

This package contains site-specific searchers and extractors:
- CsgtViolationSearcher: CSGT portal search form driver
"""

from platforms.csgt_searcher import CsgtViolationSearcher

__all__ = ["CsgtViolationSearcher"]
