"""
Core modules for the violation lookup service.

This package contains the core components:
- BrowserSession: Shared browser session with self-healing restart
- ViolationCache: TTL cache for lookup outcomes
- BaseViolationSearcher: Base class for site searchers
- ViolationLookupManager: Single and batch lookup coordinator
"""
