"""
Base violation searcher abstract class.

This module defines the abstract base class that site searchers inherit.
It provides the standard lookup interface and the page helpers shared by
form-driven searchers (config access, settle delays, page cleanup).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from playwright.async_api import Page
from core.browser_session import BrowserSession
from core.logger import get_logger
from core.models import LookupOutcome, Target


class BaseViolationSearcher(ABC):
    """
    Base class for violation searchers.

    Attributes:
        session: BrowserSession used to open pages
        config: Crawler configuration dictionary
    """

    def __init__(self, session: BrowserSession, config: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize base searcher.

        Args:
            session: BrowserSession for opening pages
            config: Crawler configuration (site, timeouts, settle sections)
        """
        self.session = session
        self.config: Dict[str, Any] = config or {}
        self.logger = get_logger(f"violation_lookup.{self.__class__.__name__.lower()}")

    @abstractmethod
    async def lookup(self, target: Target) -> LookupOutcome:
        """
        Look up violations for one target.

        Implementations must not raise: every failure is reported through
        LookupOutcome.failed().

        Args:
            target: Validated plate number and vehicle class

        Returns:
            LookupOutcome for the target
        """
        pass

    def _selector(self, name: str) -> str:
        return str(self.config.get("site", {}).get("selectors", {})[name])

    def _timeout_ms(self, name: str, default: int) -> int:
        return int(self.config.get("timeouts", {}).get(name, default))

    def _settle_ms(self, name: str, default: int) -> int:
        return int(self.config.get("settle", {}).get(name, default))

    async def _settle(self, page: Page, delay_ms: int) -> None:
        """Give client-side rendering a fixed amount of time to catch up."""
        if delay_ms > 0:
            await page.wait_for_timeout(delay_ms)

    async def _close_page(self, page: Optional[Page]) -> None:
        """Close a page, logging (not raising) close errors."""
        if page is None:
            return
        try:
            if not page.is_closed():
                await page.close()
        except Exception as e:
            self.logger.warning(f"Error closing page: {e}")
