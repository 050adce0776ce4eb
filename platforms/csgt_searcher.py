"""
CSGT traffic violation searcher.

This module drives the search form on the CSGT portal for one plate number
and parses the result cards. It inherits from BaseViolationSearcher and
implements the site-specific form protocol.
"""

import asyncio
from typing import Any, Dict, Optional
from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError
from core.base_searcher import BaseViolationSearcher
from core.browser_session import BrowserSession
from core.config_loader import load_crawler_config
from core.exceptions import FormTimeoutError, NavigationTimeoutError, SubmitTimeoutError
from core.models import LookupOutcome, Target
from platforms.csgt_extractor import extract_all_violations


class CsgtViolationSearcher(BaseViolationSearcher):
    """
    CSGT violation searcher.

    One lookup uses one fresh page from the shared session and closes it on
    every exit path. There are no retries inside a lookup.
    """

    def __init__(self, session: BrowserSession, config: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize CSGT searcher.

        Args:
            session: BrowserSession for opening pages
            config: Crawler configuration (default: loaded from config/crawler.yaml)
        """
        super().__init__(session, config if config is not None else load_crawler_config())
        self.search_url = self.config.get("site", {}).get(
            "search_url", "https://www.csgt.vn/tra-cuu-phat-nguoi"
        )

    async def lookup(self, target: Target) -> LookupOutcome:
        """
        Look up violations for one target.

        This method:
        1. Opens the search page and waits for the network to settle
        2. Waits for the search form
        3. Selects the vehicle class
        4. Fills in the plate number
        5. Submits and waits for the result page to settle and render
        6. Parses every result card

        No result cards is a successful lookup with no records.

        Args:
            target: Validated plate number and vehicle class

        Returns:
            LookupOutcome; failures are reported in its error field
        """
        page: Optional[Page] = None

        try:
            self.logger.info(f"Looking up plate: {target.plate_number} ({target.vehicle_class.value})")
            page = await self.session.new_page()

            await self._open_search_form(page)
            await self._fill_search_form(page, target)
            await self._submit(page)

            cards = page.locator(self._selector("result_card"))
            card_count = await cards.count()

            if card_count == 0:
                self.logger.info(f"No violations found for plate {target.plate_number}")
                return LookupOutcome.ok(target, [])

            self.logger.info(f"Found {card_count} violation cards, parsing...")
            records = await extract_all_violations(cards)

            self.logger.info(
                f"Lookup succeeded for {target.plate_number}: {len(records)} violations"
            )
            return LookupOutcome.ok(target, records)

        except Exception as e:
            self.logger.error(f"Lookup failed for plate {target.plate_number}: {e}")
            return LookupOutcome.failed(target, str(e))
        finally:
            await self._close_page(page)

    async def _open_search_form(self, page: Page) -> None:
        navigation_ms = self._timeout_ms("navigation_ms", 30000)
        try:
            await page.goto(self.search_url, wait_until="networkidle", timeout=navigation_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeoutError(
                f"Search page did not load within {navigation_ms}ms: {e}"
            ) from e

        form_ms = self._timeout_ms("form_ms", 20000)
        try:
            await page.wait_for_selector(self._selector("form"), timeout=form_ms)
        except PlaywrightTimeoutError as e:
            raise FormTimeoutError(f"Search form did not appear within {form_ms}ms: {e}") from e

    async def _fill_search_form(self, page: Page, target: Target) -> None:
        await page.select_option(self._selector("vehicle_type"), target.vehicle_class.value)
        await self._settle(page, self._settle_ms("select_ms", 500))

        await page.fill(self._selector("plate_number"), target.plate_number)
        await self._settle(page, self._settle_ms("fill_ms", 500))

    async def _submit(self, page: Page) -> None:
        submit_ms = self._timeout_ms("submit_ms", 15000)
        try:
            await asyncio.gather(
                page.click(self._selector("submit"), timeout=submit_ms),
                page.wait_for_load_state("networkidle", timeout=submit_ms),
            )
        except PlaywrightTimeoutError as e:
            raise SubmitTimeoutError(
                f"Result page did not settle within {submit_ms}ms: {e}"
            ) from e

        # Cards render client-side with no completion signal
        await self._settle(page, self._settle_ms("render_ms", 3000))
