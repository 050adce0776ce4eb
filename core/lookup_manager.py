"""
Violation lookup manager.

This module implements the lookup manager that handles:
- Single and batch lookups over the shared browser session
- Cache consultation before and population after each lookup
- Pacing between consecutive browser-driven lookups
- Session health and restart operations for operational surfaces
- The periodic cache cleanup task
"""

import asyncio
import copy
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from core.base_searcher import BaseViolationSearcher
from core.browser_session import BrowserSession
from core.cache import ViolationCache
from core.config_loader import load_crawler_config
from core.delay_manager import DelayManager
from core.logger import get_logger
from core.models import LookupOutcome, Target


class ViolationLookupManager:
    """
    Violation lookup manager.

    Responsible for sequencing lookups, cache management and session health.

    Attributes:
        session: BrowserSession shared by every lookup
        cache: ViolationCache holding successful outcomes
        searcher: Site searcher that runs the form protocol
        delay_manager: DelayManager pacing consecutive lookups
        logger: Logger instance for logging
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        session: Optional[BrowserSession] = None,
        searcher: Optional[BaseViolationSearcher] = None,
        cache: Optional[ViolationCache] = None,
    ) -> None:
        """
        Initialize lookup manager.

        Args:
            config: Crawler configuration (default: loaded from config/crawler.yaml)
            session: BrowserSession (default: built from the "browser" section)
            searcher: Site searcher (default: CsgtViolationSearcher)
            cache: ViolationCache (default: built from the "cache" section)
        """
        self.config = config if config is not None else load_crawler_config()
        self.logger = get_logger("violation_lookup.lookup_manager")

        cache_config = self.config.get("cache", {})
        self.session = session or BrowserSession(self.config.get("browser", {}))
        self.cache = cache or ViolationCache(ttl=float(cache_config.get("ttl_seconds", 3600)))
        self.cleanup_interval = float(cache_config.get("cleanup_interval_seconds", 600))
        self.delay_manager = DelayManager(self.config.get("pacing", {}))

        if searcher is None:
            from platforms.csgt_searcher import CsgtViolationSearcher

            searcher = CsgtViolationSearcher(self.session, self.config)
        self.searcher = searcher

        self._cleanup_task: Optional[asyncio.Task] = None
        self._started_at = time.monotonic()

    async def start(self, warm_up: bool = True) -> None:
        """
        Start the cache cleanup loop and optionally launch the browser.

        A browser that fails to launch here is only logged; the first lookup
        retries the launch.

        Args:
            warm_up: Launch the browser now instead of on the first lookup
        """
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(
                self.cache.run_periodic_cleanup(self.cleanup_interval)
            )

        if warm_up:
            try:
                await self.session.ensure_ready()
            except Exception as e:
                self.logger.error(f"Browser warm-up failed, will retry on first lookup: {e}")

        self.logger.info("ViolationLookupManager started")

    async def lookup_one(self, target: Target, use_cache: bool = True) -> LookupOutcome:
        """
        Look up violations for one target.

        Args:
            target: Validated plate number and vehicle class
            use_cache: Whether to consult and populate the cache (default: True)

        Returns:
            LookupOutcome for the target

        Raises:
            SessionInitError: If the browser cannot be launched
        """
        outcomes = await self.lookup_batch([target], use_cache=use_cache)
        return outcomes[0]

    async def lookup_batch(
        self, targets: Sequence[Target], use_cache: bool = True
    ) -> List[LookupOutcome]:
        """
        Look up violations for several targets, one after another.

        This method:
        1. Serves a target from the cache when it can
        2. Makes sure the browser session is healthy once, before the first
           browser-driven lookup
        3. Runs cache misses in input order, pausing between two consecutive
           browser-driven lookups
        4. Caches successful outcomes

        A failed target never fails the batch. Callers enforce the batch size
        limit before calling.

        Args:
            targets: Validated targets
            use_cache: Whether to consult and populate the cache (default: True)

        Returns:
            One LookupOutcome per target, in input order

        Raises:
            SessionInitError: If the browser cannot be launched
        """
        self.logger.info(f"Starting lookup of {len(targets)} plates")

        results: List[LookupOutcome] = []
        browser_lookups = 0
        for i, target in enumerate(targets):
            cached = self._cached_outcome(target) if use_cache else None
            if cached is not None:
                self.logger.info(f"[{i + 1}/{len(targets)}] Cache hit: {target.plate_number}")
                results.append(cached)
                continue

            if browser_lookups == 0:
                await self.session.ensure_ready()
            else:
                await self.delay_manager.pace()

            self.logger.info(f"[{i + 1}/{len(targets)}] Looking up: {target.plate_number}")
            outcome = await self.searcher.lookup(target)
            browser_lookups += 1
            results.append(outcome)

            if use_cache and outcome.success:
                # The cache keeps its own copy; callers may mutate what they get back
                self.cache.set(target.cache_key(), copy.deepcopy(outcome))

        successful = sum(1 for outcome in results if outcome.success)
        self.logger.info(f"Finished lookup of {len(results)} plates ({successful} succeeded)")
        return results

    def _cached_outcome(self, target: Target) -> Optional[LookupOutcome]:
        cached = self.cache.get(target.cache_key())
        if cached is None:
            return None
        # Same key means same normalized target; hand back the caller's object
        return LookupOutcome(
            success=cached.success,
            target=target,
            records=copy.deepcopy(cached.records),
            error=cached.error,
        )

    def get_session_health(self) -> Dict[str, Any]:
        """Report whether the browser session is usable."""
        return {"healthy": self.session.is_healthy(), "state": self.session.state.value}

    async def restart_session(self) -> Dict[str, Any]:
        """
        Restart the browser session on operator request.

        Returns:
            {"success": bool, "message": str}; never raises
        """
        self.logger.info("Browser restart requested")
        try:
            await self.session.restart()
        except Exception as e:
            self.logger.error(f"Browser restart failed: {e}")
            return {"success": False, "message": f"Restart failed: {e}"}
        return {"success": True, "message": "Browser restarted successfully"}

    def check_health(self) -> Dict[str, Any]:
        """Overall service health: status, timestamp, uptime and browser state."""
        healthy = self.session.is_healthy()
        return {
            "status": "ok" if healthy else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - self._started_at, 3),
            "browser": {
                "status": "connected" if healthy else "disconnected",
                "healthy": healthy,
            },
        }

    def get_cache_stats(self) -> Dict[str, Any]:
        """Cache diagnostics: size, keys and expiry statistics."""
        return {
            "size": self.cache.size(),
            "keys": self.cache.keys(),
            "stats": self.cache.get_stats(),
        }

    async def close(self) -> None:
        """
        Stop the cleanup loop and close the browser session.

        This should be called when the manager is no longer needed.
        """
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        await self.session.close()
        self.logger.info("ViolationLookupManager closed")
