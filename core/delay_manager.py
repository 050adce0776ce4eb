"""
Async delay manager for pacing batch lookups.

Lookups in a batch run back to back against the same site; a fixed pause
between them keeps the request rate low.
"""

import asyncio
from typing import Dict, Any
from core.logger import get_logger

logger = get_logger("violation_lookup.delay_manager")

DEFAULT_BETWEEN_REQUESTS_MS = 1000


class DelayManager:
    """
    Manages the pause between consecutive lookups.

    Attributes:
        enabled: Whether pacing is applied at all
        between_requests_ms: Pause length in milliseconds
    """

    def __init__(self, config: Dict[str, Any]) -> None:
        """
        Initialize delay manager.

        Args:
            config: The "pacing" section of the crawler config
        """
        self.enabled = bool(config.get("enabled", True))
        self.between_requests_ms = int(
            config.get("between_requests_ms", DEFAULT_BETWEEN_REQUESTS_MS)
        )

    async def pace(self) -> None:
        """Sleep for the configured pause between two lookups."""
        if not self.enabled or self.between_requests_ms <= 0:
            return

        logger.debug(f"Applying {self.between_requests_ms}ms delay between requests")
        await asyncio.sleep(self.between_requests_ms / 1000.0)
