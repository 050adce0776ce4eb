"""
Unit tests for delay manager.

Test strategy:
1. Mock asyncio.sleep to verify delay durations
2. Test disabled and zero-length pacing
"""

import pytest
from unittest.mock import patch, AsyncMock
from core.delay_manager import DelayManager


class TestDelayManager:
    """Test DelayManager class."""

    @pytest.mark.asyncio
    async def test_pace_sleeps_configured_delay(self) -> None:
        """Test pause length."""
        manager = DelayManager({"enabled": True, "between_requests_ms": 1500})

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await manager.pace()

            mock_sleep.assert_called_once_with(1.5)

    @pytest.mark.asyncio
    async def test_default_delay_is_one_second(self) -> None:
        """Test manager with empty config."""
        manager = DelayManager({})

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await manager.pace()

            mock_sleep.assert_called_once_with(1.0)

    @pytest.mark.asyncio
    async def test_disabled_delay(self) -> None:
        """Test that disabled pacing doesn't sleep."""
        manager = DelayManager({"enabled": False, "between_requests_ms": 1000})

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await manager.pace()
            mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_zero_delay(self) -> None:
        """Test that a zero delay doesn't sleep."""
        manager = DelayManager({"between_requests_ms": 0})

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await manager.pace()
            mock_sleep.assert_not_called()
