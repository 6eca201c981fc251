"""
Unit tests for the Redis status helper.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from campuslink.core.redis import redis_status

REDIS = "campuslink.core.redis"


class TestRedisStatus:
    @pytest.mark.asyncio
    async def test_not_initialized_uses_memory(self):
        with patch(f"{REDIS}.redis_client", None):
            status = await redis_status()

        assert status == {"redis": "not initialized", "rate_limit_backend": "memory"}

    @pytest.mark.asyncio
    async def test_connected(self):
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)

        with patch(f"{REDIS}.redis_client", client):
            status = await redis_status()

        assert status["redis"] == "connected"
        assert status["rate_limit_backend"] == "redis"

    @pytest.mark.asyncio
    async def test_ping_failure(self):
        client = MagicMock()
        client.ping = AsyncMock(side_effect=ConnectionError("refused"))

        with patch(f"{REDIS}.redis_client", client):
            status = await redis_status()

        assert status["redis"] == "error"
        assert status["message"] == "refused"
