"""
Unit tests for rate limiting.
"""

from unittest.mock import MagicMock, patch

import pytest

from campuslink.core.rate_limit import check_rate_limit

RATE_LIMIT = "campuslink.core.rate_limit"


class TestMemoryFallback:
    @pytest.mark.asyncio
    async def test_limit_enforced_per_key(self):
        with patch(f"{RATE_LIMIT}.get_redis", return_value=None):
            results = [await check_rate_limit("otp_send:a@x.com", 3, 3600) for _ in range(4)]
            other = await check_rate_limit("otp_send:b@x.com", 3, 3600)

        assert results == [True, True, True, False]
        assert other is True

    @pytest.mark.asyncio
    async def test_redis_error_falls_back_to_memory(self):
        client = MagicMock()
        client.pipeline.side_effect = ConnectionError("redis down")

        with patch(f"{RATE_LIMIT}.get_redis", return_value=client):
            assert await check_rate_limit("validate_admission:1", 1, 60) is True
            assert await check_rate_limit("validate_admission:1", 1, 60) is False
