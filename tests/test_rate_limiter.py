import asyncio

import pytest

from amadeus_mcp.rate_limiter import PerKeyRateLimiter


@pytest.mark.asyncio
async def test_per_key_rate_limiter_allows_then_blocks():
    limiter = PerKeyRateLimiter(rate_per_sec=1, burst=1)
    assert await limiter.allow("tool")
    # Immediately requesting again should fail due to no tokens
    assert not await limiter.allow("tool")
    # Other keys have their own bucket
    assert await limiter.allow("other")
    # After waiting ~1s, should allow again
    await asyncio.sleep(1.05)
    assert await limiter.allow("tool")


@pytest.mark.asyncio
async def test_per_tool_override():
    limiter = PerKeyRateLimiter(rate_per_sec=10, burst=5, per_tool={"claim_testnet_ama": 0.1})
    assert await limiter.allow("claim_testnet_ama")
    assert await limiter.allow("get_chain_stats")
    slow = limiter._buckets["claim_testnet_ama"]
    fast = limiter._buckets["get_chain_stats"]
    assert slow.rate == pytest.approx(0.1)
    assert slow.capacity == pytest.approx(1.0)
    assert fast.rate == pytest.approx(10)
    assert not await limiter.allow("claim_testnet_ama")
