# tests/test_rate_limit.py
import pytest

from website_improver.platform.config import settings
from website_improver.platform.exceptions import RateLimitedError
from website_improver.platform.utils.rate_limit import RateLimiter


async def test_analysis_rate_limit_per_user(client, auth_headers, make_account):
    await make_account(credits=100)
    limit = settings.ANALYSIS_RATE_LIMIT

    # Requests under limit should succeed
    for _ in range(limit):
        res = await client.post("/api/v1/analyze", json={"url": "https://example.com"}, headers=auth_headers())
        assert res.status_code == 200

    # Next request should be blocked
    res = await client.post("/api/v1/analyze", json={"url": "https://example.com"}, headers=auth_headers())
    assert res.status_code == 429
    assert "Retry-After" in res.headers
    assert res.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"


async def test_rate_limited_request_spends_no_credit(client, auth_headers, make_account):
    await make_account(credits=100)
    for _ in range(settings.ANALYSIS_RATE_LIMIT + 1):
        await client.post("/api/v1/analyze", json={"url": "https://example.com"}, headers=auth_headers())

    res = await client.get("/api/v1/credits", headers=auth_headers())
    assert res.json()["data"]["credits"] == 100 - settings.ANALYSIS_RATE_LIMIT


async def test_invalid_body_still_counts_against_limit(client, auth_headers, make_account):
    await make_account()
    for _ in range(settings.ANALYSIS_RATE_LIMIT):
        res = await client.post("/api/v1/analyze", json={"url": "ftp://x"}, headers=auth_headers())
        assert res.status_code == 400

    res = await client.post("/api/v1/analyze", json={"url": "ftp://x"}, headers=auth_headers())
    assert res.status_code == 429


async def test_url_check_rate_limit_per_ip(client, mocker):
    from website_improver.features.analysis.routes import url as url_routes
    from website_improver.features.analysis.schemas.analysis import AccessibilityCheckResult

    mocker.patch.object(url_routes, "check_url_accessibility",
                        return_value=AccessibilityCheckResult(accessible=True, status_code=200))
    limit = settings.URL_CHECK_RATE_LIMIT
    headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}

    for _ in range(limit):
        res = await client.post("/api/v1/url/check-accessibility", json={"url": "https://example.com"},
                                headers=headers)
        assert res.status_code == 200

    res = await client.post("/api/v1/url/check-accessibility", json={"url": "https://example.com"},
                            headers=headers)
    assert res.status_code == 429

    # A different client address has its own window
    res = await client.post("/api/v1/url/check-accessibility", json={"url": "https://example.com"},
                            headers={"X-Forwarded-For": "198.51.100.2"})
    assert res.status_code == 200


class TestRateLimiter:
    @pytest.fixture(autouse=True)
    def set_in_memory(self, monkeypatch):
        """Force in-memory rate limiter for testing."""
        monkeypatch.setattr(settings, "FORCE_IN_MEMORY_RATE_LIMITER", True)

    async def test_window_resets(self, mocker):
        limiter = RateLimiter(prefix="test", limit=1, window_seconds=60, message="slow down")
        clock = mocker.patch("website_improver.platform.utils.rate_limit.time.time", return_value=1000.0)

        await limiter.check("a")
        with pytest.raises(RateLimitedError) as exc_info:
            await limiter.check("a")
        assert exc_info.value.retry_after == 60
        assert exc_info.value.message == "slow down"

        clock.return_value = 1061.0
        await limiter.check("a")

    async def test_identities_are_independent(self):
        limiter = RateLimiter(prefix="test", limit=1, window_seconds=60, message="slow down")
        await limiter.check("a")
        await limiter.check("b")
