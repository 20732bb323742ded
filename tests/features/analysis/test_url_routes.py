"""
Tests for the unauthenticated URL accessibility endpoint.
"""

from website_improver.features.analysis.routes import url as url_routes
from website_improver.features.analysis.schemas.analysis import AccessibilityCheckResult


class TestCheckAccessibility:
    async def test_reports_reachable_url(self, client, mocker):
        check_mock = mocker.patch.object(
            url_routes,
            "check_url_accessibility",
            return_value=AccessibilityCheckResult(accessible=True, status_code=200, response_time=12),
        )

        response = await client.post("/api/v1/url/check-accessibility",
                                     json={"url": "https://example.com", "timeout": 5000})

        assert response.status_code == 200
        payload = response.json()
        assert payload["message"] == "URL is accessible"
        assert payload["data"]["accessible"] is True
        assert payload["data"]["statusCode"] == 200
        check_mock.assert_awaited_once_with("https://example.com", timeout_ms=5000)

    async def test_reports_unreachable_url(self, client, mocker):
        mocker.patch.object(
            url_routes,
            "check_url_accessibility",
            return_value=AccessibilityCheckResult(accessible=False, error="Page not found", status_code=404),
        )

        response = await client.post("/api/v1/url/check-accessibility", json={"url": "https://example.com"})

        assert response.status_code == 200
        assert response.json()["message"] == "URL is not accessible"
        assert response.json()["data"]["error"] == "Page not found"

    async def test_private_url_rejected(self, client):
        response = await client.post("/api/v1/url/check-accessibility", json={"url": "http://192.168.0.1"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_timeout_out_of_range(self, client):
        response = await client.post("/api/v1/url/check-accessibility",
                                     json={"url": "https://example.com", "timeout": 60000})
        assert response.status_code == 400
