"""
Tests for the analysis URL acceptance rule.
"""

import pytest
from pydantic import ValidationError

from website_improver.features.analysis.schemas.analysis import AccessibilityCheckRequest, AnalysisRequest
from website_improver.platform.utils.url_validator import is_private_host, validate_url


class TestValidateUrl:
    @pytest.mark.parametrize("url", [
        "https://example.com",
        "http://example.com/path?q=1",
        "https://sub.example.co.uk:8443/",
        "https://8.8.8.8",
    ])
    def test_accepts_public_http_urls(self, url):
        assert validate_url(url) == (True, "")

    @pytest.mark.parametrize("url, message", [
        ("", "URL is required"),
        ("   ", "URL is required"),
        ("example.com", "Please enter a valid URL"),
        ("not a url", "Please enter a valid URL"),
        ("ftp://example.com", "URL must use HTTP or HTTPS protocol"),
        ("javascript://example.com", "URL must use HTTP or HTTPS protocol"),
        ("http://localhost:3000", "Cannot analyze local or private network URLs"),
        ("http://127.0.0.1", "Cannot analyze local or private network URLs"),
        ("http://192.168.1.10", "Cannot analyze local or private network URLs"),
        ("http://10.0.0.5", "Cannot analyze local or private network URLs"),
        ("http://172.31.0.1", "Cannot analyze local or private network URLs"),
    ])
    def test_rejects(self, url, message):
        assert validate_url(url) == (False, message)

    def test_blocklist_is_prefix_based(self):
        # Every 172.* address is blocked, not just 172.16.0.0/12
        assert is_private_host("172.200.1.1") is True
        assert is_private_host("LOCALHOST") is True
        assert is_private_host("example.com") is False


class TestRequestSchemas:
    def test_analysis_request_rejects_private_url(self):
        with pytest.raises(ValidationError):
            AnalysisRequest(url="http://localhost")

    def test_analysis_request_accepts_camel_case_options(self):
        request = AnalysisRequest(url="https://example.com", options={"includeScreenshots": False})
        assert request.options.include_screenshots is False
        assert request.options.seo_analysis is True

    @pytest.mark.parametrize("timeout", [999, 30001])
    def test_check_timeout_bounds(self, timeout):
        with pytest.raises(ValidationError):
            AccessibilityCheckRequest(url="https://example.com", timeout=timeout)

    def test_check_timeout_default(self):
        assert AccessibilityCheckRequest(url="https://example.com").timeout == 10000
