from urllib.parse import urlparse
from typing import Tuple

# Coarse prefix blocklist kept compatible with the public API behaviour:
# it does not cover IPv6 and blocks every 172.* address.
BLOCKED_HOSTS = {"localhost", "127.0.0.1"}
BLOCKED_HOST_PREFIXES = ("192.168.", "10.", "172.")


def is_private_host(hostname: str) -> bool:
    hostname = (hostname or "").lower()
    return hostname in BLOCKED_HOSTS or hostname.startswith(BLOCKED_HOST_PREFIXES)


def validate_url(url: str) -> Tuple[bool, str]:
    """
    Apply the analysis URL acceptance rule.

    Returns (is_valid, error_message). The URL is not rewritten: callers must
    submit an absolute http(s) URL.
    """
    if not url or not url.strip():
        return False, "URL is required"

    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
    except ValueError:
        return False, "Please enter a valid URL"

    if not parsed.scheme or not parsed.netloc:
        return False, "Please enter a valid URL"

    if parsed.scheme.lower() not in ("http", "https"):
        return False, "URL must use HTTP or HTTPS protocol"

    if not hostname:
        return False, "Please enter a valid URL"

    if is_private_host(hostname):
        return False, "Cannot analyze local or private network URLs"

    return True, ""
