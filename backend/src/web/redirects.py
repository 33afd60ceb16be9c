"""Open-redirect protection.

A redirect target is accepted only if it is
- a site-relative path: starts with "/" and contains no "//", or
- an absolute http(s) URL whose host is an allowed host or a subdomain of one.

Backslashes and control characters are rejected outright since browsers
normalise them in ways urllib does not.
"""

from typing import Iterable
from urllib.parse import urlsplit

ALLOWED_SCHEMES = {"http", "https"}


def _host_allowed(host: str, allowed_hosts: Iterable[str]) -> bool:
    host = host.lower().rstrip(".")
    for allowed in allowed_hosts:
        allowed = allowed.lower()
        if host == allowed or host.endswith("." + allowed):
            return True
    return False


def is_safe_redirect(url: str, allowed_hosts: Iterable[str]) -> bool:
    """Return True if url may be used as a redirect target.

    Examples:
        >>> is_safe_redirect("/orders", ["secureshop.com"])
        True
        >>> is_safe_redirect("//evil.com", ["secureshop.com"])
        False
        >>> is_safe_redirect("https://shop.secureshop.com/x", ["secureshop.com"])
        True
        >>> is_safe_redirect("https://secureshop.com.evil.com", ["secureshop.com"])
        False
    """
    if not url or "\\" in url:
        return False
    if any(ord(c) < 0x21 or ord(c) == 0x7f for c in url):
        return False

    try:
        parts = urlsplit(url)
    except ValueError:
        return False

    if not parts.scheme and not parts.netloc:
        return url.startswith("/") and "//" not in url

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        return False

    host = parts.hostname
    if not host:
        return False

    return _host_allowed(host, allowed_hosts)
