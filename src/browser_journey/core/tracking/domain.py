"""Domain extraction and the keys derived from it."""

from urllib.parse import urlparse

from browser_journey.config import FAVICON_URL_TEMPLATE, IGNORED_URL_PREFIXES

WEB_SCHEMES = frozenset({"http", "https"})


def extract_domain(url: str | None) -> str | None:
    """Return the URL's hostname, or None for internal pages and malformed URLs.

    No ``www.`` or trailing-dot normalization is done: ``www.example.com`` and
    ``example.com`` are different domains.
    """
    if not url or url.startswith(IGNORED_URL_PREFIXES):
        return None
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError:
        return None
    if parsed.scheme not in WEB_SCHEMES or not hostname:
        return None
    return hostname


def favicon_url(domain: str) -> str:
    return FAVICON_URL_TEMPLATE.format(domain=domain)


def transition_key(from_domain: str, domain: str) -> str:
    return f"{from_domain}->{domain}"
