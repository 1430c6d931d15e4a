"""Tests for domain extraction."""

import pytest

from browser_journey.core.tracking.domain import extract_domain, favicon_url, transition_key


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://example.com/page?q=1", "example.com"),
        ("http://docs.python.org:8080/3/", "docs.python.org"),
        ("https://www.example.com/", "www.example.com"),
        ("https://user:pw@host.example.org/x", "host.example.org"),
    ],
)
def test_extract_domain_returns_hostname(url: str, expected: str) -> None:
    assert extract_domain(url) == expected


@pytest.mark.parametrize(
    "url",
    [
        None,
        "",
        "chrome://settings",
        "chrome-extension://abcdef/popup.html",
        "about:blank",
        "edge://newtab",
        "file:///etc/hosts",
        "ftp://example.com/file",
        "not a url",
        "https://",
    ],
)
def test_extract_domain_rejects_non_web_urls(url: str | None) -> None:
    assert extract_domain(url) is None


def test_extract_domain_does_not_strip_www() -> None:
    """www and bare domains stay distinct."""
    assert extract_domain("https://www.a.com/") != extract_domain("https://a.com/")


def test_extract_domain_handles_malformed_ipv6() -> None:
    assert extract_domain("http://[::1/") is None


def test_favicon_url_uses_domain() -> None:
    assert favicon_url("a.com") == "https://www.google.com/s2/favicons?domain=a.com&sz=32"


def test_transition_key_format() -> None:
    assert transition_key("a.com", "b.com") == "a.com->b.com"
