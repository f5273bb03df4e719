"""Crawl URL helpers."""

from __future__ import annotations

from typing import List

_SCHEMES = ("http://", "https://")


def has_scheme(url: str) -> bool:
    return url.startswith(_SCHEMES)


def normalize_url(url: str) -> str:
    """Return the key under which a crawl of ``url`` is tracked.

    Bare hosts get ``https://``, the query string is dropped and a single
    trailing slash is removed.
    """

    url = url.strip()
    if not has_scheme(url):
        url = "https://" + url
    if "?" in url:
        url = url[: url.index("?")]
    if url.endswith("/"):
        url = url[:-1]
    return url


def seed_urls(url: str) -> List[str]:
    """Seeds handed to the crawl engine for a start request."""

    normalized = normalize_url(url)
    if has_scheme(url.strip()):
        return [normalized]
    return [normalized, normalized.replace("https://", "http://", 1)]


__all__ = ["has_scheme", "normalize_url", "seed_urls"]
