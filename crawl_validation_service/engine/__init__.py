"""Crawl engine integration."""

from .base import CrawlEngine
from .heritrix import HeritrixClient

__all__ = ["CrawlEngine", "HeritrixClient"]
