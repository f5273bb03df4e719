"""Crawl job orchestration and PDF validation service."""

__version__ = "0.1.0"
