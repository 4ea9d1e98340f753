"""
Web application scan pipeline.
Fetches a live page and its scripts through the SSRF-safe fetcher.
"""

from .runner import WebAppScanRunner

__all__ = ["WebAppScanRunner"]
