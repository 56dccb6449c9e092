"""Shared helpers for the crawler test suite.

``FakeFetcher`` stands in for the web fetcher: pages are plain
``url -> (text, links)`` entries, optionally delayed or failing, and every
fetch is recorded so tests can assert on what was requested.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional, Tuple

import pytest

from wordcrawler.crawler.address import Address
from wordcrawler.crawler.fetcher import FetchResult


class FakeFetcher:
    def __init__(self, pages: Dict[str, Tuple[str, Iterable[str]]],
                 delays: Optional[Dict[str, float]] = None,
                 failing: Optional[Dict[str, Exception]] = None):
        self.pages = pages
        self.delays = delays or {}
        self.failing = failing or {}
        self.fetched: List[str] = []
        self.active = 0
        self.max_active = 0

    async def fetch(self, address: Address) -> FetchResult:
        url = address.url
        self.fetched.append(url)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(url, 0))
            if url in self.failing:
                raise self.failing[url]
            if url not in self.pages:
                return FetchResult(url=url, status_code=404, error="HTTP status 404")
            text, links = self.pages[url]
            return FetchResult(url=url, status_code=200, text=text, links=list(links))
        finally:
            self.active -= 1


@pytest.fixture
def site() -> Dict[str, Tuple[str, List[str]]]:
    """Seed page A with a self anchor and a link to B on the same host."""
    return {
        "http://site.test/": ("word2 word2 abc ab &&& x_y", ["#", "/b"]),
        "http://site.test/b": ("word2 word2 word3 word4 abcd", []),
    }
