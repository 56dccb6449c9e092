"""Tests for the crawl coordinator, including end-to-end crawls over a local
HTTP server and over files on disk."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from aiohttp import web
from aiohttp import test_utils

from tests.conftest import FakeFetcher
from wordcrawler.crawler.address import Address, InvalidAddressError
from wordcrawler.crawler.scheduler import CrawlerScheduler
from wordcrawler.storage.visited import VisitedRegistry
from wordcrawler.utils.config import Config, RegistryConfig


_IN0_HTML = """\
<html>
<head><title>Start</title></head>
<body>
  <script>var word1 = 1;</script>
  <p>word2 abc &&& ab</p>
  <a href="#">self</a>
  <a href="/in1.html">next</a>
  <img src="/pic.png">
  <a href="/pic.png">picture</a>
</body>
</html>
"""

_IN1_HTML = """\
<html><body><p>word2 word2 word3 word4 abcd</p><a href="/in0.html">back</a></body></html>
"""


class TestCrawlerScheduler:
    @pytest.mark.asyncio
    async def test_crawl_returns_counts_and_visited(self, site) -> None:
        fetcher = FakeFetcher(site)
        async with CrawlerScheduler(fetcher=fetcher) as scheduler:
            result = await scheduler.crawl("http://site.test/", max_depth=1)

        assert result.visited == {
            Address.parse("http://site.test/"),
            Address.parse("http://site.test/b"),
        }
        assert result.processed == 2
        assert result.frequencies["word2"] == 4
        assert "ab" not in result.frequencies

    @pytest.mark.asyncio
    async def test_max_depth_defaults_to_config(self, site) -> None:
        config = Config()
        config.crawler.max_depth = 0
        fetcher = FakeFetcher(site)
        async with CrawlerScheduler(config, fetcher=fetcher) as scheduler:
            result = await scheduler.crawl("http://site.test/")

        assert result.processed == 1
        assert fetcher.fetched == ["http://site.test/"]

    @pytest.mark.asyncio
    async def test_each_crawl_starts_with_an_empty_registry(self, site) -> None:
        fetcher = FakeFetcher(site)
        async with CrawlerScheduler(fetcher=fetcher) as scheduler:
            first = await scheduler.crawl("http://site.test/b", max_depth=1)
            second = await scheduler.crawl("http://site.test/", max_depth=1)
            again = await scheduler.crawl("http://site.test/", max_depth=1)

        assert first.visited == {Address.parse("http://site.test/b")}
        assert second.visited == {
            Address.parse("http://site.test/"),
            Address.parse("http://site.test/b"),
        }
        assert second.processed == 2
        assert second.frequencies["word2"] == 4
        assert second.frequencies["word3"] == 1
        assert again.frequencies == second.frequencies

    @pytest.mark.asyncio
    async def test_malformed_seed_rejected_before_initialize(self) -> None:
        scheduler = CrawlerScheduler(fetcher=FakeFetcher({}))
        with pytest.raises(InvalidAddressError):
            await scheduler.crawl("not a url", max_depth=1)

        assert scheduler.monitor is None
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_malformed_seed_is_fatal(self) -> None:
        fetcher = FakeFetcher({})
        async with CrawlerScheduler(fetcher=fetcher) as scheduler:
            with pytest.raises(InvalidAddressError):
                await scheduler.crawl("not a url", max_depth=1)

        assert fetcher.fetched == []

    @pytest.mark.asyncio
    async def test_seed_must_be_unclaimed(self, site) -> None:
        registry = VisitedRegistry()
        await registry.claim(Address.parse("http://site.test/"))

        async with CrawlerScheduler(fetcher=FakeFetcher(site), registry=registry) as scheduler:
            with pytest.raises(RuntimeError):
                await scheduler.crawl("http://site.test/", max_depth=1)

    @pytest.mark.asyncio
    async def test_injected_registry_is_left_open(self, site) -> None:
        registry = VisitedRegistry()
        async with CrawlerScheduler(fetcher=FakeFetcher(site), registry=registry) as scheduler:
            await scheduler.crawl("http://site.test/", max_depth=1)

        assert await registry.size() == 2

    @pytest.mark.asyncio
    async def test_redis_registry_from_config(self) -> None:
        client = AsyncMock()
        client.sadd.return_value = 1
        client.scard.return_value = 1
        client.smembers.return_value = {b"http://site.test/"}

        config = Config(registry=RegistryConfig(type="redis"))
        fetcher = FakeFetcher({"http://site.test/": ("only page", ["/other"])})

        with patch("wordcrawler.crawler.scheduler.redis.Redis", return_value=client):
            async with CrawlerScheduler(config, fetcher=fetcher) as scheduler:
                result = await scheduler.crawl("http://site.test/", max_depth=0)

        assert result.visited == {Address.parse("http://site.test/")}
        client.ping.assert_awaited_once()
        client.delete.assert_awaited_once()
        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redis_registry_key_per_crawl(self) -> None:
        client = AsyncMock()
        client.sadd.return_value = 1
        client.scard.return_value = 1
        client.smembers.return_value = {b"http://site.test/"}

        config = Config(registry=RegistryConfig(type="redis"))
        fetcher = FakeFetcher({"http://site.test/": ("only page", [])})

        with patch("wordcrawler.crawler.scheduler.redis.Redis", return_value=client):
            async with CrawlerScheduler(config, fetcher=fetcher) as scheduler:
                await scheduler.crawl("http://site.test/", max_depth=0)
                await scheduler.crawl("http://site.test/", max_depth=0)

        first_key, second_key = [call.args[0] for call in client.delete.await_args_list]
        assert first_key != second_key
        assert first_key.startswith("wordcrawler:visited:")
        client.ping.assert_awaited_once()


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_crawl_local_files(self, tmp_path) -> None:
        (tmp_path / "in0.html").write_text(_IN0_HTML, encoding="utf-8")
        (tmp_path / "in1.html").write_text(_IN1_HTML, encoding="utf-8")

        async with CrawlerScheduler() as scheduler:
            result = await scheduler.crawl((tmp_path / "in0.html").as_uri(), max_depth=10)

        counts = result.frequencies
        assert len(result.visited) == 2
        assert result.processed == 2
        assert "word1" not in counts
        assert "&&&" not in counts
        assert "ab" not in counts
        assert counts["word2"] == 3
        assert counts["abc"] == 1
        assert counts["abcd"] == 1
        assert counts["word3"] == 1
        assert counts["word4"] == 1

    @pytest.mark.asyncio
    async def test_crawl_http_site(self) -> None:
        pages = {
            "/": '<html><body><p>alpha beta</p>'
                 '<a href="/about">About</a><a href="/logo.png">Logo</a>'
                 '<a href="https://elsewhere.test/">Away</a></body></html>',
            "/about": '<html><body><p>alpha gamma</p>'
                      '<a href="/">Home</a><a href="/gone">Gone</a></body></html>',
        }

        async def handler(request: web.Request) -> web.Response:
            if request.path not in pages:
                raise web.HTTPNotFound()
            return web.Response(text=pages[request.path], content_type="text/html")

        app = web.Application()
        app.router.add_get("/{tail:.*}", handler)

        async with test_utils.TestServer(app) as server:
            seed = str(server.make_url("/"))
            async with CrawlerScheduler() as scheduler:
                result = await scheduler.crawl(seed, max_depth=3)

        assert {address.path for address in result.visited} == {"/", "/about", "/gone"}
        assert result.processed == 3
        assert result.frequencies["alpha"] == 2
        assert result.frequencies["gamma"] == 1
        assert result.frequencies["home"] == 1
        assert scheduler.monitor.stats["fetch_errors"] == 1
