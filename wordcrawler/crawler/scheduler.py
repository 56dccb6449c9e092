"""
Crawl coordinator: seeds the visited registry, runs the root task and
collects the results.
"""

import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Optional, Set, Union

import redis.asyncio as redis

from .address import Address
from .fetcher import PageFetcher, WebFetcher
from .task import CrawlTask, TaskRunner
from ..storage.visited import RedisVisitedRegistry, VisitedRegistry
from ..utils.config import Config
from ..utils.monitoring import CrawlerMonitor, ProgressCounter


@dataclass
class CrawlResult:
    """Outcome of one crawl run."""
    frequencies: Counter
    visited: Set[Address]
    processed: int
    elapsed_time: float = 0.0


class CrawlerScheduler:
    """
    Coordinates crawls: owns the fetcher and the monitor, and runs the
    fork-join task tree from each seed address.

    Components passed in are used as-is and left open on ``close``; missing
    ones are built from the configuration by ``initialize``. Unless a
    registry is injected, every ``crawl`` gets a fresh, empty visited
    registry that is discarded once the run's results are collected.
    """

    def __init__(self, config: Optional[Config] = None,
                 fetcher: Optional[PageFetcher] = None,
                 registry: Optional[VisitedRegistry] = None,
                 monitor: Optional[CrawlerMonitor] = None):
        self.config = config or Config()
        self.logger = logging.getLogger(__name__)

        self.fetcher = fetcher
        self.registry = registry
        self.monitor = monitor
        self.redis_client: Optional[redis.Redis] = None

        self._owns_fetcher = fetcher is None
        self._initialized = False

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        """Build whatever components were not injected."""
        if self._initialized:
            return

        crawler_config = self.config.crawler
        try:
            if self.fetcher is None:
                self.fetcher = WebFetcher(
                    user_agent=crawler_config.user_agent,
                    request_timeout=crawler_config.request_timeout,
                    max_concurrent_requests=crawler_config.max_concurrent_requests
                )
                await self.fetcher.start()

            if self.registry is None and self.config.registry.type == 'redis':
                await self._connect_redis()

            if self.monitor is None:
                self.monitor = CrawlerMonitor(
                    enable_prometheus=self.config.monitoring.metrics_enabled,
                    prometheus_port=self.config.monitoring.prometheus_port
                )
                self.monitor.start_prometheus_server()

            self._initialized = True
            self.logger.info("Crawler scheduler initialized")

        except Exception as e:
            self.logger.error(f"Failed to initialize crawler scheduler: {e}")
            await self.close()
            raise

    async def _connect_redis(self):
        redis_config = self.config.registry.redis
        self.redis_client = redis.Redis(
            host=redis_config.host,
            port=redis_config.port,
            db=redis_config.db,
            password=redis_config.password,
            decode_responses=False
        )
        await self.redis_client.ping()
        self.logger.info("Redis connection established")

    def _new_registry(self) -> VisitedRegistry:
        """Build an empty registry for one run."""
        if self.redis_client is not None:
            return RedisVisitedRegistry(
                self.redis_client, key_prefix=self.config.registry.redis.key_prefix
            )
        return VisitedRegistry()

    async def crawl(self, seed: Union[str, Address], max_depth: Optional[int] = None) -> CrawlResult:
        """
        Crawl from ``seed`` down to ``max_depth`` links away.

        Args:
            seed: Seed URL or address
            max_depth: Maximum link depth, configuration default if None

        Returns:
            CrawlResult with merged word counts and the visited addresses

        Raises:
            InvalidAddressError: if the seed is not a crawlable address
        """
        seed_address = seed if isinstance(seed, Address) else Address.parse(seed)
        if max_depth is None:
            max_depth = self.config.crawler.max_depth

        await self.initialize()

        owns_registry = self.registry is None
        registry = self._new_registry() if owns_registry else self.registry
        try:
            return await self._run(registry, seed_address, max_depth)
        finally:
            if owns_registry:
                await registry.close()

    async def _run(self, registry: VisitedRegistry, seed_address: Address,
                   max_depth: int) -> CrawlResult:
        if not await registry.claim(seed_address):
            raise RuntimeError(f"Seed address already claimed: {seed_address.url}")

        progress = ProgressCounter()
        progress.add(1)

        runner = TaskRunner(
            fetcher=self.fetcher,
            registry=registry,
            max_depth=max_depth,
            skipped_extensions=self.config.crawler.skipped_extensions,
            progress=progress,
            monitor=self.monitor
        )

        self.logger.info(f"Crawling {seed_address.url} (max depth {max_depth})")
        start_time = time.time()
        frequencies = await runner.run(CrawlTask(address=seed_address, depth=0))

        result = CrawlResult(
            frequencies=frequencies,
            visited=await registry.snapshot(),
            processed=progress.value,
            elapsed_time=time.time() - start_time
        )
        self._log_final_stats(result)
        return result

    def _log_final_stats(self, result: CrawlResult):
        self.logger.info("=== CRAWL COMPLETED ===")
        self.logger.info(f"Pages visited: {len(result.visited)}")
        self.logger.info(f"Tasks processed: {result.processed}")
        self.logger.info(f"Distinct words: {len(result.frequencies)}")
        self.logger.info(f"Total time: {result.elapsed_time:.2f} seconds")
        if self.monitor:
            self.logger.info(f"Crawl stats: {self.monitor.get_summary()}")
        if isinstance(self.fetcher, WebFetcher):
            self.logger.info(f"Fetcher stats: {self.fetcher.get_stats()}")

    async def close(self):
        """Close owned components."""
        if self._owns_fetcher and isinstance(self.fetcher, WebFetcher):
            await self.fetcher.close()
            self.fetcher = None

        if self.redis_client is not None:
            await self.redis_client.aclose()
            self.redis_client = None

        self._initialized = False
        self.logger.debug("Crawler scheduler closed")
