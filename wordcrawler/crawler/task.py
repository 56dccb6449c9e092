"""
Crawl task: the recursive fork-join unit of work.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .address import Address, LinkStatus, extension_of, resolve
from .fetcher import FetchResult, PageFetcher
from .tally import merge_into, tally
from ..storage.visited import VisitedRegistry
from ..utils.config import DEFAULT_SKIPPED_EXTENSIONS
from ..utils.logger import CrawlerLogAdapter, get_crawler_logger, timed
from ..utils.monitoring import CrawlerMonitor, ProgressCounter


@dataclass
class CrawlTask:
    """One page to crawl at a given depth below the seed."""
    address: Address
    depth: int
    domain: str = field(init=False)
    host: str = field(init=False)

    def __post_init__(self):
        self.domain = self.address.domain
        self.host = self.address.host


class TaskRunner:
    """
    Runs crawl tasks for one crawl run.

    A task fetches its page, tallies the words, claims the unvisited
    same-host links it finds, runs one child task per claimed link
    concurrently and sums the children's counts into its own. Children are
    only spawned while ``depth < max_depth``.

    Failures never propagate: a page that cannot be fetched contributes an
    empty count, and an unexpected error returns whatever was gathered so far.
    """

    def __init__(self, fetcher: PageFetcher, registry: VisitedRegistry, max_depth: int,
                 skipped_extensions: Iterable[str] = DEFAULT_SKIPPED_EXTENSIONS,
                 progress: Optional[ProgressCounter] = None,
                 monitor: Optional[CrawlerMonitor] = None):
        self.fetcher = fetcher
        self.registry = registry
        self.max_depth = max_depth
        self.skipped_extensions = {ext.lower() for ext in skipped_extensions}
        self.progress = progress or ProgressCounter()
        self.monitor = monitor
        self.logger = logging.getLogger(__name__)

    async def run(self, task: CrawlTask) -> Counter:
        """Crawl ``task`` and its descendants, returning the merged word counts."""
        result: Counter = Counter()
        children: List[asyncio.Task] = []
        expanded = False
        log = get_crawler_logger(__name__, url=task.address.url, depth=task.depth)

        try:
            page = await self._fetch(task, log)
            if page is not None:
                with timed(log, 'tally'):
                    merge_into(result, tally(page.text))

                if task.depth < self.max_depth:
                    expanded = True
                    await self._expand(task, page.links, children, log)

        except Exception as e:
            self._record_error(task, e, log)

        if expanded or children:
            try:
                await self._join(children, result, log)
            except Exception as e:
                self._record_error(task, e, log)

        return result

    def _record_error(self, task: CrawlTask, error: Exception, log: CrawlerLogAdapter):
        if self.monitor:
            self.monitor.record_task_error()
        log.error(f"Error crawling {task.address.url}: {error}", exc_info=True)

    async def _fetch(self, task: CrawlTask, log: CrawlerLogAdapter) -> Optional[FetchResult]:
        with timed(log, 'fetch'):
            fetch_result = await self.fetcher.fetch(task.address)

        if self.monitor:
            self.monitor.record_fetch(fetch_result.ok, fetch_result.fetch_time)

        if not fetch_result.ok:
            log.warning(f"Failed to fetch {task.address.url}: {fetch_result.error}")
            return None
        return fetch_result

    async def _expand(self, task: CrawlTask, links: Iterable[str],
                      children: List[asyncio.Task], log: CrawlerLogAdapter):
        """Claim eligible links and start a child task for each one claimed."""
        skipped = bad = 0

        for raw_link in links:
            resolution = resolve(raw_link, task.address, domain=task.domain)
            if resolution.status is LinkStatus.IGNORED:
                continue
            if resolution.status is LinkStatus.MALFORMED:
                log.debug(f"Bad link {raw_link!r}: {resolution.error}")
                bad += 1
                continue

            address = resolution.address
            if (address.host != task.host
                    or extension_of(address).lower() in self.skipped_extensions):
                skipped += 1
                continue

            if not await self.registry.claim(address):
                skipped += 1
                continue

            child = CrawlTask(address=address, depth=task.depth + 1)
            children.append(asyncio.create_task(self.run(child)))

        if self.monitor:
            self.monitor.record_links(len(children), skipped, bad)
        log.info(f"depth {task.depth}, good|skip|bad counts: {len(children)}|{skipped}|{bad}")

    async def _join(self, children: List[asyncio.Task], result: Counter,
                    log: CrawlerLogAdapter):
        """Wait for children in spawn order and add their counts to ``result``."""
        for child in children:
            child_result = await child
            with timed(log, 'merge'):
                merge_into(result, child_result)

        processed = self.progress.add(len(children))
        log.info(f"=== Progress: {processed} of {await self.registry.size()} complete ===")
