"""
Progress tracking and metrics collection for the crawler.
"""

import time
import logging
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server


class ProgressCounter:
    """
    Count of crawl tasks completed so far.

    Tasks all run on one event loop and ``add`` never suspends, so a plain
    integer is enough.
    """

    def __init__(self, start: int = 0):
        self._value = start

    def add(self, amount: int = 1) -> int:
        """Add ``amount`` and return the new total."""
        self._value += amount
        return self._value

    @property
    def value(self) -> int:
        return self._value


class CrawlerMonitor:
    """
    Records crawl events both as plain counters and as Prometheus metrics on
    a private registry.
    """

    def __init__(self, enable_prometheus: bool = False, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.enable_prometheus = enable_prometheus
        self.prometheus_port = prometheus_port
        self.start_time = time.time()

        self.stats = {
            'pages_fetched': 0,
            'fetch_errors': 0,
            'task_errors': 0,
            'links_spawned': 0,
            'links_skipped': 0,
            'links_bad': 0,
        }

        self.registry = CollectorRegistry()
        self.pages_fetched = Counter(
            'wordcrawler_pages_fetched',
            'Pages fetched and tallied',
            registry=self.registry
        )
        self.fetch_errors = Counter(
            'wordcrawler_fetch_errors',
            'Pages that could not be fetched',
            registry=self.registry
        )
        self.task_errors = Counter(
            'wordcrawler_task_errors',
            'Crawl tasks that failed unexpectedly',
            registry=self.registry
        )
        self.links = Counter(
            'wordcrawler_links',
            'Outbound links by outcome',
            ['outcome'],
            registry=self.registry
        )
        self.fetch_seconds = Histogram(
            'wordcrawler_fetch_seconds',
            'Time spent fetching a page',
            registry=self.registry
        )

    def start_prometheus_server(self):
        """Expose the metrics over HTTP when enabled."""
        if not self.enable_prometheus:
            return

        start_http_server(self.prometheus_port, registry=self.registry)
        self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")

    def record_fetch(self, ok: bool, fetch_time: float):
        self.fetch_seconds.observe(fetch_time)
        if ok:
            self.stats['pages_fetched'] += 1
            self.pages_fetched.inc()
        else:
            self.stats['fetch_errors'] += 1
            self.fetch_errors.inc()

    def record_links(self, spawned: int, skipped: int, bad: int):
        for outcome, count in (('spawned', spawned), ('skipped', skipped), ('bad', bad)):
            self.stats[f'links_{outcome}'] += count
            if count:
                self.links.labels(outcome=outcome).inc(count)

    def record_task_error(self):
        self.stats['task_errors'] += 1
        self.task_errors.inc()

    def get_sample(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Current value of a Prometheus sample, 0 if never recorded."""
        return self.registry.get_sample_value(name, labels or {}) or 0.0

    def get_summary(self) -> Dict[str, Any]:
        runtime = time.time() - self.start_time
        summary: Dict[str, Any] = dict(self.stats)
        summary['runtime_seconds'] = runtime
        summary['pages_per_minute'] = (
            self.stats['pages_fetched'] / (runtime / 60) if runtime > 0 else 0
        )
        return summary
