#!/usr/bin/env python3
"""
Command line entry point for the word crawler.
"""

import asyncio
import argparse
import logging
import sys
from typing import List, Optional

from wordcrawler import __version__
from wordcrawler.crawler.address import Address, InvalidAddressError
from wordcrawler.crawler.scheduler import CrawlerScheduler, CrawlResult
from wordcrawler.crawler.tally import top_words
from wordcrawler.utils.config import Config, ConfigError, load_config
from wordcrawler.utils.logger import setup_logging


TOP_WORDS_LIMIT = 100


class CrawlerApp:
    """Main application class for the word crawler."""

    def __init__(self, config: Config):
        self.config = config
        self.logger = logging.getLogger(__name__)

    async def run(self, url: str, max_depth: int) -> int:
        """Crawl ``url`` and print the report."""
        self.logger.info("=== WORD CRAWLER STARTING ===")
        self.logger.info(f"Seed URL: {url}")
        self.logger.info(f"Max depth: {max_depth}")
        self.logger.info(f"Max concurrent requests: {self.config.crawler.max_concurrent_requests}")
        self.logger.info(f"Registry type: {self.config.registry.type}")

        try:
            seed = Address.parse(url)
        except InvalidAddressError as e:
            self.logger.debug(f"Rejected seed: {e}")
            print(f"Incorrect URL: {url}")
            self.logger.info("=== WORD CRAWLER FINISHED ===")
            return 0

        try:
            async with CrawlerScheduler(self.config) as scheduler:
                result = await scheduler.crawl(seed, max_depth)
        except Exception as e:
            self.logger.error(f"Fatal error: {e}", exc_info=True)
            return 1
        finally:
            self.logger.info("=== WORD CRAWLER FINISHED ===")

        print_report(result)
        return 0


def print_report(result: CrawlResult, limit: int = TOP_WORDS_LIMIT):
    """Print the visited addresses, then the most frequent words."""
    print(f"Visited urls: {sorted(address.url for address in result.visited)}")
    for word, count in top_words(result.frequencies, limit):
        print(f"{word}: {count}")


def parse_max_depth(value: str, default: int) -> int:
    """Parse the depth argument, falling back to ``default`` with a warning."""
    try:
        depth = int(value)
    except ValueError:
        depth = -1

    if depth < 0:
        print(f"Incorrect max_depth [{value}], using default [{default}]")
        return default
    return depth


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Crawl a site and count word frequencies",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py https://example.com 2
  python main.py https://example.com 3 --config config.yaml
  python main.py file:///tmp/site/index.html 1 --log-level DEBUG
        """
    )

    parser.add_argument('url', nargs='?', help='Seed URL to crawl')
    parser.add_argument('max_depth', nargs='?', help='Maximum link depth')

    parser.add_argument(
        '--config',
        help='Path to a YAML configuration file (defaults apply when omitted)'
    )

    parser.add_argument(
        '--log-level',
        help='Override the configured log level'
    )

    parser.add_argument(
        '--json-logs',
        action='store_true',
        help='Emit logs as JSON lines'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'Word Crawler {__version__}'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.url is None or args.max_depth is None:
        parser.print_usage()
        return 0

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    if args.log_level:
        config.logging.level = args.log_level
    setup_logging(config.logging, enable_json=args.json_logs or None)

    max_depth = parse_max_depth(args.max_depth, config.crawler.max_depth)

    app = CrawlerApp(config)
    try:
        return asyncio.run(app.run(args.url, max_depth))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 0


if __name__ == '__main__':
    sys.exit(main())
