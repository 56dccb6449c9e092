"""
Page fetcher: retrieves a page and hands back its text and raw links.
"""

import asyncio
import aiohttp
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, Protocol
from urllib.request import url2pathname
from dataclasses import dataclass, field
from aiohttp import ClientSession, ClientTimeout, ClientError

from .address import Address
from .parser import ContentParser


MAX_CONTENT_SIZE = 10 * 1024 * 1024


@dataclass
class FetchResult:
    """Result of a fetch operation."""
    url: str
    status_code: int = 0
    text: Optional[str] = None
    links: List[str] = field(default_factory=list)
    error: Optional[str] = None
    fetch_time: float = 0.0
    content_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PageFetcher(Protocol):
    """Anything that can turn an address into page text and raw links."""

    async def fetch(self, address: Address) -> FetchResult:
        ...


class WebFetcher:
    """
    Fetches pages over HTTP(S) with aiohttp, or from disk for ``file:``
    addresses, and extracts their text and links.

    Concurrency is bounded by a semaphore held only for the duration of a
    single fetch. Ordinary failures are reported through ``FetchResult.error``.
    """

    def __init__(self, user_agent: str, request_timeout: int = 30,
                 max_concurrent_requests: int = 10,
                 parser: Optional[ContentParser] = None):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_concurrent_requests = max_concurrent_requests
        self.parser = parser or ContentParser()

        self.logger = logging.getLogger(__name__)

        # Session management
        self.session: Optional[ClientSession] = None
        self.semaphore = asyncio.Semaphore(max_concurrent_requests)

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)
            headers = {'User-Agent': self.user_agent}

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=self.max_concurrent_requests * 2,
                    limit_per_host=self.max_concurrent_requests,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def fetch(self, address: Address) -> FetchResult:
        """
        Fetch a single page.

        Args:
            address: The address to fetch

        Returns:
            FetchResult with page text and raw links, or error information
        """
        start_time = time.time()

        async with self.semaphore:
            self.stats['total_requests'] += 1
            self.logger.info(f"Parsing url: {address.url}")

            if address.scheme == 'file':
                result = await self._fetch_file(address, start_time)
            else:
                result = await self._fetch_http(address, start_time)

        if result.ok:
            self.stats['successful_requests'] += 1
        else:
            self.stats['failed_requests'] += 1
        return result

    async def _fetch_http(self, address: Address, start_time: float) -> FetchResult:
        url = address.url
        if self.session is None:
            await self.start()

        try:
            async with self.session.get(url) as response:
                content_type = response.headers.get('content-type', '').lower()

                if response.status >= 400:
                    self.logger.warning(f"HTTP {response.status} fetching {url}")
                    return FetchResult(
                        url=url,
                        status_code=response.status,
                        content_type=content_type,
                        error=f"HTTP status {response.status}",
                        fetch_time=time.time() - start_time
                    )

                # Only download text content
                if not self._is_text_content(content_type):
                    self.logger.debug(f"Skipping non-text content: {url} ({content_type})")
                    return FetchResult(
                        url=url,
                        status_code=response.status,
                        content_type=content_type,
                        error="Non-text content type",
                        fetch_time=time.time() - start_time
                    )

                content = await self._read_content_safely(response)
                if content is None:
                    return FetchResult(
                        url=url,
                        status_code=response.status,
                        content_type=content_type,
                        error="Content unreadable or too large",
                        fetch_time=time.time() - start_time
                    )

                self.stats['total_bytes_downloaded'] += len(content)
                page = self.parser.parse(url, content)
                self.logger.debug(f"Fetched {url}: {response.status} ({len(content)} chars)")
                return FetchResult(
                    url=url,
                    status_code=response.status,
                    text=page.text,
                    links=page.links,
                    content_type=content_type,
                    fetch_time=time.time() - start_time
                )

        except asyncio.TimeoutError:
            error_msg = "Request timeout"
            self.logger.warning(f"Timeout fetching {url}")

        except ClientError as e:
            error_msg = f"Client error: {str(e)}"
            self.logger.warning(f"Client error fetching {url}: {e}")

        return FetchResult(
            url=url,
            error=error_msg,
            fetch_time=time.time() - start_time
        )

    async def _fetch_file(self, address: Address, start_time: float) -> FetchResult:
        url = address.url
        path = Path(url2pathname(address.path))
        try:
            content_bytes = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            self.logger.warning(f"Could not read {url}: {e}")
            return FetchResult(
                url=url,
                error=f"File error: {e}",
                fetch_time=time.time() - start_time
            )

        if len(content_bytes) > MAX_CONTENT_SIZE:
            self.logger.warning(f"Content too large ({len(content_bytes)} bytes): {url}")
            return FetchResult(
                url=url,
                error="Content unreadable or too large",
                fetch_time=time.time() - start_time
            )

        self.stats['total_bytes_downloaded'] += len(content_bytes)
        page = self.parser.parse(url, self._decode(content_bytes, 'utf-8'))
        return FetchResult(
            url=url,
            status_code=200,
            text=page.text,
            links=page.links,
            content_type='text/html',
            fetch_time=time.time() - start_time
        )

    def _is_text_content(self, content_type: str) -> bool:
        """Check if content type is HTML or plain text."""
        text_types = [
            'text/html',
            'text/plain',
            'application/xhtml+xml',
        ]

        return any(text_type in content_type for text_type in text_types)

    async def _read_content_safely(self, response,
                                   max_size: int = MAX_CONTENT_SIZE) -> Optional[str]:
        """
        Safely read response content with size limit.

        Args:
            response: aiohttp response object
            max_size: Maximum content size in bytes (default 10MB)

        Returns:
            Content string or None if too large or error
        """
        try:
            content_length = response.headers.get('content-length')
            if content_length and int(content_length) > max_size:
                self.logger.warning(f"Content too large ({content_length} bytes): {response.url}")
                return None

            # Read content in chunks to respect size limit
            content_bytes = bytearray()
            async for chunk in response.content.iter_chunked(8192):
                content_bytes.extend(chunk)
                if len(content_bytes) > max_size:
                    self.logger.warning(f"Content exceeded size limit during reading: {response.url}")
                    return None

            return self._decode(bytes(content_bytes), response.charset or 'utf-8')

        except (ClientError, asyncio.TimeoutError, ValueError) as e:
            self.logger.error(f"Error reading content from {response.url}: {e}")
            return None

    def _decode(self, content_bytes: bytes, encoding: str) -> str:
        try:
            return content_bytes.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            # Try common encodings
            for fallback_encoding in ['utf-8', 'cp1252']:
                try:
                    return content_bytes.decode(fallback_encoding)
                except UnicodeDecodeError:
                    continue

            # If all else fails, decode with errors ignored
            return content_bytes.decode('utf-8', errors='ignore')

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()
