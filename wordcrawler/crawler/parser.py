"""
HTML parser extracting page text and outbound links.
"""

import re
import logging
from typing import List
from dataclasses import dataclass, field
from bs4 import BeautifulSoup, Comment


@dataclass
class ParsedPage:
    """Text and raw links extracted from one HTML document."""
    url: str
    text: str = ''
    links: List[str] = field(default_factory=list)


class ContentParser:
    """
    Parses HTML content into visible body text and the raw ``href`` values
    of its anchors.

    Links are returned exactly as written in the document and in document
    order; resolving them is left to the caller.
    """

    def __init__(self, features: str = 'lxml'):
        self.features = features
        self.logger = logging.getLogger(__name__)
        self.whitespace_pattern = re.compile(r'\s+')

    def parse(self, url: str, html_content: str) -> ParsedPage:
        """
        Parse HTML content.

        Args:
            url: The URL of the page
            html_content: Raw HTML content

        Returns:
            ParsedPage with the body text and anchor hrefs
        """
        try:
            soup = BeautifulSoup(html_content, self.features)

            # Remove script and style elements
            for script in soup(["script", "style", "noscript"]):
                script.decompose()

            # Remove comments
            for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
                comment.extract()

            page = ParsedPage(url=url)

            body = soup.find('body') or soup
            page.text = self._clean_text(body.get_text(separator=' ', strip=True))
            page.links = [anchor['href'] for anchor in body.find_all('a', href=True)]

            self.logger.debug(f"Parsed {url}: {len(page.text)} chars, {len(page.links)} links")
            return page

        except Exception as e:
            self.logger.error(f"Error parsing content from {url}: {e}")
            return ParsedPage(url=url)

    def _clean_text(self, text: str) -> str:
        """Collapse whitespace."""
        if not text:
            return ""
        return self.whitespace_pattern.sub(' ', text.strip())
