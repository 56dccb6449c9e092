"""
Address classification: resolving raw link strings into absolute addresses.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit


SUPPORTED_SCHEMES = ('http', 'https', 'file')


class InvalidAddressError(ValueError):
    """Raised when a string cannot be turned into a crawlable address."""
    pass


@dataclass(frozen=True)
class Address:
    """
    Absolute, normalized URL used as the crawl and dedup unit.

    The fragment is dropped, scheme and authority are lower-cased and an
    empty path on a host is replaced by ``/``. Two addresses are equal when
    all of their components are equal.
    """
    scheme: str
    netloc: str
    path: str
    query: str = ''

    @classmethod
    def parse(cls, url: str) -> 'Address':
        """Parse and normalize an absolute URL."""
        if not url or not url.strip():
            raise InvalidAddressError("Empty address")

        try:
            parts = urlsplit(url.strip())
            # Touch the port so that a malformed one surfaces here
            parts.port
        except ValueError as e:
            raise InvalidAddressError(f"Malformed address {url!r}: {e}") from e

        scheme = parts.scheme.lower()
        if not scheme:
            raise InvalidAddressError(f"Address has no scheme: {url!r}")
        if scheme not in SUPPORTED_SCHEMES:
            raise InvalidAddressError(f"Unsupported scheme {scheme!r}: {url!r}")

        netloc = parts.netloc.lower()
        path = parts.path
        if scheme in ('http', 'https'):
            if not parts.hostname:
                raise InvalidAddressError(f"Address has no host: {url!r}")
            path = path or '/'
        elif not path:
            raise InvalidAddressError(f"File address has no path: {url!r}")

        return cls(scheme=scheme, netloc=netloc, path=path, query=parts.query)

    @property
    def url(self) -> str:
        return urlunsplit((self.scheme, self.netloc, self.path, self.query, ''))

    @property
    def host(self) -> str:
        """Host name without credentials or port, empty for local files."""
        return urlsplit(self.url).hostname or ''

    @property
    def domain(self) -> str:
        """
        ``scheme://authority`` of the address.

        Addresses without an authority (local files) fall back to a
        pseudo-domain made of the scheme and the directory part of the path,
        so root-relative links on such pages stay next to the page.
        """
        if self.netloc:
            return f"{self.scheme}://{self.netloc}"
        slash = self.path.rfind('/')
        directory = self.path[:slash] if slash >= 0 else ''
        return f"{self.scheme}:{directory}"

    def __str__(self) -> str:
        return self.url


class LinkStatus(Enum):
    """Outcome of resolving a raw link."""
    OK = 'ok'
    IGNORED = 'ignored'
    MALFORMED = 'malformed'


@dataclass(frozen=True)
class Resolution:
    """Result of resolving a raw link against a base address."""
    status: LinkStatus
    address: Optional[Address] = None
    error: Optional[str] = None


def resolve(raw_link: Optional[str], base: Address,
            domain: Optional[str] = None) -> Resolution:
    """
    Resolve a raw ``href`` value found on the page at ``base``.

    Empty and fragment-only links are ignored. Protocol-relative links take
    the scheme of the base, root-relative links are appended to the base's
    domain (``domain`` when given, ``base.domain`` otherwise) and anything else
    goes through standard URL joining.
    """
    href = (raw_link or '').strip()
    if not href or href.startswith('#'):
        return Resolution(LinkStatus.IGNORED)

    if href.startswith('//'):
        href = f"{base.scheme}:{href}"
    elif href.startswith('/'):
        href = (domain or base.domain) + href
    else:
        try:
            href = urljoin(base.url, href)
        except ValueError as e:
            return Resolution(LinkStatus.MALFORMED, error=str(e))

    try:
        return Resolution(LinkStatus.OK, address=Address.parse(href))
    except InvalidAddressError as e:
        return Resolution(LinkStatus.MALFORMED, error=str(e))


def extension_of(address: Address) -> str:
    """Return the file extension of the last path segment, or ''."""
    segment = address.path.rsplit('/', 1)[-1]
    if '.' not in segment:
        return ''
    return segment.rsplit('.', 1)[1]
