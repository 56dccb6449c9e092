"""
Crawler core components.
"""

from .address import Address, InvalidAddressError, LinkStatus, Resolution, resolve, extension_of
from .fetcher import WebFetcher, FetchResult, PageFetcher
from .parser import ContentParser, ParsedPage
from .tally import tally, merge_into, top_words

__all__ = [
    'Address', 'InvalidAddressError', 'LinkStatus', 'Resolution', 'resolve', 'extension_of',
    'WebFetcher', 'FetchResult', 'PageFetcher',
    'ContentParser', 'ParsedPage',
    'tally', 'merge_into', 'top_words'
]
