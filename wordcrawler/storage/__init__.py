"""
Crawl-run state shared between tasks.
"""

from .visited import VisitedRegistry, RedisVisitedRegistry

__all__ = ['VisitedRegistry', 'RedisVisitedRegistry']
