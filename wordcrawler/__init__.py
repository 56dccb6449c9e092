"""
Word Crawler

A bounded-depth, same-host crawler that counts word frequencies across
every page it visits.
"""

__version__ = "1.0.0"
__description__ = "Concurrent same-host web crawler computing word frequencies"
