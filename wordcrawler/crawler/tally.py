"""
Word tallying for page text.
"""

import re
from collections import Counter
from typing import List, Mapping, Optional, Tuple


MIN_WORD_LENGTH = 3

_separator_pattern = re.compile(r'[\W_]+')


def tally(text: Optional[str]) -> Counter:
    """Count lower-cased alphanumeric words of at least three characters."""
    if not text:
        return Counter()
    return Counter(
        token for token in _separator_pattern.split(text.lower())
        if len(token) >= MIN_WORD_LENGTH
    )


def merge_into(target: Counter, source: Mapping[str, int]) -> Counter:
    """Add the counts of ``source`` to ``target`` in place and return it."""
    target.update(source)
    return target


def top_words(frequencies: Mapping[str, int], limit: int = 100) -> List[Tuple[str, int]]:
    """Most frequent words first; equal counts are ordered alphabetically."""
    ranked = sorted(frequencies.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:limit]
