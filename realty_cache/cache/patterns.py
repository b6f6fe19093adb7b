"""
Wildcard key pattern matching and pattern deletion strategies.

Patterns use ``*`` as the only wildcard; every other character is literal.
The matching functions are pure and shared by the TTL resolver and by
stores that have no native pattern delete.
"""

import re
from functools import lru_cache
from typing import Any, List, Protocol, Tuple

WILDCARD = "*"


@lru_cache(maxsize=512)
def wildcard_to_regex(pattern: str) -> "re.Pattern[str]":
    """
    Compile a wildcard pattern into an anchored regular expression.

    Example:
        wildcard_to_regex("pa:*:avg_price").fullmatch("pa:suburb-12:avg_price")
    """
    parts = [re.escape(part) for part in pattern.split(WILDCARD)]
    return re.compile(".*".join(parts), re.DOTALL)


def matches_key_pattern(key: str, pattern: str) -> bool:
    """Return True if ``key`` equals ``pattern`` or matches it as a wildcard pattern."""
    if WILDCARD not in pattern:
        return key == pattern
    return wildcard_to_regex(pattern).fullmatch(key) is not None


class PatternDeletion(Protocol):
    """
    Strategy for finding the keys that match a wildcard pattern.

    Keys are returned one SCAN page at a time so the caller can bound and
    act on each page separately. A returned cursor of 0 ends the walk.
    """

    async def scan_page(self, connection: Any, cursor: int, pattern: str) -> Tuple[int, List[Any]]:
        ...


class ScanPatternDeletion:
    """
    Server-side matching via SCAN MATCH.

    Valkey's glob syntax treats ``?``, ``[`` and ``]`` as special, so those
    are escaped to keep them literal.
    """

    def __init__(self, count: int = 500):
        self.count = count

    @staticmethod
    def to_glob(pattern: str) -> str:
        return re.sub(r"([?\[\]\\])", r"\\\1", pattern)

    async def scan_page(self, connection: Any, cursor: int, pattern: str) -> Tuple[int, List[Any]]:
        cursor, keys = await connection.scan(cursor=cursor, match=self.to_glob(pattern), count=self.count)
        return int(cursor), list(keys)


class EnumeratingPatternDeletion:
    """
    Client-side matching for backends without a native pattern scan.

    Enumerates every key and filters with ``matches_key_pattern``.
    """

    def __init__(self, count: int = 500):
        self.count = count

    async def scan_page(self, connection: Any, cursor: int, pattern: str) -> Tuple[int, List[Any]]:
        cursor, keys = await connection.scan(cursor=cursor, count=self.count)
        matched = [
            key for key in keys
            if matches_key_pattern(key.decode() if isinstance(key, bytes) else key, pattern)
        ]
        return int(cursor), matched
