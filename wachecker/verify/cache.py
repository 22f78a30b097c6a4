"""Verification result cache.

The pipeline talks to the cache only through `VerificationCache`, so a bounded
or expiring store can replace `MemoryVerificationCache` without touching it.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

from ..metrics.registry import CACHE_ENTRIES, CACHE_HITS, CACHE_MISSES


logger = logging.getLogger("wachecker.cache")


class VerificationCache(Protocol):
    def get(self, identifier: str) -> Optional[bool]:
        ...

    def put(self, identifier: str, registered: bool) -> None:
        ...

    def __contains__(self, identifier: object) -> bool:
        ...

    def __len__(self) -> int:
        ...


class MemoryVerificationCache:
    """Unbounded in-process map of identifier -> registration status.

    Entries live for the lifetime of the process. Only definitive results are
    stored; failed checks never reach `put`.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, bool] = {}
        self.hits = 0
        self.misses = 0

    def get(self, identifier: str) -> Optional[bool]:
        status = self._entries.get(identifier)
        if status is None:
            self.misses += 1
            CACHE_MISSES.inc()
        else:
            self.hits += 1
            CACHE_HITS.inc()
        return status

    def put(self, identifier: str, registered: bool) -> None:
        self._entries[identifier] = bool(registered)
        CACHE_ENTRIES.set(len(self._entries))
        logger.debug("cached result", extra={"identifier": identifier, "registered": registered})

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries

    def __len__(self) -> int:
        return len(self._entries)
