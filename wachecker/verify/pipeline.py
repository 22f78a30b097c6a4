"""Batch verification pipeline.

Splits a request into cached and uncached identifiers, answers the cached ones
immediately, then checks the rest against WhatsApp in fixed-size concurrent
batches separated by a fixed pause. Each batch is a barrier: the next one does
not start until every check in the current one has settled.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple

from ..metrics.registry import BATCHES, CHECK_SECONDS, CHECKS
from .cache import VerificationCache


logger = logging.getLogger("wachecker.pipeline")

DEFAULT_BATCH_SIZE = 5
DEFAULT_PACE_SECONDS = 0.8


class VerificationClient(Protocol):
    async def is_registered(self, identifier: str) -> bool:
        ...


class ProgressSink(Protocol):
    async def report(self, processed: int, total: int, *, from_cache: bool = False) -> None:
        ...


class ItemStatus(str, enum.Enum):
    REGISTERED = "registered"
    UNREGISTERED = "unregistered"
    ERROR = "error"


@dataclass(frozen=True)
class ItemOutcome:
    identifier: str
    status: ItemStatus
    from_cache: bool = False


@dataclass
class BatchOutcome:
    """Per-request result lists, in completion order.

    `unregistered` also carries items whose check failed, matching the
    report's "not registered or error" section.
    """

    total: int
    registered: List[ItemOutcome] = field(default_factory=list)
    unregistered: List[ItemOutcome] = field(default_factory=list)

    def add(self, outcome: ItemOutcome) -> None:
        if outcome.status is ItemStatus.REGISTERED:
            self.registered.append(outcome)
        else:
            self.unregistered.append(outcome)

    @property
    def processed(self) -> int:
        return len(self.registered) + len(self.unregistered)

    @property
    def errors(self) -> List[ItemOutcome]:
        return [o for o in self.unregistered if o.status is ItemStatus.ERROR]


def partition(
    identifiers: Sequence[str], cache: VerificationCache
) -> Tuple[List[Tuple[str, bool]], List[str]]:
    """Split identifiers into ``(cached, uncached)`` preserving relative order.

    Cached entries carry the stored status so the cache is read once per id.
    """
    cached: List[Tuple[str, bool]] = []
    uncached: List[str] = []
    for identifier in identifiers:
        status = cache.get(identifier)
        if status is None:
            uncached.append(identifier)
        else:
            cached.append((identifier, status))
    return cached, uncached


def chunked(items: Sequence[str], size: int) -> List[List[str]]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchPipeline:
    """Drives one request from partition to final outcome.

    Parameters:
    - client: VerificationClient - source of truth for registration status
    - cache: VerificationCache - shared result memo
    - batch_size: int - max outstanding checks at any instant
    - pace_seconds: float - pause between consecutive batches
    - sleep: injectable delay, ``asyncio.sleep`` by default
    """

    def __init__(
        self,
        client: VerificationClient,
        cache: VerificationCache,
        batch_size: int = DEFAULT_BATCH_SIZE,
        pace_seconds: float = DEFAULT_PACE_SECONDS,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._client = client
        self._cache = cache
        self._batch_size = batch_size
        self._pace = pace_seconds
        self._sleep = sleep or asyncio.sleep

    async def run(self, identifiers: Sequence[str], sink: ProgressSink) -> BatchOutcome:
        total = len(identifiers)
        outcome = BatchOutcome(total=total)
        cached, uncached = partition(identifiers, self._cache)

        for identifier, registered in cached:
            status = ItemStatus.REGISTERED if registered else ItemStatus.UNREGISTERED
            outcome.add(ItemOutcome(identifier, status, from_cache=True))
        if cached:
            await sink.report(outcome.processed, total, from_cache=True)

        logger.info(
            "batch partitioned",
            extra={"total": total, "cached": len(cached), "uncached": len(uncached)},
        )

        batches = chunked(uncached, self._batch_size)
        for index, batch in enumerate(batches):
            BATCHES.inc()
            results = await asyncio.gather(*(self._check(i) for i in batch))
            for result in results:
                outcome.add(result)
            await sink.report(outcome.processed, total)
            if index < len(batches) - 1:
                await self._sleep(self._pace)

        logger.info(
            "batch finished",
            extra={
                "total": total,
                "registered": len(outcome.registered),
                "unregistered": len(outcome.unregistered) - len(outcome.errors),
                "errors": len(outcome.errors),
            },
        )
        return outcome

    async def _check(self, identifier: str) -> ItemOutcome:
        start = time.perf_counter()
        try:
            registered = await self._client.is_registered(identifier)
        except Exception as e:
            CHECKS.labels(result=ItemStatus.ERROR.value).inc()
            logger.warning(
                "check failed", extra={"identifier": identifier, "error": str(e)}
            )
            return ItemOutcome(identifier, ItemStatus.ERROR)
        finally:
            CHECK_SECONDS.observe(time.perf_counter() - start)

        self._cache.put(identifier, registered)
        status = ItemStatus.REGISTERED if registered else ItemStatus.UNREGISTERED
        CHECKS.labels(result=status.value).inc()
        logger.debug("checked", extra={"identifier": identifier, "registered": registered})
        return ItemOutcome(identifier, status)
