"""
Poll scheduler: fetch -> extract -> detect -> publish -> persist.

One cycle runs immediately, then one per interval. Only one cycle is
ever in flight; a tick that arrives while a cycle is running is skipped.
Every failure ends the cycle early and waits for the next tick, nothing
here is fatal.
"""

import asyncio
import datetime
import json
import logging
import time
from typing import Awaitable, Callable

from .broadcaster import Broadcaster
from .detector import Changed, Unchanged, detect
from .extractors import BaseExtractor, ExtractionEmpty
from .fetcher import FetchError
from .snapshot import serialize
from .store import SnapshotStore, StoreUnavailable

logger = logging.getLogger(__name__)

SKIPPED = "skipped"
FETCH_ERROR = "fetch_error"
EXTRACTION_EMPTY = "extraction_empty"
STORE_UNAVAILABLE = "store_unavailable"
FIRST_RUN = "first_run"
UNCHANGED = "unchanged"
CHANGED = "changed"


def utc_now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class Poller:
    def __init__(self, fetch: Callable[[], Awaitable[bytes]], extractor: BaseExtractor,
                 store: SnapshotStore, broadcaster: Broadcaster,
                 interval_s: float = 60.0, url: str = ""):
        self.fetch = fetch
        self.extractor = extractor
        self.store = store
        self.broadcaster = broadcaster
        self.interval_s = interval_s
        self.url = url
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def cycle(self) -> str:
        if self._lock.locked():
            logger.info("Previous poll cycle still running, skipping this tick")
            return SKIPPED
        async with self._lock:
            started = time.monotonic()
            outcome, entries = await self._run_cycle()
            logger.info(json.dumps({
                "outcome": outcome,
                "entries": entries,
                "elapsed_ms": int((time.monotonic() - started) * 1000),
                "listeners": len(self.broadcaster),
                "url": self.url,
            }))
            return outcome

    async def _run_cycle(self):
        try:
            document = await self.fetch()
        except FetchError as e:
            logger.warning(f"Fetch failed: {e}")
            return FETCH_ERROR, 0

        # read once; a reload may swap self.extractor mid-cycle
        extractor = self.extractor
        try:
            current = extractor.extract(document)
        except ExtractionEmpty as e:
            logger.warning(f"Extraction empty, keeping last stored snapshot: {e}")
            return EXTRACTION_EMPTY, 0

        try:
            previous_raw = await self.store.get()
        except StoreUnavailable as e:
            logger.warning(f"Store read failed, skipping detection: {e}")
            return STORE_UNAVAILABLE, len(current)

        result = detect(previous_raw, current)
        if isinstance(result, Changed):
            delivered = self.broadcaster.publish(result.event)
            logger.info(f"Status change detected, sent to {delivered} listener(s)")
            try:
                await self.store.set_changed_at(utc_now_iso())
            except StoreUnavailable as e:
                logger.warning(f"Could not record change time: {e}")
            outcome = CHANGED
        elif isinstance(result, Unchanged):
            outcome = UNCHANGED
        else:
            if result.corrupted:
                try:
                    await self.store.delete()
                except StoreUnavailable as e:
                    logger.warning(f"Could not clear corrupt snapshot: {e}")
            outcome = FIRST_RUN

        try:
            await self.store.set(serialize(current))
        except StoreUnavailable as e:
            logger.warning(f"Store write failed, will retry next cycle: {e}")
        return outcome, len(current)

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        logger.info(f"Poller started: every {self.interval_s}s against {self.url}")
        while True:
            try:
                await self.cycle()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Poll cycle crashed, continuing on next tick")

            next_at += self.interval_s
            now = loop.time()
            if next_at < now:
                missed = int((now - next_at) // self.interval_s) + 1
                logger.warning(f"Poll cycle overran, skipping {missed} tick(s)")
                next_at += missed * self.interval_s
            await asyncio.sleep(next_at - now)
