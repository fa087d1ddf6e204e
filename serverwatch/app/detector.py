import logging
from dataclasses import dataclass
from typing import Optional, Union

from .snapshot import ChangeEvent, CorruptStoredValue, Snapshot, deserialize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FirstRun:
    """No usable previous snapshot. corrupted=True when one was stored but unreadable."""
    corrupted: bool = False


@dataclass(frozen=True)
class Unchanged:
    pass


@dataclass(frozen=True)
class Changed:
    previous: Snapshot
    current: Snapshot

    @property
    def event(self) -> ChangeEvent:
        return ChangeEvent(previous=self.previous, current=self.current)


Detection = Union[FirstRun, Unchanged, Changed]


def detect(previous_raw: Optional[bytes], current: Snapshot) -> Detection:
    """
    Compare the stored snapshot bytes against a fresh extraction.

    Comparison is structural and order-sensitive. Unreadable stored bytes
    never raise: they are reported as FirstRun(corrupted=True) so the
    caller overwrites them.
    """
    if previous_raw is None:
        return FirstRun()
    try:
        previous = deserialize(previous_raw)
    except CorruptStoredValue as e:
        logger.warning(f"Stored snapshot is corrupt, treating as first run: {e}")
        return FirstRun(corrupted=True)
    if previous == list(current):
        return Unchanged()
    return Changed(previous=previous, current=list(current))
