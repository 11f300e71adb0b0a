"""
Calendar Inventory

Stores concrete reservation claims (BOOKED or REQUESTED) keyed by company,
date, professional and service, and answers occupancy questions against
them. Conflict detection always goes through overlap.overlaps().

In production the store would be a document database; the in-memory store
here implements the same contract, including the atomic conditional insert
used at commit time.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterable, Iterator, Optional, Protocol, Union

from availability_engine.availability.overlap import TimeWindow, overlaps
from availability_engine.config import AvailabilityConfig, settings
from availability_engine.errors import BookingError, ConflictError, StoreError
from availability_engine.schemas.availability_schema import ResolvedSlot
from availability_engine.schemas.inventory_schema import ACTIVE_STATUSES, InventoryEntry

logger = logging.getLogger(__name__)

ConflictCheck = Callable[[InventoryEntry, list[InventoryEntry]], bool]
SlotLike = Union[ResolvedSlot, InventoryEntry, TimeWindow, tuple]


class InventoryStore(Protocol):
    def create(self, entry: InventoryEntry) -> str: ...

    def create_if_free(self, entry: InventoryEntry, is_conflict: ConflictCheck) -> str: ...

    def for_date(self, company_id: str, day: date) -> list[InventoryEntry]: ...

    def for_date_range(self, company_id: str, start: date, end: date) -> list[InventoryEntry]: ...

    def delete(self, entry_id: str) -> bool: ...


class InMemoryInventoryStore:
    """Process-local store. A single lock makes create_if_free atomic."""

    def __init__(self) -> None:
        self._entries: list[InventoryEntry] = []
        self._lock = threading.Lock()
        self._last_created: Optional[datetime] = None

    def _stamp(self, entry: InventoryEntry) -> InventoryEntry:
        """Assign id and created_at. Caller holds the lock."""
        created_at = datetime.now(timezone.utc)
        # Strictly increasing, so insertion order is also commit order
        if self._last_created is not None and created_at <= self._last_created:
            created_at = self._last_created + timedelta(microseconds=1)
        self._last_created = created_at
        return entry.model_copy(update={
            "id": f"INV-{uuid.uuid4().hex[:8].upper()}",
            "created_at": created_at,
        })

    def create(self, entry: InventoryEntry) -> str:
        with self._lock:
            stored = self._stamp(entry)
            self._entries.append(stored)
        return stored.id

    def create_if_free(self, entry: InventoryEntry, is_conflict: ConflictCheck) -> str:
        with self._lock:
            same_day = [
                e for e in self._entries
                if e.company_id == entry.company_id
                and e.date == entry.date
                and e.status in ACTIVE_STATUSES
            ]
            if is_conflict(entry, same_day):
                raise ConflictError(
                    f"{entry.date.isoformat()} {entry.start_time:%H:%M}-{entry.end_time:%H:%M} "
                    f"is already taken for professional {entry.professional_id}",
                    slot_id=entry.schedule_slot_id,
                )
            stored = self._stamp(entry)
            self._entries.append(stored)
        return stored.id

    def for_date(self, company_id: str, day: date) -> list[InventoryEntry]:
        return self.for_date_range(company_id, day, day)

    def for_date_range(self, company_id: str, start: date, end: date) -> list[InventoryEntry]:
        with self._lock:
            return [
                e for e in self._entries
                if e.company_id == company_id
                and start <= e.date <= end
                and e.status in ACTIVE_STATUSES
            ]

    def delete(self, entry_id: str) -> bool:
        with self._lock:
            for i, e in enumerate(self._entries):
                if e.id == entry_id:
                    del self._entries[i]
                    return True
        return False

    def all_entries(self) -> list[InventoryEntry]:
        with self._lock:
            return list(self._entries)

    def reset(self) -> None:
        """Clear all entries. Used by test fixtures for isolation."""
        with self._lock:
            self._entries.clear()


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Re-raise backend failures as StoreError; engine errors pass through."""
    try:
        yield
    except BookingError:
        raise
    except Exception as exc:
        logger.error("Inventory store %s failed: %s", operation, exc)
        raise StoreError(f"Inventory {operation} failed: {exc}") from exc


_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def _commit_order(entry: InventoryEntry) -> tuple[datetime, str]:
    """Tie-break key for concurrent writers. Unstamped entries sort first."""
    return entry.created_at or _EARLIEST, entry.id or ""


def _window_of(slot: SlotLike) -> TimeWindow:
    if isinstance(slot, (ResolvedSlot, InventoryEntry)):
        return slot.window
    return TimeWindow(*slot)


class CalendarInventory:
    """Occupancy queries and guarded commits over an InventoryStore."""

    def __init__(self, store: InventoryStore, config: Optional[AvailabilityConfig] = None) -> None:
        self.store = store
        self.config = config or settings.availability

    @property
    def unassigned_id(self) -> str:
        return self.config.unassigned_professional_id

    def create(self, entry: InventoryEntry) -> str:
        """Append an entry without any availability check."""
        with _store_errors("create"):
            entry_id = self.store.create(entry)
        logger.info(
            "Inventory entry %s created: %s %s-%s professional=%s",
            entry_id, entry.date, entry.start_time, entry.end_time, entry.professional_id,
        )
        return entry_id

    def for_date(self, company_id: str, day: date) -> list[InventoryEntry]:
        with _store_errors("for_date"):
            return self.store.for_date(company_id, day)

    def for_date_range(self, company_id: str, start: date, end: date) -> list[InventoryEntry]:
        """All active entries between start and end, both inclusive."""
        if start > end:
            raise ValueError(f"Range start {start} is after end {end}")
        with _store_errors("for_date_range"):
            return self.store.for_date_range(company_id, start, end)

    def entries_for_professional(
        self,
        entries: Iterable[InventoryEntry],
        professional_id: str,
        unassigned_blocks_all: Optional[bool] = None,
    ) -> list[InventoryEntry]:
        """Entries that consume this professional's capacity.

        Unassigned entries count against every professional unless the
        caller (usually per service) turns that policy off.
        """
        if unassigned_blocks_all is None:
            unassigned_blocks_all = self.config.unassigned_blocks_all
        return [
            e for e in entries
            if e.professional_id == professional_id
            or (unassigned_blocks_all and e.professional_id == self.unassigned_id)
        ]

    def conflict_scope(
        self, professional_id: str, unassigned_blocks_all: Optional[bool] = None
    ) -> Optional[str]:
        """Professional id to scope a conflict check by, or None for all entries.

        A claim without a professional takes the shared capacity, so under
        the blocking policy it competes with every entry on the date.
        """
        if unassigned_blocks_all is None:
            unassigned_blocks_all = self.config.unassigned_blocks_all
        if professional_id == self.unassigned_id and unassigned_blocks_all:
            return None
        return professional_id

    def is_occupied(
        self,
        slot: SlotLike,
        entries: Iterable[InventoryEntry],
        professional_id: Optional[str] = None,
        unassigned_blocks_all: Optional[bool] = None,
    ) -> bool:
        if professional_id is not None:
            entries = self.entries_for_professional(entries, professional_id, unassigned_blocks_all)
        window = _window_of(slot)
        return any(overlaps(window, e.window) for e in entries)

    def commit(
        self,
        entry: InventoryEntry,
        unassigned_blocks_all: Optional[bool] = None,
    ) -> InventoryEntry:
        """
        Write one entry only if its window is still free for its professional.

        The store performs the check and the insert atomically. The date is
        then read back once more to confirm the entry landed and nothing
        overlapping slipped in beside it. A store without a real conditional
        write can let two writers in; the earliest (created_at, id) keeps the
        slot and every later one deletes its own entry before raising.

        Raises:
            ConflictError: the window is taken. Nothing of this entry remains.
            StoreError: the store failed or lost the write.
        """
        def is_conflict(candidate: InventoryEntry, same_day: list[InventoryEntry]) -> bool:
            return self.is_occupied(
                candidate, same_day,
                self.conflict_scope(candidate.professional_id, unassigned_blocks_all),
                unassigned_blocks_all,
            )

        with _store_errors("commit"):
            entry_id = self.store.create_if_free(entry, is_conflict)

        fresh = self.for_date(entry.company_id, entry.date)
        stored = next((e for e in fresh if e.id == entry_id), None)
        if stored is None:
            raise StoreError(f"Inventory entry {entry_id} missing after commit")

        scope = self.conflict_scope(stored.professional_id, unassigned_blocks_all)
        rivals = [
            e for e in fresh
            if e.id != entry_id and self.is_occupied(stored, [e], scope, unassigned_blocks_all)
        ]
        earlier = [e for e in rivals if _commit_order(e) < _commit_order(stored)]
        if rivals and not earlier:
            logger.warning(
                "Entry %s on %s overlaps later writes %s; keeping it as the earliest",
                entry_id, entry.date, [e.id for e in rivals],
            )
        if earlier:
            logger.warning(
                "Entry %s on %s lost to concurrent entry %s; removing it",
                entry_id, entry.date, earlier[0].id,
            )
            with _store_errors("delete"):
                self.store.delete(entry_id)
            raise ConflictError(
                f"Slot {entry.start_time:%H:%M}-{entry.end_time:%H:%M} on {entry.date} "
                "was booked concurrently",
                slot_id=entry.schedule_slot_id,
            )

        logger.info(
            "Inventory entry %s committed (%s): %s %s-%s professional=%s",
            entry_id, stored.status.value, stored.date,
            stored.start_time, stored.end_time, stored.professional_id,
        )
        return stored
