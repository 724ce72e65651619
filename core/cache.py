"""In-memory LRU cache with idle TTL expiration.

The cache is process-local. Every public operation runs under a single lock,
so one instance can be shared by FastAPI's worker threads and the background
sweeper thread. Entries live in an arena and link to each other by slot
number instead of by reference, which keeps move-to-front O(1).

Expiration happens on two paths:

* ``get`` checks the entry age before refreshing it and reports a miss when
  the entry has been idle for longer than the TTL.
* a sweeper thread runs ``sweep`` every ``sweep_interval_seconds`` and drops
  idle entries nobody asks for anymore.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Iterator, List, Optional, Tuple

logger = logging.getLogger("cache-api")

SWEEP_INTERVAL_SECONDS = 1.0


@dataclass
class Entry:
    key: Hashable
    value: Any
    last_touched: float
    slot: int
    prev: Optional[int] = None
    next: Optional[int] = None


class RecencyList:
    """Doubly linked list of entries stored in an arena, head is most recent."""

    def __init__(self) -> None:
        self._slots: List[Optional[Entry]] = []
        self._free: List[int] = []
        self.head: Optional[int] = None
        self.tail: Optional[int] = None
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[Entry]:
        slot = self.head
        while slot is not None:
            entry = self._slots[slot]
            yield entry
            slot = entry.next

    def entry_at(self, slot: int) -> Entry:
        entry = self._slots[slot]
        if entry is None:
            raise KeyError(slot)
        return entry

    def back(self) -> Optional[Entry]:
        if self.tail is None:
            return None
        return self._slots[self.tail]

    def allocate(self, key: Hashable, value: Any, now: float) -> Entry:
        """Build an entry in a free slot and splice it to the head."""
        if self._free:
            slot = self._free.pop()
        else:
            slot = len(self._slots)
            self._slots.append(None)
        entry = Entry(key=key, value=value, last_touched=now, slot=slot)
        self._slots[slot] = entry
        self.push_front(entry)
        return entry

    def release(self, entry: Entry) -> None:
        self.unlink(entry)
        self._slots[entry.slot] = None
        self._free.append(entry.slot)

    def unlink(self, entry: Entry) -> None:
        if entry.prev is not None:
            self._slots[entry.prev].next = entry.next
        else:
            self.head = entry.next
        if entry.next is not None:
            self._slots[entry.next].prev = entry.prev
        else:
            self.tail = entry.prev
        entry.prev = None
        entry.next = None
        self._size -= 1

    def push_front(self, entry: Entry) -> None:
        entry.prev = None
        entry.next = self.head
        if self.head is not None:
            self._slots[self.head].prev = entry.slot
        self.head = entry.slot
        if self.tail is None:
            self.tail = entry.slot
        self._size += 1

    def move_to_front(self, entry: Entry) -> None:
        if self.head == entry.slot:
            return
        self.unlink(entry)
        self.push_front(entry)

    def clear(self) -> None:
        self._slots.clear()
        self._free.clear()
        self.head = None
        self.tail = None
        self._size = 0


class LRUCache:
    def __init__(
        self,
        capacity: int,
        ttl_seconds: float,
        *,
        sweep_interval_seconds: float = SWEEP_INTERVAL_SECONDS,
        time_func: Callable[[], float] = time.monotonic,
        start_sweeper: bool = True,
    ):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        if sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be > 0")

        self._capacity = capacity
        self._ttl = float(ttl_seconds)
        self._sweep_interval = float(sweep_interval_seconds)
        self._time_func = time_func

        self._index: Dict[Hashable, int] = {}
        self._order = RecencyList()
        self._lock = threading.Lock()

        self._counters = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "evictions": 0,
            "expirations": 0,
        }

        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        if start_sweeper:
            self.start()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def sweep_interval_seconds(self) -> float:
        return self._sweep_interval

    def __len__(self) -> int:
        with self._lock:
            return len(self._index)

    def __enter__(self) -> "LRUCache":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _is_expired(self, entry: Entry, now: float) -> bool:
        # A zero TTL expires entries even when the clock has not moved.
        return self._ttl <= 0 or now - entry.last_touched > self._ttl

    def _evict(self, key: Hashable) -> bool:
        slot = self._index.pop(key, None)
        if slot is None:
            return False
        self._order.release(self._order.entry_at(slot))
        return True

    def get(self, key: Hashable) -> Tuple[Any, bool]:
        """Return ``(value, True)`` on a hit and ``(None, False)`` on a miss."""
        with self._lock:
            slot = self._index.get(key)
            if slot is None:
                self._counters["misses"] += 1
                return None, False

            now = self._time_func()
            entry = self._order.entry_at(slot)
            if self._is_expired(entry, now):
                self._evict(key)
                self._counters["expirations"] += 1
                self._counters["misses"] += 1
                return None, False

            entry.last_touched = now
            self._order.move_to_front(entry)
            self._counters["hits"] += 1
            return entry.value, True

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            now = self._time_func()
            self._counters["sets"] += 1

            slot = self._index.get(key)
            if slot is not None:
                entry = self._order.entry_at(slot)
                entry.value = value
                entry.last_touched = now
                self._order.move_to_front(entry)
                return

            if len(self._index) >= self._capacity:
                lru = self._order.back()
                if lru is not None:
                    self._evict(lru.key)
                    self._counters["evictions"] += 1

            entry = self._order.allocate(key, value, now)
            self._index[key] = entry.slot

    def evict(self, key: Hashable) -> bool:
        """Drop ``key`` if present. Evicting a missing key is a no-op."""
        with self._lock:
            return self._evict(key)

    def _remove_expired(self, now: float) -> int:
        expired_keys = [entry.key for entry in self._order if self._is_expired(entry, now)]
        for key in expired_keys:
            self._evict(key)
        self._counters["expirations"] += len(expired_keys)
        return len(expired_keys)

    def sweep(self) -> int:
        """Force a full cleanup pass and return the number of removed keys."""
        with self._lock:
            return self._remove_expired(self._time_func())

    def keys(self) -> List[Hashable]:
        """Keys from most to least recently used."""
        with self._lock:
            return [entry.key for entry in self._order]

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            payload: Dict[str, Any] = dict(self._counters)
            payload.update(
                {
                    "size": len(self._index),
                    "capacity": self._capacity,
                    "ttl_seconds": self._ttl,
                    "sweep_interval_seconds": self._sweep_interval,
                }
            )
            return payload

    def clear(self) -> None:
        with self._lock:
            self._index.clear()
            self._order.clear()

    # -----------------------------
    # Background sweeper
    # -----------------------------
    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start(self) -> None:
        if self.sweeper_running:
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name="cache-sweeper", daemon=True
        )
        self._sweeper.start()
        logger.info("cache_sweeper_started")

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self._sweep_interval):
            removed = self.sweep()
            if removed:
                logger.debug(
                    "cache_sweep",
                    extra={"removed": removed, "size": len(self)},
                )

    def close(self) -> None:
        """Stop the sweeper and drop every entry. Safe to call twice."""
        self._stop_event.set()
        sweeper = self._sweeper
        if sweeper is not None:
            sweeper.join()
            self._sweeper = None
            logger.info("cache_sweeper_stopped")
        self.clear()
