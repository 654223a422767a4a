from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator, Tuple

from .constants import ALWAYS_DELAY_COUNT, DELAY_FIXTURES


class DelayState(enum.IntEnum):
    NOT_REQUESTED = 0
    PENDING = 1
    DELIVERED = 2


@dataclass(slots=True)
class DelayEntry:
    count: int
    state: DelayState = DelayState.NOT_REQUESTED
    output: bytes | None = None

    @property
    def requested(self) -> bool:
        return self.state is not DelayState.NOT_REQUESTED


class DelayRegistry:
    """Pathnames whose smudge result may be deferred.

    An entry moves NOT_REQUESTED -> PENDING when the driver says the path can
    be delayed, and PENDING -> DELIVERED when the engine answers with
    ``status=delayed`` and buffers the output. Each list_available_blobs
    query counts down every requested entry; the path is announced when its
    count hits zero.
    """

    def __init__(self) -> None:
        self._entries: dict[str, DelayEntry] = {}

    @classmethod
    def with_fixtures(cls) -> "DelayRegistry":
        registry = cls()
        for name, count in DELAY_FIXTURES:
            registry.seed(name, count)
        return registry

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def seed(self, name: str, count: int) -> DelayEntry:
        if name in self._entries:
            raise ValueError(f"delay entry {name!r} added twice")
        entry = DelayEntry(count=count)
        self._entries[name] = entry
        return entry

    def get(self, name: str) -> DelayEntry | None:
        return self._entries.get(name)

    def mark_pending(self, name: str) -> None:
        self._entries[name].state = DelayState.PENDING

    def mark_delivered(self, name: str, output: bytes) -> None:
        entry = self._entries[name]
        entry.state = DelayState.DELIVERED
        entry.output = output

    def request(self, name: str, *, always_delay: bool = False) -> bool:
        """Handle a ``can-delay=1`` flag for *name*.

        Returns True if the entry became pending. Delay is granted at most
        once per path.
        """
        entry = self._entries.get(name)
        if entry is None:
            if not always_delay:
                return False
            self.seed(name, ALWAYS_DELAY_COUNT)
        elif entry.requested:
            return False
        self.mark_pending(name)
        return True

    def requested_entries(self) -> Iterator[Tuple[str, DelayEntry]]:
        for name, entry in self._entries.items():
            if entry.requested:
                yield name, entry

    def clear(self) -> None:
        self._entries.clear()
