"""
movsim — Step History (bounded undo ring)

A MOV step can only change three cells: its destination, PC and (through
the destination) OUT. A HistoryEntry keeps the pre-step value of each,
which is enough to invert exactly one step.

The buffer keeps the newest HISTORY_CAPACITY entries. Older entries fall
off the front silently: undo depth is truncated, nothing is reported.
Entries are only valid against an unbroken chain of step() calls, so any
direct memory edit must clear() the buffer.
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

from ..config import HISTORY_CAPACITY


@dataclass(frozen=True)
class HistoryEntry:
    pc_before: int
    instr: int
    src: int
    dst: int
    value_src: int
    value_dst: int
    out_before: int


class HistoryBuffer:
    """FIFO-evicting stack of HistoryEntry records."""

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._entries: Deque[HistoryEntry] = deque()

    def push(self, entry: HistoryEntry):
        if len(self._entries) >= self.capacity:
            self._entries.popleft()
        self._entries.append(entry)

    def pop_last(self) -> Optional[HistoryEntry]:
        """Remove and return the newest entry, or None when empty."""
        if not self._entries:
            return None
        return self._entries.pop()

    def peek_last(self) -> Optional[HistoryEntry]:
        return self._entries[-1] if self._entries else None

    def is_empty(self) -> bool:
        return not self._entries

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
