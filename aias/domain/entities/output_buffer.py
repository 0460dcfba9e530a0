"""
Output Buffer Module

Architectural Intent:
- Bounded FIFO of output lines for one terminal session
- Lines are addressed by global positions that only ever increase, so
  evicting from the front never invalidates a reader's cursor
- `floor` is the position of the oldest retained line, `total` is the
  position one past the newest line
"""

from collections import deque
from typing import Iterable

DEFAULT_MAX_LINES = 1000


class OutputBuffer:
    def __init__(self, max_lines: int = DEFAULT_MAX_LINES) -> None:
        if max_lines < 1:
            raise ValueError("max_lines must be at least 1")
        self.max_lines = max_lines
        self._lines: deque[str] = deque(maxlen=max_lines)
        self._total = 0

    def append(self, line: str) -> None:
        self._lines.append(line)
        self._total += 1

    def extend(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.append(line)

    @property
    def total(self) -> int:
        """Number of lines ever appended."""
        return self._total

    @property
    def floor(self) -> int:
        """Global position of the oldest line still retained."""
        return self._total - len(self._lines)

    def slice(self, start: int, stop: int) -> list[str]:
        """Return retained lines with global positions in [start, stop)."""
        start = max(start, self.floor)
        stop = min(stop, self._total)
        if start >= stop:
            return []
        offset = self.floor
        return [self._lines[i - offset] for i in range(start, stop)]

    def tail(self, count: int) -> list[str]:
        if count <= 0:
            return []
        return list(self._lines)[-count:]

    def __len__(self) -> int:
        return len(self._lines)
