"""
Read Result Value Object

Architectural Intent:
- Immutable outcome of one read window against a terminal session
- Exactly one outcome flag is rendered per result, matching the branch that
  ended the window
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ReadOutcome(Enum):
    TRUNCATED = "truncated"
    TIMEOUT = "timeout"
    IDLE_WITH_OUTPUT = "no_new_output_timeout"
    IDLE_NO_OUTPUT = "no_new_output"


@dataclass(frozen=True)
class ReadResult:
    lines: tuple[str, ...]
    outcome: ReadOutcome
    has_new_output: bool

    @property
    def output(self) -> str:
        return "\n".join(self.lines)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "output": self.output,
            "line_count": self.line_count,
            "has_new_output": self.has_new_output,
            self.outcome.value: True,
        }
