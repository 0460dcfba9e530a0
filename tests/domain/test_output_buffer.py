"""Tests for the bounded output buffer."""

import pytest
from aias.domain.entities.output_buffer import OutputBuffer


class TestOutputBuffer:
    def test_invalid_capacity(self):
        with pytest.raises(ValueError, match="at least 1"):
            OutputBuffer(0)

    def test_append_tracks_total(self):
        buf = OutputBuffer(5)
        buf.extend(["a", "b", "c"])
        assert buf.total == 3
        assert buf.floor == 0
        assert len(buf) == 3

    def test_eviction_moves_floor(self):
        buf = OutputBuffer(3)
        buf.extend(str(i) for i in range(10))
        assert len(buf) == 3
        assert buf.total == 10
        assert buf.floor == 7
        assert buf.slice(0, 10) == ["7", "8", "9"]

    def test_slice_uses_global_positions(self):
        buf = OutputBuffer(4)
        buf.extend(str(i) for i in range(6))
        assert buf.slice(3, 5) == ["3", "4"]
        assert buf.slice(5, 100) == ["5"]
        assert buf.slice(6, 10) == []

    def test_tail(self):
        buf = OutputBuffer(10)
        buf.extend(str(i) for i in range(8))
        assert buf.tail(3) == ["5", "6", "7"]
        assert buf.tail(20) == [str(i) for i in range(8)]
        assert buf.tail(0) == []
