"""Line/column to character-offset conversion for one source buffer."""
from __future__ import annotations

import bisect
from dataclasses import dataclass

from spanviz.errors import InvalidRange


@dataclass(frozen=True, slots=True)
class LineIndex:
    """Maps 1-based lines and 0-based columns onto character offsets."""

    text_length: int
    line_starts: tuple[int, ...]

    @classmethod
    def from_text(cls, text: str) -> LineIndex:
        """Index ``text``; every offset just past a newline opens a line."""
        starts = [0]
        starts.extend(idx + 1 for idx, ch in enumerate(text) if ch == "\n")
        return cls(text_length=len(text), line_starts=tuple(starts))

    @property
    def line_count(self) -> int:
        return len(self.line_starts)

    def _line_end(self, line_idx: int) -> int:
        # Excludes the terminating newline.
        if line_idx + 1 < len(self.line_starts):
            return self.line_starts[line_idx + 1] - 1
        return self.text_length

    def offset(self, line: int, column: int) -> int:
        """Convert ``(line, column)`` to an absolute offset.

        ``column`` may equal the line length (the position just before the
        newline), which is where end-of-line spans terminate.
        """
        if line < 1 or line > len(self.line_starts):
            raise InvalidRange(
                f"line {line} outside buffer of {len(self.line_starts)} lines",
                buffer_length=self.text_length,
            )
        line_idx = line - 1
        line_start = self.line_starts[line_idx]
        if column < 0 or line_start + column > self._line_end(line_idx):
            raise InvalidRange(
                f"column {column} outside line {line}",
                buffer_length=self.text_length,
            )
        return line_start + column

    def line_column(self, offset: int) -> tuple[int, int]:
        """Inverse of :meth:`offset`."""
        if offset < 0 or offset > self.text_length:
            raise InvalidRange(
                f"offset {offset} outside buffer",
                start=offset,
                end=offset,
                buffer_length=self.text_length,
            )
        idx = bisect.bisect_right(self.line_starts, offset) - 1
        return idx + 1, offset - self.line_starts[idx]
