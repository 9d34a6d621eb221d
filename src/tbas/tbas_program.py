"""Sparse line-numbered program store for TBAS."""

import re
from typing import Dict, List, Tuple

from tbas.tbas_error import TBASSyntaxError


class TBASProgramStore:
    """
    Stored program source keyed by line number.

    The store only holds text; every RUN parses it afresh, so edits between runs are always seen.
    """

    RENUMBER_START = 10
    RENUMBER_STEP = 10

    # Jump keyword and its target, or the target list of ON ... GOTO 100, 200
    _JUMP_REFERENCE = re.compile(r"\b(GOTO|GOSUB|BREAKTO)(\s+)(\d+(?:\s*,\s*\d+)*)", re.IGNORECASE)
    _LINE_NUMBER = re.compile(r"\d+")

    def __init__(self) -> None:
        self._lines: Dict[int, str] = {}

    def store(self, line_number: int, text: str) -> None:
        """
        Store or replace a line; empty text deletes it.

        Raises:
            TBASSyntaxError: If the line number is negative
        """
        if line_number < 0:
            raise TBASSyntaxError(f"Invalid line number {line_number}")

        if not text.strip():
            self._lines.pop(line_number, None)
            return

        self._lines[line_number] = text.strip()

    def get(self, line_number: int) -> str | None:
        """Return a line's text, or None if it is not stored."""
        return self._lines.get(line_number)

    def delete(self, start: int, end: int | None = None) -> int:
        """
        Delete a line or an inclusive range of lines.

        Returns:
            Number of lines removed
        """
        last = start if end is None else end
        doomed = [number for number in self._lines if start <= number <= last]
        for number in doomed:
            del self._lines[number]

        return len(doomed)

    def clear(self) -> None:
        """Remove every line."""
        self._lines.clear()

    def is_empty(self) -> bool:
        return not self._lines

    def lines(self) -> List[Tuple[int, str]]:
        """Return (line number, text) pairs in line order."""
        return sorted(self._lines.items())

    def last_line(self) -> int | None:
        """Return the highest stored line number."""
        return max(self._lines) if self._lines else None

    def line_count(self) -> int:
        """One more than the highest line number; RUN stops on reaching it."""
        last = self.last_line()
        return 0 if last is None else last + 1

    def listing(self, start: int | None = None, end: int | None = None) -> List[str]:
        """
        Format stored lines for LIST, line numbers right-aligned to width 3.

        Args:
            start: First line to list; None lists everything
            end: Last line to list; None with a start lists just that line
        """
        if start is None:
            selected = self.lines()

        else:
            last = start if end is None else end
            selected = [(number, text) for number, text in self.lines() if start <= number <= last]

        return [f"{number:>3} {text}" for number, text in selected]

    def renumber(self) -> Dict[int, int]:
        """
        Renumber lines from 10 in steps of 10, rewriting GOTO, GOSUB and BREAKTO targets.

        Returns:
            Mapping from old to new line numbers
        """
        mapping = {
            old: self.RENUMBER_START + k * self.RENUMBER_STEP
            for k, (old, _) in enumerate(self.lines())
        }

        def rewrite_target(match: re.Match) -> str:
            target = int(match.group(0))
            if target not in mapping:
                return match.group(0)

            return str(mapping[target])

        def rewrite(match: re.Match) -> str:
            targets = self._LINE_NUMBER.sub(rewrite_target, match.group(3))
            return f"{match.group(1)}{match.group(2)}{targets}"

        self._lines = {
            mapping[old]: self._JUMP_REFERENCE.sub(rewrite, text) for old, text in self.lines()
        }
        return mapping

    def serialize(self) -> str:
        """Render the program as "<line> <text>" lines, as SAVE writes it."""
        return "".join(f"{number} {text}\n" for number, text in self.lines())

    def deserialize(self, content: str) -> None:
        """
        Replace the program with serialized content.

        Raises:
            TBASSyntaxError: If a non-blank line does not start with a line number
        """
        lines: Dict[int, str] = {}
        for raw in content.splitlines():
            if not raw.strip():
                continue

            number, _, text = raw.strip().partition(" ")
            if not number.isdigit():
                raise TBASSyntaxError("Illegal program line", received=raw, expected="<line number> <statement>")

            if text.strip():
                lines[int(number)] = text.strip()

        self._lines = lines

    def footprint(self) -> int:
        """Scratch memory used by the stored source."""
        return sum(len(str(number)) + 1 + len(text) for number, text in self._lines.items())

    def __len__(self) -> int:
        return len(self._lines)
