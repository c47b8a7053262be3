import re
from dataclasses import dataclass


# Opening run: three or more backticks or tildes, optional info string after it
_FENCE_OPEN = re.compile(r"^(`{3,}|~{3,})")


@dataclass
class FenceTracker:
    """
    Track fenced code blocks line by line.

    The tracker is either closed or open with the character and run length of
    the opening fence. A fence only closes on a line made solely of the same
    character repeated at least as many times as the opening run.
    """

    char: str | None = None
    length: int = 0

    @property
    def is_open(self) -> bool:
        return self.char is not None

    def feed(self, line: str) -> bool:
        """
        Advance the state machine by one line.

        Args:
            line: A single physical line.

        Returns:
            True if the line belongs to a fence (opening, interior or closing
            delimiter) and must not contribute content.
        """
        stripped = line.strip()
        if self.char is not None:
            if self._closes(stripped):
                self.char = None
                self.length = 0
            return True

        match = _FENCE_OPEN.match(stripped)
        if match:
            run = match.group(1)
            self.char = run[0]
            self.length = len(run)
            return True
        return False

    def _closes(self, stripped: str) -> bool:
        if len(stripped) < self.length:
            return False
        return stripped == self.char * len(stripped)


def opens_fence(line: str) -> bool:
    """Return True if the line would open a fence from the closed state."""
    return _FENCE_OPEN.match(line.strip()) is not None
