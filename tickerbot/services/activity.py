"""Activity rotation across polling ticks.

Two modes share one rotator:

* smoothing: every candidate (live status, extended fields, custom messages)
  is listed twice and a single index walks the list, so each message stays up
  for two consecutive ticks.
* alternate: live status and secondary messages alternate one-for-one; after
  every secondary message has been shown once, the counters reset.

With no secondary messages both modes always emit the live status.
"""
from __future__ import annotations

from typing import Callable, Literal, Sequence

LIVE = ("live", 0)


class ActivityRotator:
    def __init__(
        self,
        custom_messages: Sequence[str] = (),
        *,
        extended_slots: int = 0,
        smoothing: bool = False,
    ) -> None:
        self.smoothing = smoothing
        self._secondary: list[tuple[str, int | str]] = [("extended", i) for i in range(extended_slots)]
        self._secondary.extend(("custom", message) for message in custom_messages)

        self._candidates: list[tuple[str, int | str]] = []
        if smoothing:
            for entry in [LIVE, *self._secondary]:
                self._candidates.extend([entry, entry])

        self.index = 0
        self.parity = 0

    @property
    def state(self) -> Literal["IDLE", "CYCLING"]:
        return "CYCLING" if self._secondary else "IDLE"

    @property
    def size(self) -> int:
        """Ticks in one full rotation."""
        if self.smoothing:
            return len(self._candidates)
        return 2 * len(self._secondary) if self._secondary else 1

    @staticmethod
    def _resolve(
        entry: tuple[str, int | str],
        live: str,
        extended: Sequence[str],
        render: Callable[[str], str] | None,
    ) -> str:
        kind, value = entry
        if kind == "live":
            return live
        if kind == "extended":
            return extended[value] if value < len(extended) else live
        return render(str(value)) if render else str(value)

    def _next_smoothing(self, live: str, extended: Sequence[str], render) -> str:
        entry = self._candidates[self.index]
        self.index += 1
        if self.index == len(self._candidates):
            self.index = 0
        return self._resolve(entry, live, extended, render)

    def _next_alternate(self, live: str, extended: Sequence[str], render) -> str:
        if not self._secondary:
            return live

        if self.parity % 2 == 0:
            self.parity += 1
            return live

        entry = self._secondary[self.index]
        self.index += 1
        self.parity += 1
        if self.index == len(self._secondary):
            self.index = 0
            self.parity = 0
        return self._resolve(entry, live, extended, render)

    def next(
        self,
        live: str,
        extended: Sequence[str] = (),
        render: Callable[[str], str] | None = None,
    ) -> str:
        """Return the activity for this tick; ``render`` fills custom templates."""
        if self.smoothing:
            return self._next_smoothing(live, extended, render)
        return self._next_alternate(live, extended, render)

