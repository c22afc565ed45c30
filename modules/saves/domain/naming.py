from __future__ import annotations

import re
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

SAVE_SUFFIX = ".sav"
# 9999-12-31T23:59:59.999Z, the last instant datetime can represent.
MAX_TIMESTAMP_MS = 253_402_300_799_999

_IDENTIFIER_PATTERN = re.compile(r"^(?P<ts>\d{1,15})(?:-(?P<seq>\d{1,9}))?\.sav$")


def wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True, order=True)
class SaveIdentifier:
    timestamp_ms: int
    sequence: int = 0

    @property
    def file_name(self) -> str:
        return f"{self.timestamp_ms:013d}-{self.sequence:04d}{SAVE_SUFFIX}"

    @property
    def accepted_at(self) -> datetime:
        seconds, millis = divmod(self.timestamp_ms, 1000)
        return datetime.fromtimestamp(seconds, tz=UTC) + timedelta(milliseconds=millis)

    @classmethod
    def parse(cls, file_name: str) -> SaveIdentifier | None:
        match = _IDENTIFIER_PATTERN.match(file_name)
        if match is None:
            return None
        timestamp_ms = int(match["ts"])
        if timestamp_ms > MAX_TIMESTAMP_MS:
            return None
        return cls(timestamp_ms=timestamp_ms, sequence=int(match["seq"] or 0))


def ordering_key(file_name: str) -> tuple[int, int, str]:
    # Unparseable names sort below every generated identifier.
    identifier = SaveIdentifier.parse(file_name)
    if identifier is None:
        return (0, 0, file_name)
    return (identifier.timestamp_ms, identifier.sequence, file_name)


class _NamespaceClock:
    def __init__(self, last: SaveIdentifier | None) -> None:
        self.lock = threading.Lock()
        self.last = last


class SaveNamer:
    """Issues save identifiers that are unique and increasing within a game namespace.

    The millisecond clock may be coarse or step backwards; identifiers still
    never repeat because each namespace remembers the last one it issued and
    bumps a sequence number when the clock has not advanced past it.
    """

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or wall_clock_ms
        self._registry_lock = threading.Lock()
        self._namespaces: dict[str, _NamespaceClock] = {}

    def _namespace(
        self, game_id: str, seed: Callable[[], SaveIdentifier | None] | None
    ) -> _NamespaceClock:
        with self._registry_lock:
            state = self._namespaces.get(game_id)
            if state is None:
                state = _NamespaceClock(last=None)
                state.lock.acquire()
                self._namespaces[game_id] = state
                fresh = True
            else:
                fresh = False
        if fresh:
            # Seeding runs outside the registry lock so other games are not held up.
            try:
                state.last = seed() if seed is not None else None
            except BaseException:
                self.forget(game_id)
                raise
            finally:
                state.lock.release()
        return state

    def next_identifier(
        self,
        game_id: str,
        seed: Callable[[], SaveIdentifier | None] | None = None,
    ) -> SaveIdentifier:
        state = self._namespace(game_id, seed)
        with state.lock:
            now = self._clock()
            last = state.last
            if last is None or now > last.timestamp_ms:
                issued = SaveIdentifier(timestamp_ms=max(now, 0), sequence=0)
            else:
                issued = SaveIdentifier(timestamp_ms=last.timestamp_ms, sequence=last.sequence + 1)
            state.last = issued
            return issued

    def forget(self, game_id: str) -> None:
        with self._registry_lock:
            self._namespaces.pop(game_id, None)
