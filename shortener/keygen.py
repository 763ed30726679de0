"""Snowflake-style short code generator.

Each id packs a millisecond timestamp, the machine id and a per-millisecond
sequence into one 64-bit integer, which is then Base62 encoded.

Id Layout
=========
::
    |      41 bits        |  10 bits   |  12 bits  |
    | ms since epoch      | machine id | sequence  |
    | (~69 years)         | 0-1023     | 0-4095    |

Flow Diagram — next_id()
========================
::
    ┌─────────────┐
    │ acquire lock │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ read clock  │
    └──────┬──────┘
           ▼
    now < last? ── YES ──▶ hold timestamp at last
           │                      │
           ▼                      ▼
    now == last? ── YES ──▶ sequence += 1 ── wrapped? ──▶ wait for clock > last
           │
           NO
           ▼
    sequence = 0
           ▼
    ┌─────────────┐
    │ pack & emit │
    └─────────────┘

Key Behaviours
===============
- Ids from one generator never decrease, even if the clock moves backwards.
- The lock is held across the wait loop: under clock regression all
  issuance for the process stalls until the clock catches up.
- The wait is bounded by ``max_clock_wait`` seconds and can be cancelled
  through a ``threading.Event``.

Classes:
    SnowflakeGenerator:  Thread-safe id allocator exposing short codes.
    SnowflakeId:  Decomposed id fields.
"""

import logging
import re
import threading
import time
from typing import Callable, NamedTuple, Optional

from shortener.base62 import encode_padded
from shortener.exceptions import (
    ClockMovedBackwardsError,
    GenerationCancelledError,
    InvalidMachineIdError,
    InvalidShortCodeError,
)

__all__ = ["EPOCH", "SnowflakeGenerator", "SnowflakeId"]

logger = logging.getLogger("urlshortener")

EPOCH = 1704067200000  # 2024-01-01T00:00:00Z

TIMESTAMP_BITS = 41
MACHINE_ID_BITS = 10
SEQUENCE_BITS = 12

MAX_TIMESTAMP = (1 << TIMESTAMP_BITS) - 1
MAX_MACHINE_ID = (1 << MACHINE_ID_BITS) - 1
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1

TIMESTAMP_SHIFT = MACHINE_ID_BITS + SEQUENCE_BITS
MACHINE_ID_SHIFT = SEQUENCE_BITS

WAIT_INTERVAL_SECONDS = 0.0001
LOCK_POLL_SECONDS = 0.01


def _current_millis() -> int:
    return time.time_ns() // 1_000_000


class SnowflakeId(NamedTuple):
    timestamp: int
    machine_id: int
    sequence: int


class SnowflakeGenerator:
    """Thread-safe allocator of Snowflake ids.

    Args:
        machine_id: Identifier of this process in the fleet (0-1023).
        min_length: Generated codes are left-padded to at least this length.
        max_length: Longest custom alias accepted by ``validate_custom_code``.
        epoch: Custom epoch in milliseconds since the Unix epoch.
        max_clock_wait: Longest time in seconds to wait for the clock to move forward.
        clock: Millisecond clock, defaults to wall time.

    Raises:
        InvalidMachineIdError: If ``machine_id`` is outside 0-1023.
    """

    def __init__(
        self,
        machine_id: int,
        min_length: int = 6,
        max_length: int = 10,
        epoch: int = EPOCH,
        max_clock_wait: float = 5.0,
        clock: Optional[Callable[[], int]] = None,
    ):
        if isinstance(machine_id, bool) or not isinstance(machine_id, int) or not 0 <= machine_id <= MAX_MACHINE_ID:
            raise InvalidMachineIdError(f"Machine ID must be between 0 and {MAX_MACHINE_ID}, got {machine_id!r}")
        if min_length < 1 or max_length < min_length:
            raise ValueError(f"Invalid code length range [{min_length}, {max_length}]")

        self._machine_id = machine_id
        self._min_length = min_length
        self._max_length = max_length
        self._epoch = epoch
        self._max_clock_wait = max_clock_wait
        self._clock = clock or _current_millis
        self._custom_pattern = re.compile(rf"^[a-zA-Z0-9]{{{min_length},{max_length}}}$")

        self._lock = threading.Lock()
        self._sequence = 0
        self._last_timestamp = -1

    @property
    def machine_id(self) -> int:
        return self._machine_id

    def generate(self, cancel: Optional[threading.Event] = None) -> str:
        """Allocate a new id and return it as a padded Base62 short code."""
        return encode_padded(self.next_id(cancel), self._min_length)

    def next_id(self, cancel: Optional[threading.Event] = None) -> int:
        """Allocate a new packed 64-bit id.

        Raises:
            ClockMovedBackwardsError: If the clock did not catch up within ``max_clock_wait``.
            GenerationCancelledError: If ``cancel`` was set while waiting.
        """
        self._acquire(cancel)
        try:
            timestamp = self._clock()

            if timestamp < self._last_timestamp:
                logger.warning(
                    f"Clock moved backwards by {self._last_timestamp - timestamp}ms, "
                    f"holding timestamp at {self._last_timestamp}"
                )
                timestamp = self._last_timestamp

            if timestamp == self._last_timestamp:
                self._sequence = (self._sequence + 1) & MAX_SEQUENCE
                if self._sequence == 0:
                    try:
                        timestamp = self._wait_next_millis(self._last_timestamp, cancel)
                    except (ClockMovedBackwardsError, GenerationCancelledError):
                        # Keep the sequence exhausted so a retry in the same millisecond waits again.
                        self._sequence = MAX_SEQUENCE
                        raise
                    self._sequence = 0
            else:
                self._sequence = 0

            offset = timestamp - self._epoch
            if offset < 0:
                raise ClockMovedBackwardsError(f"Clock {timestamp} is before the epoch {self._epoch}")
            if offset > MAX_TIMESTAMP:
                raise OverflowError(f"Timestamp offset {offset} does not fit in {TIMESTAMP_BITS} bits")

            self._last_timestamp = timestamp
            return (offset << TIMESTAMP_SHIFT) | (self._machine_id << MACHINE_ID_SHIFT) | self._sequence
        finally:
            self._lock.release()

    def decompose(self, snowflake_id: int) -> SnowflakeId:
        return SnowflakeId(
            timestamp=(snowflake_id >> TIMESTAMP_SHIFT) + self._epoch,
            machine_id=(snowflake_id >> MACHINE_ID_SHIFT) & MAX_MACHINE_ID,
            sequence=snowflake_id & MAX_SEQUENCE,
        )

    def validate_custom_code(self, code: str) -> str:
        if not self._custom_pattern.match(code):
            raise InvalidShortCodeError(
                f"Custom alias must be {self._min_length}-{self._max_length} alphanumeric characters, got {code!r}"
            )
        return code

    def _acquire(self, cancel: Optional[threading.Event]) -> None:
        if cancel is None:
            self._lock.acquire()
            return
        while not self._lock.acquire(timeout=LOCK_POLL_SECONDS):
            if cancel.is_set():
                raise GenerationCancelledError("Id generation cancelled while waiting for the lock")

    def _wait_next_millis(self, last_timestamp: int, cancel: Optional[threading.Event]) -> int:
        deadline = time.monotonic() + self._max_clock_wait
        timestamp = self._clock()
        while timestamp <= last_timestamp:
            if time.monotonic() >= deadline:
                raise ClockMovedBackwardsError(
                    f"Clock did not pass {last_timestamp} within {self._max_clock_wait}s (now {timestamp})"
                )
            if cancel is not None:
                if cancel.wait(WAIT_INTERVAL_SECONDS):
                    raise GenerationCancelledError("Id generation cancelled while waiting for the clock")
            else:
                time.sleep(WAIT_INTERVAL_SECONDS)
            timestamp = self._clock()
        return timestamp
