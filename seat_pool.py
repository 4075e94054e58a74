"""Counting pool of chairs shared by the arbiter and every participant."""
from __future__ import annotations

import threading
from typing import Optional

from errors import InvariantViolation

# Returned by SeatPool.claim when the caller's epoch belongs to a round that
# has already been re-armed; the pool is left untouched.
STALE_CLAIM = -1


class SeatPool:
    """Protected counter of the seats still free in the current round.

    ``capacity`` is the number of chairs configured for the round. The number
    of available seats stays within ``0..capacity`` at every observation
    point; a pool starts empty and is armed with :meth:`release` or
    :meth:`reset`. Every :meth:`reset` starts a new ``epoch``.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError("Seat capacity cannot be negative")
        self._cond = threading.Condition()
        self._capacity = capacity
        self._available = 0
        self._claimed = 0
        self._epoch = 0

    @property
    def available(self) -> int:
        with self._cond:
            return self._available

    @property
    def capacity(self) -> int:
        with self._cond:
            return self._capacity

    @property
    def epoch(self) -> int:
        with self._cond:
            return self._epoch

    def acquire(self, timeout: Optional[float] = None) -> bool:
        """Block until a seat is free and take it.

        Returns False only when ``timeout`` elapses first.
        """

        with self._cond:
            if not self._cond.wait_for(lambda: self._available > 0, timeout=timeout):
                return False
            self._take()
            return True

    def try_acquire(self) -> bool:
        return self.claim() is not None

    def claim(self, epoch: Optional[int] = None) -> Optional[int]:
        """Take a seat without blocking and return its 1-based ordinal.

        Returns None, leaving the pool untouched, when no seat is left, and
        ``STALE_CLAIM`` when ``epoch`` is given and no longer current.
        """

        with self._cond:
            if epoch is not None and epoch != self._epoch:
                return STALE_CLAIM
            if self._available <= 0:
                return None
            return self._take()

    def release(self, n: int = 1) -> None:
        if n < 0:
            raise ValueError("Cannot release a negative number of seats")
        with self._cond:
            if self._available + n > self._capacity:
                raise InvariantViolation(
                    f"Releasing {n} seat(s) would exceed the {self._capacity} chairs of this round"
                )
            self._available += n
            self._cond.notify(n)

    def drain(self) -> int:
        """Remove every free seat and return how many were removed."""

        with self._cond:
            drained = self._available
            self._available = 0
            self._claimed = 0
            return drained

    def reset(self, to: int) -> None:
        """Re-arm the pool with ``to`` chairs for a new round."""

        if to < 0:
            raise ValueError("Seat capacity cannot be negative")
        with self._cond:
            self._capacity = to
            self._available = to
            self._claimed = 0
            self._epoch += 1
            self._cond.notify_all()

    def _take(self) -> int:
        self._available -= 1
        self._claimed += 1
        if self._available < 0:
            raise InvariantViolation("Seat count went negative")
        return self._claimed

    def __repr__(self) -> str:
        return f"SeatPool(available={self._available}, capacity={self._capacity}, epoch={self._epoch})"
