"""Shared round flags and the condition every participant waits on."""
from __future__ import annotations

import threading
from typing import Iterable, Optional, Sequence

from errors import InvariantViolation


class RoundLatch:
    """Count-down latch of the participants that still have to resolve a round.

    The latch is tagged with the round it was armed for so a participant that
    resolves late cannot count down the next round.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._round = 0
        self._remaining = 0
        self._aborted = False

    @property
    def remaining(self) -> int:
        with self._cond:
            return self._remaining

    def arm(self, round_number: int, count: int) -> None:
        if count < 0:
            raise ValueError("Latch count cannot be negative")
        with self._cond:
            self._round = round_number
            self._remaining = count
            self._cond.notify_all()

    def count_down(self, round_number: int) -> bool:
        """Record one resolution; returns False for a stale round."""

        with self._cond:
            if round_number != self._round:
                return False
            if self._remaining <= 0:
                raise InvariantViolation(
                    f"More participants resolved round {round_number} than were armed"
                )
            self._remaining -= 1
            if self._remaining == 0:
                self._cond.notify_all()
            return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            return self._cond.wait_for(
                lambda: self._remaining == 0 or self._aborted, timeout=timeout
            )

    def abort(self) -> None:
        with self._cond:
            self._aborted = True
            self._cond.notify_all()


class RoundState:
    """Music/game flags guarded by a single lock and broadcast condition.

    ``changed`` is notified on every transition participants wait for. The
    same lock also guards each participant's ``attempted_this_round`` flag.
    """

    def __init__(self) -> None:
        self.changed = threading.Condition(threading.Lock())
        self.music_stopped = False
        self.game_over = False
        self.aborted = False
        self.round_number = 0
        self.latch = RoundLatch()

    def begin_round(self, resolvers: int) -> int:
        with self.changed:
            if self.music_stopped:
                raise InvariantViolation("A round began while the music was still stopped")
            self.round_number += 1
            self.latch.arm(self.round_number, resolvers)
            return self.round_number

    def stop_music(self) -> None:
        with self.changed:
            self.music_stopped = True
            self.changed.notify_all()

    def resume_music(self, participants: Iterable) -> None:
        """Close the claim window and clear every attempt flag."""

        with self.changed:
            self._resume(participants)

    def close_round(self, participants: Sequence, pool) -> int:
        """Close the claim window and re-arm ``pool`` for the survivors.

        Runs under one hold of the round lock: a participant's result either
        lands before the survivors are counted or is discarded as stale,
        because the pool's epoch moves on before the lock is released.
        Returns the number of participants still active.
        """

        with self.changed:
            self._resume(participants)
            active = sum(1 for participant in participants if participant.active)
            if active == 0:
                raise InvariantViolation(
                    f"No participant left active after round {self.round_number}"
                )
            pool.reset(active - 1)
            return active

    def _resume(self, participants: Iterable) -> None:
        self.music_stopped = False
        for participant in participants:
            participant.clear_attempt()
        self.changed.notify_all()

    def end_game(self) -> None:
        with self.changed:
            if self.game_over:
                return
            self.game_over = True
            self.changed.notify_all()

    def abort(self) -> None:
        """Stop the game after an actor failed so nobody waits forever."""

        with self.changed:
            self.aborted = True
            self.game_over = True
            self.changed.notify_all()
        self.latch.abort()

    def wait_for(self, predicate, timeout: Optional[float] = None) -> bool:
        with self.changed:
            return self.changed.wait_for(predicate, timeout=timeout)
