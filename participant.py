"""Participant thread: waits for the music to stop and races for a chair."""
from __future__ import annotations

import time
from enum import Enum, auto
from typing import Dict, Optional

from errors import InvariantViolation
from seat_pool import STALE_CLAIM


class ParticipantStatus(Enum):
    WAITING = auto()
    ATTEMPTING = auto()
    SEATED = auto()
    ELIMINATED = auto()


class Participant:
    """One player of the game, run on its own thread via :meth:`run`.

    ``active`` only ever goes from True to False. ``attempted_this_round`` is
    guarded by the round state lock: the participant sets it once per round
    and only the arbiter clears it.
    """

    def __init__(self, participant_id: int, game, reflex=None) -> None:
        self.id = participant_id
        self._game = game
        self._reflex = reflex
        self._active = True
        self.attempted_this_round = False
        self.status = ParticipantStatus.WAITING
        self.eliminated_in_round: Optional[int] = None
        # round number -> first-attempt transitions observed in that round
        self.attempts_by_round: Dict[int, int] = {}

    @property
    def name(self) -> str:
        return f"P{self.id}"

    @property
    def active(self) -> bool:
        return self._active

    def clear_attempt(self) -> None:
        # Called by the arbiter with the round state lock held.
        self.attempted_this_round = False
        if self.status is ParticipantStatus.SEATED:
            self.status = ParticipantStatus.WAITING

    def run(self) -> None:
        try:
            while self._play_round():
                pass
        except BaseException:
            self._game.state.abort()
            raise

    def _ready(self) -> bool:
        state = self._game.state
        if state.game_over:
            return True
        return state.music_stopped and self._active and not self.attempted_this_round

    def _mark_attempted(self, round_number: int) -> bool:
        previous = self.attempted_this_round
        self.attempted_this_round = True
        if previous:
            return False
        attempts = self.attempts_by_round.get(round_number, 0) + 1
        self.attempts_by_round[round_number] = attempts
        if attempts > 1:
            raise InvariantViolation(f"{self.name} attempted twice in round {round_number}")
        return True

    def _play_round(self) -> bool:
        state = self._game.state
        with state.changed:
            state.changed.wait_for(self._ready)
            if state.game_over:
                return False
            round_number = state.round_number
            epoch = self._game.pool.epoch
            if not self._mark_attempted(round_number):
                return True
            self.status = ParticipantStatus.ATTEMPTING

        if self._reflex is not None:
            delay = self._reflex.delay(self.id, round_number)
            if delay > 0:
                time.sleep(delay)

        seat = self._game.pool.claim(epoch)
        if not self._resolve(seat, epoch, round_number):
            self._game.publish("late_attempt_discarded", round=round_number, participant=self.id)
            return True

        if seat is None:
            self._game.record_elimination(self)
            self._game.publish("eliminated", round=round_number, participant=self.id)
        else:
            self._game.publish("seat_claimed", round=round_number, participant=self.id, seat=seat)

        state.latch.count_down(round_number)
        return self._active

    def _resolve(self, seat: Optional[int], epoch: int, round_number: int) -> bool:
        """Commit the claim result; False when the round closed before it landed.

        A discarded attempt neither keeps a seat nor eliminates: the
        participant stays active and plays the next round.
        """

        with self._game.state.changed:
            if seat == STALE_CLAIM or self._game.pool.epoch != epoch:
                self.status = ParticipantStatus.WAITING
                return False
            if seat is None:
                self._active = False
                self.status = ParticipantStatus.ELIMINATED
                self.eliminated_in_round = round_number
            else:
                self.status = ParticipantStatus.SEATED
            return True

    def __repr__(self) -> str:
        return f"Participant({self.name}, {self.status.name})"
