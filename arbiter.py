"""The arbiter thread drives round timing and every round transition."""
from __future__ import annotations

import random
import time
from typing import Optional

from errors import InvariantViolation
from participant import Participant


class Arbiter:
    """Plays the music, stops it, settles the scramble and resizes the chairs.

    Exactly one arbiter runs per game. It is the only actor that flips
    ``music_stopped`` back to False, clears attempt flags and re-arms the
    seat pool.
    """

    def __init__(self, game) -> None:
        self.game = game
        self.config = game.config

    def run(self) -> Optional[Participant]:
        """Play rounds until one participant is left and return the winner.

        Returns None when another actor aborted the game.
        """

        try:
            return self._run()
        finally:
            self.game.state.end_game()

    def _run(self) -> Optional[Participant]:
        game = self.game
        state = game.state

        game.pool.release(game.chairs)
        while not state.game_over and game.active_count() > 1:
            self._play_round()

        if state.aborted:
            return None

        winner = game.winner()
        state.end_game()
        game.publish("winner", round=state.round_number, participant=winner.id)
        game.publish("game_over", rounds=state.round_number)
        return winner

    def _play_round(self) -> None:
        game = self.game
        state = game.state

        active_before = game.active_count()
        if game.chairs != active_before - 1:
            raise InvariantViolation(
                f"{game.chairs} chairs for {active_before} active participants"
            )

        round_number = state.begin_round(active_before)
        game.chairs_history.append(game.chairs)
        game.publish("round_started", round=round_number, active=active_before, chairs=game.chairs)

        time.sleep(random.uniform(self.config.music_min, self.config.music_max))

        state.stop_music()
        game.publish("music_stopped", round=round_number)

        self._settle(round_number)
        if state.aborted:
            return

        active_after = state.close_round(game.participants, game.pool)
        game.chairs = active_after - 1
        game.publish(
            "round_finished",
            round=round_number,
            active=active_after,
            eliminated=active_before - active_after,
        )

    def _settle(self, round_number: int) -> None:
        state = self.game.state
        if self.config.settle == "barrier":
            state.latch.wait()
            return

        # Best effort: participants that have not resolved by now miss the round.
        time.sleep(self.config.grace_period)
        pending = state.latch.remaining
        if pending:
            self.game.missed_windows += 1
            self.game.publish("attempt_window_missed", round=round_number, pending=pending)
