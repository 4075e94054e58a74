"""End-to-end tests for full games played on real threads."""
from __future__ import annotations

from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from agents import InstantReflex, RandomReflex, StaggeredReflex
from arbiter import Arbiter
from errors import InvariantViolation
from game import GameConfig, GameEventPublisher, MusicalChairsGame


def _fast_config(num_participants: int, settle: str = "barrier") -> GameConfig:
    return GameConfig(
        num_participants=num_participants,
        music_min=0.01,
        music_max=0.03,
        grace_period=0.3,
        settle=settle,
        reflex=None,
    )


def _recorded_game(config: GameConfig, reflex=None):
    events = []
    publisher = GameEventPublisher()
    publisher.subscribe(events.append)
    game = MusicalChairsGame(config, reflex=reflex, publisher=publisher)
    return game, events


def test_four_players_play_three_rounds_to_one_winner() -> None:
    game, events = _recorded_game(_fast_config(4), reflex=InstantReflex())

    result = game.play()

    assert result.rounds == 3
    assert result.chairs_per_round == [3, 2, 1]
    assert len(result.elimination_order) == 3
    assert result.winner not in result.elimination_order
    assert sorted(result.elimination_order + [result.winner]) == [1, 2, 3, 4]
    assert game.winner().id == result.winner
    assert game.pool.available == 0
    assert [p.id for p in game.participants if p.active] == [result.winner]
    assert events[-2:] == [
        {"event": "winner", "round": 3, "participant": result.winner},
        {"event": "game_over", "rounds": 3},
    ]


def test_each_round_seats_chairs_and_eliminates_one() -> None:
    game, events = _recorded_game(_fast_config(5), reflex=InstantReflex())
    game.play()

    for round_number in range(1, 5):
        round_events = [e for e in events if e.get("round") == round_number]
        started = next(e for e in round_events if e["event"] == "round_started")
        assert started["chairs"] == started["active"] - 1
        seats = sorted(e["seat"] for e in round_events if e["event"] == "seat_claimed")
        assert seats == list(range(1, started["chairs"] + 1))
        assert len([e for e in round_events if e["event"] == "eliminated"]) == 1


def test_staggered_reflexes_eliminate_the_slowest_player() -> None:
    game, _ = _recorded_game(_fast_config(4), reflex=StaggeredReflex(step=0.05))

    result = game.play()

    assert result.elimination_order == [4, 3, 2]
    assert result.winner == 1


@pytest.mark.parametrize("num_participants", [2, 3, 6])
def test_game_terminates_with_one_active_participant(num_participants: int) -> None:
    game, _ = _recorded_game(_fast_config(num_participants), reflex=InstantReflex())

    result = game.play()

    assert result.rounds == num_participants - 1
    assert result.chairs_per_round == list(range(num_participants - 1, 0, -1))
    assert game.active_count() == 1
    for participant in game.participants:
        assert max(participant.attempts_by_round.values(), default=0) <= 1


def test_grace_window_game_completes() -> None:
    game, _ = _recorded_game(_fast_config(4, settle="grace"), reflex=InstantReflex())

    result = game.play()

    assert result.missed_windows == 0
    assert result.chairs_per_round == [3, 2, 1]
    assert game.active_count() == 1


class _SlowFirstRoundReflex:
    def __init__(self, participant_id: int, delay: float) -> None:
        self.participant_id = participant_id
        self.slow_delay = delay

    def delay(self, participant_id: int, round_number: int) -> float:
        if participant_id == self.participant_id and round_number == 1:
            return self.slow_delay
        return 0.0


def test_player_missing_the_grace_window_sits_out_that_round() -> None:
    config = GameConfig(
        num_participants=3,
        music_min=0.3,
        music_max=0.3,
        grace_period=0.05,
        settle="grace",
        reflex=None,
    )
    game, events = _recorded_game(config, reflex=_SlowFirstRoundReflex(3, 0.15))

    result = game.play()

    assert result.missed_windows == 1
    assert result.rounds == 3
    assert result.chairs_per_round == [2, 2, 1]
    assert len(result.elimination_order) == 2
    assert game.active_count() == 1
    assert {"event": "attempt_window_missed", "round": 1, "pending": 1} in events
    assert {"event": "late_attempt_discarded", "round": 1, "participant": 3} in events
    assert sorted(e["round"] for e in events if e["event"] == "eliminated") == [2, 3]
    round_one_seats = [e for e in events if e["event"] == "seat_claimed" and e["round"] == 1]
    assert sorted(e["participant"] for e in round_one_seats) == [1, 2]
    assert game.participants[2].attempts_by_round[1] == 1


def test_grace_mode_with_slow_reflexes_never_loses_every_player() -> None:
    config = GameConfig(
        num_participants=4,
        music_min=0.01,
        music_max=0.04,
        grace_period=0.03,
        settle="grace",
        reflex=None,
    )

    for _ in range(10):
        game, events = _recorded_game(config, reflex=RandomReflex(max_delay=0.08))
        result = game.play()

        chairs = result.chairs_per_round
        assert chairs[0] == 3 and chairs[-1] == 1
        assert all(before - after in (0, 1) for before, after in zip(chairs, chairs[1:]))
        assert game.active_count() == 1
        assert len(result.elimination_order) == 3
        for event in events:
            if event["event"] == "eliminated":
                owner = game.participants[event["participant"] - 1]
                assert owner.eliminated_in_round == event["round"]


def test_stress_eight_players_never_deadlocks() -> None:
    config = _fast_config(8)
    reflex_max = 0.01
    # rounds x slowest possible round, with generous headroom for the scheduler
    bound = 7 * (config.music_max + reflex_max) * 10 + 2.0

    for _ in range(5):
        game, _ = _recorded_game(config, reflex=RandomReflex(max_delay=reflex_max))
        result = game.play()

        assert result.rounds == 7
        assert result.chairs_per_round == [7, 6, 5, 4, 3, 2, 1]
        assert game.active_count() == 1
        assert result.duration < bound


def test_config_rejects_too_few_players_and_unknown_modes() -> None:
    with pytest.raises(ValueError):
        MusicalChairsGame(GameConfig(num_participants=1, reflex=None))
    with pytest.raises(ValueError):
        MusicalChairsGame(GameConfig(settle="whistle", reflex=None))
    with pytest.raises(ValueError):
        MusicalChairsGame(GameConfig(music_min=2.0, music_max=1.0, reflex=None))


def test_default_config_loads_reflex_by_dotted_path() -> None:
    game = MusicalChairsGame(GameConfig())
    assert game.participants[0]._reflex.__class__ is RandomReflex


def test_arbiter_refuses_chairs_out_of_step_with_players() -> None:
    game = MusicalChairsGame(_fast_config(4))
    game.chairs = 1

    with pytest.raises(InvariantViolation):
        Arbiter(game)._play_round()


def test_winner_requires_exactly_one_survivor() -> None:
    game = MusicalChairsGame(_fast_config(3))

    with pytest.raises(InvariantViolation):
        game.winner()
