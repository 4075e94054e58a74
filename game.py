"""Shared game context plus the entry point that runs one game on threads."""
from __future__ import annotations

import importlib
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from arbiter import Arbiter
from errors import InvariantViolation
from participant import Participant
from round_state import RoundState
from seat_pool import SeatPool

SETTLE_MODES = ("grace", "barrier")
DEFAULT_REFLEX = "agents.random_reflex.RandomReflex"


def _load_reflex(reflex_path: str):
    """Instantiate a reflex given a dotted path like ``agents.random_reflex.RandomReflex``."""

    if ":" in reflex_path:
        module_name, class_name = reflex_path.split(":", 1)
    else:
        module_name, class_name = reflex_path.rsplit(".", 1)

    module = importlib.import_module(module_name)
    reflex_cls = getattr(module, class_name)
    return reflex_cls()


@dataclass
class GameConfig:
    num_participants: int = 4
    music_min: float = 1.0
    music_max: float = 3.0
    grace_period: float = 0.5
    settle: str = "grace"
    reflex: Optional[str] = DEFAULT_REFLEX

    @classmethod
    def from_dict(cls, data: Dict) -> "GameConfig":
        return cls(
            num_participants=data.get("num_participants", 4),
            music_min=data.get("music_min", 1.0),
            music_max=data.get("music_max", 3.0),
            grace_period=data.get("grace_period", 0.5),
            settle=data.get("settle", "grace"),
            reflex=data.get("reflex", DEFAULT_REFLEX),
        )

    def validate(self) -> None:
        if self.num_participants < 2:
            raise ValueError("Musical chairs needs at least 2 participants")
        if self.music_min < 0 or self.music_max < self.music_min:
            raise ValueError("Music duration must satisfy 0 <= music_min <= music_max")
        if self.grace_period < 0:
            raise ValueError("Grace period cannot be negative")
        if self.settle not in SETTLE_MODES:
            raise ValueError(f"Unknown settle mode: {self.settle}")

    def as_dict(self) -> Dict:
        return {
            "num_participants": self.num_participants,
            "music_min": self.music_min,
            "music_max": self.music_max,
            "grace_period": self.grace_period,
            "settle": self.settle,
            "reflex": self.reflex,
        }


@dataclass
class GameResult:
    winner: int
    rounds: int
    chairs_per_round: List[int] = field(default_factory=list)
    elimination_order: List[int] = field(default_factory=list)
    duration: float = 0.0
    missed_windows: int = 0

    def as_dict(self) -> Dict:
        return {
            "winner": self.winner,
            "rounds": self.rounds,
            "chairs_per_round": self.chairs_per_round,
            "elimination_order": self.elimination_order,
            "duration": self.duration,
            "missed_windows": self.missed_windows,
        }


class GameEventPublisher:
    """Fan game events out to subscribers, one event at a time."""

    def __init__(self) -> None:
        self._subscribers: List[Callable[[Dict], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[Dict], None]) -> None:
        self._subscribers.append(callback)

    def publish(self, payload: Dict) -> None:
        with self._lock:
            for callback in list(self._subscribers):
                callback(payload)


class MusicalChairsGame:
    """Context shared by the arbiter and every participant of one game."""

    def __init__(
        self,
        config: GameConfig,
        *,
        reflex=None,
        publisher: Optional[GameEventPublisher] = None,
    ) -> None:
        config.validate()
        self.config = config
        self.publisher = publisher or GameEventPublisher()
        self.pool = SeatPool(config.num_participants - 1)
        self.state = RoundState()
        self.chairs = config.num_participants - 1
        self.chairs_history: List[int] = []
        self.elimination_order: List[int] = []
        self.missed_windows = 0
        self._eliminations_lock = threading.Lock()

        if reflex is None and config.reflex:
            reflex = _load_reflex(config.reflex)
        self.participants: List[Participant] = [
            Participant(participant_id, self, reflex)
            for participant_id in range(1, config.num_participants + 1)
        ]

    def publish(self, event: str, **fields) -> None:
        payload = {"event": event}
        payload.update(fields)
        self.publisher.publish(payload)

    def active_participants(self) -> List[Participant]:
        with self.state.changed:
            return [p for p in self.participants if p.active]

    def active_count(self) -> int:
        return len(self.active_participants())

    def record_elimination(self, participant: Participant) -> None:
        with self._eliminations_lock:
            self.elimination_order.append(participant.id)

    def winner(self) -> Participant:
        survivors = self.active_participants()
        if len(survivors) != 1:
            raise InvariantViolation(
                f"Expected exactly one participant left, found {len(survivors)}"
            )
        return survivors[0]

    def play(self) -> GameResult:
        """Run every participant and the arbiter on their own threads."""

        arbiter = Arbiter(self)
        started = time.perf_counter()
        with ThreadPoolExecutor(
            max_workers=len(self.participants) + 1,
            thread_name_prefix="musical-chairs",
        ) as executor:
            participant_futures = [executor.submit(p.run) for p in self.participants]
            arbiter_future = executor.submit(arbiter.run)
            wait(participant_futures + [arbiter_future])

        for future in participant_futures:
            future.result()
        winner = arbiter_future.result()
        if winner is None:
            raise InvariantViolation("Game ended without a winner")

        return GameResult(
            winner=winner.id,
            rounds=self.state.round_number,
            chairs_per_round=list(self.chairs_history),
            elimination_order=list(self.elimination_order),
            duration=time.perf_counter() - started,
            missed_windows=self.missed_windows,
        )
