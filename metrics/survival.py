"""Win-rate and placement aggregation across many musical chairs games."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np


@dataclass
class _ParticipantSnapshot:
    participant: int
    games: int = 0
    wins: int = 0
    placements: List[int] = field(default_factory=list)

    def record(self, placement: int) -> None:
        self.games += 1
        if placement == 1:
            self.wins += 1
        self.placements.append(placement)

    def win_rate(self) -> float:
        if not self.games:
            return 0.0
        return self.wins / self.games

    def mean_placement(self) -> float:
        if not self.placements:
            return 0.0
        return float(np.mean(self.placements))

    def as_dict(self) -> Dict:
        return {
            "participant": self.participant,
            "games": self.games,
            "wins": self.wins,
            "win_rate": self.win_rate(),
            "mean_placement": self.mean_placement(),
        }


class SurvivalMetricsAccumulator:
    """Track per-participant placements and per-game timings from game summaries."""

    def __init__(self) -> None:
        self._participants: Dict[int, _ParticipantSnapshot] = {}
        self._durations: List[float] = []
        self._rounds: List[int] = []
        self.missed_windows: int = 0

    def _participant(self, participant_id: int) -> _ParticipantSnapshot:
        if participant_id not in self._participants:
            self._participants[participant_id] = _ParticipantSnapshot(participant=participant_id)
        return self._participants[participant_id]

    def record_game(self, summary: Dict) -> None:
        result = summary.get("result") or {}
        if "winner" not in result:
            return
        for participant_id, placement in self._placements(summary).items():
            self._participant(participant_id).record(placement)
        self._durations.append(result.get("duration", 0.0))
        self._rounds.append(result.get("rounds", 0))
        self.missed_windows += result.get("missed_windows", 0)

    def _placements(self, summary: Dict) -> Dict[int, int]:
        # The first participant eliminated places last; the winner places first.
        result = summary["result"]
        num_participants = summary.get("num_participants") or len(result.get("elimination_order", [])) + 1
        placements = {result["winner"]: 1}
        for offset, participant_id in enumerate(result.get("elimination_order", [])):
            placements[participant_id] = num_participants - offset
        return placements

    def duration_summary(self) -> Dict[str, float]:
        if not self._durations:
            return {"mean": 0.0, "p50": 0.0, "p95": 0.0, "max": 0.0}
        durations = np.asarray(self._durations, dtype=np.float64)
        return {
            "mean": float(durations.mean()),
            "p50": float(np.percentile(durations, 50)),
            "p95": float(np.percentile(durations, 95)),
            "max": float(durations.max()),
        }

    def as_dict(self) -> Dict:
        participants = [snapshot.as_dict() for snapshot in sorted(self._participants.values(), key=lambda s: s.participant)]
        return {
            "games_observed": len(self._durations),
            "mean_rounds": float(np.mean(self._rounds)) if self._rounds else 0.0,
            "missed_windows": self.missed_windows,
            "durations": self.duration_summary(),
            "participants": participants,
        }
