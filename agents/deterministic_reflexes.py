from __future__ import annotations

"""
Deterministic reflexes used to make elimination order predictable in tests.
"""
from typing import Dict, Optional


class FixedReflex:
    """
    Per-participant fixed reaction time.

    - ``delays`` maps participant ids to seconds.
    - Participants missing from the mapping use ``default``.
    """

    def __init__(self, delays: Optional[Dict[int, float]] = None, default: float = 0.0) -> None:
        self.delays: Dict[int, float] = dict(delays or {})
        self.default = default

    def delay(self, participant_id: int, round_number: int) -> float:
        return self.delays.get(participant_id, self.default)


class StaggeredReflex:
    """
    Higher ids react later: participant ``i`` waits ``i * step`` seconds.

    With a step comfortably above scheduler jitter the highest remaining id
    is the one left standing each round.
    """

    def __init__(self, step: float = 0.02) -> None:
        if step < 0:
            raise ValueError("step cannot be negative")
        self.step = step

    def delay(self, participant_id: int, round_number: int) -> float:
        return participant_id * self.step
