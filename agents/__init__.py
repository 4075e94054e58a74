from __future__ import annotations

"""Reflex exports for dotted-path loading by the game runner."""

from .deterministic_reflexes import FixedReflex, StaggeredReflex
from .instant_reflex import InstantReflex
from .random_reflex import RandomReflex

__all__ = [
    "FixedReflex",
    "InstantReflex",
    "RandomReflex",
    "StaggeredReflex",
]
