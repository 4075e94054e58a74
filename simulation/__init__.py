"""Runners for playing one musical chairs game or a batch of them."""

from .runner import SimulationConfig, SimulationRunner, SimulationStats

__all__ = ["SimulationConfig", "SimulationRunner", "SimulationStats"]
