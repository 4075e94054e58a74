"""Structured event logging for musical chairs games."""

from .game_logger import GameEventLogger, create_logger

__all__ = ["GameEventLogger", "create_logger"]
