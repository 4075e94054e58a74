"""Exceptions raised when the round protocol detects a synchronization bug."""


class InvariantViolation(RuntimeError):
    """A game invariant was broken; the game cannot continue."""
