"""Exceptions raised by the Battleship engine."""

from __future__ import annotations


class BattleshipError(Exception):
    """Base class for engine errors."""


class InvalidPlacementError(BattleshipError, ValueError):
    """A ship placement is out of bounds or overlaps another ship."""


class InvalidMoveError(BattleshipError, ValueError):
    """An attack targets a cell that is off the board or already marked."""


class ExhaustedMoveQueueError(BattleshipError, RuntimeError):
    """The AI was asked for a move after every cell has been attacked.

    A finished game stops before this can happen, so it signals a broken
    invariant rather than a recoverable condition.
    """
