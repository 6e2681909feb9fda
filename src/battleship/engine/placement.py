"""Ship placement: validation, random fleet layout and interactive positioning."""

from __future__ import annotations

import logging
import random
from typing import Sequence

from battleship.telemetry import get_tracer

from .board import Board
from .errors import InvalidPlacementError
from .ship import BOARD_HEIGHT, BOARD_WIDTH, FLEET, Coordinate, Orientation, Ship

logger = logging.getLogger(__name__)
tracer = get_tracer("battleship.engine.placement")

DEFAULT_MAX_ATTEMPTS = 10_000


class PlacementEngine:
    """Validates placements and lays out whole fleets at random."""

    def __init__(
        self,
        rng: random.Random,
        fleet: Sequence[int] = FLEET,
        max_attempts: int | None = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be positive or None.")
        self._rng = rng
        self.fleet = tuple(fleet)
        self.max_attempts = max_attempts

    @staticmethod
    def validate(board: Board, origin: Coordinate, segments: int, orientation: Orientation) -> bool:
        return board.can_place(origin, segments, orientation)

    def auto_place(self, board: Board) -> list[Ship]:
        """Clear ``board`` and randomly place one ship per fleet entry."""
        with tracer.start_as_current_span("placement.auto_place") as span:
            span.set_attribute("board.owner", board.owner)
            board.reset()
            placed: list[Ship] = []
            for segments in self.fleet:
                ship, attempts = self._sample(board, segments)
                if ship is None:
                    ship = self._first_fit(board, segments)
                board.place(ship)
                placed.append(ship)
                logger.debug(
                    "random_ship_placed",
                    extra={"segments": segments, "attempts": attempts, "owner": board.owner},
                )
            span.set_attribute("ships", len(placed))
            return placed

    def _sample(self, board: Board, segments: int) -> tuple[Ship | None, int]:
        attempts = 0
        if segments > board.width and segments > board.height:
            return None, attempts
        while self.max_attempts is None or attempts < self.max_attempts:
            attempts += 1
            orientation = self._rng.choice(list(Orientation))
            if orientation is Orientation.HORIZONTAL:
                max_x, max_y = board.width - segments, board.height - 1
            else:
                max_x, max_y = board.width - 1, board.height - segments
            if max_x < 0 or max_y < 0:
                continue
            origin = Coordinate(self._rng.randint(0, max_x), self._rng.randint(0, max_y))
            if board.can_place(origin, segments, orientation):
                return Ship(segments, origin, orientation), attempts
        return None, attempts

    def _first_fit(self, board: Board, segments: int) -> Ship:
        logger.warning(
            "random_placement_cap_reached",
            extra={"segments": segments, "max_attempts": self.max_attempts, "owner": board.owner},
        )
        for origin in board.coordinates():
            for orientation in Orientation:
                if board.can_place(origin, segments, orientation):
                    return Ship(segments, origin, orientation)
        raise InvalidPlacementError(f"No room left for a {segments}-segment ship.")


class PlacementCursor:
    """Provisional ship the human moves around before confirming it.

    The cursor owns an unplaced :class:`Ship`; rotating or moving the cursor
    changes that ship, and ``commit`` hands it to the board and starts a fresh
    provisional ship at the same spot.
    """

    def __init__(
        self,
        segments: int,
        position: Coordinate = Coordinate(0, 0),
        orientation: Orientation = Orientation.HORIZONTAL,
        width: int = BOARD_WIDTH,
        height: int = BOARD_HEIGHT,
    ) -> None:
        self._width = width
        self._height = height
        self.ship = Ship(segments, position, orientation)
        self.ship.origin = self._clamp(position)

    @property
    def segments(self) -> int:
        return self.ship.segments

    @property
    def position(self) -> Coordinate:
        return self.ship.origin

    @property
    def orientation(self) -> Orientation:
        return self.ship.orientation

    def move_to(self, coord: Coordinate) -> Coordinate:
        """Move the cursor, keeping the whole ship inside the grid."""
        self.ship.origin = self._clamp(coord)
        return self.ship.origin

    def toggle_orientation(self) -> None:
        self.ship.toggle_orientation()
        self.ship.origin = self._clamp(self.ship.origin)

    def is_valid(self, board: Board) -> bool:
        return board.can_place(self.ship.origin, self.ship.segments, self.ship.orientation)

    def commit(self, board: Board) -> Ship:
        """Place the provisional ship on ``board``."""
        if not self.is_valid(board):
            raise InvalidPlacementError(
                f"A {self.segments}-segment ship cannot be placed at {self.position}."
            )
        ship = self.ship
        board.place(ship)
        self.ship = Ship(ship.segments, ship.origin, ship.orientation)
        return ship

    def _clamp(self, coord: Coordinate) -> Coordinate:
        max_x = self._width - 1
        max_y = self._height - 1
        if self.ship.orientation is Orientation.HORIZONTAL:
            max_x = self._width - self.ship.segments
        else:
            max_y = self._height - self.ship.segments
        return Coordinate(max(0, min(coord.x, max_x)), max(0, min(coord.y, max_y)))
