"""Single-player board management for the Battleship engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator

import numpy as np
import numpy.typing as npt

from battleship.telemetry import get_meter, get_tracer

from .errors import InvalidMoveError, InvalidPlacementError
from .ship import BOARD_HEIGHT, BOARD_WIDTH, DOWN, LEFT, RIGHT, UP, Coordinate, Orientation, Ship

logger = logging.getLogger(__name__)
tracer = get_tracer("battleship.engine.board")
meter = get_meter("battleship.engine.board")

PLACEMENT_COUNTER = meter.create_counter(
    "battleship_engine_ship_placements",
    unit="1",
    description="Number of attempted ship placements",
)

SHOT_COUNTER = meter.create_counter(
    "battleship_engine_shots",
    unit="1",
    description="Shots received by a board",
)

NEIGHBOUR_DIRECTIONS: tuple[Coordinate, ...] = (LEFT, RIGHT, UP, DOWN)


class CellView(IntEnum):
    """Per-cell code used in board snapshots handed to renderers."""

    UNKNOWN = 0
    SHIP = 1
    MISS = 2
    HIT = 3


@dataclass
class Cell:
    """Occupancy and mark state of one grid position."""

    occupant: Ship | None = None
    marked: bool = False


@dataclass(frozen=True)
class HitResult:
    """Outcome of marking a cell."""

    is_hit: bool
    destroyed_ship: Ship | None = None


@dataclass(frozen=True)
class ShipView:
    """Read-only description of a ship for renderers."""

    segments: int
    origin: Coordinate
    orientation: Orientation
    destroyed: bool
    coordinates: tuple[Coordinate, ...]


@dataclass(frozen=True)
class BoardSnapshot:
    """Serializable view of a board for state queries."""

    cells: npt.NDArray[np.int8]
    ships: tuple[ShipView, ...]

    def cell(self, coord: Coordinate) -> CellView:
        return CellView(int(self.cells[coord.y, coord.x]))


@dataclass
class Board:
    """Represents a player's grid of cells and the fleet placed on it."""

    width: int = BOARD_WIDTH
    height: int = BOARD_HEIGHT
    owner: str = "unknown"
    ships: list[Ship] = field(default_factory=list)
    _cells: list[list[Cell]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._cells = self._empty_cells()

    def in_bounds(self, coord: Coordinate) -> bool:
        """Check whether a coordinate lies inside the board boundaries."""
        return 0 <= coord.x < self.width and 0 <= coord.y < self.height

    def coordinates(self) -> Iterator[Coordinate]:
        """Yield every coordinate of the board in row-major order."""
        for y in range(self.height):
            for x in range(self.width):
                yield Coordinate(x, y)

    def neighbours(self, coord: Coordinate) -> list[Coordinate]:
        """Return the orthogonal neighbours of ``coord`` that lie on the board."""
        return [
            coord + direction
            for direction in NEIGHBOUR_DIRECTIONS
            if self.in_bounds(coord + direction)
        ]

    def cell(self, coord: Coordinate) -> Cell:
        return self._cells[coord.y][coord.x]

    def occupant_at(self, coord: Coordinate) -> Ship | None:
        """Return the ship covering ``coord``, if any."""
        return self.cell(coord).occupant

    def is_marked(self, coord: Coordinate) -> bool:
        return self.cell(coord).marked

    def can_place(self, origin: Coordinate, segments: int, orientation: Orientation) -> bool:
        """Determine whether a ship fits at ``origin`` without leaving the grid or overlapping."""
        if origin.x < 0 or origin.y < 0:
            return False
        if orientation is Orientation.HORIZONTAL:
            if origin.x + segments > self.width or origin.y >= self.height:
                return False
        elif origin.y + segments > self.height or origin.x >= self.width:
            return False

        step = orientation.step
        return all(
            self.occupant_at(origin + step * offset) is None for offset in range(segments)
        )

    def place(self, ship: Ship) -> None:
        """Add ship to the board, claiming its cells."""
        with tracer.start_as_current_span("board.place") as span:
            span.set_attribute("ship.segments", ship.segments)
            span.set_attribute("ship.origin.x", ship.origin.x)
            span.set_attribute("ship.origin.y", ship.origin.y)
            span.set_attribute("board.owner", self.owner)
            details = {
                "owner": self.owner,
                "segments": ship.segments,
                "orientation": ship.orientation.name,
                "x": ship.origin.x,
                "y": ship.origin.y,
            }
            if not self.can_place(ship.origin, ship.segments, ship.orientation):
                PLACEMENT_COUNTER.add(1, attributes={"result": "failed", "owner": self.owner})
                logger.warning("ship_placement_failed", extra=details)
                raise InvalidPlacementError(
                    f"A {ship.segments}-segment ship cannot be placed at {ship.origin}."
                )

            self.ships.append(ship)
            for coord in ship.coordinates():
                self.cell(coord).occupant = ship
            PLACEMENT_COUNTER.add(1, attributes={"result": "success", "owner": self.owner})
            # Computer placements are hidden information.
            level = logging.DEBUG if self.owner == "computer" else logging.INFO
            logger.log(level, "ship_placed", extra=details)

    def mark(self, coord: Coordinate) -> HitResult:
        """Register an attack on this board and return its outcome."""
        with tracer.start_as_current_span("board.mark") as span:
            span.set_attribute("shot.x", coord.x)
            span.set_attribute("shot.y", coord.y)
            span.set_attribute("board.owner", self.owner)
            if not self.in_bounds(coord):
                logger.error(
                    "shot_out_of_bounds", extra={"x": coord.x, "y": coord.y, "owner": self.owner}
                )
                raise InvalidMoveError(f"Shot {coord} is out of bounds.")
            cell = self.cell(coord)
            if cell.marked:
                logger.error(
                    "shot_duplicate", extra={"x": coord.x, "y": coord.y, "owner": self.owner}
                )
                raise InvalidMoveError(f"Cell {coord} has already been targeted.")

            cell.marked = True
            ship = cell.occupant
            if ship is None:
                span.set_attribute("shot.outcome", "miss")
                SHOT_COUNTER.add(1, attributes={"outcome": "miss", "owner": self.owner})
                logger.info("shot_miss", extra={"x": coord.x, "y": coord.y, "owner": self.owner})
                return HitResult(is_hit=False)

            ship.register_hit()
            destroyed = ship.is_destroyed()
            span.set_attribute("shot.outcome", "hit")
            span.set_attribute("shot.destroyed", destroyed)
            SHOT_COUNTER.add(1, attributes={"outcome": "hit", "owner": self.owner})
            logger.info(
                "shot_hit",
                extra={
                    "x": coord.x,
                    "y": coord.y,
                    "segments": ship.segments,
                    "destroyed": destroyed,
                    "owner": self.owner,
                },
            )
            return HitResult(is_hit=True, destroyed_ship=ship if destroyed else None)

    def all_destroyed(self) -> bool:
        """Check whether every ship on the board has been destroyed."""
        return all(ship.is_destroyed() for ship in self.ships)

    def reset(self) -> None:
        """Clear every cell and remove all ships."""
        self.ships.clear()
        self._cells = self._empty_cells()
        logger.debug("board_reset", extra={"owner": self.owner})

    def snapshot(self, show_ships: bool) -> BoardSnapshot:
        """Return a read-only view; hidden ships are only shown once destroyed."""
        cells = np.full((self.height, self.width), CellView.UNKNOWN, dtype=np.int8)
        for coord in self.coordinates():
            cell = self.cell(coord)
            if cell.marked:
                cells[coord.y, coord.x] = CellView.HIT if cell.occupant else CellView.MISS
            elif cell.occupant is not None and (show_ships or cell.occupant.is_destroyed()):
                cells[coord.y, coord.x] = CellView.SHIP

        ships = tuple(
            ShipView(
                segments=ship.segments,
                origin=ship.origin,
                orientation=ship.orientation,
                destroyed=ship.is_destroyed(),
                coordinates=tuple(ship.coordinates()),
            )
            for ship in self.ships
            if show_ships or ship.is_destroyed()
        )
        return BoardSnapshot(cells=cells, ships=ships)

    def _empty_cells(self) -> list[list[Cell]]:
        return [[Cell() for _ in range(self.width)] for _ in range(self.height)]
