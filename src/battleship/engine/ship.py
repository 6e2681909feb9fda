"""Ship domain model for the Battleship engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

BOARD_WIDTH = 10
BOARD_HEIGHT = 10
FLEET: tuple[int, ...] = (5, 4, 3, 3, 2)
MIN_SEGMENTS = 2
MAX_SEGMENTS = 5


@dataclass(frozen=True)
class Coordinate:
    """Immutable board coordinate (``x`` is the column, ``y`` the row)."""

    x: int
    y: int

    def __add__(self, other: Coordinate) -> Coordinate:
        return Coordinate(self.x + other.x, self.y + other.y)

    def __mul__(self, factor: int) -> Coordinate:
        return Coordinate(self.x * factor, self.y * factor)

    __rmul__ = __mul__

    def __str__(self) -> str:
        return f"({self.x}, {self.y})"


LEFT = Coordinate(-1, 0)
RIGHT = Coordinate(1, 0)
UP = Coordinate(0, -1)
DOWN = Coordinate(0, 1)


class Orientation(Enum):
    """Allowed ship orientations."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    def toggled(self) -> Orientation:
        """Return the other orientation."""
        if self is Orientation.HORIZONTAL:
            return Orientation.VERTICAL
        return Orientation.HORIZONTAL

    @property
    def step(self) -> Coordinate:
        """Offset between two consecutive segments."""
        return RIGHT if self is Orientation.HORIZONTAL else DOWN


@dataclass(eq=False)
class Ship:
    """A single ship; compared by identity so twin ships stay distinct."""

    segments: int
    origin: Coordinate
    orientation: Orientation = Orientation.HORIZONTAL
    destroyed_count: int = field(default=0)

    def __post_init__(self) -> None:
        if not MIN_SEGMENTS <= self.segments <= MAX_SEGMENTS:
            raise ValueError(f"A ship has between {MIN_SEGMENTS} and {MAX_SEGMENTS} segments.")
        if not 0 <= self.destroyed_count <= self.segments:
            raise ValueError("destroyed_count must lie between 0 and segments.")

    def coordinates(self) -> list[Coordinate]:
        """Return the ordered list of coordinates occupied by this ship."""
        step = self.orientation.step
        return [self.origin + step * offset for offset in range(self.segments)]

    def register_hit(self) -> None:
        """Count one destroyed segment, never going past ``segments``."""
        if self.destroyed_count < self.segments:
            self.destroyed_count += 1

    def is_destroyed(self) -> bool:
        return self.destroyed_count >= self.segments

    def toggle_orientation(self) -> None:
        """Flip between horizontal and vertical (used before the ship is placed)."""
        self.orientation = self.orientation.toggled()
