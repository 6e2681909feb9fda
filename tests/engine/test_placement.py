"""Tests for random and interactive ship placement."""

import random

import pytest
from battleship.engine.board import Board
from battleship.engine.errors import InvalidPlacementError
from battleship.engine.placement import PlacementCursor, PlacementEngine
from battleship.engine.ship import FLEET, Coordinate, Orientation, Ship


class StuckRandom(random.Random):
    """Always proposes a horizontal ship at the origin."""

    def choice(self, seq):
        return Orientation.HORIZONTAL

    def randint(self, a, b):
        return a


def test_auto_place_populates_full_fleet_without_overlap() -> None:
    board = Board()
    ships = PlacementEngine(random.Random(123)).auto_place(board)

    assert [ship.segments for ship in ships] == list(FLEET)
    assert board.ships == ships
    assert sum(ship.segments for ship in board.ships) == 17
    coords = [coord for ship in board.ships for coord in ship.coordinates()]
    assert len(coords) == len(set(coords)), "Ships should not overlap"
    assert all(board.in_bounds(coord) for coord in coords)


def test_auto_placed_fleet_is_destroyed_only_when_every_cell_is_marked() -> None:
    board = Board()
    PlacementEngine(random.Random(9)).auto_place(board)
    cells = [coord for ship in board.ships for coord in ship.coordinates()]

    for coord in cells[:-1]:
        board.mark(coord)
        assert not board.all_destroyed()
    board.mark(cells[-1])
    assert board.all_destroyed()


def test_auto_place_is_reproducible_with_seed() -> None:
    first, second = Board(), Board()
    PlacementEngine(random.Random(5)).auto_place(first)
    PlacementEngine(random.Random(5)).auto_place(second)
    assert [ship.coordinates() for ship in first.ships] == [
        ship.coordinates() for ship in second.ships
    ]


def test_auto_place_clears_previous_layout() -> None:
    board = Board()
    board.place(Ship(2, Coordinate(0, 0)))
    board.mark(Coordinate(5, 5))
    PlacementEngine(random.Random(1)).auto_place(board)
    assert len(board.ships) == len(FLEET)
    assert not board.is_marked(Coordinate(5, 5))


def test_sampling_cap_falls_back_to_first_fit() -> None:
    board = Board()
    engine = PlacementEngine(StuckRandom(), fleet=(5, 4), max_attempts=3)
    ships = engine.auto_place(board)

    assert ships[0].origin == Coordinate(0, 0)
    assert ships[1].origin == Coordinate(5, 0)
    assert ships[1].orientation is Orientation.HORIZONTAL


def test_impossible_fleet_raises() -> None:
    board = Board(width=3, height=3)
    engine = PlacementEngine(random.Random(2), fleet=(3, 3, 3, 3), max_attempts=50)
    with pytest.raises(InvalidPlacementError):
        engine.auto_place(board)


def test_ship_longer_than_board_raises() -> None:
    engine = PlacementEngine(random.Random(2), fleet=(4,))
    with pytest.raises(InvalidPlacementError):
        engine.auto_place(Board(width=3, height=3))


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        PlacementEngine(random.Random(), max_attempts=0)


def test_cursor_is_clamped_inside_grid() -> None:
    cursor = PlacementCursor(5)
    assert cursor.move_to(Coordinate(9, 9)) == Coordinate(5, 9)

    cursor.toggle_orientation()
    assert cursor.orientation is Orientation.VERTICAL
    assert cursor.position == Coordinate(5, 5)
    assert cursor.move_to(Coordinate(-3, 8)) == Coordinate(0, 5)


def test_cursor_reports_validity_and_commits() -> None:
    board = Board()
    board.place(Ship(3, Coordinate(2, 0), Orientation.VERTICAL))
    cursor = PlacementCursor(4)

    cursor.move_to(Coordinate(0, 1))
    assert not cursor.is_valid(board)
    with pytest.raises(InvalidPlacementError):
        cursor.commit(board)
    assert len(board.ships) == 1

    cursor.move_to(Coordinate(0, 3))
    assert cursor.is_valid(board)
    ship = cursor.commit(board)
    assert ship.coordinates() == [Coordinate(x, 3) for x in range(4)]
    assert board.occupant_at(Coordinate(3, 3)) is ship


def test_cursor_rotates_its_provisional_ship() -> None:
    board = Board()
    cursor = PlacementCursor(3, position=Coordinate(8, 2))
    assert cursor.position == Coordinate(7, 2)

    provisional = cursor.ship
    cursor.toggle_orientation()
    assert provisional.orientation is Orientation.VERTICAL
    assert cursor.ship is provisional

    placed = cursor.commit(board)
    assert placed is provisional
    assert placed.coordinates() == [Coordinate(7, 2), Coordinate(7, 3), Coordinate(7, 4)]

    cursor.move_to(Coordinate(0, 0))
    assert placed.origin == Coordinate(7, 2)
    assert cursor.ship is not placed
