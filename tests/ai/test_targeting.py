"""Tests for the computer targeting strategies."""

from __future__ import annotations

import logging
import random
from unittest.mock import MagicMock

import pytest
from battleship.ai import targeting as targeting_module
from battleship.ai.targeting import (
    Difficulty,
    HuntTargeting,
    RandomTargeting,
    create_targeting,
)
from battleship.engine.board import Board
from battleship.engine.errors import ExhaustedMoveQueueError
from battleship.engine.placement import PlacementEngine
from battleship.engine.ship import Coordinate, Orientation, Ship


def _play(strategy, board: Board) -> list[Coordinate]:
    moves = []
    for _ in range(board.width * board.height):
        move = strategy.select_move()
        board.mark(move)
        moves.append(move)
    return moves


def _attack(strategy, board: Board, coord: Coordinate) -> None:
    """Feed a chosen move through the strategy bookkeeping and the board."""
    strategy.state.record_move(coord)
    board.mark(coord)


def test_random_strategy_visits_every_cell_once() -> None:
    board = Board()
    PlacementEngine(random.Random(3)).auto_place(board)
    strategy = RandomTargeting(board, random.Random(7))

    moves = _play(strategy, board)
    assert len(moves) == 100
    assert set(moves) == set(board.coordinates())

    with pytest.raises(ExhaustedMoveQueueError):
        strategy.select_move()


@pytest.mark.parametrize("prefer_line", [False, True])
def test_hunt_strategies_never_repeat(prefer_line: bool) -> None:
    board = Board()
    PlacementEngine(random.Random(11)).auto_place(board)
    strategy = HuntTargeting(
        board, random.Random(4), prefer_line=prefer_line, maximise_openness=prefer_line
    )

    moves = _play(strategy, board)
    assert len(set(moves)) == 100
    assert board.all_destroyed()
    assert strategy.state.active_hits == []

    with pytest.raises(ExhaustedMoveQueueError):
        strategy.select_move()


def test_active_hits_forget_destroyed_ship() -> None:
    board = Board()
    destroyer = Ship(2, Coordinate(0, 0), Orientation.HORIZONTAL)
    cruiser = Ship(3, Coordinate(5, 5), Orientation.VERTICAL)
    board.place(destroyer)
    board.place(cruiser)
    strategy = HuntTargeting(board, random.Random(0))

    _attack(strategy, board, Coordinate(5, 5))
    _attack(strategy, board, Coordinate(0, 0))
    _attack(strategy, board, Coordinate(9, 9))
    assert strategy.state.active_hits == [Coordinate(5, 5), Coordinate(0, 0)]
    assert Coordinate(9, 9) not in strategy.state.move_queue

    _attack(strategy, board, Coordinate(1, 0))
    assert strategy.state.active_hits == [Coordinate(5, 5)]
    assert len(strategy.state.move_queue) == 96


def test_hunt_attacks_next_to_active_hit() -> None:
    board = Board()
    board.place(Ship(3, Coordinate(5, 5), Orientation.VERTICAL))
    strategy = HuntTargeting(board, random.Random(8))
    _attack(strategy, board, Coordinate(5, 5))

    move = strategy.select_move()
    assert move in {Coordinate(4, 5), Coordinate(6, 5), Coordinate(5, 4), Coordinate(5, 6)}
    assert move not in strategy.state.move_queue


def test_adjacent_candidates_follow_discovery_order() -> None:
    board = Board()
    board.place(Ship(4, Coordinate(3, 3), Orientation.VERTICAL))
    strategy = HuntTargeting(board, random.Random(1), prefer_line=True)
    _attack(strategy, board, Coordinate(3, 2))
    _attack(strategy, board, Coordinate(3, 3))
    _attack(strategy, board, Coordinate(3, 4))

    assert strategy.adjacent_candidates() == [
        Coordinate(2, 3),
        Coordinate(4, 3),
        Coordinate(2, 4),
        Coordinate(4, 4),
        Coordinate(3, 5),
    ]


def test_line_inference_extends_vertical_pair() -> None:
    board = Board()
    board.place(Ship(4, Coordinate(3, 3), Orientation.VERTICAL))
    strategy = HuntTargeting(board, random.Random(1), prefer_line=True)
    _attack(strategy, board, Coordinate(3, 2))
    _attack(strategy, board, Coordinate(3, 3))
    _attack(strategy, board, Coordinate(3, 4))

    assert strategy.select_move() == Coordinate(3, 5)
    assert strategy.state.active_hits == [Coordinate(3, 3), Coordinate(3, 4), Coordinate(3, 5)]


def test_line_inference_takes_first_matching_candidate() -> None:
    board = Board()
    board.place(Ship(4, Coordinate(3, 3), Orientation.VERTICAL))
    strategy = HuntTargeting(board, random.Random(1), prefer_line=True)
    _attack(strategy, board, Coordinate(3, 3))
    _attack(strategy, board, Coordinate(3, 4))

    # (3, 2) is generated before (3, 5) and extends the same pair downwards.
    assert strategy.select_move() == Coordinate(3, 2)


def test_line_inference_falls_back_to_random_candidate() -> None:
    board = Board()
    board.place(Ship(3, Coordinate(6, 6), Orientation.HORIZONTAL))
    strategy = HuntTargeting(board, random.Random(2), prefer_line=True)
    _attack(strategy, board, Coordinate(6, 6))

    assert strategy.select_move() in set(board.neighbours(Coordinate(6, 6)))


def test_openness_prefers_cells_with_four_free_neighbours() -> None:
    board = Board()
    strategy = HuntTargeting(board, random.Random(6), maximise_openness=True)
    move = strategy.select_move()
    assert 1 <= move.x <= 8
    assert 1 <= move.y <= 8


def test_most_open_position_takes_first_seen_maximum() -> None:
    board = Board()
    strategy = HuntTargeting(board, random.Random(6), maximise_openness=True)

    strategy.state.move_queue = [Coordinate(9, 9), Coordinate(0, 5), Coordinate(0, 4)]
    assert strategy.most_open_position() == Coordinate(0, 5)

    strategy.state.move_queue = [Coordinate(0, 0), Coordinate(0, 5), Coordinate(5, 5)]
    assert strategy.most_open_position() == Coordinate(5, 5)

    board.mark(Coordinate(4, 5))
    assert strategy.most_open_position() == Coordinate(0, 5)


def test_reset_refills_queue_and_clears_hits() -> None:
    board = Board()
    board.place(Ship(2, Coordinate(0, 0)))
    strategy = HuntTargeting(board, random.Random(3))
    _attack(strategy, board, Coordinate(0, 0))

    strategy.reset()
    assert len(strategy.state.move_queue) == 100
    assert strategy.state.active_hits == []


def test_same_seed_gives_same_move_order() -> None:
    first = RandomTargeting(Board(), random.Random(21))
    second = RandomTargeting(Board(), random.Random(21))
    assert [first.select_move() for _ in range(10)] == [second.select_move() for _ in range(10)]


def test_create_targeting_maps_difficulties() -> None:
    board = Board()
    rng = random.Random(0)

    assert isinstance(create_targeting(Difficulty.RANDOM, board, rng), RandomTargeting)

    hunt = create_targeting(Difficulty.HUNT, board, rng)
    assert isinstance(hunt, HuntTargeting)
    assert not hunt.prefer_line
    assert not hunt.maximise_openness

    smart = create_targeting(Difficulty.HUNT_WITH_LINE_INFERENCE, board, rng)
    assert isinstance(smart, HuntTargeting)
    assert smart.prefer_line
    assert smart.maximise_openness

    plain = create_targeting(
        Difficulty.HUNT_WITH_LINE_INFERENCE, board, rng, maximise_openness=False
    )
    assert not plain.maximise_openness


class RecordingTracer:
    def __init__(self) -> None:
        self.span_names: list[str] = []

    def start_as_current_span(self, name: str):
        self.span_names.append(name)
        return MagicMock()


@pytest.mark.parametrize("strategy_cls", [RandomTargeting, HuntTargeting])
def test_every_strategy_traces_and_logs_its_move(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture, strategy_cls
) -> None:
    tracer = RecordingTracer()
    monkeypatch.setattr(targeting_module, "tracer", tracer)
    caplog.set_level(logging.DEBUG, logger="battleship.ai.targeting")

    strategy = strategy_cls(Board(), random.Random(12))
    move = strategy.select_move()

    assert tracer.span_names == ["ai.select_move"]
    selected = [record for record in caplog.records if record.getMessage() == "ai_move_selected"]
    assert len(selected) == 1
    assert (selected[0].x, selected[0].y) == (move.x, move.y)
    assert selected[0].strategy == strategy.name
