"""Computer opponent targeting strategies.

Every strategy keeps a move queue of opponent cells it has not attacked yet and
a list of "active hits": cells it hit on ships that are still afloat. Once a
cell is hit the strategy looks up the occupying ship on the opponent board
directly, which lets it forget a ship as soon as every segment has been hit.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from battleship.engine.board import Board
from battleship.engine.errors import ExhaustedMoveQueueError
from battleship.engine.ship import DOWN, LEFT, RIGHT, UP, Coordinate
from battleship.telemetry import get_meter, get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer("battleship.ai.targeting")
meter = get_meter("battleship.ai.targeting")

SELECTION_COUNTER = meter.create_counter(
    "battleship_ai_moves",
    unit="1",
    description="Moves selected by the computer opponent",
)

LINE_DIRECTIONS: tuple[Coordinate, ...] = (LEFT, RIGHT, DOWN, UP)


class Difficulty(Enum):
    """Computer opponent strength."""

    RANDOM = "random"
    HUNT = "hunt"
    HUNT_WITH_LINE_INFERENCE = "hunt_line"


@dataclass
class TargetingState:
    """Move queue and active hits shared by all strategies."""

    board: Board
    rng: random.Random
    move_queue: list[Coordinate] = field(default_factory=list)
    active_hits: list[Coordinate] = field(default_factory=list)
    _remaining: set[Coordinate] = field(default_factory=set, repr=False)

    def reset(self) -> None:
        """Refill the queue with every board cell in a fresh random order."""
        self.move_queue = list(self.board.coordinates())
        self.rng.shuffle(self.move_queue)
        self._remaining = set(self.move_queue)
        self.active_hits.clear()

    def is_remaining(self, coord: Coordinate) -> bool:
        return coord in self._remaining

    def first_remaining(self) -> Coordinate:
        if not self.move_queue:
            raise ExhaustedMoveQueueError("No moves left to select.")
        return self.move_queue[0]

    def record_move(self, coord: Coordinate) -> None:
        """Drop ``coord`` from the queue and update active hits."""
        self.move_queue.remove(coord)
        self._remaining.discard(coord)

        ship = self.board.occupant_at(coord)
        if ship is None:
            return
        self.active_hits.append(coord)
        ship_cells = ship.coordinates()
        if all(cell in self.active_hits for cell in ship_cells):
            self.active_hits = [hit for hit in self.active_hits if hit not in ship_cells]
            logger.debug("ai_ship_forgotten", extra={"segments": ship.segments})


class TargetingStrategy(Protocol):
    """Anything able to pick the computer's next attack."""

    state: TargetingState

    def select_move(self) -> Coordinate:
        ...

    def reset(self) -> None:
        ...


class RandomTargeting:
    """Attacks cells in a shuffled order without any reasoning."""

    def __init__(self, board: Board, rng: random.Random) -> None:
        self.state = TargetingState(board=board, rng=rng)
        self.state.reset()

    def reset(self) -> None:
        self.state.reset()

    @property
    def name(self) -> str:
        return "random"

    def select_move(self) -> Coordinate:
        with tracer.start_as_current_span("ai.select_move") as span:
            span.set_attribute("strategy", self.name)
            span.set_attribute("active_hits", len(self.state.active_hits))
            move = self.state.first_remaining()
            self.state.record_move(move)
            span.set_attribute("mode", "random")
            SELECTION_COUNTER.add(1, attributes={"strategy": self.name, "mode": "random"})
            logger.debug(
                "ai_move_selected",
                extra={"strategy": self.name, "mode": "random", "x": move.x, "y": move.y},
            )
            return move


class HuntTargeting:
    """Searches until a ship is found, then attacks around the known hits.

    ``prefer_line`` makes the strategy favour a neighbour that extends two hits
    already in a row. ``maximise_openness`` makes the search phase favour cells
    with the most unattacked neighbours instead of the next shuffled cell.
    """

    def __init__(
        self,
        board: Board,
        rng: random.Random,
        prefer_line: bool = False,
        maximise_openness: bool = False,
    ) -> None:
        self.prefer_line = prefer_line
        self.maximise_openness = maximise_openness
        self.state = TargetingState(board=board, rng=rng)
        self.state.reset()

    @property
    def name(self) -> str:
        return "hunt_line" if self.prefer_line else "hunt"

    def reset(self) -> None:
        self.state.reset()

    def select_move(self) -> Coordinate:
        with tracer.start_as_current_span("ai.select_move") as span:
            span.set_attribute("strategy", self.name)
            span.set_attribute("active_hits", len(self.state.active_hits))
            if not self.state.move_queue:
                raise ExhaustedMoveQueueError("No moves left to select.")

            candidates = self.adjacent_candidates()
            if candidates:
                mode = "line"
                move = self._line_move(candidates) if self.prefer_line else None
                if move is None:
                    mode = "adjacent"
                    move = self.state.rng.choice(candidates)
            elif self.maximise_openness:
                mode = "open"
                move = self.most_open_position()
            else:
                mode = "random"
                move = self.state.first_remaining()

            self.state.record_move(move)
            span.set_attribute("mode", mode)
            SELECTION_COUNTER.add(1, attributes={"strategy": self.name, "mode": mode})
            logger.debug(
                "ai_move_selected",
                extra={"strategy": self.name, "mode": mode, "x": move.x, "y": move.y},
            )
            return move

    def adjacent_candidates(self) -> list[Coordinate]:
        """Unattacked neighbours of every active hit, without duplicates, in discovery order."""
        candidates: list[Coordinate] = []
        for hit in self.state.active_hits:
            for neighbour in self.state.board.neighbours(hit):
                if neighbour not in candidates and self.state.is_remaining(neighbour):
                    candidates.append(neighbour)
        return candidates

    def most_open_position(self) -> Coordinate:
        """First queued cell with four unattacked neighbours, else the first best one."""
        best = self.state.first_remaining()
        best_count = -1
        for coord in self.state.move_queue:
            count = self._unmarked_neighbour_count(coord)
            if count == 4:
                return coord
            if count > best_count:
                best, best_count = coord, count
        return best

    def _line_move(self, candidates: list[Coordinate]) -> Coordinate | None:
        for candidate in candidates:
            for direction in LINE_DIRECTIONS:
                if self._extends_line(candidate, direction):
                    return candidate
        return None

    def _extends_line(self, start: Coordinate, direction: Coordinate) -> bool:
        hits = self.state.active_hits
        return start + direction in hits and start + direction * 2 in hits

    def _unmarked_neighbour_count(self, coord: Coordinate) -> int:
        board = self.state.board
        return sum(1 for neighbour in board.neighbours(coord) if not board.is_marked(neighbour))


def create_targeting(
    difficulty: Difficulty,
    board: Board,
    rng: random.Random,
    maximise_openness: bool | None = None,
) -> TargetingStrategy:
    """Build the strategy for ``difficulty`` attacking ``board``.

    The hardest level also searches open water first unless
    ``maximise_openness`` says otherwise.
    """
    if difficulty is Difficulty.RANDOM:
        return RandomTargeting(board, rng)
    prefer_line = difficulty is Difficulty.HUNT_WITH_LINE_INFERENCE
    if maximise_openness is None:
        maximise_openness = prefer_line
    return HuntTargeting(board, rng, prefer_line=prefer_line, maximise_openness=maximise_openness)
