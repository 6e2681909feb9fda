"""Human versus computer Battleship game controller."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum

from battleship.ai.targeting import Difficulty, TargetingStrategy, create_targeting
from battleship.telemetry import get_meter, get_tracer

from .board import Board, BoardSnapshot
from .placement import DEFAULT_MAX_ATTEMPTS, PlacementCursor, PlacementEngine
from .ship import FLEET, Coordinate, Orientation, Ship

logger = logging.getLogger(__name__)
tracer = get_tracer("battleship.engine.game")
meter = get_meter("battleship.engine.game")

MOVE_COUNTER = meter.create_counter(
    "battleship_engine_moves",
    unit="1",
    description="Number of moves made in BattleshipGame",
)


class GamePhase(Enum):
    """High-level lifecycle of a Battleship match."""

    PLACING = "placing"
    ATTACKING = "attacking"
    OVER = "over"


class Player(Enum):
    """The two sides of a match."""

    HUMAN = "human"
    COMPUTER = "computer"

    def opponent(self) -> Player:
        """Return the opposing player."""
        return Player.COMPUTER if self is Player.HUMAN else Player.HUMAN


@dataclass(frozen=True)
class AttackOutcome:
    """Result of one attack, for status lines."""

    attacker: Player
    coordinate: Coordinate
    is_hit: bool
    destroyed_ship: Ship | None = None

    @property
    def ship_destroyed(self) -> bool:
        return self.destroyed_ship is not None


@dataclass(frozen=True)
class TurnResult:
    """A human attack and the computer's reply, if the game went on."""

    human: AttackOutcome
    computer: AttackOutcome | None = None


@dataclass(frozen=True)
class PlacementView:
    """The ship the human is currently positioning."""

    index: int
    segments: int
    origin: Coordinate
    orientation: Orientation
    valid: bool


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of the current game."""

    phase: GamePhase
    difficulty: Difficulty
    winner: Player | None
    boards: dict[Player, BoardSnapshot]
    placement: PlacementView | None
    last_outcomes: dict[Player, AttackOutcome]


class BattleshipGame:
    """Coordinates a match between the human and the computer.

    The computer's fleet is placed at random as soon as a game starts. The human
    then places the fleet one ship at a time, after which every human attack is
    answered by exactly one computer attack until a fleet is destroyed.
    """

    def __init__(
        self,
        difficulty: Difficulty = Difficulty.RANDOM,
        rng: random.Random | None = None,
        rng_seed: int | None = None,
        maximise_openness: bool | None = None,
        max_placement_attempts: int | None = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._rng = rng or random.Random(rng_seed)
        self.difficulty = difficulty
        self.maximise_openness = maximise_openness
        self.boards: dict[Player, Board] = {
            Player.HUMAN: Board(owner=Player.HUMAN.value),
            Player.COMPUTER: Board(owner=Player.COMPUTER.value),
        }
        self.placement_engine = PlacementEngine(self._rng, FLEET, max_placement_attempts)
        self.targeting: TargetingStrategy = self._build_targeting()
        self.phase: GamePhase = GamePhase.PLACING
        self.winner: Player | None = None
        self.placing_index = 0
        self.cursor: PlacementCursor | None = None
        self.last_outcomes: dict[Player, AttackOutcome] = {}
        self.restart()

    def new_game(self, difficulty: Difficulty) -> None:
        """Start over against a computer of the given difficulty."""
        if difficulty is not self.difficulty:
            self.difficulty = difficulty
            self.targeting = self._build_targeting()
        self.restart()

    def restart(self) -> None:
        """Reset both boards and the AI, place the computer fleet and return to placing."""
        with tracer.start_as_current_span("game.restart") as span:
            span.set_attribute("difficulty", self.difficulty.value)
            self.boards[Player.HUMAN].reset()
            self.placement_engine.auto_place(self.boards[Player.COMPUTER])
            self.targeting.reset()
            self.placing_index = 0
            self.cursor = PlacementCursor(FLEET[0])
            self.last_outcomes = {}
            self.winner = None
            self.phase = GamePhase.PLACING
            logger.info("game_restarted", extra={"difficulty": self.difficulty.value})

    # Placing phase

    def move_placement(self, coord: Coordinate) -> bool:
        """Move the provisional ship and report whether it could be placed there."""
        if self.phase is not GamePhase.PLACING or self.cursor is None:
            return False
        self.cursor.move_to(coord)
        return self.placement_valid

    def toggle_orientation(self) -> bool:
        """Rotate the provisional ship; ignored outside the placing phase."""
        if self.phase is not GamePhase.PLACING or self.cursor is None:
            return False
        self.cursor.toggle_orientation()
        return self.placement_valid

    @property
    def placement_valid(self) -> bool:
        if self.cursor is None:
            return False
        return self.cursor.is_valid(self.boards[Player.HUMAN])

    def confirm_placement(self, coord: Coordinate | None = None) -> Ship | None:
        """Commit the provisional ship, optionally moving it to ``coord`` first.

        Raises ``InvalidPlacementError`` when the ship does not fit; the board
        is left untouched in that case.
        """
        if self.phase is not GamePhase.PLACING or self.cursor is None:
            return None
        if coord is not None:
            self.cursor.move_to(coord)
        ship = self.cursor.commit(self.boards[Player.HUMAN])
        self.placing_index += 1
        if self.placing_index < len(FLEET):
            self.cursor = PlacementCursor(FLEET[self.placing_index], position=ship.origin)
        else:
            self._begin_attacking()
        return ship

    def auto_place_human(self) -> list[Ship]:
        """Place the whole human fleet at random and start attacking."""
        if self.phase is not GamePhase.PLACING:
            return []
        ships = self.placement_engine.auto_place(self.boards[Player.HUMAN])
        self.placing_index = len(FLEET)
        self._begin_attacking()
        return ships

    # Attacking phase

    def attack(self, coord: Coordinate) -> TurnResult | None:
        """Fire at the computer and let it answer.

        Returns ``None`` without changing anything when the game is not in the
        attacking phase or ``coord`` is off the board or already attacked.
        """
        with tracer.start_as_current_span("game.attack") as span:
            span.set_attribute("x", coord.x)
            span.set_attribute("y", coord.y)
            if self.phase is not GamePhase.ATTACKING:
                logger.debug("attack_ignored_wrong_phase", extra={"phase": self.phase.value})
                return None
            target = self.boards[Player.COMPUTER]
            if not target.in_bounds(coord) or target.is_marked(coord):
                span.set_attribute("rejected", True)
                logger.warning("attack_rejected", extra={"x": coord.x, "y": coord.y})
                return None

            human = self._apply_attack(Player.HUMAN, coord)
            if self.phase is GamePhase.OVER:
                return TurnResult(human=human)

            computer = self._apply_attack(Player.COMPUTER, self.targeting.select_move())
            return TurnResult(human=human, computer=computer)

    def _apply_attack(self, attacker: Player, coord: Coordinate) -> AttackOutcome:
        target_board = self.boards[attacker.opponent()]
        result = target_board.mark(coord)
        outcome = AttackOutcome(
            attacker=attacker,
            coordinate=coord,
            is_hit=result.is_hit,
            destroyed_ship=result.destroyed_ship,
        )
        self.last_outcomes[attacker] = outcome
        MOVE_COUNTER.add(
            1,
            attributes={"result": "hit" if result.is_hit else "miss", "player": attacker.value},
        )

        if target_board.all_destroyed():
            self.winner = attacker
            self.phase = GamePhase.OVER
            logger.info("game_finished", extra={"winner": attacker.value})
        return outcome

    def _begin_attacking(self) -> None:
        self.cursor = None
        self.phase = GamePhase.ATTACKING
        logger.info("placement_complete", extra={"difficulty": self.difficulty.value})

    def _build_targeting(self) -> TargetingStrategy:
        return create_targeting(
            self.difficulty,
            self.boards[Player.HUMAN],
            self._rng,
            maximise_openness=self.maximise_openness,
        )

    # Queries

    def get_state(self, reveal_ships: bool = False) -> GameState:
        """Return an immutable view of the current match.

        The computer's ships are hidden until destroyed unless the renderer asks
        for ``reveal_ships``.
        """
        placement = None
        if self.phase is GamePhase.PLACING and self.cursor is not None:
            placement = PlacementView(
                index=self.placing_index,
                segments=self.cursor.segments,
                origin=self.cursor.position,
                orientation=self.cursor.orientation,
                valid=self.placement_valid,
            )
        return GameState(
            phase=self.phase,
            difficulty=self.difficulty,
            winner=self.winner,
            boards={
                Player.HUMAN: self.boards[Player.HUMAN].snapshot(show_ships=True),
                Player.COMPUTER: self.boards[Player.COMPUTER].snapshot(show_ships=reveal_ships),
            },
            placement=placement,
            last_outcomes=dict(self.last_outcomes),
        )

    def valid_targets(self) -> list[Coordinate]:
        """Return all computer cells the human can still attack."""
        if self.phase is not GamePhase.ATTACKING:
            return []
        board = self.boards[Player.COMPUTER]
        return [coord for coord in board.coordinates() if not board.is_marked(coord)]
