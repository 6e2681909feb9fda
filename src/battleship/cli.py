"""Command-line driver for playing Battleship against the computer."""

from __future__ import annotations

import argparse
from typing import Sequence

import numpy as np
from pydantic import ValidationError

from battleship.ai.targeting import Difficulty
from battleship.config import GameSettings
from battleship.engine.board import BoardSnapshot, CellView
from battleship.engine.errors import InvalidPlacementError
from battleship.engine.game import (
    AttackOutcome,
    BattleshipGame,
    GamePhase,
    GameState,
    Player,
    PlacementView,
)
from battleship.engine.instrumented_game import InstrumentedBattleshipGame
from battleship.engine.ship import BOARD_HEIGHT, BOARD_WIDTH, Coordinate, Orientation
from battleship.telemetry import configure_console_logging, init_telemetry
from battleship.telemetry.tracer import shutdown_tracing

COLUMN_LABELS = "ABCDEFGHIJ"
CELL_SYMBOLS = {
    CellView.UNKNOWN: ".",
    CellView.SHIP: "S",
    CellView.MISS: "o",
    CellView.HIT: "X",
}

PLACING_LINES = ("Place your Ships below!", "Z to rotate.")
ATTACKING_LINES = ("Attack the Computer!", "Destroy all Ships to win!")
GAME_OVER_WIN = "You won! Well done!"
GAME_OVER_LOSS = "Game Over! You Lost :("
GAME_OVER_BOTTOM = "Press R to restart."

PLACING_PROMPT = (
    "Coordinate to place, 'z' to rotate, 'a' to auto-place, "
    "'r' to restart, 'd' to show enemy ships, 'q' to quit: "
)
ATTACKING_PROMPT = (
    "Enter target coordinate (e.g., A5), 'r' to restart, "
    "'d' to show enemy ships, 'q' to quit: "
)


def parse_coordinate(text: str) -> Coordinate:
    """Translate ``A5`` (column letter, row number) or ``x y`` into a grid coordinate."""
    cleaned = text.strip().upper()
    if not cleaned:
        raise ValueError("Empty coordinate.")
    if cleaned[0].isalpha():
        if cleaned[0] not in COLUMN_LABELS:
            raise ValueError("Column must be between A and J.")
        x = COLUMN_LABELS.index(cleaned[0])
        try:
            y = int(cleaned[1:]) - 1
        except ValueError as exc:
            raise ValueError("Row must be a number between 1 and 10.") from exc
    else:
        parts = cleaned.replace(",", " ").split()
        if len(parts) != 2:
            raise ValueError("Use formats like A5 or '3 7'.")
        try:
            x, y = map(int, parts)
        except ValueError as exc:
            raise ValueError("Coordinates must be whole numbers.") from exc
    if x not in range(BOARD_WIDTH) or y not in range(BOARD_HEIGHT):
        raise ValueError("Coordinates must be within the 10x10 board.")
    return Coordinate(x, y)


def format_coordinate(coord: Coordinate) -> str:
    return f"{COLUMN_LABELS[coord.x]}{coord.y + 1}"


def format_board(snapshot: BoardSnapshot, placement: PlacementView | None = None) -> str:
    cells = np.vectorize(lambda code: CELL_SYMBOLS[CellView(code)])(snapshot.cells)
    if placement is not None:
        marker = "+" if placement.valid else "!"
        step = (1, 0) if placement.orientation is Orientation.HORIZONTAL else (0, 1)
        for offset in range(placement.segments):
            x = placement.origin.x + step[0] * offset
            y = placement.origin.y + step[1] * offset
            cells[y, x] = marker

    height, width = cells.shape
    rows = ["    " + " ".join(f"{COLUMN_LABELS[x]:>2}" for x in range(width))]
    for y in range(height):
        rows.append(f"{y + 1:>2} |" + " ".join(f"{symbol:>2}" for symbol in cells[y]))
    return "\n".join(rows)


def describe_attack(outcome: AttackOutcome) -> str:
    """Status line in the form ``Player Hit B4(Destroyed)``."""
    who = "Player" if outcome.attacker is Player.HUMAN else "Computer"
    hit_miss = "Hit" if outcome.is_hit else "Missed"
    destroyed = "(Destroyed)" if outcome.ship_destroyed else ""
    return f"{who} {hit_miss} {format_coordinate(outcome.coordinate)}{destroyed}"


def status_lines(state: GameState) -> tuple[str, str]:
    if state.phase is GamePhase.PLACING:
        return PLACING_LINES
    if state.phase is GamePhase.OVER:
        return (GAME_OVER_WIN if state.winner is Player.HUMAN else GAME_OVER_LOSS, GAME_OVER_BOTTOM)
    human = state.last_outcomes.get(Player.HUMAN)
    computer = state.last_outcomes.get(Player.COMPUTER)
    if human is None:
        return ATTACKING_LINES
    return describe_attack(human), describe_attack(computer) if computer else ""


def render(state: GameState) -> str:
    top, bottom = status_lines(state)
    return "\n".join(
        [
            "Enemy Waters:",
            format_board(state.boards[Player.COMPUTER]),
            "",
            f"  {top}",
            f"  {bottom}",
            "",
            "Your Board:",
            format_board(state.boards[Player.HUMAN], state.placement),
        ]
    )


def _handle_placement(game: BattleshipGame, command: str, raw: str) -> None:
    if command == "z":
        game.toggle_orientation()
        return
    if command == "a":
        game.auto_place_human()
        print("\nYour ships have been positioned automatically.")
        return
    try:
        coord = parse_coordinate(raw)
    except ValueError as exc:
        print(f"Invalid input: {exc}")
        return
    try:
        game.confirm_placement(coord)
    except InvalidPlacementError:
        print("Ship cannot be placed there (it overlaps another ship). Try again.")


def _handle_attack(game: BattleshipGame, raw: str) -> None:
    try:
        coord = parse_coordinate(raw)
    except ValueError as exc:
        print(f"Invalid input: {exc}")
        return
    if game.attack(coord) is None:
        print("That cell has already been targeted. Choose another.")


def play_game(game: BattleshipGame, reveal: bool = False, auto_place: bool = False) -> Player | None:
    """Run one match in the terminal and return the winner.

    ``r`` restarts and ``d`` toggles the enemy fleet display at any prompt.
    """
    if auto_place:
        game.auto_place_human()

    while game.phase is not GamePhase.OVER:
        state = game.get_state(reveal_ships=reveal)
        print("\n" + render(state))
        if state.placement is not None:
            print(
                f"\nShip {state.placement.index + 1}: {state.placement.segments} segments, "
                f"{state.placement.orientation.value}."
            )
            prompt = PLACING_PROMPT
        else:
            prompt = ATTACKING_PROMPT

        raw = input(prompt)
        command = raw.strip().lower()
        if command == "q":
            raise SystemExit("Goodbye!")
        if command == "r":
            game.restart()
            if auto_place:
                game.auto_place_human()
            print("\nNew game started.")
        elif command == "d":
            reveal = not reveal
        elif game.phase is GamePhase.PLACING:
            _handle_placement(game, command, raw)
        else:
            _handle_attack(game, raw)

    print("\n" + render(game.get_state(reveal_ships=True)))
    return game.winner


def _prompt_restart() -> bool:
    while True:
        raw = input("Press R to restart or Q to quit: ").strip().lower()
        if raw == "r":
            return True
        if raw == "q":
            return False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Play Battleship against the computer.")
    parser.add_argument(
        "--difficulty",
        choices=[difficulty.value for difficulty in Difficulty],
        default=None,
        help="Computer strength: random, hunt or hunt_line.",
    )
    parser.add_argument(
        "--seed", type=int, default=None, help="Optional RNG seed for reproducibility."
    )
    parser.add_argument(
        "--reveal", action="store_true", default=None, help="Show the computer's ships."
    )
    parser.add_argument(
        "--auto-place", action="store_true", help="Place your fleet at random."
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default WARNING).")
    return parser


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"])
        parts.append(f"{field}: {error['msg']}")
    return "; ".join(parts)


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        settings = GameSettings.from_env(
            difficulty=args.difficulty,
            seed=args.seed,
            reveal_ships=args.reveal,
            log_level=args.log_level,
        )
    except ValidationError as exc:
        raise SystemExit(f"Invalid settings: {_describe_validation_error(exc)}") from exc
    configure_console_logging(settings.log_level)
    telemetry = init_telemetry()

    game_cls = InstrumentedBattleshipGame if telemetry.enabled else BattleshipGame
    game = game_cls(
        difficulty=settings.difficulty,
        rng_seed=settings.seed,
        maximise_openness=settings.maximise_openness,
        max_placement_attempts=settings.max_placement_attempts,
    )

    print("Welcome to Battleship!")
    try:
        while True:
            play_game(game, reveal=settings.reveal_ships, auto_place=args.auto_place)
            if not _prompt_restart():
                break
            game.restart()
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    main()
