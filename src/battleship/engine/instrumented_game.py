"""Instrumented Battleship game with telemetry hooks."""

from __future__ import annotations

import time
from typing import Any

from battleship.engine.game import BattleshipGame, GamePhase, Player, TurnResult
from battleship.engine.ship import Coordinate
from battleship.telemetry import get_logger, get_tracer, record_game_histogram, record_game_metric


class InstrumentedBattleshipGame(BattleshipGame):
    """Wraps BattleshipGame with a span per match plus per-turn metrics and logs."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        # restart() runs inside the base constructor, so these must exist first.
        self._logger = get_logger("battleship.engine")
        self._tracer = get_tracer("battleship.engine")
        self._game_span_cm = None
        self._game_span = None
        self._game_start_time: float | None = None
        self._game_id_counter = 0
        self._turns = 0
        super().__init__(*args, **kwargs)

    def restart(self) -> None:
        self._start_game_span()
        with self._tracer.start_as_current_span("battleship.engine.restart") as span:
            super().restart()
            span.set_attribute("difficulty", self.difficulty.value)
            span.set_attribute("computer_ships", len(self.boards[Player.COMPUTER].ships))
            record_game_metric(
                "battleship_game_setup_total", 1, {"difficulty": self.difficulty.value}
            )
            self._logger.info(
                "Game %d started (difficulty=%s)", self._game_id_counter, self.difficulty.value
            )

    def attack(self, coord: Coordinate) -> TurnResult | None:
        with self._tracer.start_as_current_span("battleship.engine.attack") as span:
            span.set_attribute("game.id", self._game_id_counter)
            span.set_attribute("coord.x", coord.x)
            span.set_attribute("coord.y", coord.y)

            result = super().attack(coord)
            if result is None:
                record_game_metric(
                    "battleship_game_invalid_moves_total",
                    1,
                    {"phase": self.phase.value, "reason": "rejected"},
                )
                span.set_attribute("rejected", True)
                return None

            self._turns += 1
            for outcome in (result.human, result.computer):
                if outcome is None:
                    continue
                player = outcome.attacker.value
                record_game_metric("battleship_shots_total", 1, {"player": player})
                record_game_metric(
                    "battleship_shots_by_result_total",
                    1,
                    {"player": player, "result": "hit" if outcome.is_hit else "miss"},
                )
                if outcome.ship_destroyed:
                    record_game_metric("battleship_ships_destroyed_total", 1, {"player": player})
                span.set_attribute(f"{player}.hit", outcome.is_hit)
                span.set_attribute(f"{player}.destroyed", outcome.ship_destroyed)
                self._logger.info(
                    "attack player=%s coord=(%d,%d) outcome=%s%s",
                    player,
                    outcome.coordinate.x,
                    outcome.coordinate.y,
                    "hit" if outcome.is_hit else "miss",
                    " destroyed" if outcome.ship_destroyed else "",
                )

            if self.phase is GamePhase.OVER and self.winner:
                span.set_attribute("winner", self.winner.value)
                self._finish_game()
            return result

    def _start_game_span(self) -> None:
        self._close_game_span()
        self._game_start_time = time.perf_counter()
        self._game_id_counter += 1
        self._turns = 0
        self._game_span_cm = self._tracer.start_as_current_span("battleship.engine.game")
        self._game_span = self._game_span_cm.__enter__()
        self._game_span.set_attribute("game.id", self._game_id_counter)

    def _finish_game(self) -> None:
        duration = (time.perf_counter() - self._game_start_time) if self._game_start_time else 0.0
        winner = self.winner.value if self.winner else "unknown"
        attrs = {"winner": winner, "difficulty": self.difficulty.value}

        record_game_metric("battleship_game_completed_total", 1, attrs)
        record_game_histogram("battleship_game_duration_seconds", duration, attrs, unit="s")
        record_game_histogram("battleship_game_turns", self._turns, attrs, unit="1")

        with self._tracer.start_as_current_span("battleship.engine.game_complete") as span:
            span.set_attribute("game.id", self._game_id_counter)
            span.set_attribute("winner", winner)
            span.set_attribute("turns", self._turns)
            span.set_attribute("duration_ms", duration * 1000)

        if self._game_span is not None:
            self._game_span.set_attribute("winner", winner)
            self._game_span.set_attribute("turns", self._turns)
            self._game_span.set_attribute("duration_ms", duration * 1000)

        self._logger.info(
            "Game finished. Winner=%s turns=%d duration_s=%.3f", winner, self._turns, duration
        )
        self._close_game_span()

    def _close_game_span(self) -> None:
        if self._game_span_cm is not None:
            self._game_span_cm.__exit__(None, None, None)
            self._game_span_cm = None
            self._game_span = None
