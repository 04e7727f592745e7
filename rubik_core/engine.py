"""Move engine and thread-safe 3x3 cube session."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import Any

import numpy as np

from .actions import MOVE_TABLE, OPPOSITE_FACE, Move, format_sequence, parse_move, parse_sequence
from .cube import CubeState
from .errors import StateValidationError


def apply(state: CubeState, move: Move) -> CubeState:
    """Return a new state with `move` applied; `state` is left untouched."""
    return state.copy().apply(move)


def apply_sequence(state: CubeState, moves: Iterable[Move] | str) -> CubeState:
    return state.copy().apply_sequence(moves)


def inverse(move: Move) -> Move:
    return move.inverse()


def inverse_sequence(moves: Iterable[Move] | str) -> list[Move]:
    if isinstance(moves, str):
        moves = parse_sequence(moves)
    return [m.inverse() for m in reversed(list(moves))]


def _coerce_move(move: Move | str) -> Move:
    if isinstance(move, str):
        return parse_move(move)
    if not isinstance(move, Move):
        raise StateValidationError(f"Move must be a Move or notation string, got {type(move).__name__}")
    return move


class RubikEngine:
    """Thread-safe 3x3 cube session with move history, scramble and undo."""

    def __init__(self, initial_state: CubeState | str | None = None):
        self._lock = threading.RLock()
        self._rng = np.random.default_rng()
        self._state = self._coerce_state(initial_state)
        self.step_count = 0
        self.history: list[Move] = []

    @staticmethod
    def _coerce_state(state: CubeState | str | None) -> CubeState:
        if state is None:
            return CubeState.solved()
        if isinstance(state, CubeState):
            return state.copy()
        return CubeState.from_serialized(state)

    def get_state(self) -> CubeState:
        with self._lock:
            return self._state.copy()

    def set_state(self, state: CubeState | str) -> CubeState:
        if state is None:
            raise StateValidationError("set_state requires a state; use reset() for the solved cube")
        return self.reset(state)

    def reset(self, state: CubeState | str | None = None) -> CubeState:
        new_state = self._coerce_state(state)
        with self._lock:
            self._state = new_state
            self.step_count = 0
            self.history = []
            return self._state.copy()

    def is_solved(self) -> bool:
        with self._lock:
            return self._state.is_solved()

    def step(self, move: Move | str) -> CubeState:
        move = _coerce_move(move)
        with self._lock:
            self._state.apply(move)
            self.step_count += 1
            self.history.append(move)
            return self._state.copy()

    def run(self, moves: Iterable[Move] | str) -> CubeState:
        if isinstance(moves, str):
            moves = parse_sequence(moves)
        moves = [_coerce_move(m) for m in moves]
        with self._lock:
            for move in moves:
                self.step(move)
            return self._state.copy()

    def undo(self) -> Move:
        """Revert the last move and return it."""
        with self._lock:
            if not self.history:
                raise StateValidationError("Nothing to undo: move history is empty")
            move = self.history.pop()
            self._state.apply(move.inverse())
            self.step_count -= 1
            return move

    def scramble(self, steps: int, seed: int | None = None) -> tuple[CubeState, list[Move]]:
        if not isinstance(steps, int) or steps < 0:
            raise StateValidationError("Scramble steps must be a non-negative integer")

        with self._lock:
            rng = np.random.default_rng(seed) if seed is not None else self._rng
            moves = random_move_sequence(steps, rng)
            for move in moves:
                self.step(move)
            return self._state.copy(), moves

    def state_payload(self) -> dict[str, Any]:
        with self._lock:
            return {
                "state": self._state.to_serialized(),
                "step_count": self.step_count,
                "history": format_sequence(self.history),
                "solved": self._state.is_solved(),
            }


def random_move_sequence(steps: int, rng: np.random.Generator) -> list[Move]:
    """Random face turns without turning the same face twice in a row or an axis three times."""
    moves: list[Move] = []
    for _ in range(steps):
        blocked = set()
        if moves:
            blocked.add(moves[-1].face)
            if len(moves) >= 2 and moves[-2].face == OPPOSITE_FACE[moves[-1].face]:
                blocked.add(moves[-2].face)
        candidates = [m for m in MOVE_TABLE if m.face not in blocked]
        moves.append(candidates[int(rng.integers(len(candidates)))])
    return moves

