"""Cube state: 54 stickers owned by a single object."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np

from .actions import (
    COLOR_ALPHABET,
    FACE_INDEX,
    FACE_ORDER,
    GRID,
    MOVE_PERMUTATIONS,
    N_FACES,
    STICKERS_PER_FACE,
    Move,
    parse_sequence,
    solved_state,
)
from .errors import StateValidationError
from .solved_check import is_solved_canonical, is_solved_orientation_invariant
from .state_codec import decode_string, encode_string, paint_sticker, validate_state


class CubeState:
    """Flat sticker grid in face order U F R B L D, each face row-major."""

    __slots__ = ("_stickers",)

    def __init__(self, stickers: Sequence[int] | np.ndarray | None = None):
        self._stickers = solved_state() if stickers is None else validate_state(stickers)

    @classmethod
    def solved(cls) -> "CubeState":
        return cls()

    @classmethod
    def from_serialized(cls, serialized: str | Sequence[str]) -> "CubeState":
        state = cls.__new__(cls)
        state._stickers = decode_string(serialized)
        return state

    def to_serialized(self) -> str:
        return encode_string(self._stickers)

    def with_sticker(self, face: str, index: int, color: str) -> str:
        """Serialized copy with one sticker repainted; feed it back to from_serialized() to validate."""
        return paint_sticker(self.to_serialized(), face, index, color)

    @property
    def stickers(self) -> np.ndarray:
        """Copy of the flat color-id array (length 54)."""
        return self._stickers.copy()

    def faces(self) -> np.ndarray:
        return self._stickers.reshape(N_FACES, STICKERS_PER_FACE).copy()

    def face(self, name: str) -> np.ndarray:
        if name not in FACE_INDEX:
            raise StateValidationError(f"Unknown face {name!r}")
        start = FACE_INDEX[name] * STICKERS_PER_FACE
        return self._stickers[start : start + STICKERS_PER_FACE].reshape(GRID, GRID).copy()

    def color_counts(self) -> dict[str, int]:
        counts = np.bincount(self._stickers.astype(np.int64), minlength=N_FACES)
        return {COLOR_ALPHABET[c]: int(n) for c, n in enumerate(counts)}

    def copy(self) -> "CubeState":
        state = CubeState.__new__(CubeState)
        state._stickers = self._stickers.copy()
        return state

    def apply(self, move: Move) -> "CubeState":
        """Turn in place and return self."""
        if not isinstance(move, Move):
            raise StateValidationError(f"Expected a Move, got {type(move).__name__}")
        self._stickers = self._stickers[MOVE_PERMUTATIONS[move.index]]
        return self

    def apply_sequence(self, moves: Iterable[Move] | str) -> "CubeState":
        if isinstance(moves, str):
            moves = parse_sequence(moves)
        for move in moves:
            self.apply(move)
        return self

    def is_solved(self) -> bool:
        return is_solved_canonical(self._stickers)

    def is_solved_up_to_rotation(self) -> bool:
        return is_solved_orientation_invariant(self._stickers)

    def equals(self, other: "CubeState") -> bool:
        return isinstance(other, CubeState) and bool(np.array_equal(self._stickers, other._stickers))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CubeState):
            return NotImplemented
        return self.equals(other)

    __hash__ = None

    def __repr__(self) -> str:
        return f"CubeState({self.to_serialized()!r})"

    def __str__(self) -> str:
        """Unfolded net: U on top, L F R B in the middle band, D at the bottom."""
        rows = {face: self.face(face) for face in FACE_ORDER}

        def line(face: str, r: int) -> str:
            return " ".join(COLOR_ALPHABET[int(c)] for c in rows[face][r])

        pad = " " * (2 * GRID)
        out = [pad + line("U", r) for r in range(GRID)]
        out += [" ".join(line(face, r) for face in ("L", "F", "R", "B")) for r in range(GRID)]
        out += [pad + line("D", r) for r in range(GRID)]
        return "\n".join(out)
