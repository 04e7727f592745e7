"""Move and geometry utilities for the 3x3 cube."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

import numpy as np

from .errors import InvalidMoveError

FACE_ORDER = ("U", "F", "R", "B", "L", "D")
FACE_INDEX = {face: i for i, face in enumerate(FACE_ORDER)}
N_FACES = 6
GRID = 3
STICKERS_PER_FACE = GRID * GRID
STATE_SIZE = N_FACES * STICKERS_PER_FACE

# Solved color of each face, in FACE_ORDER.
COLOR_ALPHABET = "WGRBOY"
COLOR_INDEX = {color: i for i, color in enumerate(COLOR_ALPHABET)}

OPPOSITE_FACE = {"U": "D", "D": "U", "F": "B", "B": "F", "R": "L", "L": "R"}

# Face specification from outside view.
FACE_SPECS = {
    "U": {"normal": (0, 1, 0), "right": (1, 0, 0), "up": (0, 0, -1)},
    "F": {"normal": (0, 0, 1), "right": (1, 0, 0), "up": (0, 1, 0)},
    "R": {"normal": (1, 0, 0), "right": (0, 0, -1), "up": (0, 1, 0)},
    "B": {"normal": (0, 0, -1), "right": (-1, 0, 0), "up": (0, 1, 0)},
    "L": {"normal": (-1, 0, 0), "right": (0, 0, 1), "up": (0, 1, 0)},
    "D": {"normal": (0, -1, 0), "right": (1, 0, 0), "up": (0, 0, 1)},
}

CW = +1
CCW = -1
DIRECTIONS = (CW, CCW)
MAGNITUDES = (90, 180)

# Clockwise turn from face viewpoint expressed as world-axis rotation angle.
CLOCKWISE_ANGLE_DEG = {
    "U": -90,
    "D": +90,
    "L": +90,
    "R": -90,
    "F": -90,
    "B": +90,
}

FACE_AXIS_LAYER = {
    "U": ("y", +1),
    "D": ("y", -1),
    "L": ("x", -1),
    "R": ("x", +1),
    "F": ("z", +1),
    "B": ("z", -1),
}

_AXIS_IDX = {"x": 0, "y": 1, "z": 2}


def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


@dataclass(frozen=True)
class Move:
    """A single face turn: direction is +1 (clockwise) or -1 seen from outside the face."""

    face: str
    direction: int = CW
    magnitude: int = 90

    def __post_init__(self):
        if not isinstance(self.face, str) or self.face not in FACE_INDEX:
            raise InvalidMoveError(f"Unknown face {self.face!r}; expected one of {''.join(FACE_ORDER)}")
        if not _is_int(self.direction) or self.direction not in DIRECTIONS:
            raise InvalidMoveError(f"Direction must be +1 (CW) or -1 (CCW), got {self.direction!r}")
        if not _is_int(self.magnitude) or self.magnitude not in MAGNITUDES:
            raise InvalidMoveError(f"Magnitude must be 90 or 180, got {self.magnitude!r}")
        object.__setattr__(self, "direction", int(self.direction))
        object.__setattr__(self, "magnitude", int(self.magnitude))

    @property
    def quarter_turns(self) -> int:
        """Clockwise quarter turns with the same effect (1, 2 or 3)."""
        turns = self.magnitude // 90
        return turns if self.direction == CW else 4 - turns

    @property
    def index(self) -> int:
        """Index of the effect in MOVE_PERMUTATIONS: face * 3 + (quarter_turns - 1)."""
        return FACE_INDEX[self.face] * 3 + self.quarter_turns - 1

    def inverse(self) -> "Move":
        return Move(self.face, -self.direction, self.magnitude)

    def notation(self) -> str:
        if self.magnitude == 180:
            return f"{self.face}2" if self.direction == CW else f"{self.face}2'"
        return self.face if self.direction == CW else f"{self.face}'"

    def to_descriptor(self) -> dict[str, int | str]:
        return {"face": self.face, "direction": self.direction, "magnitude": self.magnitude}

    def __str__(self) -> str:
        return self.notation()


def move_from_index(index: int) -> Move:
    """Canonical Move for a MOVE_PERMUTATIONS row (F, F2, F' per face)."""
    if not isinstance(index, int) or index < 0 or index >= len(MOVE_TABLE):
        raise InvalidMoveError(f"Move index must be an integer in range 0..{len(MOVE_TABLE) - 1}")
    return MOVE_TABLE[index]


def parse_move(token: str) -> Move:
    """Parse one move in standard notation: F, F', F2 (F2' is accepted as a CCW half turn)."""
    if not isinstance(token, str) or not token:
        raise InvalidMoveError(f"Move token must be a non-empty string, got {token!r}")
    face, suffix = token[0], token[1:]
    if face not in FACE_INDEX:
        raise InvalidMoveError(f"Unknown face in move {token!r}")
    if suffix == "":
        return Move(face, CW, 90)
    if suffix == "'":
        return Move(face, CCW, 90)
    if suffix == "2":
        return Move(face, CW, 180)
    if suffix == "2'":
        return Move(face, CCW, 180)
    raise InvalidMoveError(f"Unknown move suffix in {token!r}")


def parse_sequence(text: str) -> list[Move]:
    """Parse a whitespace separated move sequence such as "R U R' U'"."""
    if not isinstance(text, str):
        raise InvalidMoveError("Move sequence must be a string")
    return [parse_move(token) for token in text.split()]


def format_sequence(moves) -> str:
    return " ".join(m.notation() for m in moves)


def _rotation_matrix(axis: str, angle_deg: int) -> np.ndarray:
    """Return integer rotation matrix for +-90 around x/y/z axes."""
    if axis == "x" and angle_deg == +90:
        return np.array([[1, 0, 0], [0, 0, -1], [0, 1, 0]], dtype=np.int8)
    if axis == "x" and angle_deg == -90:
        return np.array([[1, 0, 0], [0, 0, 1], [0, -1, 0]], dtype=np.int8)
    if axis == "y" and angle_deg == +90:
        return np.array([[0, 0, 1], [0, 1, 0], [-1, 0, 0]], dtype=np.int8)
    if axis == "y" and angle_deg == -90:
        return np.array([[0, 0, -1], [0, 1, 0], [1, 0, 0]], dtype=np.int8)
    if axis == "z" and angle_deg == +90:
        return np.array([[0, -1, 0], [1, 0, 0], [0, 0, 1]], dtype=np.int8)
    if axis == "z" and angle_deg == -90:
        return np.array([[0, 1, 0], [-1, 0, 0], [0, 0, 1]], dtype=np.int8)
    raise ValueError(f"Unsupported rotation: axis={axis}, angle={angle_deg}")


def _face_basis(face: str) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    spec = FACE_SPECS[face]
    return (
        np.array(spec["normal"], dtype=np.int8),
        np.array(spec["right"], dtype=np.int8),
        np.array(spec["up"], dtype=np.int8),
    )


def sticker_index(face: str, row: int, col: int) -> int:
    return FACE_INDEX[face] * STICKERS_PER_FACE + row * GRID + col


def _build_sticker_model() -> tuple[list[dict[str, np.ndarray]], dict[tuple[int, int, int], str]]:
    stickers: list[dict[str, np.ndarray]] = []
    normal_to_face: dict[tuple[int, int, int], str] = {}

    for face in FACE_ORDER:
        n, r, up = _face_basis(face)
        normal_to_face[tuple(int(v) for v in n)] = face

        for row in range(GRID):
            for col in range(GRID):
                # Cubie coordinates are in {-1, 0, +1}; row 0 is the "up" edge of the grid.
                cubie = n + (col - 1) * r + (1 - row) * up
                stickers.append(
                    {
                        "idx": sticker_index(face, row, col),
                        "face": face,
                        "row": row,
                        "col": col,
                        "normal": n,
                        "cubie": cubie,
                    }
                )

    stickers.sort(key=lambda s: s["idx"])
    return stickers, normal_to_face


_STICKERS, _NORMAL_TO_FACE = _build_sticker_model()


def _face_row_col_from_cubie(face: str, cubie: np.ndarray) -> tuple[int, int]:
    n, r, up = _face_basis(face)
    if int(np.dot(cubie, n)) != 1:
        raise ValueError(f"Cubie {cubie} is not on face {face}")
    col = int(np.dot(cubie, r)) + 1
    row = 1 - int(np.dot(cubie, up))
    return row, col


def locate_sticker(cubie: tuple[int, int, int], face: str) -> int:
    """Index of the sticker that the cubie at `cubie` shows on `face`."""
    row, col = _face_row_col_from_cubie(face, np.array(cubie, dtype=np.int8))
    return sticker_index(face, row, col)


def _rotated_index(sticker: dict[str, np.ndarray], rot: np.ndarray) -> int:
    new_cubie = rot @ sticker["cubie"]
    new_normal = rot @ sticker["normal"]
    face_new = _NORMAL_TO_FACE[tuple(int(v) for v in new_normal)]
    row_new, col_new = _face_row_col_from_cubie(face_new, new_cubie)
    return sticker_index(face_new, row_new, col_new)


def _generate_face_turn_permutation(face: str) -> np.ndarray:
    """Clockwise quarter turn of `face` as a gather permutation: new = old[perm]."""
    axis, layer_sign = FACE_AXIS_LAYER[face]
    rot = _rotation_matrix(axis, CLOCKWISE_ANGLE_DEG[face])
    axis_idx = _AXIS_IDX[axis]
    perm = np.empty(STATE_SIZE, dtype=np.int32)

    for sticker in _STICKERS:
        old_idx = int(sticker["idx"])
        if int(sticker["cubie"][axis_idx]) == layer_sign:
            new_idx = _rotated_index(sticker, rot)
        else:
            new_idx = old_idx
        perm[new_idx] = old_idx

    return perm


def compose_permutations(first: np.ndarray, second: np.ndarray) -> np.ndarray:
    """Gather permutation equal to applying `first` and then `second`."""
    return first[second]


def _generate_move_permutations() -> np.ndarray:
    perms = np.empty((len(FACE_ORDER) * 3, STATE_SIZE), dtype=np.int32)
    for f, face in enumerate(FACE_ORDER):
        quarter = _generate_face_turn_permutation(face)
        perms[3 * f] = quarter
        perms[3 * f + 1] = compose_permutations(quarter, quarter)
        perms[3 * f + 2] = compose_permutations(perms[3 * f + 1], quarter)
    return perms


def _matrix_key(mat: np.ndarray) -> tuple[int, ...]:
    return tuple(int(v) for v in mat.reshape(-1))


def _generate_global_orientation_matrices() -> list[np.ndarray]:
    gens = [_rotation_matrix("x", +90), _rotation_matrix("y", +90), _rotation_matrix("z", +90)]
    identity = np.eye(3, dtype=np.int8)

    mats: list[np.ndarray] = []
    seen: set[tuple[int, ...]] = set()
    q: deque[np.ndarray] = deque([identity])

    while q:
        mat = q.popleft()
        key = _matrix_key(mat)
        if key in seen:
            continue
        seen.add(key)
        mats.append(mat)
        for g in gens:
            q.append(g @ mat)

    if len(mats) != 24:
        raise RuntimeError(f"Expected 24 orientation matrices, got {len(mats)}")
    return mats


def _generate_orientation_permutations() -> np.ndarray:
    mats = _generate_global_orientation_matrices()
    perms = np.empty((len(mats), STATE_SIZE), dtype=np.int32)

    for i, mat in enumerate(mats):
        perm = np.empty(STATE_SIZE, dtype=np.int32)
        for sticker in _STICKERS:
            perm[_rotated_index(sticker, mat)] = int(sticker["idx"])
        perms[i] = perm

    return perms


def solved_state() -> np.ndarray:
    """Return the canonical solved flat state of length 54."""
    return np.repeat(np.arange(N_FACES, dtype=np.int8), STICKERS_PER_FACE)


# Row i: face FACE_ORDER[i // 3] turned by (i % 3 + 1) clockwise quarter turns.
MOVE_PERMUTATIONS = _generate_move_permutations()
MOVE_PERMUTATIONS.setflags(write=False)
ORIENTATION_PERMUTATIONS = _generate_orientation_permutations()
ORIENTATION_PERMUTATIONS.setflags(write=False)

MOVE_TABLE = tuple(
    Move(face, CW, 90) if k == 0 else Move(face, CW, 180) if k == 1 else Move(face, CCW, 90)
    for face in FACE_ORDER
    for k in range(3)
)
