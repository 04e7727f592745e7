"""State validation and codec helpers."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from .actions import COLOR_ALPHABET, COLOR_INDEX, FACE_INDEX, FACE_ORDER, N_FACES, STATE_SIZE, STICKERS_PER_FACE
from .errors import InvalidColorCountError, MalformedInputError

_SYMBOL_LOOKUP = np.full(256, -1, dtype=np.int16)
for _symbol, _color in COLOR_INDEX.items():
    _SYMBOL_LOOKUP[ord(_symbol)] = _color


def _validate_color_ids(arr: np.ndarray) -> np.ndarray:
    arr = np.asarray(arr, dtype=np.int16).reshape(-1)
    if arr.size != STATE_SIZE:
        raise MalformedInputError(f"State must have {STATE_SIZE} stickers, got {arr.size}")

    if np.any(arr < 0) or np.any(arr >= N_FACES):
        raise MalformedInputError("State contains invalid color IDs; allowed values are 0..5")

    counts = np.bincount(arr, minlength=N_FACES)
    if not np.all(counts == STICKERS_PER_FACE):
        detail = ", ".join(f"{COLOR_ALPHABET[c]}={int(n)}" for c, n in enumerate(counts))
        raise InvalidColorCountError(
            f"Invalid sticker counts; each color must appear exactly {STICKERS_PER_FACE} times ({detail})"
        )

    return arr.astype(np.int8, copy=True)


def validate_state(state: Sequence[int] | np.ndarray) -> np.ndarray:
    """Validate flat color IDs and return a private int8 copy (length 54)."""
    arr = np.asarray(state)
    if arr.dtype.kind not in "iu":
        raise MalformedInputError(f"Color IDs must be integers, got dtype {arr.dtype}")
    if arr.ndim == 2 and arr.shape == (N_FACES, STICKERS_PER_FACE):
        arr = arr.reshape(-1)
    if arr.ndim != 1:
        raise MalformedInputError(
            f"State must be flat color IDs of length {STATE_SIZE} or shape ({N_FACES}, {STICKERS_PER_FACE})"
        )
    return _validate_color_ids(arr)


def _check_symbols(serialized: str | Sequence[str]) -> str:
    """Return the 54 symbols as one string; counts are not checked."""
    if not isinstance(serialized, str):
        if not isinstance(serialized, Sequence) or not all(
            isinstance(s, str) and len(s) == 1 for s in serialized
        ):
            raise MalformedInputError("Serialized state must be a string or a sequence of 1-character strings")
        serialized = "".join(serialized)

    if len(serialized) != STATE_SIZE:
        raise MalformedInputError(f"Serialized state must have {STATE_SIZE} symbols, got {len(serialized)}")

    for pos, symbol in enumerate(serialized):
        if symbol not in COLOR_INDEX:
            raise MalformedInputError(
                f"Unknown symbol {symbol!r} at position {pos}; allowed symbols are {COLOR_ALPHABET}"
            )
    return serialized


def decode_string(serialized: str | Sequence[str]) -> np.ndarray:
    """Decode 54 color symbols (face-major, row-major, order U F R B L D) into color IDs."""
    serialized = _check_symbols(serialized)
    codes = np.frombuffer(serialized.encode("ascii"), dtype=np.uint8)
    return _validate_color_ids(_SYMBOL_LOOKUP[codes])


def paint_sticker(serialized: str | Sequence[str], face: str, index: int, color: str) -> str:
    """Return `serialized` with sticker `index` (0..8, row-major) of `face` set to `color`.

    Color counts are not checked, so a net can be painted one sticker at a
    time; decode the finished string to validate it.
    """
    text = _check_symbols(serialized)
    if not isinstance(face, str) or face not in FACE_INDEX:
        raise MalformedInputError(f"Unknown face {face!r}; expected one of {''.join(FACE_ORDER)}")
    if isinstance(index, bool) or not isinstance(index, (int, np.integer)) or not 0 <= index < STICKERS_PER_FACE:
        raise MalformedInputError(f"Sticker index must be an integer in range 0..{STICKERS_PER_FACE - 1}, got {index!r}")
    if not isinstance(color, str) or color not in COLOR_INDEX:
        raise MalformedInputError(f"Unknown color {color!r}; allowed symbols are {COLOR_ALPHABET}")
    pos = FACE_INDEX[face] * STICKERS_PER_FACE + int(index)
    return text[:pos] + color + text[pos + 1 :]


def encode_string(state: Sequence[int] | np.ndarray) -> str:
    colors = validate_state(state)
    return "".join(COLOR_ALPHABET[int(c)] for c in colors)


def flat_to_faces(state: Sequence[int] | np.ndarray) -> np.ndarray:
    arr = validate_state(state)
    return arr.reshape(N_FACES, STICKERS_PER_FACE)


def faces_to_flat(faces: np.ndarray) -> np.ndarray:
    arr = np.asarray(faces, dtype=np.int16)
    if arr.shape != (N_FACES, STICKERS_PER_FACE):
        raise MalformedInputError(
            f"Faces array must have shape ({N_FACES}, {STICKERS_PER_FACE}), got {arr.shape}"
        )
    return validate_state(arr.reshape(-1))
