"""Solved-state checks for the cube model."""

from __future__ import annotations

import numpy as np

from .actions import ORIENTATION_PERMUTATIONS, solved_state
from .state_codec import validate_state

_CANONICAL_SOLVED = solved_state()


def is_solved_canonical(state: list[int] | np.ndarray) -> bool:
    """True iff every face carries its own canonical color."""
    arr = validate_state(state)
    return bool(np.array_equal(arr, _CANONICAL_SOLVED))


def is_solved_orientation_invariant(state: list[int] | np.ndarray) -> bool:
    """True iff some whole-cube rotation maps the state onto the canonical solved cube."""
    oriented = validate_state(state)[ORIENTATION_PERMUTATIONS]
    return bool(np.any(np.all(oriented == _CANONICAL_SOLVED, axis=1)))

