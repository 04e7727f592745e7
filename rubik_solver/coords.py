"""Coordinate encodings used by the two-phase search."""

from __future__ import annotations

from itertools import combinations, permutations, product
from math import factorial

import numpy as np

N_CORNERS = 8
N_EDGES = 12
SLICE_EDGES = (8, 9, 10, 11)  # FR, FL, BL, BR

N_TWIST = 3 ** (N_CORNERS - 1)
N_FLIP = 2 ** (N_EDGES - 1)
N_SLICE_SORTED = 12 * 11 * 10 * 9
N_SLICE_COMBO = 495
N_CORNERS_PERM = factorial(8)
N_UD_EDGES = factorial(8)
N_SLICE_PERM = factorial(4)

_FACT = [factorial(i) for i in range(13)]
_POW3 = 3 ** np.arange(N_CORNERS - 2, -1, -1, dtype=np.int64)
_POW2 = 2 ** np.arange(N_EDGES - 2, -1, -1, dtype=np.int64)
_BASE12 = 12 ** np.arange(3, -1, -1, dtype=np.int64)


def perm_rank(perm) -> int:
    """Lexicographic rank of a permutation of 0..n-1."""
    n = len(perm)
    rank = 0
    for i in range(n - 1):
        smaller = 0
        for j in range(i + 1, n):
            if perm[j] < perm[i]:
                smaller += 1
        rank += smaller * _FACT[n - 1 - i]
    return rank


def perm_ranks(perms: np.ndarray) -> np.ndarray:
    """Vectorised perm_rank over the rows of a 2-D array."""
    perms = np.asarray(perms)
    n = perms.shape[1]
    ranks = np.zeros(perms.shape[0], dtype=np.int64)
    for i in range(n - 1):
        smaller = (perms[:, i + 1 :] < perms[:, i : i + 1]).sum(axis=1)
        ranks += smaller * _FACT[n - 1 - i]
    return ranks


def all_permutations(n: int) -> np.ndarray:
    """All permutations of 0..n-1; row k has lexicographic rank k."""
    return np.array(list(permutations(range(n))), dtype=np.int8)


def all_orientations(n: int, base: int) -> np.ndarray:
    """All orientation vectors with a fixed sum; row k encodes to k."""
    free = np.array(list(product(range(base), repeat=n - 1)), dtype=np.int8)
    last = (-free.sum(axis=1)) % base
    return np.concatenate([free, last[:, None].astype(np.int8)], axis=1)


def twist_of(co) -> int:
    value = 0
    for c in co[: N_CORNERS - 1]:
        value = 3 * value + c
    return value


def twists_of(co: np.ndarray) -> np.ndarray:
    return co[:, : N_CORNERS - 1].astype(np.int64) @ _POW3


def flip_of(eo) -> int:
    value = 0
    for e in eo[: N_EDGES - 1]:
        value = 2 * value + e
    return value


def flips_of(eo: np.ndarray) -> np.ndarray:
    return eo[:, : N_EDGES - 1].astype(np.int64) @ _POW2


# Slice coordinate: positions occupied by the edges FR, FL, BL, BR, in that order.
SLICE_POSITIONS = np.array(list(permutations(range(N_EDGES), 4)), dtype=np.int8)
_SLICE_KEY_TO_SORTED = np.full(12**4, -1, dtype=np.int32)
_SLICE_KEY_TO_SORTED[SLICE_POSITIONS.astype(np.int64) @ _BASE12] = np.arange(N_SLICE_SORTED, dtype=np.int32)

_COMBOS = np.array(list(combinations(range(N_EDGES), 4)), dtype=np.int8)
_COMBO_KEY_TO_INDEX = np.full(12**4, -1, dtype=np.int32)
_COMBO_KEY_TO_INDEX[_COMBOS.astype(np.int64) @ _BASE12] = np.arange(N_SLICE_COMBO, dtype=np.int32)

# Unordered slice coordinate for every ordered one.
SLICE_COMBO_OF_SORTED = _COMBO_KEY_TO_INDEX[np.sort(SLICE_POSITIONS, axis=1).astype(np.int64) @ _BASE12]

_SLICE_PERMS = all_permutations(4)
SORTED_OF_SLICE_PERM = _SLICE_KEY_TO_SORTED[(_SLICE_PERMS.astype(np.int64) + 8) @ _BASE12]
SLICE_PERM_OF_SORTED = np.full(N_SLICE_SORTED, -1, dtype=np.int32)
SLICE_PERM_OF_SORTED[SORTED_OF_SLICE_PERM] = np.arange(N_SLICE_PERM, dtype=np.int32)


def slice_sorted_of_positions(positions) -> int:
    key = 0
    for p in positions:
        key = 12 * key + int(p)
    return int(_SLICE_KEY_TO_SORTED[key])


def slice_sorted_of_positions_array(positions: np.ndarray) -> np.ndarray:
    return _SLICE_KEY_TO_SORTED[positions.astype(np.int64) @ _BASE12]


SOLVED_SLICE_SORTED = slice_sorted_of_positions(SLICE_EDGES)
SOLVED_SLICE_COMBO = int(SLICE_COMBO_OF_SORTED[SOLVED_SLICE_SORTED])
