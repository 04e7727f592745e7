"""Cubie-level cube model and reachability checks.

Corner and edge slots are named after the faces they touch. The sticker
triple of every corner slot starts on the U/D face and runs clockwise seen
from outside the corner; edge slots start on the U/D face, or on F/B for the
four middle-layer edges. Orientation counts how far the U/D (resp. first)
color of the piece sits from that first sticker. All tables are derived from
the sticker geometry of ``rubik_core.actions`` so both models agree on every
move.
"""

from __future__ import annotations

import numpy as np

from rubik_core.actions import FACE_INDEX, FACE_ORDER, FACE_SPECS, MOVE_PERMUTATIONS, locate_sticker, solved_state
from rubik_core.cube import CubeState
from rubik_core.errors import UnsolvableStateError

from .coords import (
    SLICE_EDGES,
    SLICE_PERM_OF_SORTED,
    flip_of,
    perm_rank,
    slice_sorted_of_positions,
    twist_of,
)

CORNER_NAMES = ("URF", "UFL", "ULB", "UBR", "DFR", "DLF", "DBL", "DRB")
EDGE_NAMES = ("UR", "UF", "UL", "UB", "DR", "DF", "DL", "DB", "FR", "FL", "BL", "BR")


def _normal(face: str) -> np.ndarray:
    return np.array(FACE_SPECS[face]["normal"], dtype=np.int64)


def _slot_position(name: str) -> tuple[int, int, int]:
    pos = sum(_normal(face) for face in name)
    return tuple(int(v) for v in pos)


def _clockwise(faces: str) -> str:
    a, b, c = (_normal(f) for f in faces)
    # Right-handed normal triples run counter-clockwise seen from outside.
    if int(np.dot(np.cross(a, b), c)) == -1:
        return faces
    return faces[0] + faces[2] + faces[1]


_CORNER_ORDER = tuple(_clockwise(name) for name in CORNER_NAMES)

CORNER_FACELETS = tuple(
    tuple(locate_sticker(_slot_position(name), face) for face in faces)
    for name, faces in zip(CORNER_NAMES, _CORNER_ORDER)
)
EDGE_FACELETS = tuple(tuple(locate_sticker(_slot_position(name), face) for face in name) for name in EDGE_NAMES)

# Color ids equal face indices on the solved cube.
CORNER_COLORS = tuple(tuple(FACE_INDEX[f] for f in faces) for faces in _CORNER_ORDER)
EDGE_COLORS = tuple(tuple(FACE_INDEX[f] for f in name) for name in EDGE_NAMES)

CENTER_FACELETS = tuple(FACE_INDEX[face] * 9 + 4 for face in FACE_ORDER)
_UD_COLORS = (FACE_INDEX["U"], FACE_INDEX["D"])


def _parity(perm) -> int:
    """0 for even permutations, 1 for odd."""
    seen = [False] * len(perm)
    parity = 0
    for start in range(len(perm)):
        if seen[start]:
            continue
        length = 0
        i = start
        while not seen[i]:
            seen[i] = True
            i = perm[i]
            length += 1
        parity ^= (length - 1) & 1
    return parity


class CubieCube:
    """Corner/edge permutation and orientation; cp[i] is the piece sitting in slot i."""

    __slots__ = ("cp", "co", "ep", "eo")

    def __init__(self, cp=None, co=None, ep=None, eo=None):
        self.cp = list(range(8)) if cp is None else list(cp)
        self.co = [0] * 8 if co is None else list(co)
        self.ep = list(range(12)) if ep is None else list(ep)
        self.eo = [0] * 12 if eo is None else list(eo)

    @classmethod
    def from_state(cls, state: CubeState) -> "CubieCube":
        return cls.from_colors(state.stickers)

    @classmethod
    def from_colors(cls, colors) -> "CubieCube":
        """Read pieces off a 54-sticker color array and check that the result is reachable."""
        colors = [int(c) for c in colors]
        for face, idx in zip(FACE_ORDER, CENTER_FACELETS):
            if colors[idx] != FACE_INDEX[face]:
                raise UnsolvableStateError(
                    f"Center of face {face} has color id {colors[idx]}; face turns never move centers"
                )

        cube = cls()
        for i, facelets in enumerate(CORNER_FACELETS):
            found = [colors[f] for f in facelets]
            for ori in range(3):
                if found[ori] in _UD_COLORS:
                    break
            else:
                raise UnsolvableStateError(f"Corner slot {CORNER_NAMES[i]} has no U/D colored sticker")
            rotated = (found[ori], found[(ori + 1) % 3], found[(ori + 2) % 3])
            try:
                cube.cp[i] = CORNER_COLORS.index(rotated)
            except ValueError:
                raise UnsolvableStateError(
                    f"Corner slot {CORNER_NAMES[i]} holds an impossible color combination {found}"
                ) from None
            cube.co[i] = ori

        for i, (a, b) in enumerate(EDGE_FACELETS):
            pair = (colors[a], colors[b])
            if pair in EDGE_COLORS:
                cube.ep[i] = EDGE_COLORS.index(pair)
                cube.eo[i] = 0
            elif pair[::-1] in EDGE_COLORS:
                cube.ep[i] = EDGE_COLORS.index(pair[::-1])
                cube.eo[i] = 1
            else:
                raise UnsolvableStateError(f"Edge slot {EDGE_NAMES[i]} holds an impossible color pair {pair}")

        cube.verify()
        return cube

    def to_colors(self) -> np.ndarray:
        colors = solved_state()
        for i, facelets in enumerate(CORNER_FACELETS):
            piece, ori = self.cp[i], self.co[i]
            for k in range(3):
                colors[facelets[(k + ori) % 3]] = CORNER_COLORS[piece][k]
        for i, facelets in enumerate(EDGE_FACELETS):
            piece, ori = self.ep[i], self.eo[i]
            for k in range(2):
                colors[facelets[(k + ori) % 2]] = EDGE_COLORS[piece][k]
        return colors

    def to_state(self) -> CubeState:
        return CubeState(self.to_colors())

    def verify(self) -> None:
        """Raise UnsolvableStateError unless the pieces form a reachable cube."""
        if sorted(self.cp) != list(range(8)):
            missing = sorted(set(range(8)) - set(self.cp))
            raise UnsolvableStateError(f"Duplicated corner pieces; missing {[CORNER_NAMES[c] for c in missing]}")
        if sorted(self.ep) != list(range(12)):
            missing = sorted(set(range(12)) - set(self.ep))
            raise UnsolvableStateError(f"Duplicated edge pieces; missing {[EDGE_NAMES[e] for e in missing]}")
        if sum(self.co) % 3 != 0:
            raise UnsolvableStateError("Corner twist error: one or more corners are twisted in place")
        if sum(self.eo) % 2 != 0:
            raise UnsolvableStateError("Edge flip error: a single edge is flipped")
        if _parity(self.cp) != _parity(self.ep):
            raise UnsolvableStateError("Permutation parity error: two pieces are swapped")

    def copy(self) -> "CubieCube":
        return CubieCube(self.cp, self.co, self.ep, self.eo)

    def multiply(self, other: "CubieCube") -> "CubieCube":
        """Apply `other` after self, in place."""
        cp, co, ep, eo = self.cp, self.co, self.ep, self.eo
        self.cp = [cp[other.cp[i]] for i in range(8)]
        self.co = [(co[other.cp[i]] + other.co[i]) % 3 for i in range(8)]
        self.ep = [ep[other.ep[i]] for i in range(12)]
        self.eo = [(eo[other.ep[i]] + other.eo[i]) % 2 for i in range(12)]
        return self

    def apply_moves(self, move_indices) -> "CubieCube":
        for m in move_indices:
            self.multiply(MOVE_CUBES[m])
        return self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CubieCube):
            return NotImplemented
        return (self.cp, self.co, self.ep, self.eo) == (other.cp, other.co, other.ep, other.eo)

    __hash__ = None

    def __repr__(self) -> str:
        return f"CubieCube(cp={self.cp}, co={self.co}, ep={self.ep}, eo={self.eo})"

    # Coordinates

    def twist(self) -> int:
        return twist_of(self.co)

    def flip(self) -> int:
        return flip_of(self.eo)

    def slice_sorted(self) -> int:
        positions = [0] * 4
        for slot, piece in enumerate(self.ep):
            if piece >= SLICE_EDGES[0]:
                positions[piece - SLICE_EDGES[0]] = slot
        return slice_sorted_of_positions(positions)

    def corners(self) -> int:
        return perm_rank(self.cp)

    def ud_edges(self) -> int:
        """Rank of the U/D edges; only meaningful once they fill slots 0..7."""
        return perm_rank(self.ep[:8])

    def slice_perm(self) -> int:
        """Order of the slice edges; -1 unless they fill slots 8..11."""
        return int(SLICE_PERM_OF_SORTED[self.slice_sorted()])


def _move_cube(index: int) -> CubieCube:
    cube = CubieCube()
    colors = solved_state()[MOVE_PERMUTATIONS[index]]
    # Unchecked read: the move images are reachable by definition.
    for i, facelets in enumerate(CORNER_FACELETS):
        found = [int(colors[f]) for f in facelets]
        ori = next(k for k in range(3) if found[k] in _UD_COLORS)
        cube.cp[i] = CORNER_COLORS.index((found[ori], found[(ori + 1) % 3], found[(ori + 2) % 3]))
        cube.co[i] = ori
    for i, (a, b) in enumerate(EDGE_FACELETS):
        pair = (int(colors[a]), int(colors[b]))
        if pair in EDGE_COLORS:
            cube.ep[i], cube.eo[i] = EDGE_COLORS.index(pair), 0
        else:
            cube.ep[i], cube.eo[i] = EDGE_COLORS.index(pair[::-1]), 1
    return cube


MOVE_CUBES = tuple(_move_cube(i) for i in range(len(MOVE_PERMUTATIONS)))


def verify_reachable(state: CubeState) -> None:
    """Raise UnsolvableStateError if face turns cannot bring `state` back to solved."""
    CubieCube.from_state(state)
