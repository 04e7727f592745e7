"""Shared dataclasses for the solver."""

from __future__ import annotations

from dataclasses import dataclass, field

from rubik_core.actions import Move, format_sequence, parse_sequence
from rubik_core.cube import CubeState


@dataclass(frozen=True)
class Solution:
    """Ordered face turns; empty means the input was already solved."""

    moves: tuple[Move, ...] = ()
    phase1_length: int = 0
    nodes: int = field(default=0, compare=False)
    elapsed_sec: float = field(default=0.0, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "moves", tuple(self.moves))

    @classmethod
    def from_notation(cls, text: str) -> "Solution":
        return cls(moves=tuple(parse_sequence(text)))

    def __len__(self) -> int:
        return len(self.moves)

    def __iter__(self):
        return iter(self.moves)

    def __str__(self) -> str:
        return format_sequence(self.moves)

    def to_descriptors(self) -> list[dict[str, int | str]]:
        return [m.to_descriptor() for m in self.moves]

    def replay(self, state: CubeState) -> CubeState:
        return state.copy().apply_sequence(self.moves)

    def verify(self, state: CubeState) -> bool:
        return self.replay(state).is_solved()
