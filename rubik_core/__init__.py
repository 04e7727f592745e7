"""3x3 cube state model and move engine."""

from .actions import Move, format_sequence, parse_move, parse_sequence
from .cube import CubeState
from .engine import RubikEngine, apply, apply_sequence, inverse, inverse_sequence
from .errors import (
    InvalidColorCountError,
    InvalidMoveError,
    MalformedInputError,
    StateValidationError,
    UnsolvableStateError,
)

__all__ = [
    "CubeState",
    "InvalidColorCountError",
    "InvalidMoveError",
    "MalformedInputError",
    "Move",
    "RubikEngine",
    "StateValidationError",
    "UnsolvableStateError",
    "apply",
    "apply_sequence",
    "format_sequence",
    "inverse",
    "inverse_sequence",
    "parse_move",
    "parse_sequence",
]
