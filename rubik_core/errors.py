"""Error types shared by the cube model and the solver."""

from __future__ import annotations


class StateValidationError(ValueError):
    """Raised when an input state or move is invalid."""


class MalformedInputError(StateValidationError):
    """Serialized input has the wrong type, the wrong length or an unknown symbol."""


class InvalidMoveError(MalformedInputError):
    """Move value or notation outside the legal move set."""


class InvalidColorCountError(StateValidationError):
    """Input parses but some color does not appear exactly 9 times."""


class UnsolvableStateError(StateValidationError):
    """Well-formed state that no sequence of face turns can reach from solved."""
