"""Two-phase solver for the 3x3 cube model."""

from rubik_core.errors import UnsolvableStateError

from .config import SolverConfig, load_config
from .cubie import CubieCube, verify_reachable
from .search import (
    Solver,
    SolverCancelledError,
    SolverError,
    SolverTimeoutError,
    TwoPhaseSolver,
    solve,
    solve_with_timeout,
)
from .types import Solution

__all__ = [
    "CubieCube",
    "Solution",
    "Solver",
    "SolverCancelledError",
    "SolverConfig",
    "SolverError",
    "SolverTimeoutError",
    "TwoPhaseSolver",
    "UnsolvableStateError",
    "load_config",
    "solve",
    "solve_with_timeout",
    "verify_reachable",
]
