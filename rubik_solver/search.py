"""Solver contract and two-phase IDA* implementation."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from rubik_core.actions import move_from_index
from rubik_core.cube import CubeState
from rubik_core.errors import StateValidationError

from .config import SolverConfig
from .coords import N_SLICE_COMBO, N_SLICE_PERM, SLICE_COMBO_OF_SORTED, SOLVED_SLICE_COMBO
from .cubie import CubieCube
from .tables import PHASE2_MOVES, SolverTables, get_tables
from .types import Solution

_OPPOSITE = (5, 3, 4, 1, 2, 0)  # U F R B L D -> D B L F R U
_PHASE2_SET = frozenset(PHASE2_MOVES)
_CANCEL_CHECK_INTERVAL = 2048


class SolverError(RuntimeError):
    """The search could not produce a solution."""


class SolverCancelledError(SolverError):
    """A cancellation event was set while the search was running."""


class SolverTimeoutError(SolverError, TimeoutError):
    """The caller-level time limit expired."""


class Solver(ABC):
    """A solve() returns moves that take `state` to CubeState.solved().

    Implementations raise UnsolvableStateError for states that face turns cannot
    solve and must be deterministic for a given input.
    """

    @abstractmethod
    def solve(self, state: CubeState, cancel_event: threading.Event | None = None) -> Solution:
        raise NotImplementedError


def merge_moves(moves: list[int]) -> list[int]:
    """Fold runs of turns on the same face (R R2 -> R'), dropping turns that cancel out."""
    out: list[int] = []
    for m in moves:
        if out and out[-1] // 3 == m // 3:
            face = m // 3
            turns = (out[-1] % 3 + 1 + m % 3 + 1) % 4
            out.pop()
            if turns:
                out.append(face * 3 + turns - 1)
        else:
            out.append(m)
    return out


class _Search:
    """State of one solve() call."""

    def __init__(self, cube: CubieCube, tables: SolverTables, config: SolverConfig, cancel_event):
        self.cube = cube
        self.t = tables.search
        self.max_length = config.max_length
        self.phase2_max_depth = config.phase2_max_depth
        self.cancel_event = cancel_event
        self.path: list[int] = []
        self.phase1_length = 0
        self.nodes = 0

    def _tick(self) -> None:
        self.nodes += 1
        if self.cancel_event is not None and self.nodes % _CANCEL_CHECK_INTERVAL == 0:
            if self.cancel_event.is_set():
                raise SolverCancelledError(f"Search cancelled after {self.nodes} nodes")

    def run(self) -> list[int]:
        t = self.t
        twist, flip = self.cube.twist(), self.cube.flip()
        combo = self._combo()
        h = max(
            t.twist_slice_prune[twist * N_SLICE_COMBO + combo],
            t.flip_slice_prune[flip * N_SLICE_COMBO + combo],
        )
        for depth in range(h, self.max_length + 1):
            if self._phase1(twist, flip, combo, depth, -1):
                return self.path
        raise SolverError(f"No solution with at most {self.max_length} moves")

    def _combo(self) -> int:
        return int(SLICE_COMBO_OF_SORTED[self.cube.slice_sorted()])

    def _phase1(self, twist: int, flip: int, combo: int, depth: int, last_face: int) -> bool:
        self._tick()
        t = self.t
        if depth == 0:
            if twist == 0 and flip == 0 and combo == SOLVED_SLICE_COMBO:
                # A phase-2 move at the end means a shorter phase 1 exists.
                if not self.path or self.path[-1] not in _PHASE2_SET:
                    return self._phase2_start()
            return False
        if (
            t.twist_slice_prune[twist * N_SLICE_COMBO + combo] > depth
            or t.flip_slice_prune[flip * N_SLICE_COMBO + combo] > depth
        ):
            return False

        twist_row, flip_row, combo_row = t.twist_move[twist], t.flip_move[flip], t.slice_combo_move[combo]
        for m in range(18):
            face = m // 3
            if last_face >= 0 and (face == last_face or (face == _OPPOSITE[last_face] and face < last_face)):
                continue
            self.path.append(m)
            if self._phase1(twist_row[m], flip_row[m], combo_row[m], depth - 1, face):
                return True
            self.path.pop()
        return False

    def _phase2_start(self) -> bool:
        cube = self.cube.copy().apply_moves(self.path)
        corners, ud_edges, slice_perm = cube.corners(), cube.ud_edges(), cube.slice_perm()
        t = self.t
        h = max(
            t.corners_slice_prune[corners * N_SLICE_PERM + slice_perm],
            t.ud_edges_slice_prune[ud_edges * N_SLICE_PERM + slice_perm],
        )
        self.phase1_length = len(self.path)
        limit = min(self.max_length - self.phase1_length, self.phase2_max_depth)
        for depth in range(h, limit + 1):
            if self._phase2(corners, ud_edges, slice_perm, depth, -1):
                return True
        return False

    def _phase2(self, corners: int, ud_edges: int, slice_perm: int, depth: int, last_face: int) -> bool:
        self._tick()
        if depth == 0:
            return corners == 0 and ud_edges == 0 and slice_perm == 0
        t = self.t
        if (
            t.corners_slice_prune[corners * N_SLICE_PERM + slice_perm] > depth
            or t.ud_edges_slice_prune[ud_edges * N_SLICE_PERM + slice_perm] > depth
        ):
            return False

        corners_row, ud_row, slice_row = t.corners_move[corners], t.ud_edges_move[ud_edges], t.slice_perm_move[slice_perm]
        for k, m in enumerate(PHASE2_MOVES):
            face = m // 3
            if last_face >= 0 and (face == last_face or (face == _OPPOSITE[last_face] and face < last_face)):
                continue
            self.path.append(m)
            if self._phase2(corners_row[k], ud_row[k], slice_row[k], depth - 1, face):
                return True
            self.path.pop()
        return False


class TwoPhaseSolver(Solver):
    """Kociemba-style two-phase search.

    Phase 1 brings the cube into <U, D, R2, L2, F2, B2> (no twisted corners, no
    flipped edges, middle-layer edges in the middle layer); phase 2 solves it
    with those moves only. Solutions have at most ``config.max_length`` moves.
    """

    def __init__(self, config: SolverConfig | None = None, tables: SolverTables | None = None):
        self.config = config or SolverConfig()
        self._tables = tables

    @property
    def tables(self) -> SolverTables:
        if self._tables is None:
            self._tables = get_tables(cache_dir=self.config.cache_dir, verbose=self.config.verbose)
        return self._tables

    def solve(self, state: CubeState, cancel_event: threading.Event | None = None) -> Solution:
        if not isinstance(state, CubeState):
            raise StateValidationError(f"Expected a CubeState, got {type(state).__name__}")
        t0 = time.perf_counter()
        cube = CubieCube.from_state(state)

        search = _Search(cube, self.tables, self.config, cancel_event)
        indices = merge_moves(search.run())
        moves = tuple(move_from_index(m) for m in indices)

        solution = Solution(
            moves=moves,
            phase1_length=search.phase1_length,
            nodes=search.nodes,
            elapsed_sec=time.perf_counter() - t0,
        )
        if not solution.verify(state):
            raise RuntimeError(f"Two-phase search returned a non-solving sequence: {solution}")
        return solution


def solve(state: CubeState, config: SolverConfig | None = None) -> Solution:
    return TwoPhaseSolver(config).solve(state)


def solve_with_timeout(solver: Solver, state: CubeState, timeout_sec: float) -> Solution:
    """Run solver.solve in a worker thread; cancel it and raise SolverTimeoutError after `timeout_sec`.

    On timeout the call returns at once. A worker that is still busy (for
    example building tables on first use) finishes in the background.
    """
    if timeout_sec <= 0:
        raise ValueError("timeout_sec must be positive")
    cancel_event = threading.Event()
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="solver")
    future = pool.submit(solver.solve, state, cancel_event)
    try:
        result = future.result(timeout=timeout_sec)
    except FutureTimeoutError as exc:
        cancel_event.set()
        pool.shutdown(wait=False, cancel_futures=True)
        raise SolverTimeoutError(f"Solver did not finish within {timeout_sec:.3f}s") from exc
    except BaseException:
        pool.shutdown(wait=False)
        raise
    pool.shutdown(wait=True)
    return result
