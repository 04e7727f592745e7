import tempfile
import threading
import time
import unittest
from pathlib import Path

import numpy as np

from rubik_core.actions import Move, parse_sequence
from rubik_core.cube import CubeState
from rubik_core.engine import RubikEngine, random_move_sequence
from rubik_core.errors import StateValidationError, UnsolvableStateError
from rubik_solver import (
    CubieCube,
    Solution,
    Solver,
    SolverCancelledError,
    SolverConfig,
    SolverError,
    SolverTimeoutError,
    TwoPhaseSolver,
    solve,
    solve_with_timeout,
)
from rubik_solver.search import merge_moves
from rubik_solver.tables import TABLE_FILE, get_tables


class _BlockingSolver(Solver):
    """Waits for cancellation instead of searching."""

    def __init__(self):
        self.cancelled = False
        self.finished = threading.Event()

    def solve(self, state, cancel_event=None):
        try:
            cancel_event.wait(10.0)
            self.cancelled = cancel_event.is_set()
            raise SolverCancelledError("cancelled")
        finally:
            self.finished.set()


class _SlowStartSolver(Solver):
    """Spends its first seconds on setup that never looks at the cancel event."""

    def __init__(self, setup_sec):
        self.setup_sec = setup_sec
        self.finished = threading.Event()

    def solve(self, state, cancel_event=None):
        time.sleep(self.setup_sec)
        self.finished.set()
        return Solution()


class TestTwoPhaseSolver(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.solver = TwoPhaseSolver(tables=get_tables())

    def test_solved_state_gives_empty_solution(self):
        solution = self.solver.solve(CubeState.solved())
        self.assertEqual(len(solution), 0)
        self.assertEqual(str(solution), "")
        self.assertTrue(solution.verify(CubeState.solved()))

    def test_single_move_is_undone(self):
        state = CubeState.solved().apply(Move("R"))
        solution = self.solver.solve(state)
        self.assertTrue(solution.verify(state))
        self.assertEqual(str(solution), "R'")

    def test_short_sequence(self):
        state = CubeState.solved().apply_sequence("R U R' U'")
        solution = self.solver.solve(state)
        self.assertTrue(solution.verify(state))
        self.assertLessEqual(len(solution), 4)

    def test_random_scrambles_are_solved(self):
        for seed in range(5):
            state, _ = RubikEngine().scramble(steps=25, seed=seed)
            solution = self.solver.solve(state)
            self.assertTrue(solution.replay(state).is_solved(), msg=f"seed={seed}")
            self.assertLessEqual(len(solution), 30)

    def test_solution_never_turns_same_face_twice(self):
        state, _ = RubikEngine().scramble(steps=30, seed=42)
        moves = self.solver.solve(state).moves
        for a, b in zip(moves[:-1], moves[1:]):
            self.assertNotEqual(a.face, b.face)

    def test_solver_is_deterministic(self):
        state, _ = RubikEngine().scramble(steps=25, seed=77)
        self.assertEqual(self.solver.solve(state), self.solver.solve(state.copy()))

    def test_superflip(self):
        state = CubieCube(eo=[1] * 12).to_state()
        solution = self.solver.solve(state)
        self.assertTrue(solution.verify(state))

    def test_module_level_solve(self):
        state = CubeState.solved().apply_sequence("F2 D' L")
        self.assertTrue(solve(state).verify(state))

    def test_input_is_not_mutated(self):
        state = CubeState.solved().apply_sequence("B L2 U'")
        before = state.to_serialized()
        self.solver.solve(state)
        self.assertEqual(state.to_serialized(), before)

    def test_unsolvable_states_are_rejected(self):
        cases = {
            "twist": CubieCube(co=[2] + [0] * 7).to_state(),
            "flip": CubieCube(eo=[1] + [0] * 11).to_state(),
            "parity": CubieCube(cp=[1, 0, 2, 3, 4, 5, 6, 7]).to_state(),
        }
        for name, state in cases.items():
            with self.assertRaises(UnsolvableStateError, msg=name):
                self.solver.solve(state)

        text = list(CubeState.solved().to_serialized())
        text[0], text[9] = text[9], text[0]
        with self.assertRaises(UnsolvableStateError):
            self.solver.solve(CubeState.from_serialized("".join(text)))

    def test_non_cube_input_is_rejected(self):
        with self.assertRaises(StateValidationError):
            self.solver.solve("W" * 54)

    def test_length_bound_too_small_fails(self):
        state = CubieCube(eo=[1] * 12).to_state()
        solver = TwoPhaseSolver(SolverConfig(max_length=4), tables=get_tables())
        with self.assertRaises(SolverError):
            solver.solve(state)

    def test_preset_cancel_event_stops_search(self):
        event = threading.Event()
        event.set()
        with self.assertRaises(SolverCancelledError):
            self.solver.solve(CubieCube(eo=[1] * 12).to_state(), cancel_event=event)

    def test_solve_with_timeout_returns_solution(self):
        state, _ = RubikEngine().scramble(steps=20, seed=5)
        solution = solve_with_timeout(self.solver, state, timeout_sec=120.0)
        self.assertTrue(solution.verify(state))

    def test_solve_with_timeout_raises_and_cancels(self):
        blocking = _BlockingSolver()
        with self.assertRaises(SolverTimeoutError):
            solve_with_timeout(blocking, CubeState.solved(), timeout_sec=0.05)
        self.assertTrue(blocking.finished.wait(5.0))
        self.assertTrue(blocking.cancelled)
        with self.assertRaises(ValueError):
            solve_with_timeout(blocking, CubeState.solved(), timeout_sec=0)

    def test_timeout_does_not_wait_for_busy_worker(self):
        slow = _SlowStartSolver(setup_sec=3.0)
        t0 = time.perf_counter()
        with self.assertRaises(SolverTimeoutError):
            solve_with_timeout(slow, CubeState.solved(), timeout_sec=0.05)
        self.assertLess(time.perf_counter() - t0, 1.5)
        self.assertFalse(slow.finished.is_set())
        self.assertTrue(slow.finished.wait(10.0))

    def test_solvers_with_same_cache_dir_share_tables(self):
        with tempfile.TemporaryDirectory() as td:
            get_tables().save(Path(td) / TABLE_FILE)
            first = TwoPhaseSolver(SolverConfig(cache_dir=td))
            second = TwoPhaseSolver(SolverConfig(cache_dir=td + "/."))
            self.assertIs(first.tables, second.tables)
            self.assertIs(first.tables.search, second.tables.search)
            state = CubeState.solved().apply_sequence("R U")
            self.assertTrue(solve(state, SolverConfig(cache_dir=td)).verify(state))
            self.assertIs(TwoPhaseSolver(SolverConfig(cache_dir=td)).tables, first.tables)


class TestSolution(unittest.TestCase):
    def test_merge_moves(self):
        # R R2 -> R', U U' -> nothing, F F -> F2
        self.assertEqual(merge_moves([6, 7]), [8])
        self.assertEqual(merge_moves([0, 2]), [])
        self.assertEqual(merge_moves([3, 3]), [4])
        self.assertEqual(merge_moves([6, 0, 2, 6]), [7])
        self.assertEqual(merge_moves([6, 15]), [6, 15])

    def test_notation_and_descriptors(self):
        solution = Solution.from_notation("R U2 F'")
        self.assertEqual(len(solution), 3)
        self.assertEqual(str(solution), "R U2 F'")
        self.assertEqual(list(solution), parse_sequence("R U2 F'"))
        descriptors = solution.to_descriptors()
        self.assertEqual(descriptors[0], Move("R").to_descriptor())
        self.assertEqual(len(descriptors), 3)

    def test_replay_inverse_scramble(self):
        rng = np.random.default_rng(3)
        scramble = random_move_sequence(15, rng)
        state = CubeState.solved().apply_sequence(scramble)
        solution = Solution(moves=tuple(m.inverse() for m in reversed(scramble)))
        self.assertTrue(solution.verify(state))
        self.assertFalse(Solution().verify(state))

    def test_equality_ignores_stats(self):
        a = Solution.from_notation("R U")
        b = Solution(moves=a.moves, nodes=99, elapsed_sec=1.5)
        self.assertEqual(a, b)


if __name__ == "__main__":
    unittest.main()
