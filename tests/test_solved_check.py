import unittest

from rubik_core.actions import ORIENTATION_PERMUTATIONS, Move, solved_state
from rubik_core.cube import CubeState
from rubik_core.solved_check import is_solved_canonical, is_solved_orientation_invariant


class TestSolvedCheck(unittest.TestCase):
    def test_solved_state_is_true(self):
        state = solved_state()
        self.assertTrue(is_solved_canonical(state))
        self.assertTrue(is_solved_orientation_invariant(state))

    def test_global_rotation_of_solved(self):
        state = solved_state()
        rotated = None
        for perm in ORIENTATION_PERMUTATIONS:
            candidate = state[perm]
            if not (candidate == state).all():
                rotated = candidate
                break

        self.assertIsNotNone(rotated)
        self.assertTrue(is_solved_orientation_invariant(rotated))
        self.assertFalse(is_solved_canonical(rotated))
        self.assertFalse(CubeState(rotated).is_solved())
        self.assertTrue(CubeState(rotated).is_solved_up_to_rotation())

    def test_orientation_permutations_are_distinct(self):
        keys = {tuple(p.tolist()) for p in ORIENTATION_PERMUTATIONS}
        self.assertEqual(len(keys), 24)

    def test_corrupted_state_is_false(self):
        state = solved_state().copy()
        state[0], state[9] = state[9], state[0]
        self.assertFalse(is_solved_orientation_invariant(state))
        self.assertFalse(is_solved_canonical(state))

    def test_turned_state_is_not_solved(self):
        state = CubeState.solved().apply(Move("L"))
        self.assertFalse(state.is_solved())
        self.assertFalse(state.is_solved_up_to_rotation())


if __name__ == "__main__":
    unittest.main()
