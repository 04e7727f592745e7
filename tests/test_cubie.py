import unittest

import numpy as np

from rubik_core.actions import MOVE_TABLE
from rubik_core.cube import CubeState
from rubik_core.engine import random_move_sequence
from rubik_core.errors import UnsolvableStateError
from rubik_solver.cubie import CORNER_FACELETS, EDGE_FACELETS, MOVE_CUBES, CubieCube, verify_reachable


class TestCubieCube(unittest.TestCase):
    def test_facelet_tables_cover_all_non_center_stickers(self):
        used = [f for triple in CORNER_FACELETS for f in triple] + [f for pair in EDGE_FACELETS for f in pair]
        self.assertEqual(len(used), 48)
        self.assertEqual(len(set(used)), 48)
        self.assertFalse({4, 13, 22, 31, 40, 49} & set(used))

    def test_solved_round_trip(self):
        cube = CubieCube.from_state(CubeState.solved())
        self.assertEqual(cube, CubieCube())
        self.assertEqual(cube.to_state(), CubeState.solved())

    def test_multiply_matches_sticker_moves(self):
        rng = np.random.default_rng(7)
        for _ in range(10):
            moves = random_move_sequence(20, rng)
            state = CubeState.solved().apply_sequence(moves)
            cube = CubieCube().apply_moves([m.index for m in moves])
            self.assertEqual(cube.to_state(), state)
            self.assertEqual(CubieCube.from_state(state), cube)

    def test_quarter_turn_orientation_conventions(self):
        for index, move in enumerate(MOVE_TABLE):
            cube = MOVE_CUBES[index]
            if move.face in ("U", "D") or move.magnitude == 180:
                self.assertEqual(cube.co, [0] * 8, msg=str(move))
                self.assertEqual(cube.eo, [0] * 12, msg=str(move))
            if move.face in ("R", "L") and move.magnitude == 90:
                self.assertNotEqual(cube.co, [0] * 8, msg=str(move))
                self.assertEqual(cube.eo, [0] * 12, msg=str(move))
            if move.face in ("F", "B") and move.magnitude == 90:
                self.assertEqual(sum(cube.eo), 4, msg=str(move))

    def test_twisted_corner_is_unsolvable(self):
        state = CubieCube(co=[1, 0, 0, 0, 0, 0, 0, 0]).to_state()
        with self.assertRaises(UnsolvableStateError) as ctx:
            verify_reachable(state)
        self.assertIn("twist", str(ctx.exception))

    def test_flipped_edge_is_unsolvable(self):
        state = CubieCube(eo=[0] * 11 + [1]).to_state()
        with self.assertRaises(UnsolvableStateError) as ctx:
            verify_reachable(state)
        self.assertIn("flip", str(ctx.exception))

    def test_swapped_edges_are_unsolvable(self):
        state = CubieCube(ep=[1, 0] + list(range(2, 12))).to_state()
        with self.assertRaises(UnsolvableStateError) as ctx:
            verify_reachable(state)
        self.assertIn("parity", str(ctx.exception))

    def test_swapped_stickers_are_unsolvable(self):
        text = list(CubeState.solved().to_serialized())
        text[0], text[9] = text[9], text[0]
        state = CubeState.from_serialized("".join(text))
        with self.assertRaises(UnsolvableStateError):
            verify_reachable(state)

    def test_moved_center_is_unsolvable(self):
        text = list(CubeState.solved().to_serialized())
        text[4], text[13] = text[13], text[4]
        with self.assertRaises(UnsolvableStateError) as ctx:
            verify_reachable(CubeState.from_serialized("".join(text)))
        self.assertIn("Center", str(ctx.exception))

    def test_valid_twist_pair_is_reachable(self):
        state = CubieCube(co=[1, 2, 0, 0, 0, 0, 0, 0]).to_state()
        verify_reachable(state)

    def test_coordinates_of_solved(self):
        cube = CubieCube()
        self.assertEqual(cube.twist(), 0)
        self.assertEqual(cube.flip(), 0)
        self.assertEqual(cube.corners(), 0)
        self.assertEqual(cube.ud_edges(), 0)
        self.assertEqual(cube.slice_perm(), 0)


if __name__ == "__main__":
    unittest.main()
