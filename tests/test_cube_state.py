import unittest

import numpy as np

from rubik_core.actions import COLOR_ALPHABET, Move
from rubik_core.cube import CubeState
from rubik_core.engine import RubikEngine
from rubik_core.errors import InvalidColorCountError, MalformedInputError, StateValidationError
from rubik_core.state_codec import decode_string, encode_string, faces_to_flat, flat_to_faces, paint_sticker

SOLVED = "W" * 9 + "G" * 9 + "R" * 9 + "B" * 9 + "O" * 9 + "Y" * 9


class TestCubeState(unittest.TestCase):
    def test_solved_serialization(self):
        state = CubeState.solved()
        self.assertEqual(state.to_serialized(), SOLVED)
        self.assertTrue(state.is_solved())
        self.assertEqual(state.color_counts(), {c: 9 for c in COLOR_ALPHABET})

    def test_round_trip_for_scrambles(self):
        for seed in range(5):
            state, _ = RubikEngine().scramble(steps=30, seed=seed)
            text = state.to_serialized()
            self.assertEqual(CubeState.from_serialized(text), state)
            self.assertEqual(CubeState.from_serialized(text).to_serialized(), text)

    def test_position_maps_to_face_and_sticker(self):
        text = list(SOLVED)
        text[13], text[4] = "W", "G"  # swap the U and F centers
        state = CubeState.from_serialized("".join(text))
        self.assertEqual(int(state.faces()[0, 4]), 1)
        self.assertEqual(int(state.face("F")[1, 1]), 0)

    def test_length_53_is_malformed(self):
        with self.assertRaises(MalformedInputError):
            CubeState.from_serialized(SOLVED[:53])

    def test_length_55_is_malformed(self):
        with self.assertRaises(MalformedInputError):
            CubeState.from_serialized(SOLVED + "W")

    def test_unknown_symbol_is_malformed(self):
        with self.assertRaises(MalformedInputError) as ctx:
            CubeState.from_serialized("X" + SOLVED[1:])
        self.assertIn("position 0", str(ctx.exception))
        with self.assertRaises(MalformedInputError):
            CubeState.from_serialized(SOLVED.lower())
        with self.assertRaises(MalformedInputError):
            CubeState.from_serialized("é" + SOLVED[1:])

    def test_non_string_is_malformed(self):
        with self.assertRaises(MalformedInputError):
            CubeState.from_serialized(None)
        with self.assertRaises(MalformedInputError):
            CubeState.from_serialized(list(range(54)))

    def test_sequence_of_symbols_is_accepted(self):
        self.assertEqual(CubeState.from_serialized(list(SOLVED)), CubeState.solved())

    def test_color_count_violation(self):
        with self.assertRaises(InvalidColorCountError):
            CubeState.from_serialized("W" * 54)
        skewed = "W" * 10 + SOLVED[10:53] + "G"
        with self.assertRaises(InvalidColorCountError) as ctx:
            CubeState.from_serialized(skewed)
        self.assertIn("W=10", str(ctx.exception))

    def test_errors_share_base_class(self):
        for bad in (SOLVED[:53], "W" * 54):
            with self.assertRaises(StateValidationError):
                CubeState.from_serialized(bad)
            with self.assertRaises(ValueError):
                CubeState.from_serialized(bad)

    def test_equality_is_structural(self):
        a = CubeState.solved().apply(Move("R"))
        b = CubeState.from_serialized(a.to_serialized())
        self.assertEqual(a, b)
        self.assertTrue(a.equals(b))
        self.assertNotEqual(a, CubeState.solved())
        self.assertFalse(a.equals("not a cube"))

    def test_copy_does_not_alias(self):
        a = CubeState.solved()
        b = a.copy()
        b.apply(Move("U"))
        self.assertTrue(a.is_solved())
        stickers = a.stickers
        stickers[0] = 5
        self.assertTrue(a.is_solved())

    def test_constructor_validates_color_ids(self):
        with self.assertRaises(MalformedInputError):
            CubeState([0] * 53)
        with self.assertRaises(MalformedInputError):
            CubeState([7] * 54)
        with self.assertRaises(InvalidColorCountError):
            CubeState([0] * 54)

    def test_str_prints_net(self):
        lines = str(CubeState.solved()).splitlines()
        self.assertEqual(len(lines), 9)
        self.assertEqual(lines[0].strip(), "W W W")
        self.assertEqual(lines[3], "O O O G G G R R R B B B")
        self.assertEqual(lines[8].strip(), "Y Y Y")

    def test_codec_helpers(self):
        colors = decode_string(SOLVED)
        self.assertEqual(encode_string(colors), SOLVED)
        faces = flat_to_faces(colors)
        self.assertEqual(faces.shape, (6, 9))
        self.assertTrue(np.array_equal(faces_to_flat(faces), colors))
        with self.assertRaises(MalformedInputError):
            faces_to_flat(np.zeros((5, 9)))

    def test_painting_stickers_builds_a_state(self):
        text = CubeState.solved().with_sticker("U", 0, "G")
        self.assertEqual(text[0], "G")
        self.assertEqual(text[1:], SOLVED[1:])
        with self.assertRaises(InvalidColorCountError):
            CubeState.from_serialized(text)
        text = paint_sticker(text, "F", 0, "W")
        state = CubeState.from_serialized(text)
        self.assertEqual(int(state.face("U")[0, 0]), 1)
        self.assertEqual(int(state.face("F")[0, 0]), 0)

    def test_painting_rejects_bad_arguments(self):
        for face, index, color in (("X", 0, "W"), ("U", 9, "W"), ("U", -1, "W"), ("U", True, "W"), ("U", 0, "P")):
            with self.assertRaises(MalformedInputError, msg=f"{face} {index} {color}"):
                paint_sticker(SOLVED, face, index, color)
        with self.assertRaises(MalformedInputError):
            paint_sticker(SOLVED[:53], "U", 0, "W")


if __name__ == "__main__":
    unittest.main()
