"""Move and pruning tables for the two-phase search."""

from __future__ import annotations

import os
import tempfile
import threading
import zipfile
import zlib
from dataclasses import dataclass, fields
from datetime import datetime
from functools import cached_property
from pathlib import Path

import numpy as np
from tqdm import tqdm

from .coords import (
    N_SLICE_COMBO,
    N_SLICE_PERM,
    SLICE_COMBO_OF_SORTED,
    SLICE_PERM_OF_SORTED,
    SLICE_POSITIONS,
    SOLVED_SLICE_COMBO,
    SORTED_OF_SLICE_PERM,
    all_orientations,
    all_permutations,
    flips_of,
    perm_ranks,
    slice_sorted_of_positions_array,
    twists_of,
)
from .cubie import MOVE_CUBES

N_MOVES = 18
# U*, F2, R2, B2, L2, D*: the moves that keep a cube inside <U, D, R2, L2, F2, B2>.
PHASE2_MOVES = (0, 1, 2, 4, 7, 10, 13, 15, 16, 17)
TABLE_FILE = "two_phase_tables_v1.npz"


def _log(message: str) -> None:
    ts = datetime.now().strftime("%H:%M:%S")
    tqdm.write(f"[{ts}] {message}")


@dataclass(eq=False)
class SolverTables:
    twist_move: np.ndarray  # (2187, 18)
    flip_move: np.ndarray  # (2048, 18)
    slice_combo_move: np.ndarray  # (495, 18)
    corners_move: np.ndarray  # (40320, 10)
    ud_edges_move: np.ndarray  # (40320, 10)
    slice_perm_move: np.ndarray  # (24, 10)
    twist_slice_prune: np.ndarray  # (2187 * 495,)
    flip_slice_prune: np.ndarray  # (2048 * 495,)
    corners_slice_prune: np.ndarray  # (40320 * 24,)
    ud_edges_slice_prune: np.ndarray  # (40320 * 24,)

    EXPECTED_SHAPES = {
        "twist_move": (2187, N_MOVES),
        "flip_move": (2048, N_MOVES),
        "slice_combo_move": (N_SLICE_COMBO, N_MOVES),
        "corners_move": (40320, len(PHASE2_MOVES)),
        "ud_edges_move": (40320, len(PHASE2_MOVES)),
        "slice_perm_move": (N_SLICE_PERM, len(PHASE2_MOVES)),
        "twist_slice_prune": (2187 * N_SLICE_COMBO,),
        "flip_slice_prune": (2048 * N_SLICE_COMBO,),
        "corners_slice_prune": (40320 * N_SLICE_PERM,),
        "ud_edges_slice_prune": (40320 * N_SLICE_PERM,),
    }

    def save(self, path: str | Path) -> Path:
        """Write the tables atomically: readers see either the old file or the complete new one."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as fh:
                np.savez_compressed(fh, **{f.name: getattr(self, f.name) for f in fields(self)})
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise
        return path

    @classmethod
    def load(cls, path: str | Path) -> "SolverTables":
        try:
            with np.load(Path(path)) as data:
                arrays = {}
                for name in cls.EXPECTED_SHAPES:
                    if name not in data:
                        raise ValueError(f"Table file {path} is missing '{name}'")
                    arrays[name] = np.asarray(data[name])
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            raise ValueError(f"Table file {path} is corrupt: {exc}") from exc
        for name, shape in cls.EXPECTED_SHAPES.items():
            arr = arrays[name]
            if arr.shape != shape:
                raise ValueError(f"Table '{name}' in {path} has shape {arr.shape}, expected {shape}")
        return cls(**arrays)

    @cached_property
    def search(self) -> "SearchTables":
        return SearchTables(self)


class SearchTables:
    """Plain-Python views of the tables; list and bytes indexing beats numpy scalars in the search loop."""

    def __init__(self, tables: SolverTables):
        self.twist_move = tables.twist_move.tolist()
        self.flip_move = tables.flip_move.tolist()
        self.slice_combo_move = tables.slice_combo_move.tolist()
        self.corners_move = tables.corners_move.tolist()
        self.ud_edges_move = tables.ud_edges_move.tolist()
        self.slice_perm_move = tables.slice_perm_move.tolist()
        self.twist_slice_prune = tables.twist_slice_prune.astype(np.uint8).tobytes()
        self.flip_slice_prune = tables.flip_slice_prune.astype(np.uint8).tobytes()
        self.corners_slice_prune = tables.corners_slice_prune.astype(np.uint8).tobytes()
        self.ud_edges_slice_prune = tables.ud_edges_slice_prune.astype(np.uint8).tobytes()


def _twist_move_table() -> np.ndarray:
    co = all_orientations(8, 3)
    table = np.empty((co.shape[0], N_MOVES), dtype=np.int16)
    for m, move in enumerate(MOVE_CUBES):
        new_co = (co[:, move.cp] + np.array(move.co, dtype=np.int8)) % 3
        table[:, m] = twists_of(new_co)
    return table


def _flip_move_table() -> np.ndarray:
    eo = all_orientations(12, 2)
    table = np.empty((eo.shape[0], N_MOVES), dtype=np.int16)
    for m, move in enumerate(MOVE_CUBES):
        new_eo = (eo[:, move.ep] + np.array(move.eo, dtype=np.int8)) % 2
        table[:, m] = flips_of(new_eo)
    return table


def _slice_sorted_move_table() -> np.ndarray:
    table = np.empty((SLICE_POSITIONS.shape[0], N_MOVES), dtype=np.int32)
    for m, move in enumerate(MOVE_CUBES):
        # The piece in slot ep[i] moves to slot i.
        dest = np.argsort(np.array(move.ep))
        table[:, m] = slice_sorted_of_positions_array(dest[SLICE_POSITIONS])
    return table


def _slice_combo_move_table(slice_sorted_move: np.ndarray) -> np.ndarray:
    _, representatives = np.unique(SLICE_COMBO_OF_SORTED, return_index=True)
    return SLICE_COMBO_OF_SORTED[slice_sorted_move[representatives]].astype(np.int16)


def _slice_perm_move_table(slice_sorted_move: np.ndarray) -> np.ndarray:
    moved = slice_sorted_move[SORTED_OF_SLICE_PERM][:, list(PHASE2_MOVES)]
    table = SLICE_PERM_OF_SORTED[moved]
    if np.any(table < 0):
        raise RuntimeError("Phase-2 move takes a slice edge out of the middle layer")
    return table.astype(np.int8)


def _perm_move_table(n_pieces: int, attr: str) -> np.ndarray:
    perms = all_permutations(8)
    table = np.empty((perms.shape[0], len(PHASE2_MOVES)), dtype=np.int32)
    for k, m in enumerate(PHASE2_MOVES):
        source = np.array(getattr(MOVE_CUBES[m], attr)[:n_pieces])
        if np.any(source >= 8):
            raise RuntimeError(f"Phase-2 move {m} mixes {attr} pieces across layers")
        table[:, k] = perm_ranks(perms[:, source])
    return table


def _prune_table(move_a: np.ndarray, move_b: np.ndarray, start: int) -> np.ndarray:
    """Breadth-first distances over the product coordinate a * len(move_b) + b."""
    n_b = move_b.shape[0]
    dist = np.full(move_a.shape[0] * n_b, -1, dtype=np.int8)
    dist[start] = 0
    frontier = np.array([start], dtype=np.int64)
    depth = 0
    while frontier.size:
        a = frontier // n_b
        b = frontier % n_b
        nxt = (move_a[a].astype(np.int64) * n_b + move_b[b]).reshape(-1)
        nxt = np.unique(nxt)
        nxt = nxt[dist[nxt] < 0]
        depth += 1
        dist[nxt] = depth
        frontier = nxt
    # Entries left at -1 read as 255 in the search and prune the branch.
    return dist


def build_tables(verbose: bool = False) -> SolverTables:
    steps = tqdm(total=10, desc="Building tables", unit="table", disable=not verbose, leave=False)
    with steps:
        twist_move = _twist_move_table()
        steps.update()
        flip_move = _flip_move_table()
        steps.update()
        slice_sorted_move = _slice_sorted_move_table()
        slice_combo_move = _slice_combo_move_table(slice_sorted_move)
        steps.update()
        slice_perm_move = _slice_perm_move_table(slice_sorted_move)
        steps.update()
        corners_move = _perm_move_table(8, "cp")
        steps.update()
        ud_edges_move = _perm_move_table(8, "ep")
        steps.update()

        twist_slice_prune = _prune_table(twist_move, slice_combo_move, SOLVED_SLICE_COMBO)
        steps.update()
        flip_slice_prune = _prune_table(flip_move, slice_combo_move, SOLVED_SLICE_COMBO)
        steps.update()
        corners_slice_prune = _prune_table(corners_move, slice_perm_move, 0)
        steps.update()
        ud_edges_slice_prune = _prune_table(ud_edges_move, slice_perm_move, 0)
        steps.update()

    return SolverTables(
        twist_move=twist_move,
        flip_move=flip_move,
        slice_combo_move=slice_combo_move,
        corners_move=corners_move,
        ud_edges_move=ud_edges_move,
        slice_perm_move=slice_perm_move,
        twist_slice_prune=twist_slice_prune,
        flip_slice_prune=flip_slice_prune,
        corners_slice_prune=corners_slice_prune,
        ud_edges_slice_prune=ud_edges_slice_prune,
    )


_TABLES: dict[Path | None, SolverTables] = {}
_TABLES_LOCK = threading.Lock()


def load_or_build(cache_dir: str | Path | None = None, verbose: bool = False) -> SolverTables:
    """Load tables from `cache_dir` when a compatible file exists; otherwise build (and save) them."""
    path = Path(cache_dir) / TABLE_FILE if cache_dir is not None else None
    if path is not None and path.exists():
        try:
            tables = SolverTables.load(path)
            if verbose:
                _log(f"tables_loaded path={path}")
            return tables
        except (OSError, ValueError) as exc:
            _log(f"warning: ignoring incompatible table file {path}: {exc}")

    if verbose:
        _log("tables_build start")
    tables = build_tables(verbose=verbose)
    if path is not None:
        tables.save(path)
        if verbose:
            _log(f"tables_saved path={path}")
    return tables


def get_tables(cache_dir: str | Path | None = None, verbose: bool = False) -> SolverTables:
    """Process-wide tables, one instance per cache directory, loaded or built on first use."""
    key = Path(cache_dir).expanduser().resolve() if cache_dir is not None else None
    with _TABLES_LOCK:
        tables = _TABLES.get(key)
        if tables is None:
            tables = load_or_build(cache_dir=key, verbose=verbose)
            _TABLES[key] = tables
        return tables
