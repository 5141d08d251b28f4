from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from .errors import InvalidArgument

__all__ = ["COVARIANCE_PAGE", "Names", "Data"]

# Name of the page an estimate uses to carry its parameter covariance.
COVARIANCE_PAGE = "<Covariance>"


@dataclass
class Names:
    title: str = ""
    vector: Optional[str] = None
    rows: Tuple[str, ...] = ()
    cols: Tuple[str, ...] = ()


@dataclass(eq=False)
class Data:
    """Rectangular numeric data: an optional vector beside an optional matrix.

    Row ``i`` of the data set is ``vector[i]`` followed by ``matrix[i, :]``.
    Missing values are NaN. ``pages`` holds named auxiliary data sets (for
    example the covariance of a set of parameter estimates).
    """

    vector: Optional[np.ndarray] = None
    matrix: Optional[np.ndarray] = None
    weights: Optional[np.ndarray] = None
    names: Names = field(default_factory=Names)
    pages: Dict[str, "Data"] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.vector is not None:
            v = np.asarray(self.vector, dtype=float)
            if v.ndim == 0:
                v = v.reshape(1)
            if v.ndim != 1:
                raise InvalidArgument(f"vector must be 1-D, got shape {v.shape}.")
            self.vector = v
        if self.matrix is not None:
            m = np.asarray(self.matrix, dtype=float)
            if m.ndim != 2:
                raise InvalidArgument(f"matrix must be 2-D, got shape {m.shape}.")
            self.matrix = m
        if self.weights is not None:
            w = np.asarray(self.weights, dtype=float).reshape(-1)
            if w.shape[0] != self.n_rows:
                raise InvalidArgument(
                    f"weights has {w.shape[0]} entries but the data has {self.n_rows} rows."
                )
            self.weights = w

    # ---- construction ----
    @classmethod
    def alloc(cls, vsize: int = 0, msize1: int = 0, msize2: int = 0) -> "Data":
        """Zero-filled data with a vector of ``vsize`` and a ``msize1 x msize2`` matrix.

        A zero size leaves the corresponding element as None.
        """
        vector = np.zeros((int(vsize),), dtype=float) if vsize > 0 else None
        matrix = (
            np.zeros((int(msize1), int(msize2)), dtype=float)
            if (msize1 > 0 and msize2 > 0)
            else None
        )
        return cls(vector=vector, matrix=matrix)

    def copy(self) -> "Data":
        """Deep copy, pages included."""
        return Data(
            vector=None if self.vector is None else self.vector.copy(),
            matrix=None if self.matrix is None else self.matrix.copy(),
            weights=None if self.weights is None else self.weights.copy(),
            names=replace(self.names),
            pages={k: p.copy() for k, p in self.pages.items()},
        )

    # ---- shape ----
    @property
    def n_rows(self) -> int:
        if self.matrix is not None:
            return int(self.matrix.shape[0])
        if self.vector is not None:
            return int(self.vector.shape[0])
        return 0

    @property
    def n_cols(self) -> int:
        """Number of matrix columns (0 without a matrix)."""
        return 0 if self.matrix is None else int(self.matrix.shape[1])

    @property
    def packed_size(self) -> int:
        n = 0
        if self.vector is not None:
            n += int(self.vector.size)
        if self.matrix is not None:
            n += int(self.matrix.size)
        return n

    # ---- packing ----
    def pack(self) -> np.ndarray:
        """Flatten into one vector: the vector, then the matrix row by row."""
        parts = []
        if self.vector is not None:
            parts.append(self.vector.reshape(-1))
        if self.matrix is not None:
            parts.append(self.matrix.reshape(-1))
        if not parts:
            return np.empty((0,), dtype=float)
        return np.concatenate(parts)

    def fill(self, values: Any) -> "Data":
        """Inverse of pack(): overwrite the vector and matrix in place."""
        values = np.asarray(values, dtype=float).reshape(-1)
        if values.shape[0] != self.packed_size:
            raise InvalidArgument(
                f"Expected {self.packed_size} values to fill the data, got {values.shape[0]}."
            )
        pos = 0
        if self.vector is not None:
            n = int(self.vector.size)
            self.vector[...] = values[pos : pos + n]
            pos += n
        if self.matrix is not None:
            n = int(self.matrix.size)
            self.matrix[...] = values[pos : pos + n].reshape(self.matrix.shape)
        return self

    # ---- access ----
    def row(self, i: int) -> np.ndarray:
        """Row i as one vector (vector element first, then the matrix row)."""
        parts = []
        if self.vector is not None:
            parts.append(np.atleast_1d(self.vector[i]))
        if self.matrix is not None:
            parts.append(self.matrix[i])
        if not parts:
            raise InvalidArgument("Cannot take a row of an empty data set.")
        return np.concatenate(parts)

    def rows(self) -> np.ndarray:
        """All rows stacked as a 2-D array (n_rows x row width)."""
        cols = []
        if self.vector is not None:
            cols.append(self.vector[:, None])
        if self.matrix is not None:
            cols.append(self.matrix)
        if not cols:
            return np.empty((0, 0), dtype=float)
        return np.hstack(cols)

    def take_rows(self, idx: Sequence[int]) -> "Data":
        """A new data set made of the given rows (repeats allowed)."""
        idx = np.asarray(idx, dtype=int)
        names = replace(self.names)
        if self.names.rows:
            names.rows = tuple(self.names.rows[i] for i in idx)
        return Data(
            vector=None if self.vector is None else self.vector[idx],
            matrix=None if self.matrix is None else self.matrix[idx],
            weights=None if self.weights is None else self.weights[idx],
            names=names,
        )

    def get(self, row: int, col: int = -1) -> float:
        """Single element; column -1 is the vector."""
        if col == -1:
            if self.vector is None:
                raise InvalidArgument("This data set has no vector.")
            return float(self.vector[row])
        if self.matrix is None:
            raise InvalidArgument("This data set has no matrix.")
        return float(self.matrix[row, col])

    def has_missing(self) -> bool:
        return bool(np.isnan(self.pack()).any())

    # ---- named values (info tables) ----
    def set_value(self, name: str, value: float) -> None:
        """Set the vector entry labelled ``name``, appending it if new."""
        rows = list(self.names.rows)
        if name in rows:
            self.vector[rows.index(name)] = float(value)  # type: ignore[index]
            return
        old = np.empty((0,), dtype=float) if self.vector is None else self.vector
        if old.shape[0] != len(rows):
            raise InvalidArgument("Named values need every vector entry to carry a row name.")
        self.vector = np.append(old, float(value))
        self.names.rows = tuple(rows) + (name,)

    def get_value(self, name: str) -> float:
        rows = list(self.names.rows)
        if name not in rows or self.vector is None:
            raise KeyError(name)
        return float(self.vector[rows.index(name)])

    def summary(self, digits: int = 4) -> str:
        """Return a human-readable rendering of the data set."""
        lines = [self.names.title] if self.names.title else []
        if self.matrix is not None and self.names.cols:
            header = " " * 14 if self.vector is not None else ""
            header += " ".join(f"{c:>12s}" for c in self.names.cols)
            lines.append(f"{'':>12s}  {header}".rstrip())
        for i in range(self.n_rows):
            label = self.names.rows[i] if i < len(self.names.rows) else ""
            cells = []
            if self.vector is not None and i < self.vector.shape[0]:
                cells.append(f"{self.vector[i]:>12.{digits}g}")
            if self.matrix is not None and i < self.matrix.shape[0]:
                cells.extend(f"{v:>12.{digits}g}" for v in self.matrix[i])
            lines.append(f"{label:>12s}: " + " ".join(cells))
        return "\n".join(lines)
