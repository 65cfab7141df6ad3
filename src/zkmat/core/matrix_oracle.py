from __future__ import annotations
from typing import List, Tuple

from zkmat.errors import DimensionMismatch

# plain integer versions of the matrix circuits; inputs are lists of lists of
# Python ints and every result is freshly allocated
Matrix = List[List[int]]


def shape(A: Matrix) -> Tuple[int, int]:
    """(rows, cols) of a rectangular, non-empty matrix."""
    if not A or not A[0]:
        raise DimensionMismatch("empty matrix")
    n_cols = len(A[0])
    for i, row in enumerate(A):
        if len(row) != n_cols:
            raise DimensionMismatch(f"ragged matrix: row {i} has {len(row)} columns, expected {n_cols}")
    return len(A), n_cols


def _same_shape(A: Matrix, B: Matrix) -> Tuple[int, int]:
    sa, sb = shape(A), shape(B)
    if sa != sb:
        raise DimensionMismatch(f"shape {sa} does not match {sb}")
    return sa


def add(A: Matrix, B: Matrix) -> Matrix:
    rows, cols = _same_shape(A, B)
    return [[A[i][j] + B[i][j] for j in range(cols)] for i in range(rows)]


def hadamard(A: Matrix, B: Matrix) -> Matrix:
    rows, cols = _same_shape(A, B)
    return [[A[i][j] * B[i][j] for j in range(cols)] for i in range(rows)]


def scalar_multiply(A: Matrix, s: int) -> Matrix:
    shape(A)
    return [[v * s for v in row] for row in A]


def transpose(A: Matrix) -> Matrix:
    rows, cols = shape(A)
    out = [[0] * rows for _ in range(cols)]
    for i in range(rows):
        for j in range(cols):
            out[j][i] = A[i][j]
    return out


def flatten(A: Matrix) -> List[int]:
    """Row-major flattening, the order a circuit exposes a matrix output in."""
    return [v for row in A for v in row]


def multiply(A: Matrix, B: Matrix) -> Matrix:
    rows_a, cols_a = shape(A)
    rows_b, cols_b = shape(B)
    if cols_a != rows_b:
        raise DimensionMismatch(
            f"cannot multiply {rows_a}x{cols_a} by {rows_b}x{cols_b}: incompatible inner dimensions"
        )
    out = [[0] * cols_b for _ in range(rows_a)]
    for i in range(rows_a):
        for j in range(cols_b):
            for k in range(cols_a):
                out[i][j] += A[i][k] * B[k][j]
    return out


def multiply_flat(A: Matrix, B: Matrix) -> List[int]:
    return flatten(multiply(A, B))


def power3(A: Matrix) -> Matrix:
    """A*A*A. Fixed cube, matching the power circuit; not a general exponent."""
    rows, cols = shape(A)
    if rows != cols:
        raise DimensionMismatch(f"power needs a square matrix, got {rows}x{cols}")
    return multiply(multiply(A, A), A)


def minor(A: Matrix, row: int, col: int) -> Matrix:
    """A with `row` and `col` removed."""
    return [[v for c, v in enumerate(r) if c != col] for i, r in enumerate(A) if i != row]


def determinant(A: Matrix) -> int:
    """
    Cofactor expansion along row 0.

    Exponential in the size on purpose: the determinant circuit expands in
    exactly this order, so intermediate values agree with the circuit's.
    """
    rows, cols = shape(A)
    if rows != cols:
        raise DimensionMismatch(f"determinant needs a square matrix, got {rows}x{cols}")
    return _det(A)


def _det(A: Matrix) -> int:
    size = len(A)
    if size == 1:
        return A[0][0]
    if size == 2:
        return A[0][0] * A[1][1] - A[0][1] * A[1][0]
    det = 0
    for col in range(size):
        sign = -1 if col % 2 else 1
        det += sign * A[0][col] * _det(minor(A, 0, col))
    return det


def convolve(matrix: Matrix, filt: Matrix, stride: int = 1) -> Matrix:
    """
    Valid (unpadded) 2D convolution with the same stride on both axes.

    Window origins are 0, stride, 2*stride, ... while the window still fits,
    so each axis yields floor((size - filter_size) / stride) + 1 cells. A
    filter larger than the matrix on either axis yields [] (no window fits).
    """
    if stride <= 0:
        raise ValueError(f"stride must be positive, got {stride}")
    m_rows, m_cols = shape(matrix)
    f_rows, f_cols = shape(filt)
    out: Matrix = []
    for i in range(0, m_rows - f_rows + 1, stride):
        row = []
        for j in range(0, m_cols - f_cols + 1, stride):
            acc = 0
            for fi in range(f_rows):
                for fj in range(f_cols):
                    acc += matrix[i + fi][j + fj] * filt[fi][fj]
            row.append(acc)
        if not row:
            return []
        out.append(row)
    return out
