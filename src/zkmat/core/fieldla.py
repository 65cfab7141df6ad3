from __future__ import annotations
from typing import List, Sequence
import numpy as np

from zkmat.errors import DimensionMismatch

BN254_PRIME = 21888242871839275222246405745257275088548364400416034343698204186575808495617

def modp(x: int, p: int) -> int:
    r = x % p
    return r if r >= 0 else r + p

def inv_modp(a: int, p: int) -> int:
    a = a % p
    if a == 0:
        raise ZeroDivisionError("No inverse for 0 mod p")
    return pow(a, p - 2, p)

def _square(M: Sequence[Sequence[int]]) -> int:
    n = len(M)
    if n == 0 or any(len(row) != n for row in M):
        raise DimensionMismatch("determinant needs a non-empty square matrix")
    return n

def det_modp(M: Sequence[Sequence[int]], p: int) -> int:
    """
    Determinant over F_p by Gaussian elimination with row swaps.
    Works on an object-dtype copy so entries stay exact Python ints.
    """
    n = _square(M)
    A = np.array([[modp(int(v), p) for v in row] for row in M], dtype=object)
    det = 1
    for c in range(n):
        pivot = None
        for i in range(c, n):
            if A[i, c] % p != 0:
                pivot = i; break
        if pivot is None:
            return 0
        if pivot != c:
            A[[c, pivot], :] = A[[pivot, c], :]
            det = -det
        det = (det * A[c, c]) % p
        inv = inv_modp(int(A[c, c]), p)
        for i in range(c + 1, n):
            if A[i, c] % p != 0:
                f = (A[i, c] * inv) % p
                A[i, :] = (A[i, :] - f * A[c, :]) % p
    return modp(det, p)

def det_bareiss(M: Sequence[Sequence[int]]) -> int:
    """
    Exact integer determinant via Bareiss fraction-free elimination.
    Every division below is exact, so no rationals or floats appear.
    """
    n = _square(M)
    A: List[List[int]] = [[int(v) for v in row] for row in M]
    sign = 1
    prev = 1
    for k in range(n - 1):
        if A[k][k] == 0:
            swap = next((i for i in range(k + 1, n) if A[i][k] != 0), None)
            if swap is None:
                return 0
            A[k], A[swap] = A[swap], A[k]
            sign = -sign
        for i in range(k + 1, n):
            for j in range(k + 1, n):
                A[i][j] = (A[i][j] * A[k][k] - A[i][k] * A[k][j]) // prev
        prev = A[k][k]
    return sign * A[n - 1][n - 1]
