from __future__ import annotations
import numpy as np
from typing import List, Dict, Sequence

from zkmat.core.r1cs_io import R1CS
from zkmat.errors import UnsatisfiedConstraint, WitnessLengthMismatch

def matvec_rows_modp(rows: List[Dict[int,int]], z: np.ndarray, p: int) -> np.ndarray:
    """Compute (Rows @ z) mod p, where rows[i] is {col: coeff}."""
    m = len(rows)
    out = np.zeros(m, dtype=object)
    for i in range(m):
        acc = 0
        row = rows[i]
        for j, c in row.items():
            acc += c * z[j]
        out[i] = acc % p
    return out

def constraint_residuals(r: R1CS, w: Sequence[int], p: int | None = None) -> np.ndarray:
    """
    Per-row (A w) * (B w) - (C w) mod p on the circuit-native witness.
    All zeros iff w satisfies every constraint.
    """
    p = p or r.prime
    if len(w) != r.n_vars:
        raise WitnessLengthMismatch(f"witness has {len(w)} values, R1CS declares {r.n_vars} vars")
    z = np.array([int(v) % p for v in w], dtype=object)
    Az = matvec_rows_modp(r.A_rows, z, p)
    Bz = matvec_rows_modp(r.B_rows, z, p)
    Cz = matvec_rows_modp(r.C_rows, z, p)
    return (Az * Bz - Cz) % p

def check_witness(r: R1CS, w: Sequence[int], p: int | None = None) -> None:
    if len(w) and int(w[0]) != 1:
        raise UnsatisfiedConstraint(None, int(w[0]))
    residual = constraint_residuals(r, w, p)
    nz = np.flatnonzero(residual != 0)
    if nz.size:
        bad = int(nz[0])
        raise UnsatisfiedConstraint(bad, int(residual[bad]))
