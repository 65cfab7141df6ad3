from __future__ import annotations
import json
import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Any, Optional, Dict
import numpy as np
from scipy.sparse import csr_matrix

from zkmat.core.fieldla import BN254_PRIME
from zkmat.errors import MalformedConstraintSystem

log = logging.getLogger(__name__)

R1CS_MAGIC = b"r1cs"
HEADER_SECTION = 1
CONSTRAINT_SECTION = 2

@dataclass
class Term:
    coeff: int
    var: int

@dataclass
class R1CS:
    # circuit-native rows {var: coeff}; dict order is the source enumeration order
    A_rows: List[Dict[int,int]]
    B_rows: List[Dict[int,int]]
    C_rows: List[Dict[int,int]]
    n_constraints: int
    n_vars: int
    n_pub_inputs: int
    n_prv_inputs: int
    n_outputs: int
    prime: int

    @property
    def n_inputs(self) -> int:
        return self.n_pub_inputs + self.n_prv_inputs

    def patterns(self) -> Tuple[csr_matrix, csr_matrix, csr_matrix]:
        """0/1 sparsity patterns of A, B, C (shape n_constraints x n_vars)."""
        def build_from(rows: List[Dict[int,int]]) -> csr_matrix:
            ri, ci = [], []
            for i, row in enumerate(rows):
                for j in row:
                    if 0 <= j < self.n_vars:
                        ri.append(i); ci.append(j)
            return csr_matrix((np.ones(len(ri), dtype=np.int8), (np.array(ri, dtype=int), np.array(ci, dtype=int))),
                              shape=(len(rows), self.n_vars))
        return build_from(self.A_rows), build_from(self.B_rows), build_from(self.C_rows)

def _normalize_constraint_entry(entry) -> List[Term]:
    if entry is None:
        return []
    if isinstance(entry, dict):
        return [Term(int(v), int(k)) for k, v in entry.items()]
    if isinstance(entry, list):
        out = []
        for t in entry:
            if isinstance(t, dict) and "coeff" in t and "var" in t:
                out.append(Term(int(t["coeff"]), int(t["var"])))
            elif isinstance(t, (list, tuple)) and len(t) == 2:
                c, v = t
                out.append(Term(int(c), int(v)))
            else:
                raise MalformedConstraintSystem(f"Unrecognized term format element: {t!r}")
        return out
    raise MalformedConstraintSystem(f"Unrecognized term container: {type(entry)}")

def _constraints_from_json(obj) -> List[Tuple[List[Term], List[Term], List[Term]]]:
    cons = obj.get("constraints")
    if cons is None:
        raise MalformedConstraintSystem("R1CS JSON missing 'constraints'")
    out = []
    for i, c in enumerate(cons):
        if isinstance(c, list) and len(c) == 3:
            A_raw, B_raw, C_raw = c
        elif isinstance(c, dict) and all(k in c for k in ("A", "B", "C")):
            A_raw, B_raw, C_raw = c["A"], c["B"], c["C"]
        else:
            raise MalformedConstraintSystem(f"Constraint {i} unexpected format: {type(c)}")
        out.append((
            _normalize_constraint_entry(A_raw),
            _normalize_constraint_entry(B_raw),
            _normalize_constraint_entry(C_raw),
        ))
    return out

def _to_row(terms: List[Term], p: Optional[int]) -> Dict[int,int]:
    """Merge repeated vars, drop zero coefficients, keep first-seen var order."""
    d: Dict[int,int] = {}
    for t in terms:
        c = t.coeff % p if p else t.coeff
        d[t.var] = d.get(t.var, 0) + c
        if p:
            d[t.var] %= p
    return {k: v for k, v in d.items() if v != 0}

def load_r1cs_json(path: str | Path, reduce: bool = False, default_prime: Optional[int] = None) -> R1CS:
    """
    Read a snarkjs `r1cs export json` document.
    default_prime (BN254 when unset) applies only if the document has no `prime`.
    With reduce=True every coefficient is brought into [0, prime).
    """
    obj = json.loads(Path(path).read_text())
    n_constraints = int(obj.get("nConstraints") or len(obj.get("constraints", [])))
    n_vars = int(obj.get("nVars") or obj.get("nWitness") or 0)
    n_pub = int(obj.get("nPubInputs") or obj.get("nInputs") or 0)
    n_prv = int(obj.get("nPrvInputs") or 0)
    n_outputs = int(obj.get("nOutputs") or obj.get("publicOutputs") or 0)
    prime = int(obj.get("prime") or default_prime or BN254_PRIME)

    constraints = _constraints_from_json(obj)
    if n_constraints != len(constraints):
        raise MalformedConstraintSystem(
            f"nConstraints={n_constraints} but {len(constraints)} constraints present"
        )
    if n_vars == 0:
        maxv = 0
        for A,B,C in constraints:
            for t in (A+B+C):
                maxv = max(maxv, t.var)
        n_vars = maxv + 1

    p = prime if reduce else None
    A_rows = [_to_row(A, p) for A, _, _ in constraints]
    B_rows = [_to_row(B, p) for _, B, _ in constraints]
    C_rows = [_to_row(C, p) for _, _, C in constraints]
    log.debug("read %s: %d constraints, %d vars", path, n_constraints, n_vars)

    return R1CS(
        A_rows=A_rows, B_rows=B_rows, C_rows=C_rows,
        n_constraints=n_constraints, n_vars=n_vars,
        n_pub_inputs=n_pub, n_prv_inputs=n_prv, n_outputs=n_outputs,
        prime=prime,
    )

class BinaryReader:
    def __init__(self, buf: bytes, pos: int = 0, error: type = MalformedConstraintSystem):
        self.buf = buf
        self.pos = pos
        self.error = error

    def take(self, n: int) -> bytes:
        if self.pos + n > len(self.buf):
            raise self.error(f"unexpected end of file at byte {self.pos}")
        b = self.buf[self.pos:self.pos + n]
        self.pos += n
        return b

    def u32(self) -> int:
        return struct.unpack("<I", self.take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self.take(8))[0]

    def field(self, n8: int) -> int:
        return int.from_bytes(self.take(n8), "little")

def read_sections(buf: bytes, magic: bytes, error: type = MalformedConstraintSystem) -> Tuple[int, Dict[int, Tuple[int, int]]]:
    """
    Parse the iden3 binary container shared by .r1cs and .wtns files.
    Returns (version, {section_type: (offset, size)}).
    """
    if buf[:4] != magic:
        raise error(f"bad magic {buf[:4]!r}, expected {magic!r}")
    r = BinaryReader(buf, 4, error)
    version = r.u32()
    n_sections = r.u32()
    sections: Dict[int, Tuple[int, int]] = {}
    for _ in range(n_sections):
        s_type = r.u32()
        s_size = r.u64()
        sections[s_type] = (r.pos, s_size)
        r.take(s_size)
    return version, sections

def load_r1cs_binary(path: str | Path) -> R1CS:
    """Read a circom .r1cs file (version 1)."""
    buf = Path(path).read_bytes()
    _, sections = read_sections(buf, R1CS_MAGIC)
    if HEADER_SECTION not in sections or CONSTRAINT_SECTION not in sections:
        raise MalformedConstraintSystem("r1cs file lacks a header or constraint section")

    h = BinaryReader(buf, sections[HEADER_SECTION][0])
    n8 = h.u32()
    prime = h.field(n8)
    n_wires = h.u32()
    n_outputs = h.u32()
    n_pub = h.u32()
    n_prv = h.u32()
    h.u64()  # nLabels
    n_constraints = h.u32()

    c = BinaryReader(buf, sections[CONSTRAINT_SECTION][0])
    def lc() -> Dict[int,int]:
        d: Dict[int,int] = {}
        for _ in range(c.u32()):
            wire = c.u32()
            d[wire] = c.field(n8)
        return {k: v for k, v in d.items() if v != 0}
    A_rows, B_rows, C_rows = [], [], []
    for _ in range(n_constraints):
        A_rows.append(lc())
        B_rows.append(lc())
        C_rows.append(lc())

    log.debug("read %s: %d constraints, %d wires", path, n_constraints, n_wires)

    return R1CS(
        A_rows=A_rows, B_rows=B_rows, C_rows=C_rows,
        n_constraints=n_constraints, n_vars=n_wires,
        n_pub_inputs=n_pub, n_prv_inputs=n_prv, n_outputs=n_outputs,
        prime=prime,
    )

def load_r1cs(path: str | Path, reduce: bool = False, default_prime: Optional[int] = None) -> R1CS:
    """Binary or JSON, decided by the leading magic bytes. Binary files always carry a prime."""
    with open(path, "rb") as f:
        head = f.read(4)
    if head == R1CS_MAGIC:
        return load_r1cs_binary(path)
    return load_r1cs_json(path, reduce=reduce, default_prime=default_prime)

def summarize_r1cs(r: R1CS) -> Dict[str, Any]:
    Apat, Bpat, _ = r.patterns()
    mult_rows = int(((Apat.getnnz(axis=1) > 0) & (Bpat.getnnz(axis=1) > 0)).sum())
    return {
        "n_constraints": int(r.n_constraints),
        "n_vars": int(r.n_vars),
        "n_pub_inputs": int(r.n_pub_inputs),
        "n_prv_inputs": int(r.n_prv_inputs),
        "n_outputs": int(r.n_outputs),
        "prime_bits": int(r.prime.bit_length()),
        "multiplicative_rows": mult_rows,
        "linear_rows": int(r.n_constraints - mult_rows),
    }
