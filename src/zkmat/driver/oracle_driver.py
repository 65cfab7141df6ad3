from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

import pandas as pd

from zkmat.core import matrix_oracle as mo
from zkmat.core.fieldla import BN254_PRIME
from zkmat.core.r1cs_io import R1CS, load_r1cs
from zkmat.core.satisfaction import check_witness
from zkmat.core.witness_io import load_witness
from zkmat.driver.cases import OracleCase
from zkmat.errors import DimensionMismatch, UnsatisfiedConstraint, WitnessLengthMismatch

log = logging.getLogger(__name__)


# The circuit toolchain (compiler, witness calculator, prover) sits behind
# CircuitBackend; this module shapes inputs, computes expected outputs and
# compares them with what the circuit reports.
class CircuitBackend(Protocol):
    def run_circuit(self, inputs: Mapping[str, Any]) -> Dict[str, Any]:
        """Declared outputs of the circuit for a named input record."""
        ...

    def generate_proof(self, inputs: Mapping[str, Any]) -> Any:
        ...

    def verify_proof(self, proof: Any) -> bool:
        ...


def _oracle_value(operation: str, inputs: Mapping[str, Any], stride: int):
    if operation == "add":
        return mo.add(inputs["in1"], inputs["in2"])
    if operation == "hadamard":
        return mo.hadamard(inputs["in1"], inputs["in2"])
    if operation == "scalar":
        return mo.scalar_multiply(inputs["in"], int(inputs["scalar"]))
    if operation == "transpose":
        return mo.flatten(mo.transpose(inputs["in"]))
    if operation in ("multiply", "matvec"):
        return mo.multiply_flat(inputs["in1"], inputs["in2"])
    if operation == "power":
        return mo.flatten(mo.power3(inputs["in"]))
    if operation == "determinant":
        return mo.determinant(inputs["in"])
    if operation == "convolution":
        return mo.convolve(inputs["in"], inputs["filter"], stride)
    raise KeyError(f"unknown operation {operation!r}")


def expected_outputs(case: OracleCase) -> Dict[str, Any]:
    """Oracle result shaped the way the circuit declares its `out` signal."""
    return {"out": _oracle_value(case.operation, case.inputs, case.stride)}


def reduce_modp(value, p: int):
    """Lift ints (possibly nested in lists) into [0, p); strings are parsed."""
    if isinstance(value, (list, tuple)):
        return [reduce_modp(v, p) for v in value]
    return int(value) % p


@dataclass
class CaseResult:
    name: str
    operation: str
    matches: bool
    expected: Dict[str, Any]
    actual: Dict[str, Any]
    verified: Optional[bool] = None


def output_shape(case: OracleCase) -> Tuple[int, ...]:
    """
    Shape of the circuit's `out` signal, worked out from the case inputs:
    () for a scalar, (n,) for a flat array, (rows, cols) for a matrix.
    """
    op, inputs = case.operation, case.inputs
    if op in ("add", "hadamard"):
        return mo.shape(inputs["in1"])
    if op == "scalar":
        return mo.shape(inputs["in"])
    if op == "determinant":
        return ()
    if op == "transpose":
        rows, cols = mo.shape(inputs["in"])
        return (rows * cols,)
    if op == "power":
        rows, _ = mo.shape(inputs["in"])
        return (rows * rows,)
    if op in ("multiply", "matvec"):
        rows, _ = mo.shape(inputs["in1"])
        _, cols = mo.shape(inputs["in2"])
        return (rows * cols,)
    if op == "convolution":
        m_rows, m_cols = mo.shape(inputs["in"])
        f_rows, f_cols = mo.shape(inputs["filter"])
        if f_rows > m_rows or f_cols > m_cols:
            return (0, 0)
        return ((m_rows - f_rows) // case.stride + 1, (m_cols - f_cols) // case.stride + 1)
    raise KeyError(f"unknown operation {op!r}")


def _reshape(values: Sequence[int], shape: Tuple[int, ...]):
    if shape == ():
        return values[0]
    if len(shape) == 1:
        return list(values)
    rows, cols = shape
    return [list(values[i * cols:(i + 1) * cols]) for i in range(rows)]


class WitnessBackend:
    """
    CircuitBackend over one compiled circuit: its R1CS and the witness the
    witness calculator produced for the case inputs. Outputs are read from
    wires 1..nOutputs; a proof is the public signals plus the witness, and
    verifying it re-checks every constraint.
    """

    def __init__(self, r1cs: R1CS, witness: Sequence[int], out_shape: Optional[Tuple[int, ...]] = None):
        self.r1cs = r1cs
        self.witness = [int(v) for v in witness]
        self.out_shape = out_shape if out_shape is not None else (r1cs.n_outputs,)

    @classmethod
    def from_files(cls, r1cs_path: str | Path, witness_path: str | Path,
                   out_shape: Optional[Tuple[int, ...]] = None) -> "WitnessBackend":
        return cls(load_r1cs(r1cs_path), load_witness(witness_path), out_shape)

    @property
    def public_signals(self) -> List[int]:
        r = self.r1cs
        return self.witness[1:1 + r.n_outputs + r.n_pub_inputs]

    def run_circuit(self, inputs: Mapping[str, Any]) -> Dict[str, Any]:
        n_out = self.r1cs.n_outputs
        if len(self.witness) <= n_out:
            raise WitnessLengthMismatch(f"witness has {len(self.witness)} values, "
                                        f"circuit declares {n_out} outputs")
        size = 1
        for d in self.out_shape:
            size *= d
        if size != n_out:
            raise DimensionMismatch(f"circuit declares {n_out} outputs, "
                                    f"expected shape {self.out_shape} holds {size}")
        return {"out": _reshape(self.witness[1:1 + n_out], self.out_shape)}

    def generate_proof(self, inputs: Mapping[str, Any]) -> Dict[str, Any]:
        return {"public": self.public_signals, "witness": list(self.witness)}

    def verify_proof(self, proof: Mapping[str, Any]) -> bool:
        w = proof["witness"]
        r = self.r1cs
        if list(proof["public"]) != list(w[1:1 + r.n_outputs + r.n_pub_inputs]):
            return False
        try:
            check_witness(r, w)
        except (UnsatisfiedConstraint, WitnessLengthMismatch) as e:
            log.debug("proof rejected: %s", e)
            return False
        return True


def _first_existing(directory: Path, stem: str, suffixes: Sequence[str]) -> Optional[Path]:
    for s in suffixes:
        p = directory / f"{stem}{s}"
        if p.is_file():
            return p
    return None


def find_artifacts(directory: str | Path, case: OracleCase) -> Optional[Tuple[Path, Path]]:
    """`<name>.r1cs[.json]` and `<name>.wtns[.json]` for a case, or None if either is missing."""
    d = Path(directory)
    r1cs = _first_existing(d, case.name, (".r1cs", ".r1cs.json"))
    wtns = _first_existing(d, case.name, (".wtns", ".wtns.json"))
    if r1cs is None or wtns is None:
        return None
    return r1cs, wtns


def witness_backend_for(directory: str | Path) -> Callable[[OracleCase], WitnessBackend]:
    def backend_for(case: OracleCase) -> WitnessBackend:
        found = find_artifacts(directory, case)
        if found is None:
            raise FileNotFoundError(f"no circuit artifacts for case {case.name!r} in {directory}")
        return WitnessBackend.from_files(*found, out_shape=output_shape(case))
    return backend_for


def run_case(backend: CircuitBackend, case: OracleCase, prove: bool = False,
             p: int = BN254_PRIME) -> CaseResult:
    """
    Compare the circuit's outputs with the oracle's, both reduced mod p.
    With prove=True a proof is generated and checked as well.
    """
    inputs = case.circuit_inputs()
    expected = expected_outputs(case)
    actual = backend.run_circuit(inputs)
    matches = all(
        k in actual and reduce_modp(actual[k], p) == reduce_modp(v, p)
        for k, v in expected.items()
    )
    verified = None
    if prove:
        proof = backend.generate_proof(inputs)
        verified = bool(backend.verify_proof(proof))
    log.debug("case %s: matches=%s verified=%s", case.name, matches, verified)
    return CaseResult(case.name, case.operation, matches, expected, actual, verified)


def run_cases(backend_for: Callable[[OracleCase], CircuitBackend], cases: Iterable[OracleCase],
              prove: bool = False, p: int = BN254_PRIME) -> List[CaseResult]:
    """backend_for builds the backend (compiled circuit) for each case."""
    return [run_case(backend_for(c), c, prove=prove, p=p) for c in cases]


def results_frame(results: Iterable[CaseResult]) -> pd.DataFrame:
    return pd.DataFrame([{
        "name": r.name,
        "operation": r.operation,
        "matches": r.matches,
        "verified": r.verified,
        "expected": r.expected.get("out"),
    } for r in results], columns=["name", "operation", "matches", "verified", "expected"])
