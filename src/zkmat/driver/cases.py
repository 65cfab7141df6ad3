from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List

from zkmat.core.matrix_oracle import Matrix

# operations whose circuits take an unused `dummy` signal
_WITH_DUMMY = {"add", "determinant", "convolution", "multiply", "matvec", "power", "scalar"}


@dataclass(frozen=True)
class OracleCase:
    """
    One circuit scenario: the named input record fed to the circuit, plus
    compile-time parameters (convolution stride) the oracle also needs.
    """
    name: str
    operation: str
    inputs: Dict[str, Any]
    stride: int = 1

    def circuit_inputs(self) -> Dict[str, Any]:
        rec = dict(self.inputs)
        if self.operation in _WITH_DUMMY:
            rec.setdefault("dummy", 0)
        return rec


M4: Matrix = [
    [0, 1, 2, 3],
    [4, 5, 6, 7],
    [8, 9, 10, 11],
    [12, 13, 14, 15],
]
M4_REV: Matrix = [
    [15, 14, 13, 12],
    [11, 10, 9, 8],
    [7, 6, 5, 4],
    [3, 2, 1, 0],
]
FILTER_2X2: Matrix = [[2, 2], [3, 3]]
VEC4: Matrix = [[15], [11], [4], [1]]
M4X3: Matrix = [
    [0, 1, 2],
    [4, 5, 6],
    [8, 9, 10],
    [12, 13, 14],
]

REFERENCE_CASES: List[OracleCase] = [
    OracleCase("add_m4_rev", "add", {"in1": M4, "in2": M4_REV}),
    OracleCase("add_m4_m4", "add", {"in1": M4, "in2": M4}),
    OracleCase("conv_m4_f2_s1", "convolution", {"in": M4, "filter": FILTER_2X2}, stride=1),
    OracleCase("conv_m4_f2_s2", "convolution", {"in": M4, "filter": FILTER_2X2}, stride=2),
    OracleCase("det_m4", "determinant", {"in": M4}),
    OracleCase("hadamard_m4_rev", "hadamard", {"in1": M4, "in2": M4_REV}),
    OracleCase("hadamard_m4_m4", "hadamard", {"in1": M4, "in2": M4}),
    OracleCase("multiply_m4_rev", "multiply", {"in1": M4, "in2": M4_REV}),
    OracleCase("multiply_m4_m4", "multiply", {"in1": M4, "in2": M4}),
    OracleCase("matvec_m4_v4", "matvec", {"in1": M4, "in2": VEC4}),
    OracleCase("power_m4", "power", {"in": M4}),
    OracleCase("scalar_m4_3", "scalar", {"in": M4, "scalar": 3}),
    OracleCase("transpose_m4x3", "transpose", {"in": M4X3}),
]
