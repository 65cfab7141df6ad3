import pytest

from zkmat.core.fieldla import BN254_PRIME as P
from conftest import write_r1cs_bin, write_wtns_bin
from zkmat.core import matrix_oracle as mo
from zkmat.core.r1cs_io import R1CS
from zkmat.driver.cases import M4, REFERENCE_CASES, OracleCase
from zkmat.driver.oracle_driver import (
    WitnessBackend, expected_outputs, find_artifacts, output_shape, reduce_modp, results_frame,
    run_case, run_cases, witness_backend_for,
)
from zkmat.errors import DimensionMismatch


class FieldBackend:
    """Reports outputs as decimal field elements, the way a witness does."""

    def __init__(self, outputs):
        self.outputs = outputs
        self.seen = []

    def run_circuit(self, inputs):
        self.seen.append(dict(inputs))
        return {"out": self.outputs}

    def generate_proof(self, inputs):
        return "proof"

    def verify_proof(self, proof):
        return proof == "proof"


def _to_field_strings(v):
    if isinstance(v, list):
        return [_to_field_strings(x) for x in v]
    return str(v % P)


def test_reference_cases_cover_every_operation():
    ops = {c.operation for c in REFERENCE_CASES}
    assert ops == {"add", "hadamard", "scalar", "transpose", "multiply", "matvec",
                   "power", "determinant", "convolution"}

def test_expected_output_shapes():
    by_name = {c.name: c for c in REFERENCE_CASES}
    assert expected_outputs(by_name["det_m4"]) == {"out": 0}
    assert expected_outputs(by_name["matvec_m4_v4"])["out"] == [22, 146, 270, 394]
    assert len(expected_outputs(by_name["conv_m4_f2_s2"])["out"]) == 2
    assert len(expected_outputs(by_name["power_m4"])["out"]) == 16
    assert expected_outputs(by_name["add_m4_rev"])["out"][0] == [15, 15, 15, 15]

def test_dummy_signal_only_where_circuit_declares_it():
    by_name = {c.name: c for c in REFERENCE_CASES}
    assert by_name["add_m4_m4"].circuit_inputs()["dummy"] == 0
    assert "dummy" not in by_name["hadamard_m4_m4"].circuit_inputs()
    assert "dummy" not in by_name["transpose_m4x3"].circuit_inputs()

def test_negative_determinant_compared_in_field():
    case = OracleCase("det_swap", "determinant", {"in": [[0, 1], [1, 0]]})
    backend = FieldBackend(str(P - 1))
    res = run_case(backend, case, prove=True)
    assert res.matches
    assert res.verified is True
    assert backend.seen == [{"in": [[0, 1], [1, 0]], "dummy": 0}]

def test_nested_field_outputs_match():
    case = OracleCase("scalar_neg", "scalar", {"in": M4, "scalar": -2})
    backend = FieldBackend(_to_field_strings(expected_outputs(case)["out"]))
    assert run_case(backend, case).matches

def test_wrong_output_detected():
    case = OracleCase("det_m4", "determinant", {"in": M4})
    res = run_case(FieldBackend("1"), case)
    assert not res.matches
    assert res.verified is None

def test_reduce_modp():
    assert reduce_modp([[-1, "2"], [P]], P) == [[P - 1, 2], [0]]

def test_unknown_operation():
    with pytest.raises(KeyError):
        expected_outputs(OracleCase("x", "inverse", {"in": M4}))


# 2x2 determinant: out = a*d - b*c
# native wires: 0 one | 1 out | 2 a | 3 b | 4 c | 5 d | 6 dummy | 7 t1 | 8 t2
DET2_CONSTRAINTS = [
    ({2: 1}, {5: 1}, {7: 1}),
    ({3: 1}, {4: 1}, {8: 1}),
    ({}, {}, {7: 1, 8: P - 1, 1: P - 1}),
]
SWAP = [[0, 1], [1, 0]]
SWAP_WITNESS = [1, P - 1, 0, 1, 1, 0, 0, 0, 1]


def _det2_r1cs():
    a, b, c = zip(*DET2_CONSTRAINTS)
    return R1CS(A_rows=list(a), B_rows=list(b), C_rows=list(c), n_constraints=3, n_vars=9,
                n_pub_inputs=0, n_prv_inputs=5, n_outputs=1, prime=P)


def test_output_shapes_from_inputs():
    by_name = {c.name: c for c in REFERENCE_CASES}
    assert output_shape(by_name["det_m4"]) == ()
    assert output_shape(by_name["add_m4_rev"]) == (4, 4)
    assert output_shape(by_name["conv_m4_f2_s1"]) == (3, 3)
    assert output_shape(by_name["conv_m4_f2_s2"]) == (2, 2)
    assert output_shape(by_name["matvec_m4_v4"]) == (4,)
    assert output_shape(by_name["transpose_m4x3"]) == (12,)
    assert output_shape(by_name["power_m4"]) == (16,)

def test_witness_backend_determinant():
    case = OracleCase("det_swap", "determinant", {"in": SWAP})
    backend = WitnessBackend(_det2_r1cs(), SWAP_WITNESS, output_shape(case))
    res = run_case(backend, case, prove=True)
    assert res.actual == {"out": P - 1}
    assert res.matches
    assert res.verified is True

def test_witness_backend_wrong_output():
    case = OracleCase("det_swap", "determinant", {"in": SWAP})
    w = list(SWAP_WITNESS); w[1] = 5
    res = run_case(WitnessBackend(_det2_r1cs(), w, ()), case, prove=True)
    assert not res.matches
    assert res.verified is False

def test_oracle_regression_detected(monkeypatch):
    monkeypatch.setattr(mo, "determinant", lambda m: 12345)
    case = OracleCase("det_swap", "determinant", {"in": SWAP})
    res = run_case(WitnessBackend(_det2_r1cs(), SWAP_WITNESS, ()), case, prove=True)
    assert not res.matches
    assert res.verified is True

def test_witness_backend_reshapes_matrix_outputs():
    # out[i][j] = in[i][j] * k, wires 0 one | 1..4 out | 5..8 in | 9 k
    cons = [({5 + i: 1}, {9: 1}, {1 + i: 1}) for i in range(4)]
    a, b, c = zip(*cons)
    r = R1CS(A_rows=list(a), B_rows=list(b), C_rows=list(c), n_constraints=4, n_vars=10,
             n_pub_inputs=0, n_prv_inputs=5, n_outputs=4, prime=P)
    w = [1, 3, 6, 9, 12, 1, 2, 3, 4, 3]
    backend = WitnessBackend(r, w, (2, 2))
    assert backend.run_circuit({}) == {"out": [[3, 6], [9, 12]]}
    assert WitnessBackend(r, w).run_circuit({}) == {"out": [3, 6, 9, 12]}
    with pytest.raises(DimensionMismatch):
        WitnessBackend(r, w, (3, 3)).run_circuit({})

def test_tampered_public_signals_rejected():
    backend = WitnessBackend(_det2_r1cs(), SWAP_WITNESS, ())
    proof = backend.generate_proof({})
    assert proof["public"] == [P - 1]
    proof["public"] = [1]
    assert backend.verify_proof(proof) is False

def test_artifact_directory(tmp_path):
    case = OracleCase("det_swap", "determinant", {"in": SWAP})
    other = OracleCase("det_other", "determinant", {"in": SWAP})
    write_r1cs_bin(tmp_path / "det_swap.r1cs", DET2_CONSTRAINTS, 9, 1, 0, 5)
    write_wtns_bin(tmp_path / "det_swap.wtns", SWAP_WITNESS)
    (tmp_path / "det_other.r1cs").write_bytes((tmp_path / "det_swap.r1cs").read_bytes())
    assert find_artifacts(tmp_path, case) == (tmp_path / "det_swap.r1cs", tmp_path / "det_swap.wtns")
    assert find_artifacts(tmp_path, other) is None

    df = results_frame(run_cases(witness_backend_for(tmp_path), [case], prove=True))
    assert df["matches"].all()
    assert df["verified"].all()
    with pytest.raises(FileNotFoundError):
        witness_backend_for(tmp_path)(other)
