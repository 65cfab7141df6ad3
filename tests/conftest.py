import json
import struct
import pytest

from zkmat.core.fieldla import BN254_PRIME

P = BN254_PRIME
N8 = 32

# out = a*b + c with a public, b and c private, t = a*b internal.
# native wires: 0 one | 1 out | 2 a | 3 b | 4 c | 5 t
MULADD_CONSTRAINTS = [
    ({2: 1}, {3: 1}, {5: 1}),
    ({}, {}, {5: 1, 4: 1, 1: P - 1}),
]
MULADD_WITNESS = [1, 22, 3, 5, 7, 15]


def _u32(x):
    return struct.pack("<I", x)

def _u64(x):
    return struct.pack("<Q", x)

def _fe(x):
    return int(x).to_bytes(N8, "little")

def _section(s_type, payload):
    return _u32(s_type) + _u64(len(payload)) + payload

def write_r1cs_bin(path, constraints, n_wires, n_out, n_pub, n_prv, prime=P):
    header = _u32(N8) + _fe(prime) + _u32(n_wires) + _u32(n_out) + _u32(n_pub) \
        + _u32(n_prv) + _u64(n_wires) + _u32(len(constraints))
    body = b""
    for lcs in constraints:
        for lc in lcs:
            body += _u32(len(lc))
            for wire, coeff in lc.items():
                body += _u32(wire) + _fe(coeff)
    labels = b"".join(_u64(i) for i in range(n_wires))
    data = b"r1cs" + _u32(1) + _u32(3) + _section(1, header) + _section(2, body) + _section(3, labels)
    path.write_bytes(data)
    return path

def write_wtns_bin(path, values, prime=P):
    header = _u32(N8) + _fe(prime) + _u32(len(values))
    body = b"".join(_fe(v) for v in values)
    path.write_bytes(b"wtns" + _u32(2) + _u32(2) + _section(1, header) + _section(2, body))
    return path

def r1cs_json_obj(constraints, n_vars, n_out, n_pub, n_prv, prime=P):
    def row(d):
        return {str(k): str(v) for k, v in d.items()}
    return {
        "n8": N8,
        "prime": str(prime),
        "nVars": n_vars,
        "nOutputs": n_out,
        "nPubInputs": n_pub,
        "nPrvInputs": n_prv,
        "nLabels": n_vars,
        "nConstraints": len(constraints),
        "constraints": [[row(a), row(b), row(c)] for a, b, c in constraints],
        "map": list(range(n_vars)),
    }

@pytest.fixture
def muladd_r1cs_json(tmp_path):
    p = tmp_path / "muladd.r1cs.json"
    p.write_text(json.dumps(r1cs_json_obj(MULADD_CONSTRAINTS, 6, 1, 1, 2)))
    return p

@pytest.fixture
def muladd_r1cs_bin(tmp_path):
    return write_r1cs_bin(tmp_path / "muladd.r1cs", MULADD_CONSTRAINTS, 6, 1, 1, 2)

@pytest.fixture
def muladd_wtns_json(tmp_path):
    p = tmp_path / "muladd.wtns.json"
    p.write_text(json.dumps([str(v) for v in MULADD_WITNESS]))
    return p

@pytest.fixture
def muladd_wtns_bin(tmp_path):
    return write_wtns_bin(tmp_path / "muladd.wtns", MULADD_WITNESS)
