from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from zkmat.core.r1cs_io import R1CS, load_r1cs
from zkmat.core.satisfaction import check_witness
from zkmat.core.witness_io import load_witness
from zkmat.errors import MalformedConstraintSystem
from zkmat.export.layout import Layout, LayoutSizes, reindex_witness, to_canonical_index

log = logging.getLogger(__name__)

# (constraint row, canonical column, coefficient)
Triplet = Tuple[int, int, int]


@dataclass(frozen=True)
class ExportConfig:
    layout: Layout = Layout.INPUTS_FIRST
    fix_tail_overlap: bool = False
    check_witness: bool = False
    indent: Optional[int] = 2


@dataclass(frozen=True)
class ExportedConstraints:
    A: Tuple[Triplet, ...]
    B: Tuple[Triplet, ...]
    C: Tuple[Triplet, ...]

    def nnz(self) -> int:
        return max(len(self.A), len(self.B), len(self.C))

    def to_json(self) -> Dict[str, List[list]]:
        return {name: [[i, j, str(v)] for i, j, v in getattr(self, name)] for name in ("A", "B", "C")}


def validate_constraint_system(r: R1CS) -> None:
    if not (len(r.A_rows) == len(r.B_rows) == len(r.C_rows)):
        raise MalformedConstraintSystem(
            f"A/B/C row counts differ: {len(r.A_rows)}/{len(r.B_rows)}/{len(r.C_rows)}"
        )
    if len(r.A_rows) != r.n_constraints:
        raise MalformedConstraintSystem(
            f"header declares {r.n_constraints} constraints, {len(r.A_rows)} rows present"
        )
    for name, rows in (("A", r.A_rows), ("B", r.B_rows), ("C", r.C_rows)):
        for i, row in enumerate(rows):
            for var in row:
                if not 0 <= var < r.n_vars:
                    raise MalformedConstraintSystem(
                        f"{name}[{i}] references wire {var}, outside [0, {r.n_vars})"
                    )


def export_constraints(r: R1CS, layout: Layout = Layout.INPUTS_FIRST,
                       sizes: Optional[LayoutSizes] = None) -> ExportedConstraints:
    """
    One triplet per nonzero coefficient, per matrix.

    Rows keep their order and terms within a row keep the order the source
    enumerated them in; columns are not re-sorted.
    """
    validate_constraint_system(r)
    sizes = sizes or LayoutSizes.from_r1cs(r)

    def walk(rows: Sequence[Dict[int, int]]) -> Tuple[Triplet, ...]:
        out = []
        for i, row in enumerate(rows):
            for var, coeff in row.items():
                if coeff == 0:
                    continue
                out.append((i, to_canonical_index(var, sizes, layout), int(coeff)))
        return tuple(out)

    exported = ExportedConstraints(A=walk(r.A_rows), B=walk(r.B_rows), C=walk(r.C_rows))
    log.debug("exported %d/%d/%d triplets", len(exported.A), len(exported.B), len(exported.C))
    return exported


def build_export_document(r: R1CS, witness: Sequence[int],
                          config: ExportConfig = ExportConfig()) -> Dict[str, Any]:
    """
    The exported document: sizes, reindexed witness and A/B/C triplets.
    Field elements are decimal strings so no consumer loses precision.
    """
    if config.check_witness:
        check_witness(r, witness)
    sizes = LayoutSizes.from_r1cs(r)
    wtns = reindex_witness(witness, sizes, config.layout, config.fix_tail_overlap)
    constraints = export_constraints(r, config.layout, sizes)
    return {
        "nInputs": sizes.n_inputs,
        "nOutputs": r.n_outputs,
        "nVars": r.n_vars,
        "nConstraints": r.n_constraints,
        "wtns": [str(int(v)) for v in wtns],
        "constraints": constraints.to_json(),
    }


def write_export_json(path: str | Path, doc: Dict[str, Any], indent: Optional[int] = 2) -> None:
    outp = Path(path)
    outp.parent.mkdir(parents=True, exist_ok=True)
    outp.write_text(json.dumps(doc, indent=indent), encoding="utf-8")


def export_files(r1cs_path: str | Path, witness_path: str | Path, out_path: str | Path,
                 config: ExportConfig = ExportConfig()) -> Dict[str, Any]:
    """Read R1CS + witness, write the export document, return a short summary."""
    r = load_r1cs(r1cs_path)
    witness = load_witness(witness_path)
    doc = build_export_document(r, witness, config)
    write_export_json(out_path, doc, config.indent)
    return {
        "out": str(out_path),
        "layout": Layout(config.layout).value,
        "nInputs": doc["nInputs"],
        "nOutputs": doc["nOutputs"],
        "nVars": doc["nVars"],
        "nConstraints": doc["nConstraints"],
        "wtns_len": len(doc["wtns"]),
        "triplets": {k: len(v) for k, v in doc["constraints"].items()},
    }
