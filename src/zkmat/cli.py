import json
import logging
import click
from pathlib import Path
from zkmat.core import matrix_oracle as mo
from zkmat.core.fieldla import BN254_PRIME
from zkmat.core.r1cs_io import load_r1cs, summarize_r1cs
from zkmat.core.satisfaction import check_witness
from zkmat.core.witness_io import load_witness
from zkmat.driver.cases import REFERENCE_CASES
from zkmat.driver.oracle_driver import find_artifacts, results_frame, run_cases, witness_backend_for
from zkmat.errors import ZkmatError
from zkmat.export.exporter import ExportConfig, export_files
from zkmat.export.layout import Layout

log = logging.getLogger(__name__)

OPS = ["add", "hadamard", "scalar", "transpose", "multiply", "power", "determinant", "convolution"]

@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Debug logging to stderr")
def cli(verbose):
    """zkmat command line interface"""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

@cli.command(name="parse")
@click.option("--r1cs", type=click.Path(exists=True, dir_okay=False), required=True,
              help="Path to a circom .r1cs or snarkjs-exported R1CS JSON")
def parse_cmd(r1cs):
    """Parse and summarize an R1CS."""
    try:
        r = load_r1cs(r1cs)
    except ZkmatError as e:
        raise click.ClickException(str(e))
    summary = summarize_r1cs(r)
    summary["circuit_id"] = Path(r1cs).stem
    click.echo(json.dumps(summary, indent=2))

@cli.command(name="check")
@click.option("--r1cs", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--witness", type=click.Path(exists=True, dir_okay=False), required=True,
              help="Witness as .wtns or snarkjs JSON")
@click.option("--prime", type=int, default=None, envvar="ZKMAT_PRIME",
              help="Field prime for an R1CS file that does not declare one")
def check_cmd(r1cs, witness, prime):
    """Check that a witness satisfies every constraint."""
    try:
        r = load_r1cs(r1cs, default_prime=prime)
        w = load_witness(witness)
        check_witness(r, w)
    except ZkmatError as e:
        raise click.ClickException(str(e))
    click.echo(json.dumps({"circuit_id": Path(r1cs).stem, "satisfied": True,
                           "n_constraints": r.n_constraints}, indent=2))

@cli.command(name="export")
@click.option("--r1cs", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--witness", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--out", "out_path", type=click.Path(dir_okay=False), required=True,
              help="Where to write the export JSON")
@click.option("--layout", type=click.Choice([l.value for l in Layout]),
              default=Layout.INPUTS_FIRST.value, show_default=True)
@click.option("--fix-tail-overlap/--keep-tail-overlap", default=False, show_default=True,
              help="Start the internal-signal tail after the last input instead of on it")
@click.option("--check/--no-check", "check", default=False, show_default=True,
              help="Verify the witness against the R1CS before exporting")
@click.option("--indent", default=2, show_default=True)
def export_cmd(r1cs, witness, out_path, layout, fix_tail_overlap, check, indent):
    """Reindex an R1CS + witness and write the sparse triplet document."""
    cfg = ExportConfig(layout=Layout(layout), fix_tail_overlap=fix_tail_overlap,
                       check_witness=check, indent=indent if indent > 0 else None)
    try:
        summary = export_files(r1cs, witness, out_path, cfg)
    except ZkmatError as e:
        raise click.ClickException(str(e))
    click.echo(json.dumps(summary, indent=2))

@cli.command(name="oracle")
@click.option("--op", type=click.Choice(OPS), required=True)
@click.option("--in", "in1", required=True, help="Matrix as JSON, e.g. '[[1,2],[3,4]]'")
@click.option("--in2", default=None, help="Second operand (add, hadamard, multiply) or filter (convolution)")
@click.option("--scalar", type=int, default=None)
@click.option("--stride", default=1, show_default=True)
@click.option("--flat", is_flag=True, help="Print a matrix result row-major flattened")
def oracle_cmd(op, in1, in2, scalar, stride, flat):
    """Compute the reference result of one matrix operation."""
    try:
        A = json.loads(in1)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--in")
    try:
        B = json.loads(in2) if in2 else None
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--in2")
    if op in ("add", "hadamard", "multiply", "convolution") and B is None:
        raise click.UsageError(f"--in2 is required for {op}")
    if op == "scalar" and scalar is None:
        raise click.UsageError("--scalar is required for scalar")
    try:
        if op == "add":
            out = mo.add(A, B)
        elif op == "hadamard":
            out = mo.hadamard(A, B)
        elif op == "scalar":
            out = mo.scalar_multiply(A, scalar)
        elif op == "transpose":
            out = mo.transpose(A)
        elif op == "multiply":
            out = mo.multiply(A, B)
        elif op == "power":
            out = mo.power3(A)
        elif op == "determinant":
            out = mo.determinant(A)
        else:
            out = mo.convolve(A, B, stride)
    except ValueError as e:
        raise click.ClickException(str(e))
    if flat and isinstance(out, list):
        out = mo.flatten(out)
    click.echo(json.dumps({"op": op, "out": out}))

@cli.command(name="cases")
@click.option("--artifacts", type=click.Path(exists=True, file_okay=False), required=True,
              help="Directory holding <case>.r1cs[.json] and <case>.wtns[.json] per reference case")
@click.option("--out", "out_path", type=click.Path(dir_okay=False), required=False,
              help="Write the results table to this CSV")
@click.option("--prime", type=int, default=BN254_PRIME, envvar="ZKMAT_PRIME", show_default=False)
def cases_cmd(artifacts, out_path, prime):
    """Compare compiled reference circuits with the oracle."""
    cases = [c for c in REFERENCE_CASES if find_artifacts(artifacts, c) is not None]
    skipped = [c.name for c in REFERENCE_CASES if c not in cases]
    if skipped:
        log.info("no artifacts for %d case(s): %s", len(skipped), ", ".join(skipped))
    if not cases:
        raise click.UsageError(f"no case artifacts found in {artifacts}")
    try:
        results = run_cases(witness_backend_for(artifacts), cases, prove=True, p=prime)
    except ZkmatError as e:
        raise click.ClickException(str(e))
    df = results_frame(results)
    if out_path:
        Path(out_path).parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(out_path, index=False)
    click.echo(df[["name", "operation", "matches", "verified"]].to_string(index=False))
    if not (df["matches"].all() and df["verified"].all()):
        raise click.ClickException("some cases do not match the oracle or fail verification")


def main():
    cli()

if __name__ == "__main__":
    main()
