from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from zkmat.core.r1cs_io import BinaryReader, read_sections

log = logging.getLogger(__name__)

WTNS_MAGIC = b"wtns"

def _parse_value(v) -> int:
    if isinstance(v, bool):
        raise ValueError(f"Unsupported witness value type: {type(v)}")
    if isinstance(v, int):
        return v
    if isinstance(v, str):
        s = v.strip()
        return int(s, 16) if s.startswith(("0x", "0X")) else int(s)
    raise ValueError(f"Unsupported witness value type: {type(v)}")

def load_witness_json(path, p: Optional[int] = None) -> List[int]:
    """
    Accept:
      • snarkjs: ["1","..."]
      • alt:     {"values":[...]} / {"witness":[...]} / {"data":[...]}
    Return list[int], reduced mod p when p is given.
    """
    obj = json.loads(Path(path).read_text())
    if isinstance(obj, list):
        vals = obj
    else:
        vals = obj.get("values") or obj.get("witness") or obj.get("data") or []
    if not isinstance(vals, list):
        raise ValueError("Witness JSON does not contain an array")
    out = [_parse_value(v) for v in vals]
    if p:
        out = [v % p for v in out]
    return out

def load_witness_binary(path, p: Optional[int] = None) -> List[int]:
    """Read a snarkjs .wtns file (header section 1, values section 2)."""
    buf = Path(path).read_bytes()
    _, sections = read_sections(buf, WTNS_MAGIC, error=ValueError)
    if 1 not in sections or 2 not in sections:
        raise ValueError("wtns file lacks a header or values section")
    h = BinaryReader(buf, sections[1][0], ValueError)
    n8 = h.u32()
    prime = h.field(n8)
    n_witness = h.u32()
    d = BinaryReader(buf, sections[2][0], ValueError)
    out = [d.field(n8) for _ in range(n_witness)]
    if p and p != prime:
        out = [v % p for v in out]
    log.debug("read %s: %d witness values", path, n_witness)
    return out

def load_witness(path, p: Optional[int] = None) -> List[int]:
    with open(path, "rb") as f:
        head = f.read(4)
    if head == WTNS_MAGIC:
        return load_witness_binary(path, p)
    return load_witness_json(path, p)

def write_witness_json(path, values: Sequence[int]) -> None:
    """Persist as a snarkjs-style array of decimal strings."""
    Path(path).write_text(json.dumps([str(int(v)) for v in values], indent=1))
