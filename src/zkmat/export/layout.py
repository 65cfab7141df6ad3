from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from zkmat.errors import WitnessLengthMismatch

log = logging.getLogger(__name__)


class Layout(str, Enum):
    """
    Target wire orderings. circom numbers wires as

        0 | 1 .. nOutputs | inputs (public, then private) | internal signals

    inputs-first: inputs, the constant 1, outputs, then internal signals at
    their native indices.
    vars-first: outputs, internal signals, the constant 1, then inputs, the
    z = (vars, 1, inputs) assignment of Spartan-style backends.
    """
    INPUTS_FIRST = "inputs-first"
    VARS_FIRST = "vars-first"


@dataclass(frozen=True)
class LayoutSizes:
    n_outputs: int
    n_pub_inputs: int
    n_prv_inputs: int
    # total native wires including the constant; needed for vars-first and
    # for witness length checks
    n_vars: Optional[int] = None

    @property
    def n_inputs(self) -> int:
        return self.n_pub_inputs + self.n_prv_inputs

    @property
    def last_io_index(self) -> int:
        """Highest native index that is not an internal signal."""
        return self.n_outputs + self.n_inputs

    @property
    def n_internal(self) -> int:
        if self.n_vars is None:
            raise ValueError("n_vars is required to count internal signals")
        return self.n_vars - self.last_io_index - 1

    @classmethod
    def from_r1cs(cls, r) -> "LayoutSizes":
        return cls(r.n_outputs, r.n_pub_inputs, r.n_prv_inputs, r.n_vars)


def to_canonical_index(index: int, sizes: LayoutSizes, layout: Layout = Layout.INPUTS_FIRST) -> int:
    """Map a circuit-native wire index to its position in `layout`."""
    layout = Layout(layout)
    if index < 0:
        raise ValueError(f"negative wire index {index}")
    n_out, n_in = sizes.n_outputs, sizes.n_inputs
    if layout is Layout.INPUTS_FIRST:
        if index > n_out + n_in:
            return index
        if n_out < index <= n_out + n_in:
            return index - n_out - 1
        if 0 < index <= n_out:
            return index + n_in
        return n_in
    n_int = sizes.n_internal
    if index > n_out + n_in:
        return index - n_in - 1
    if n_out < index <= n_out + n_in:
        return index + n_int
    if 0 < index <= n_out:
        return index - 1
    return n_int + n_out


def from_canonical_index(k: int, sizes: LayoutSizes, layout: Layout = Layout.INPUTS_FIRST) -> int:
    """Inverse of to_canonical_index."""
    layout = Layout(layout)
    if k < 0:
        raise ValueError(f"negative canonical index {k}")
    n_out, n_in = sizes.n_outputs, sizes.n_inputs
    if layout is Layout.INPUTS_FIRST:
        if k < n_in:
            return k + n_out + 1
        if k == n_in:
            return 0
        if k <= n_in + n_out:
            return k - n_in
        return k
    n_int = sizes.n_internal
    if k < n_out:
        return k + 1
    if k < n_out + n_int:
        return k + n_in + 1
    if k == n_out + n_int:
        return 0
    return k - n_int


def reindex_witness(w: Sequence[int], sizes: LayoutSizes, layout: Layout = Layout.INPUTS_FIRST,
                    fix_tail_overlap: bool = False) -> List[int]:
    """
    Reorder a native witness into `layout`.

    For inputs-first the internal tail is taken from native index
    nOutputs+nInputs, one slot early: it repeats the last input and leaves
    every internal signal one position right of to_canonical_index, so the
    result has one extra entry.
    fix_tail_overlap=True starts the tail one slot later, which makes the
    result an exact permutation of `w`. vars-first has no overlap and
    ignores the flag.
    """
    layout = Layout(layout)
    n_out, n_in = sizes.n_outputs, sizes.n_inputs
    head = sizes.last_io_index
    if len(w) < head + 1:
        raise WitnessLengthMismatch(
            f"witness has {len(w)} values, layout needs at least {head + 1}"
        )
    if sizes.n_vars is not None and len(w) != sizes.n_vars:
        raise WitnessLengthMismatch(f"witness has {len(w)} values, expected {sizes.n_vars}")

    w = list(w)
    if layout is Layout.INPUTS_FIRST:
        tail_start = head + 1 if fix_tail_overlap else head
        out = w[n_out + 1:head + 1] + [1] + w[1:n_out + 1] + w[tail_start:]
    else:
        out = w[1:n_out + 1] + w[head + 1:] + [1] + w[n_out + 1:head + 1]
    log.debug("reindexed %d witness values into %d (%s)", len(w), len(out), layout.value)
    return out
