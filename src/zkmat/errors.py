from __future__ import annotations
from typing import Optional


class ZkmatError(ValueError):
    """Base class for every error raised by zkmat."""


class DimensionMismatch(ZkmatError):
    """Operand shapes are incompatible for a matrix operation."""


class MalformedConstraintSystem(ZkmatError):
    """A constraint system (or the file it was read from) is inconsistent."""


class WitnessLengthMismatch(ZkmatError):
    """Witness length disagrees with the declared layout sizes."""


class UnsatisfiedConstraint(ZkmatError):
    def __init__(self, row: Optional[int], residual: int):
        self.row = row
        self.residual = residual
        if row is None:
            msg = f"Witness slot 0 must hold the constant 1, got {residual}"
        else:
            msg = f"Witness does not satisfy R1CS (first failing row {row}, value {residual})"
        super().__init__(msg)
