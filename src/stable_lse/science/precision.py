from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

import numpy as np


@dataclass(frozen=True)
class FloatFormat:
    """
    One of the two supported binary floating-point widths.

    The cut-offs select the branch of the piecewise ``log1p(exp(x))`` evaluation
    (Maechler, 2012), tuned to the machine epsilon of the width:
      - x <= exp_cutoff:      exp(x)
      - x <= log1p_cutoff:    log1p(exp(x))
      - x <= linear_cutoff:   x + exp(-x)
      - otherwise:            x
    """

    name: str
    dtype: np.dtype
    exp_cutoff: float
    log1p_cutoff: float
    linear_cutoff: float

    def cast(self, value: Any) -> np.floating:
        return self.dtype.type(value)

    @property
    def neg_inf(self) -> np.floating:
        return self.dtype.type(-np.inf)

    @property
    def pos_inf(self) -> np.floating:
        return self.dtype.type(np.inf)

    @property
    def nan(self) -> np.floating:
        return self.dtype.type(np.nan)

    @property
    def zero(self) -> np.floating:
        return self.dtype.type(0.0)


SINGLE = FloatFormat(
    name="single",
    dtype=np.dtype(np.float32),
    exp_cutoff=-15.942385,
    log1p_cutoff=8.0,
    linear_cutoff=16.635532,
)
DOUBLE = FloatFormat(
    name="double",
    dtype=np.dtype(np.float64),
    exp_cutoff=-37.0,
    log1p_cutoff=18.0,
    linear_cutoff=33.3,
)

FORMATS: tuple[FloatFormat, ...] = (SINGLE, DOUBLE)

_ALIASES = {
    "single": SINGLE,
    "float32": SINGLE,
    "f32": SINGLE,
    "double": DOUBLE,
    "float64": DOUBLE,
    "f64": DOUBLE,
}

PrecisionLike = Union[FloatFormat, str, np.dtype, type, None]


def get_format(precision: PrecisionLike = None) -> FloatFormat:
    """Look up a FloatFormat by name, numpy dtype or scalar type. ``None`` means double."""
    if precision is None:
        return DOUBLE
    if isinstance(precision, FloatFormat):
        return precision
    if isinstance(precision, str):
        key = precision.strip().lower()
        if key in _ALIASES:
            return _ALIASES[key]
        raise ValueError(
            f"Unsupported precision '{precision}'; expected one of: {', '.join(sorted(_ALIASES))}."
        )

    try:
        dtype = np.dtype(precision)
    except TypeError as e:
        raise ValueError(f"Unsupported precision {precision!r}.") from e

    for fmt in FORMATS:
        if dtype == fmt.dtype:
            return fmt
    raise ValueError(f"Unsupported floating-point type '{dtype}'; only float32 and float64 are supported.")


def resolve_format(*values: Any) -> FloatFormat:
    """
    Pick the precision for an operation from its operands.

    numpy floating scalars decide the precision (the widest wins); Python
    ``int``/``float`` operands are weak and adopt it. With no numpy floating
    operand the result is double precision.
    """
    resolved: FloatFormat | None = None
    for value in values:
        if isinstance(value, np.generic):
            if not isinstance(value, np.floating):
                raise ValueError(
                    f"Unsupported numeric type '{value.dtype}'; only float32 and float64 are supported."
                )
            fmt = get_format(value.dtype)
            if resolved is None or fmt.dtype.itemsize > resolved.dtype.itemsize:
                resolved = fmt
        elif not isinstance(value, (int, float)):
            raise ValueError(f"Expected a floating-point log value, got {type(value).__name__}.")
    return DOUBLE if resolved is None else resolved


def log1p_exp(x: Any, precision: PrecisionLike = None) -> np.floating:
    """
    Evaluate ``log(1 + exp(x))`` without overflow or premature underflow.

    Returns 0 for -inf, +inf for +inf and propagates NaN.
    """
    fmt = resolve_format(x) if precision is None else get_format(precision)
    x = fmt.cast(x)

    if x <= fmt.exp_cutoff:
        return fmt.cast(np.exp(x))
    if x <= fmt.log1p_cutoff:
        return fmt.cast(np.log1p(np.exp(x)))
    if x <= fmt.linear_cutoff:
        return fmt.cast(x + np.exp(-x))
    # +inf and NaN both land here unchanged.
    return x
