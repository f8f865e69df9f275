from __future__ import annotations

from typing import Any

import numpy as np

from stable_lse.science.precision import PrecisionLike, get_format, log1p_exp, resolve_format


def log_add_exp(a: Any, b: Any, precision: PrecisionLike = None) -> np.floating:
    """
    Compute ``log(exp(a) + exp(b))`` without overflow.

    Uses the decomposition ``hi + log1p(exp(lo - hi))`` with ``hi = max(a, b)``,
    so the argument of the stable primitive is never positive.

    Edge cases:
      - NaN in either input gives NaN.
      - +inf in either input (and no NaN) gives +inf.
      - both inputs -inf gives -inf.

    The result is a numpy scalar of the operands' precision, or of ``precision``
    when given.
    """
    fmt = resolve_format(a, b) if precision is None else get_format(precision)
    a = fmt.cast(a)
    b = fmt.cast(b)

    if np.isnan(a) or np.isnan(b):
        return fmt.nan

    if a >= b:
        hi, lo = a, b
    else:
        hi, lo = b, a

    if hi == fmt.pos_inf or hi == fmt.neg_inf:
        return hi

    # lo - hi may overflow to -inf for far-apart finite inputs; log1p_exp(-inf) is 0.
    with np.errstate(over="ignore"):
        return fmt.cast(hi + log1p_exp(lo - hi, fmt))
