from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from stable_lse.api import reduce_from_csv, reduce_values
from stable_lse.science import (
    DOUBLE,
    SINGLE,
    FloatFormat,
    LogSumExpAccumulator,
    ReductionResult,
    log1p_exp,
    log_add_exp,
    log_mean_exp,
    log_sum_exp,
)


try:
    __version__ = version("stable-lse")
except PackageNotFoundError:
    __version__ = "0+unknown"

__all__ = [
    "DOUBLE",
    "SINGLE",
    "FloatFormat",
    "LogSumExpAccumulator",
    "ReductionResult",
    "log1p_exp",
    "log_add_exp",
    "log_mean_exp",
    "log_sum_exp",
    "reduce_from_csv",
    "reduce_values",
    "__version__",
]
