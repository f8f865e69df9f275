from __future__ import annotations

from stable_lse.science.pairwise import log_add_exp
from stable_lse.science.precision import (
    DOUBLE,
    FORMATS,
    SINGLE,
    FloatFormat,
    get_format,
    log1p_exp,
    resolve_format,
)
from stable_lse.science.streaming import (
    LogSumExpAccumulator,
    ReductionResult,
    log_mean_exp,
    log_sum_exp,
    reduce_log_values,
)

__all__ = [
    "DOUBLE",
    "FORMATS",
    "SINGLE",
    "FloatFormat",
    "LogSumExpAccumulator",
    "ReductionResult",
    "get_format",
    "log1p_exp",
    "log_add_exp",
    "log_mean_exp",
    "log_sum_exp",
    "reduce_log_values",
    "resolve_format",
]
