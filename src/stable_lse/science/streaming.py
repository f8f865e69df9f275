from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Iterable

import numpy as np

from stable_lse.science.precision import FloatFormat, PrecisionLike, get_format, resolve_format


@dataclass(frozen=True)
class ReductionResult:
    value: float
    num_values: int
    precision: str
    stopped_early: bool


class LogSumExpAccumulator:
    """
    Single-pass log-sum-exp over a stream of log-domain values.

    State is a running maximum ``m`` and a running sum ``s`` of ``exp(x_i - m)``,
    so the reduction equals ``m + log(s)``. When a value exceeds ``m`` the sum is
    rescaled by ``exp(m_old - m_new)`` before the new term (weight 1) is added.

    NaN is absorbing and +inf dominates every other value except NaN. The
    subtractions ``-inf - -inf`` and ``inf - inf`` are never evaluated.
    """

    __slots__ = ("_format", "_m", "_s")

    def __init__(self, precision: PrecisionLike = "double") -> None:
        self._format: FloatFormat = get_format(precision)
        self._m: np.floating = self._format.neg_inf
        self._s: np.floating = self._format.zero

    @property
    def precision(self) -> FloatFormat:
        return self._format

    @property
    def running_max(self) -> np.floating:
        return self._m

    @property
    def running_sum(self) -> np.floating:
        return self._s

    @property
    def is_nan(self) -> bool:
        return bool(np.isnan(self._m))

    def update(self, x: Any) -> None:
        fmt = self._format
        x = fmt.cast(x)

        if self.is_nan:
            return
        if np.isnan(x):
            self._m = fmt.nan
            self._s = fmt.nan
            return
        if x == fmt.neg_inf or self._m == fmt.pos_inf:
            return

        # Differences of far-apart finite values overflow to -inf, whose exp is 0.
        with np.errstate(over="ignore"):
            if x <= self._m:
                self._s = fmt.cast(self._s + np.exp(x - self._m))
            else:
                self._s = fmt.cast(self._s * np.exp(self._m - x) + fmt.cast(1.0))
                self._m = x

    def extend(self, values: Iterable[Any]) -> int:
        """Fold ``values`` left to right; stop pulling once NaN is seen. Returns the number pulled."""
        count = 0
        for value in values:
            count += 1
            self.update(value)
            if self.is_nan:
                break
        return count

    def merge(self, other: "LogSumExpAccumulator") -> None:
        """Fold the partial result of another accumulator (e.g. one partition) into this one."""
        if other.precision != self._format:
            raise ValueError(
                f"Cannot merge a {other.precision.name}-precision accumulator "
                f"into a {self._format.name}-precision one."
            )

        fmt = self._format
        if self.is_nan:
            return
        if other.is_nan:
            self._m = fmt.nan
            self._s = fmt.nan
            return
        if other.running_max == fmt.neg_inf or self._m == fmt.pos_inf:
            return
        if other.running_max == fmt.pos_inf or self._m == fmt.neg_inf:
            self._m = other.running_max
            self._s = other.running_sum
            return

        with np.errstate(over="ignore"):
            if other.running_max <= self._m:
                self._s = fmt.cast(self._s + other.running_sum * np.exp(other.running_max - self._m))
            else:
                self._s = fmt.cast(self._s * np.exp(self._m - other.running_max) + other.running_sum)
                self._m = other.running_max

    def logsumexp(self) -> np.floating:
        fmt = self._format
        if self.is_nan:
            return fmt.nan
        if self._m == fmt.pos_inf or self._m == fmt.neg_inf:
            return self._m
        return fmt.cast(self._m + np.log(self._s))


def _accumulator_for(values: Iterable[Any], precision: PrecisionLike) -> tuple[LogSumExpAccumulator, Iterable[Any]]:
    if precision is not None:
        return LogSumExpAccumulator(precision), values

    iterator = iter(values)
    try:
        first = next(iterator)
    except StopIteration:
        return LogSumExpAccumulator(), iterator
    return LogSumExpAccumulator(resolve_format(first)), itertools.chain([first], iterator)


def reduce_log_values(values: Iterable[Any], precision: PrecisionLike = None) -> ReductionResult:
    """
    Log-sum-exp of ``values`` in a single traversal, with bookkeeping.

    Without an explicit ``precision`` the first value decides it; an empty
    input reduces to double-precision -inf.
    """
    acc, source = _accumulator_for(values, precision)
    count = acc.extend(source)
    return ReductionResult(
        value=float(acc.logsumexp()),
        num_values=count,
        precision=acc.precision.name,
        stopped_early=acc.is_nan,
    )


def log_sum_exp(values: Iterable[Any], precision: PrecisionLike = None) -> np.floating:
    acc, source = _accumulator_for(values, precision)
    acc.extend(source)
    return acc.logsumexp()


def log_mean_exp(values: Iterable[Any], precision: PrecisionLike = None) -> np.floating:
    """Log of the mean of ``exp(values)``: ``log_sum_exp(values) - log(n)``."""
    acc, source = _accumulator_for(values, precision)
    count = acc.extend(source)
    if count == 0:
        raise ValueError("No values were provided to log_mean_exp.")
    fmt = acc.precision
    return fmt.cast(acc.logsumexp() - np.log(fmt.cast(count)))
