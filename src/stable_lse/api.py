from __future__ import annotations

import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable

from stable_lse.io.values_csv import DEFAULT_CHUNKSIZE, DEFAULT_COLUMN, logsumexp_from_csv_streaming
from stable_lse.science.precision import PrecisionLike, get_format
from stable_lse.science.streaming import ReductionResult, reduce_log_values

logger = logging.getLogger(__name__)


def _to_mean(result: ReductionResult) -> ReductionResult:
    if result.num_values == 0:
        raise ValueError("Cannot take the log-mean-exp of an empty input.")
    fmt = get_format(result.precision)
    value = fmt.cast(fmt.cast(result.value) - fmt.cast(math.log(result.num_values)))
    return replace(result, value=float(value))


def reduce_values(
    values: Iterable[Any],
    precision: PrecisionLike = None,
    mean: bool = False,
) -> ReductionResult:
    """Reduce an in-memory or lazily produced sequence of log values."""
    result = reduce_log_values(values, precision=precision)
    logger.debug(
        "Reduced values: n=%d precision=%s stopped_early=%s",
        result.num_values,
        result.precision,
        result.stopped_early,
    )
    return _to_mean(result) if mean else result


def reduce_from_csv(
    csv_path: Path,
    column: str = DEFAULT_COLUMN,
    precision: PrecisionLike = "double",
    chunksize: int = DEFAULT_CHUNKSIZE,
    mean: bool = False,
) -> ReductionResult:
    """Reduce one CSV column of log values in a single streaming pass."""
    csv_path = Path(csv_path)
    logger.debug(
        "Reducing CSV column: path=%s column=%s chunksize=%d precision=%s",
        csv_path,
        column,
        chunksize,
        get_format(precision).name,
    )
    result = logsumexp_from_csv_streaming(csv_path, column=column, chunksize=chunksize, precision=precision)
    return _to_mean(result) if mean else result
