from __future__ import annotations

import logging
from contextlib import closing
from pathlib import Path
from typing import Iterator

import numpy as np

from stable_lse.science.precision import PrecisionLike, get_format
from stable_lse.science.streaming import ReductionResult, reduce_log_values

DEFAULT_COLUMN = "log_value"
DEFAULT_CHUNKSIZE = 100_000

logger = logging.getLogger(__name__)


def iter_log_values_csv(
    csv_path: Path,
    column: str = DEFAULT_COLUMN,
    chunksize: int = DEFAULT_CHUNKSIZE,
    precision: PrecisionLike = "double",
) -> Iterator[np.floating]:
    """
    Lazily yield log-domain values from one CSV column, chunk by chunk.

    Empty cells and ``nan`` parse as NaN; ``inf``/``-inf`` parse as infinities.
    A finite cell that does not fit the requested precision (e.g. ``1e39`` in
    single precision) raises ``ValueError`` instead of becoming an infinity.
    Values are yielded as numpy scalars of the requested precision. The file is
    only read as far as the consumer pulls.
    """
    import pandas as pd

    csv_path = Path(csv_path)
    fmt = get_format(precision)
    if chunksize <= 0:
        raise ValueError("chunksize must be > 0.")
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found: {csv_path}")

    with pd.read_csv(csv_path, chunksize=chunksize, float_precision="round_trip") as reader:
        for chunk in reader:
            if column not in chunk.columns:
                raise ValueError(f"CSV '{csv_path}' is missing required column '{column}'.")

            try:
                series = pd.to_numeric(chunk[column], errors="raise")
            except (TypeError, ValueError) as e:
                raise ValueError(
                    f"CSV '{csv_path}' column '{column}' must contain numeric values ({e})."
                ) from e

            parsed = series.to_numpy(dtype=np.float64)
            with np.errstate(over="ignore"):
                values = parsed.astype(fmt.dtype)
            overflowed = np.isfinite(parsed) & ~np.isfinite(values)
            if overflowed.any():
                first = int(overflowed.argmax())
                raise ValueError(
                    f"CSV '{csv_path}' column '{column}' value {float(parsed[first])!r} "
                    f"at row {int(chunk.index[first])} "
                    f"is out of range for {fmt.name} precision."
                )

            for value in values:
                yield value


def logsumexp_from_csv_streaming(
    csv_path: Path,
    column: str = DEFAULT_COLUMN,
    chunksize: int = DEFAULT_CHUNKSIZE,
    precision: PrecisionLike = "double",
) -> ReductionResult:
    fmt = get_format(precision)
    with closing(iter_log_values_csv(csv_path, column=column, chunksize=chunksize, precision=fmt)) as values:
        result = reduce_log_values(values, precision=fmt)

    if result.stopped_early:
        logger.debug(
            "NaN encountered in %s after %d values; remaining rows were not read.",
            csv_path,
            result.num_values,
        )
    return result
