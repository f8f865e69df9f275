from stable_lse.io.values_csv import (
    iter_log_values_csv,
    logsumexp_from_csv_streaming,
)

__all__ = [
    "iter_log_values_csv",
    "logsumexp_from_csv_streaming",
]
