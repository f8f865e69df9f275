from __future__ import annotations

import argparse
import functools
import logging
import platform
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np

from stable_lse import __version__
from stable_lse.api import reduce_from_csv, reduce_values
from stable_lse.artifacts import file_sha256, write_json
from stable_lse.io.values_csv import DEFAULT_CHUNKSIZE, DEFAULT_COLUMN
from stable_lse.payloads import build_provenance, build_result_payload
from stable_lse.science.pairwise import log_add_exp
from stable_lse.science.precision import FORMATS, get_format
from stable_lse.science.streaming import reduce_log_values
from stable_lse.validation import ValidationError, validate_output_file


LOG_FORMAT = "%(message)s"
LOG_LEVELS = {
    "quiet": logging.WARNING,
    "default": logging.INFO,
    "verbose": logging.DEBUG,
}
PRECISION_CHOICES = [fmt.name for fmt in FORMATS]
logger = logging.getLogger(__name__)

COMMON_FLOW_EXAMPLES = """Examples:
  # Pairwise log-add-exp
  stablelse combine 1000 1000

  # Log-sum-exp of values given on the command line
  stablelse reduce -1000 -1000 0.5

  # Streaming log-sum-exp of a CSV column, with a JSON result document
  stablelse reduce --csv values.csv --column log_value --out results/logsumexp.json

  # Config-driven run
  stablelse --config configs/reduce.toml
"""


def _iso_utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _runtime_seconds(start_time: float) -> float:
    return time.perf_counter() - start_time


def configure_logging(verbose: bool, quiet: bool) -> int:
    if verbose and quiet:
        raise SystemExit("--verbose and --quiet cannot be used together")

    if verbose:
        level = LOG_LEVELS["verbose"]
    elif quiet:
        level = LOG_LEVELS["quiet"]
    else:
        level = LOG_LEVELS["default"]

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout, force=True)
    return level


def add_precision_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--precision",
        choices=PRECISION_CHOICES,
        default="double",
        help="Floating-point width used for the computation.",
    )


def build_combine_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "combine", help="Compute log(exp(a) + exp(b)) for two log values."
    )
    parser.add_argument("a", type=float, help="First log value.")
    parser.add_argument("b", type=float, help="Second log value.")
    add_precision_arg(parser)
    return parser


def build_reduce_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "reduce", help="Compute the log-sum-exp of a sequence of log values in one pass."
    )
    parser.add_argument("values", nargs="*", type=float, help="Log values (ignored with --csv).")
    parser.add_argument("--csv", type=Path, default=None, help="CSV file holding one column of log values.")
    parser.add_argument("--column", default=DEFAULT_COLUMN, help="CSV column name.")
    parser.add_argument(
        "--chunksize",
        type=int,
        default=DEFAULT_CHUNKSIZE,
        help="Rows per CSV chunk.",
    )
    add_precision_arg(parser)
    parser.add_argument(
        "--mean",
        action="store_true",
        help="Report log-mean-exp (log-sum-exp minus log of the count) instead.",
    )
    parser.add_argument("--out", type=Path, default=None, help="Write a JSON result document here.")
    return parser


def build_bench_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "bench", help="Time the streaming reduction against a two-pass reference."
    )
    parser.add_argument("--n", type=int, default=100_000, help="Number of synthetic log values.")
    parser.add_argument("--seed", type=int, default=7, help="Random seed for synthetic values.")
    parser.add_argument("--scale", type=float, default=500.0, help="Standard deviation of synthetic values.")
    add_precision_arg(parser)
    parser.add_argument(
        "--out",
        type=Path,
        default=Path("results") / "bench_logsumexp.json",
        help="Output JSON path for the benchmark payload.",
    )
    return parser


def handle_combine(args: argparse.Namespace) -> None:
    value = log_add_exp(args.a, args.b, precision=args.precision)
    logger.info("log_add_exp = %s", value)


def handle_reduce(args: argparse.Namespace) -> None:
    if args.csv is not None and args.values:
        raise SystemExit("Pass values either on the command line or via --csv, not both.")

    operation = "logmeanexp" if args.mean else "logsumexp"
    try:
        if args.csv is not None:
            result = reduce_from_csv(
                args.csv,
                column=args.column,
                precision=args.precision,
                chunksize=args.chunksize,
                mean=args.mean,
            )
            input_info: dict[str, Any] = {
                "source": "csv",
                "csv": str(Path(args.csv).resolve()),
                "column": args.column,
                "sha256": file_sha256(args.csv),
            }
        else:
            result = reduce_values(args.values, precision=args.precision, mean=args.mean)
            input_info = {"source": "values"}
    except FileNotFoundError as e:
        raise SystemExit(f"Input file not found: {args.csv} ({e})") from e
    except ValueError as e:
        raise SystemExit(f"Input validation error: {e}") from e

    value = get_format(result.precision).cast(result.value)
    logger.info("%s = %s", operation, value)
    logger.debug("num_values = %d stopped_early = %s", result.num_values, result.stopped_early)

    if args.out is not None:
        cli_args = {key: (str(val) if isinstance(val, Path) else val) for key, val in vars(args).items()}
        payload = build_result_payload(
            result,
            operation=operation,
            input_info=input_info,
            created_at=_iso_utc_now(),
            provenance=build_provenance(cli_args=cli_args, package_version=__version__),
        )
        write_json(args.out, payload)
        try:
            validate_output_file(args.out, kind="result")
        except ValidationError as e:
            raise SystemExit(
                f"Output validation failed: first_error_path={e.path}, detail={e.message}"
            ) from e
        logger.info("Wrote: %s", args.out)


def handle_bench(args: argparse.Namespace) -> None:
    if args.n <= 0:
        raise SystemExit("--n must be > 0")

    fmt = get_format(args.precision)
    rng = np.random.default_rng(args.seed)
    values = rng.normal(loc=0.0, scale=args.scale, size=args.n).astype(fmt.dtype)

    start = time.perf_counter()
    streaming = reduce_log_values(iter(values), precision=fmt)
    streaming_runtime_s = _runtime_seconds(start)

    start = time.perf_counter()
    pairwise = functools.reduce(lambda acc, x: log_add_exp(acc, x, precision=fmt), values, fmt.neg_inf)
    pairwise_runtime_s = _runtime_seconds(start)

    start = time.perf_counter()
    m = np.max(values)
    two_pass = fmt.cast(m + np.log(np.sum(np.exp(values - m))))
    two_pass_runtime_s = _runtime_seconds(start)

    payload = {
        "command": "bench",
        "params": {
            "n": args.n,
            "seed": args.seed,
            "scale": args.scale,
            "precision": fmt.name,
        },
        "timings": {
            "streaming_runtime_s": streaming_runtime_s,
            "pairwise_runtime_s": pairwise_runtime_s,
            "two_pass_runtime_s": two_pass_runtime_s,
        },
        "result_snapshot": {
            "streaming": streaming.value,
            "pairwise": float(pairwise),
            "two_pass": float(two_pass),
            "abs_diff_vs_two_pass": abs(streaming.value - float(two_pass)),
            "ulps_vs_two_pass": float(abs(streaming.value - float(two_pass)) / np.spacing(np.abs(two_pass))),
        },
        "environment": {
            "python": sys.version.split()[0],
            "platform": platform.platform(),
            "numpy": np.__version__,
            "stable_lse_version": __version__,
        },
    }

    write_json(args.out, payload)
    logger.info("Wrote: %s", args.out)
    logger.info("Benchmark timing summary")
    logger.info("  values (n)          : %d", args.n)
    logger.info("  streaming (s)       : %.6f", streaming_runtime_s)
    logger.info("  pairwise fold (s)   : %.6f", pairwise_runtime_s)
    logger.info("  two-pass numpy (s)  : %.6f", two_pass_runtime_s)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stablelse",
        description="Numerically stable log-add-exp and single-pass log-sum-exp.",
        epilog=COMMON_FLOW_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Run a reduction from a TOML config file.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress non-essential output.",
    )
    subparsers = parser.add_subparsers(dest="command")

    build_combine_parser(subparsers)
    build_reduce_parser(subparsers)
    build_bench_parser(subparsers)
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(verbose=args.verbose, quiet=args.quiet)

    if args.config is not None:
        from stable_lse.run_config import run_from_config

        config_path = Path(args.config)
        if not config_path.exists():
            raise SystemExit(f"Config file not found: {config_path}")
        try:
            run_from_config(config_path)
        except ValidationError as e:
            raise SystemExit(
                f"Validation failed: first_error_path={e.path}, detail={e.message}"
            ) from e
        except ValueError as e:
            raise SystemExit(f"Config validation error: {e}") from e
        return

    if args.command == "combine":
        handle_combine(args)
    elif args.command == "reduce":
        handle_reduce(args)
    elif args.command == "bench":
        handle_bench(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
