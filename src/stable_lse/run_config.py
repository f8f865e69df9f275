from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from stable_lse import __version__
from stable_lse._toml import load_toml
from stable_lse.api import reduce_from_csv
from stable_lse.artifacts import file_sha256, write_json
from stable_lse.io.values_csv import DEFAULT_CHUNKSIZE, DEFAULT_COLUMN
from stable_lse.payloads import build_provenance, build_result_payload
from stable_lse.science.precision import FORMATS
from stable_lse.validation import (
    require_bool,
    require_choice,
    require_int,
    require_object,
    require_string,
    validate_output_file,
)

SCHEMA_VERSION = 1
DEFAULT_OUTPUT = "results/logsumexp.json"

logger = logging.getLogger(__name__)


def _iso_utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _resolve(config_path: Path, raw: str) -> Path:
    path = Path(raw)
    if not path.is_absolute():
        path = (config_path.parent / path).resolve()
    return path


def run_from_config(config_path: Path) -> Path:
    """Run the reduction described by a TOML config and return the result JSON path."""
    config_path = Path(config_path)
    config = load_toml(config_path)

    version = config.get("schema_version", -1)
    if version != SCHEMA_VERSION:
        raise ValueError(f"Unsupported config schema_version={version}; expected {SCHEMA_VERSION}.")

    if "reduce" not in config:
        raise ValueError("Config must contain a [reduce] table.")
    section = require_object(config["reduce"], path="reduce")

    csv_path = _resolve(config_path, require_string(section.get("csv", ""), path="reduce.csv"))
    if not csv_path.exists():
        raise ValueError(f"CSV not found: {csv_path}")

    column = require_string(section.get("column", DEFAULT_COLUMN), path="reduce.column")
    precision = require_choice(
        section.get("precision", "double"),
        tuple(fmt.name for fmt in FORMATS),
        path="reduce.precision",
    )
    chunksize = require_int(section.get("chunksize", DEFAULT_CHUNKSIZE), path="reduce.chunksize", minimum=1)
    mean = require_bool(section.get("mean", False), path="reduce.mean")
    output_path = _resolve(config_path, require_string(section.get("output", DEFAULT_OUTPUT), path="reduce.output"))

    result = reduce_from_csv(csv_path, column=column, precision=precision, chunksize=chunksize, mean=mean)

    cli_args = {
        "config_path": str(config_path),
        "reduce": {
            "csv": str(csv_path),
            "column": column,
            "precision": precision,
            "chunksize": chunksize,
            "mean": mean,
            "output": str(output_path),
        },
    }
    payload = build_result_payload(
        result,
        operation="logmeanexp" if mean else "logsumexp",
        input_info={
            "source": "csv",
            "csv": str(csv_path),
            "column": column,
            "sha256": file_sha256(csv_path),
        },
        created_at=_iso_utc_now(),
        provenance=build_provenance(cli_args=cli_args, package_version=__version__),
    )
    write_json(output_path, payload)
    validate_output_file(output_path, kind="result")
    logger.info("Wrote: %s", output_path)
    return output_path
