from __future__ import annotations

import platform
from dataclasses import asdict, is_dataclass
from typing import Any

SCHEMA_VERSION = "1.0"
OPERATIONS = ("logsumexp", "logmeanexp")


def _to_dict(obj: Any) -> dict[str, Any]:
    if isinstance(obj, dict):
        return dict(obj)
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    raise TypeError(f"Expected dict or dataclass instance, got {type(obj).__name__}.")


def build_provenance(*, cli_args: dict[str, Any] | None, package_version: str) -> dict[str, Any]:
    return {
        "schema_version": SCHEMA_VERSION,
        "python_version": platform.python_version(),
        "platform": platform.platform(),
        "package_version": package_version,
        "cli_args": {} if cli_args is None else cli_args,
    }


def build_result_payload(
    reduction: Any,
    *,
    operation: str,
    input_info: dict[str, Any],
    created_at: str,
    provenance: dict[str, Any],
) -> dict[str, Any]:
    if operation not in OPERATIONS:
        raise ValueError(f"Unknown operation '{operation}'; expected one of: {', '.join(OPERATIONS)}.")

    result = _to_dict(reduction)
    return {
        "schema_version": SCHEMA_VERSION,
        "operation": operation,
        "precision": result["precision"],
        "num_values": result["num_values"],
        "stopped_early": result["stopped_early"],
        "value": float(result["value"]),
        "input": dict(input_info),
        "created_at": created_at,
        "provenance": dict(provenance),
    }
