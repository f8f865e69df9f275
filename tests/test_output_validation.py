from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any

import pytest

from stable_lse.artifacts import write_json
from stable_lse.payloads import build_provenance, build_result_payload
from stable_lse.science.streaming import ReductionResult
from stable_lse.validation import ValidationError, validate_output, validate_output_file


def _payload(**overrides: Any) -> dict[str, Any]:
    result = ReductionResult(value=1.5, num_values=3, precision="double", stopped_early=False)
    payload = build_result_payload(
        result,
        operation="logsumexp",
        input_info={"source": "values"},
        created_at="2026-01-01T00:00:00+00:00",
        provenance=build_provenance(cli_args={"command": "reduce"}, package_version="0.1.0"),
    )
    payload.update(overrides)
    return payload


def test_valid_result_payload_passes() -> None:
    validate_output(_payload())


@pytest.mark.parametrize("value", [math.inf, -math.inf])
def test_non_finite_values_are_valid_results(value: float) -> None:
    validate_output(_payload(value=value))


def test_nan_result_round_trips_through_json_file(tmp_path: Path) -> None:
    path = tmp_path / "result.json"
    write_json(path, _payload(value=math.nan, stopped_early=True))

    validate_output_file(path)
    assert math.isnan(json.loads(path.read_text(encoding="utf-8"))["value"])


@pytest.mark.parametrize(
    ("overrides", "error_path"),
    [
        ({"operation": "sum"}, "root.operation"),
        ({"precision": "half"}, "root.precision"),
        ({"num_values": -1}, "root.num_values"),
        ({"num_values": True}, "root.num_values"),
        ({"value": "1.5"}, "root.value"),
        ({"stopped_early": True}, "root.value"),
        ({"num_values": 0}, "root.value"),
        ({"input": {"source": "stdin"}}, "root.input.source"),
    ],
)
def test_invalid_result_payloads_report_first_error_path(overrides: dict[str, Any], error_path: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_output(_payload(**overrides))
    assert excinfo.value.path == error_path


def test_missing_key_is_reported() -> None:
    payload = _payload()
    del payload["provenance"]["package_version"]

    with pytest.raises(ValidationError, match="missing required key") as excinfo:
        validate_output(payload)
    assert excinfo.value.path == "root.provenance.package_version"


def test_unknown_output_kind() -> None:
    with pytest.raises(ValidationError, match="unknown output kind"):
        validate_output(_payload(), kind="metrics")


def test_build_result_payload_rejects_unknown_operation() -> None:
    with pytest.raises(ValueError, match="Unknown operation"):
        _ = build_result_payload(
            {"value": 0.0, "num_values": 1, "precision": "double", "stopped_early": False},
            operation="softmax",
            input_info={"source": "values"},
            created_at="2026-01-01T00:00:00+00:00",
            provenance={},
        )
