from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Callable

from stable_lse.payloads import OPERATIONS
from stable_lse.science.precision import FORMATS


class ValidationError(ValueError):
    """Raised when a JSON payload or config table violates its contract."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


def _join_path(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def require_key(obj: dict[str, Any], key: str, *, path: str) -> Any:
    if key not in obj:
        raise ValidationError(_join_path(path, key), "missing required key")
    return obj[key]


def require_type(value: Any, expected_type: type[Any] | tuple[type[Any], ...], *, path: str) -> None:
    if isinstance(value, bool):
        raise ValidationError(path, "bool is not an accepted numeric/string/object type here")
    if not isinstance(value, expected_type):
        expected = (
            ", ".join(t.__name__ for t in expected_type)
            if isinstance(expected_type, tuple)
            else expected_type.__name__
        )
        raise ValidationError(path, f"expected {expected}, got {type(value).__name__}")


def require_number(value: Any, *, path: str) -> float:
    # NaN and +/-inf are legitimate log-domain results.
    require_type(value, (int, float), path=path)
    return float(value)


def require_int(value: Any, *, path: str, minimum: int | None = None) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(path, f"expected int, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        raise ValidationError(path, f"must be >= {minimum}")
    return value


def require_bool(value: Any, *, path: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(path, f"expected bool, got {type(value).__name__}")
    return value


def require_string(value: Any, *, path: str) -> str:
    require_type(value, str, path=path)
    assert isinstance(value, str)
    return value


def require_object(value: Any, *, path: str) -> dict[str, Any]:
    require_type(value, dict, path=path)
    assert isinstance(value, dict)
    return value


def require_choice(value: Any, choices: tuple[str, ...], *, path: str) -> str:
    text = require_string(value, path=path)
    if text not in choices:
        raise ValidationError(path, f"must be one of: {', '.join(choices)}")
    return text


def _validate_provenance(payload: dict[str, Any], *, path: str) -> None:
    require_string(require_key(payload, "schema_version", path=path), path=_join_path(path, "schema_version"))
    require_string(require_key(payload, "python_version", path=path), path=_join_path(path, "python_version"))
    require_string(require_key(payload, "platform", path=path), path=_join_path(path, "platform"))
    require_string(require_key(payload, "package_version", path=path), path=_join_path(path, "package_version"))
    require_object(require_key(payload, "cli_args", path=path), path=_join_path(path, "cli_args"))


def _validate_result(payload: dict[str, Any], *, path: str) -> None:
    require_string(require_key(payload, "schema_version", path=path), path=_join_path(path, "schema_version"))
    require_choice(require_key(payload, "operation", path=path), OPERATIONS, path=_join_path(path, "operation"))
    require_choice(
        require_key(payload, "precision", path=path),
        tuple(fmt.name for fmt in FORMATS),
        path=_join_path(path, "precision"),
    )
    num_values = require_int(require_key(payload, "num_values", path=path), path=_join_path(path, "num_values"), minimum=0)
    stopped_early = require_bool(require_key(payload, "stopped_early", path=path), path=_join_path(path, "stopped_early"))
    value = require_number(require_key(payload, "value", path=path), path=_join_path(path, "value"))

    if stopped_early and not math.isnan(value):
        raise ValidationError(_join_path(path, "value"), "must be NaN when the reduction stopped early")
    if num_values == 0 and value != -math.inf:
        raise ValidationError(_join_path(path, "value"), "must be -inf for an empty input")

    source = require_object(require_key(payload, "input", path=path), path=_join_path(path, "input"))
    require_choice(require_key(source, "source", path=_join_path(path, "input")), ("csv", "values"), path=_join_path(path, "input.source"))

    require_string(require_key(payload, "created_at", path=path), path=_join_path(path, "created_at"))
    provenance = require_object(require_key(payload, "provenance", path=path), path=_join_path(path, "provenance"))
    _validate_provenance(provenance, path=_join_path(path, "provenance"))


_VALIDATORS: dict[str, Callable[[dict[str, Any]], None]] = {
    "result": lambda p: _validate_result(p, path="root"),
}


def validate_output(obj: dict[str, Any], *, kind: str | None = None) -> None:
    output_kind = "result" if kind is None else kind
    validator = _VALIDATORS.get(output_kind)
    if validator is None:
        raise ValidationError("root", f"unknown output kind '{output_kind}'")
    validator(obj)


def validate_output_file(path: Path, *, kind: str | None = None) -> None:
    file_path = Path(path)
    payload = json.loads(file_path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValidationError("root", f"expected top-level object, got {type(payload).__name__}")
    validate_output(payload, kind=kind)
