from __future__ import annotations

import json
import math
import os
import subprocess
import sys
from pathlib import Path

import pytest

from stable_lse.run_config import run_from_config
from stable_lse.validation import ValidationError

REPO_ROOT = Path(__file__).resolve().parents[1]


def _run_cli(*args: str, cwd: Path) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    src_path = str(REPO_ROOT / "src")
    env["PYTHONPATH"] = src_path if not env.get("PYTHONPATH") else f"{src_path}{os.pathsep}{env['PYTHONPATH']}"
    return subprocess.run(
        [sys.executable, "-m", "stable_lse.cli", *args],
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
        check=False,
    )


def _write_inputs(tmp_path: Path, *extra_lines: str) -> Path:
    (tmp_path / "values.csv").write_text("logp\n1000.0\n1000.0\n-inf\n", encoding="utf-8")
    config_path = tmp_path / "reduce.toml"
    config_path.write_text(
        "\n".join(
            [
                "schema_version = 1",
                "",
                "[reduce]",
                'csv = "values.csv"',
                'column = "logp"',
                "chunksize = 2",
                *extra_lines,
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    return config_path


def test_run_from_config_writes_validated_result(tmp_path: Path) -> None:
    pytest.importorskip("pandas")
    config_path = _write_inputs(tmp_path, 'output = "out/lse.json"')

    output_path = run_from_config(config_path)

    assert output_path == (tmp_path / "out" / "lse.json").resolve()
    payload = json.loads(output_path.read_text(encoding="utf-8"))
    assert payload["operation"] == "logsumexp"
    assert payload["precision"] == "double"
    assert payload["num_values"] == 3
    assert payload["value"] == pytest.approx(1000.0 + math.log(2.0), rel=1e-15)
    assert payload["input"]["csv"] == str((tmp_path / "values.csv").resolve())
    assert payload["provenance"]["cli_args"]["reduce"]["chunksize"] == 2


def test_run_from_config_mean_single_precision(tmp_path: Path) -> None:
    pytest.importorskip("pandas")
    config_path = _write_inputs(tmp_path, 'precision = "single"', "mean = true")

    payload = json.loads(run_from_config(config_path).read_text(encoding="utf-8"))

    assert payload["operation"] == "logmeanexp"
    assert payload["precision"] == "single"
    assert payload["value"] == pytest.approx(1000.0 + math.log(2.0) - math.log(3.0), rel=1e-6)


def test_run_from_config_default_output_location(tmp_path: Path) -> None:
    pytest.importorskip("pandas")
    config_path = _write_inputs(tmp_path)

    output_path = run_from_config(config_path)

    assert output_path == (tmp_path / "results" / "logsumexp.json").resolve()
    assert output_path.exists()


def test_run_from_config_rejects_unknown_schema_version(tmp_path: Path) -> None:
    config_path = tmp_path / "reduce.toml"
    config_path.write_text('schema_version = 2\n\n[reduce]\ncsv = "values.csv"\n', encoding="utf-8")

    with pytest.raises(ValueError, match="Unsupported config schema_version=2"):
        run_from_config(config_path)


def test_run_from_config_requires_reduce_table(tmp_path: Path) -> None:
    config_path = tmp_path / "reduce.toml"
    config_path.write_text("schema_version = 1\n", encoding="utf-8")

    with pytest.raises(ValueError, match=r"\[reduce\] table"):
        run_from_config(config_path)


def test_run_from_config_rejects_bad_field_types(tmp_path: Path) -> None:
    config_path = _write_inputs(tmp_path, 'precision = "half"')

    with pytest.raises(ValidationError) as excinfo:
        run_from_config(config_path)
    assert excinfo.value.path == "reduce.precision"


def test_run_from_config_missing_csv(tmp_path: Path) -> None:
    config_path = tmp_path / "reduce.toml"
    config_path.write_text('schema_version = 1\n\n[reduce]\ncsv = "nope.csv"\n', encoding="utf-8")

    with pytest.raises(ValueError, match="CSV not found"):
        run_from_config(config_path)


def test_cli_config_flag_runs_reduction(tmp_path: Path) -> None:
    pytest.importorskip("pandas")
    config_path = _write_inputs(tmp_path, 'output = "cli.json"')

    completed = _run_cli("--config", str(config_path), cwd=tmp_path)

    assert completed.returncode == 0, completed.stderr
    assert (tmp_path / "cli.json").exists()


def test_cli_config_flag_reports_validation_errors(tmp_path: Path) -> None:
    config_path = _write_inputs(tmp_path, "mean = 1")

    completed = _run_cli("--config", str(config_path), cwd=tmp_path)

    assert completed.returncode != 0
    assert "first_error_path=reduce.mean" in completed.stderr
