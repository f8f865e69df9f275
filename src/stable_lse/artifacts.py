from __future__ import annotations

import json
from hashlib import sha256
from pathlib import Path
from typing import Any, Mapping


def ensure_parent_dir(path: Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def write_json(path: Path, obj: Mapping[str, Any]) -> None:
    # Non-finite results are written as the NaN/Infinity literals Python's json reads back.
    path = Path(path)
    ensure_parent_dir(path)
    path.write_text(json.dumps(obj, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def file_sha256(path: Path) -> str:
    digest = sha256()
    with Path(path).open("rb") as f:
        while chunk := f.read(1024 * 1024):
            digest.update(chunk)
    return digest.hexdigest()
