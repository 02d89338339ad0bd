"""File I/O utilities: atomic writes, YAML handling."""

from __future__ import annotations

import tempfile
from pathlib import Path

from ruamel.yaml import YAML

_yaml = YAML(typ="safe")


def write_atomic(path: Path | str, text: str) -> None:
    """Write text to a file atomically (write to temp, then rename)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        dir=path.parent,
        suffix=path.suffix,
        delete=False,
        encoding="utf-8",
    ) as tmp:
        tmp.write(text)
        tmp_path = Path(tmp.name)

    tmp_path.replace(path)


def read_yaml(path: Path | str) -> dict:
    """Read a YAML file and return as dict."""
    path = Path(path)
    with open(path) as f:
        return dict(_yaml.load(f) or {})
