"""Package model discovery on disk."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import msgpack

from .errors import ModelError
from .model import Package

_MSGPACK_SUFFIXES = {".msgpack", ".mpk"}


def read_manifest(path: Path) -> dict[str, Any]:
    """Read a package manifest document (JSON, or MessagePack by suffix)."""
    path = Path(path)
    if not path.exists():
        raise ModelError(f"package manifest not found at {path}")

    if path.suffix.lower() in _MSGPACK_SUFFIXES:
        try:
            obj = msgpack.unpackb(path.read_bytes(), raw=False)
        except Exception as e:  # noqa: BLE001 - boundary decoding error
            raise ModelError(f"failed to decode {path.name}: {e}") from e
    else:
        try:
            obj = json.loads(path.read_text(encoding="utf-8"))
        except Exception as e:  # noqa: BLE001 - boundary parse
            raise ModelError(f"failed to parse {path.name}: {e}") from e

    if not isinstance(obj, dict):
        raise ModelError(f"{path.name}: package manifest must be an object")
    return obj


def load_package(path: str | Path) -> Package:
    return Package.from_manifest(read_manifest(Path(path)))


def write_manifest(doc: dict[str, Any], path: str | Path) -> Path:
    """Write a manifest document in the format selected by the file suffix."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in _MSGPACK_SUFFIXES:
        path.write_bytes(msgpack.packb(doc, use_bin_type=True))
    else:
        path.write_text(json.dumps(doc, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return path
