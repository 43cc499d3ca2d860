"""lingocore: rules engine for the sentence, cloze and sniper language drills."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

__all__ = ["__version__"]

_DISTRIBUTION = "lingocore"


def _source_tree_version() -> str | None:
    """Return the version declared by the nearest lingocore pyproject.toml, if any."""
    for base in Path(__file__).resolve().parents:
        pyproject = base / "pyproject.toml"
        if not pyproject.is_file():
            continue
        try:
            project = tomllib.loads(pyproject.read_text(encoding="utf-8")).get("project", {})
        except tomllib.TOMLDecodeError:
            continue
        if project.get("name") == _DISTRIBUTION and isinstance(project.get("version"), str):
            return project["version"]
    return None


def _resolve_version() -> str:
    declared = _source_tree_version()
    if declared is not None:
        return declared
    try:
        return version(_DISTRIBUTION)
    except PackageNotFoundError:
        return "0+unknown"


__version__ = _resolve_version()
