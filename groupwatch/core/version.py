"""Version reported by ``/health`` and the OpenAPI document."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Final

import tomllib

DISTRIBUTION: Final[str] = "groupwatch"
UNKNOWN_VERSION: Final[str] = "0.0.0"
SOURCE_PYPROJECT: Final[Path] = Path(__file__).resolve().parents[2] / "pyproject.toml"


def resolve_version(
    distribution: str = DISTRIBUTION,
    pyproject: Path = SOURCE_PYPROJECT,
) -> str:
    """
    Installed metadata wins; a source checkout falls back to ``[project].version``.

    A missing file or a missing version string resolves to ``0.0.0``.
    """
    try:
        return version(distribution)
    except PackageNotFoundError:
        if not pyproject.is_file():
            return UNKNOWN_VERSION

    with pyproject.open("rb") as fp:
        project = tomllib.load(fp).get("project")
    declared = project.get("version") if isinstance(project, dict) else None
    return declared if isinstance(declared, str) else UNKNOWN_VERSION


APP_VERSION: Final[str] = resolve_version()

__all__ = ["APP_VERSION", "resolve_version"]
