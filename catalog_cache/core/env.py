"""Environment file loading for local development.

``.env`` is read first and ``.env.local`` may override it. Variables already
present in the process environment always win over both files.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence

ENV_FILES = (".env", ".env.local")


def parse_env_file(path: Path) -> Dict[str, str]:
    """Parse ``KEY=value`` lines; blank lines, comments and junk are skipped."""

    values: Dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        values[key] = _clean_value(value.strip())
    return values


def load_env(root: Optional[Path] = None, *, files: Sequence[str] = ENV_FILES) -> List[str]:
    """Apply ``files`` found under ``root`` to ``os.environ``.

    Returns the keys that were set. Later files override earlier ones, never
    the variables that existed before loading started.
    """

    base = root or _project_root()
    shell_keys = set(os.environ)
    merged: Dict[str, str] = {}
    for name in files:
        path = base / name
        if path.is_file():
            merged.update(parse_env_file(path))

    applied: List[str] = []
    for key, value in merged.items():
        if key in shell_keys:
            continue
        os.environ[key] = value
        applied.append(key)
    return applied


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _clean_value(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    # unquoted values may carry a trailing comment
    comment = value.find(" #")
    if comment != -1:
        value = value[:comment].rstrip()
    return value


__all__ = ["ENV_FILES", "load_env", "parse_env_file"]
