"""Environment variable helpers."""

from __future__ import annotations

import os
from pathlib import Path

_EXPORT_PREFIX = "export "


def _unquote(value: str) -> str:
    """Remove one pair of matching wrapping quotes from a value."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _parse_line(raw_line: str, location: str) -> tuple[str, str] | None:
    """Parse one dotenv line into a key/value pair, or ``None`` for blanks and comments."""
    line = raw_line.strip()
    if not line or line.startswith("#"):
        return None
    if line.startswith(_EXPORT_PREFIX):
        line = line[len(_EXPORT_PREFIX) :].strip()
    key, separator, raw_value = line.partition("=")
    key = key.strip()
    if not separator or not key:
        raise ValueError(f"Invalid dotenv line at {location}")
    return key, _unquote(raw_value.strip())


def load_dotenv(path: Path = Path(".env"), override: bool = False) -> dict[str, str]:
    """
    Load environment variables (API keys, API host/port) from a ``.env`` file.

    Missing files are ignored so that runs can rely on the real environment.

    Args:
        path: Dotenv file path.
        override: Whether loaded values replace variables that are already set.

    Returns:
        Mapping of environment variables that were set in this call.
    """
    resolved_path = path.expanduser().resolve()
    if not resolved_path.exists():
        return {}
    if not resolved_path.is_file():
        raise ValueError(f"Dotenv path is not a file: {resolved_path}")

    loaded: dict[str, str] = {}
    with resolved_path.open("r", encoding="utf-8") as handle:
        for line_number, raw_line in enumerate(handle, start=1):
            parsed = _parse_line(raw_line, f"{resolved_path}:{line_number}")
            if parsed is None:
                continue
            key, value = parsed
            if key in os.environ and not override:
                continue
            os.environ[key] = value
            loaded[key] = value
    return loaded
