"""YAML document persistence with backup-and-reset on corruption."""

import logging
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

import yaml
from rich.console import Console
from rich.markup import escape

from .errors import ConfigError

T = TypeVar("T")

log = logging.getLogger(__name__)
err_console = Console(stderr=True)

# Bad UTF-8 (a ValueError), YAML syntax errors and rejected document shapes
CORRUPTION_ERRORS = (yaml.YAMLError, ValueError, TypeError, KeyError)


def backup_path(path: Path) -> Path:
    """Path a corrupted document is moved to, e.g. prompts.yaml.backup."""
    return path.with_name(path.name + ".backup")


def write_document(path: Path, data: Any) -> None:
    """Write a YAML document, replacing the whole file."""
    temp_file = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_file, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        temp_file.replace(path)
    except OSError as e:
        raise ConfigError(f"Cannot write {path}: {e}") from e
    finally:
        if temp_file.exists():
            temp_file.unlink()


def read_document(path: Path, parse: Callable[[Any], T], default: Callable[[], Any]) -> Optional[T]:
    """
    Read and parse a YAML document.

    Returns None if the file does not exist. If the file cannot be parsed,
    it is renamed to a .backup file, a fresh document built from `default()`
    is written in its place and its parsed value is returned.
    """
    if not path.exists():
        return None

    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        return parse(yaml.safe_load(raw.decode("utf-8")))
    except CORRUPTION_ERRORS as e:
        log.debug("Failed to parse %s: %s", path, e)

    backup = backup_path(path)
    try:
        path.replace(backup)
    except OSError as e:
        raise ConfigError(f"Cannot back up corrupted {path}: {e}") from e

    err_console.print(
        f"[yellow]Warning:[/yellow] Corrupted {path.name} detected. "
        f"Backed up to {escape(str(backup))} and created a new one.",
        highlight=False,
    )

    fresh = default()
    write_document(path, fresh)
    return parse(fresh)
