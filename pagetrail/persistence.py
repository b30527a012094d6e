"""Project files - JSON/YAML transport for exported store data.

The core never performs I/O; this module only moves ``export_data()``
documents to and from disk.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .core.store import EventStore

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _is_yaml(path: Path) -> bool:
    return path.suffix in (".yaml", ".yml")


def read_project_file(path: PathLike) -> Dict[str, Any]:
    """Read an export document from a JSON or YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        PermissionError: If the file cannot be read.
        ValueError: If the file is empty or not a mapping.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Project file not found: {path}")

    try:
        content = path.read_text()
    except PermissionError:
        raise PermissionError(f"Permission denied reading project file: {path}")

    if not content.strip():
        raise ValueError(f"Project file is empty: {path}")

    try:
        if _is_yaml(path):
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Invalid file format in {path}: {e}")

    if data is None:
        raise ValueError(f"Project file contains no data: {path}")

    if not isinstance(data, dict):
        raise ValueError(f"Project file must contain a dictionary, got {type(data).__name__}: {path}")

    return data


def write_project_file(data: Dict[str, Any], path: PathLike) -> None:
    """Write an export document as JSON, or YAML for .yaml/.yml paths."""
    path = Path(path)
    if not path.parent.exists():
        raise FileNotFoundError(f"Directory does not exist: {path.parent}")

    if _is_yaml(path):
        content = yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    else:
        content = json.dumps(data, indent=2, default=str)
    path.write_text(content)


def save_project(store: EventStore, path: PathLike) -> None:
    """Export ``store`` to ``path``."""
    write_project_file(store.export_data(), path)
    logger.info("Saved project with %d events to %s", len(store.get_all_events()), path)


def load_project(path: PathLike, store: Optional[EventStore] = None) -> EventStore:
    """Load a project file into ``store`` (a new store by default).

    Raises:
        FileNotFoundError, PermissionError, ValueError: If the file cannot be
            read, or its contents are rejected by ``import_data``.
    """
    data = read_project_file(path)
    store = store if store is not None else EventStore()
    if not store.import_data(data):
        raise ValueError(f"Project file could not be imported: {path}")
    return store
