"""
Spec, session and route persistence.

Everything is flat JSON on disk. Read errors surface as ``SpecLoadError``
so the CLI can report them; a single malformed session inside an otherwise
readable file is skipped with a warning.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from ..utils.error_handler import SpecLoadError
from .routes import Route
from .session.types import Session, parse_session
from .spec.types import Spec

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _read_json(path: Path) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise SpecLoadError(f"File not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise SpecLoadError(f"Could not read {path}: {e}") from e


def _as_records(data: Any, key: str) -> List[Any]:
    """Accept a bare list, a single object, or an object wrapping a list under ``key``."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    return [data]


def save_spec(spec: Spec, path: PathLike) -> Path:
    """Write a spec as pretty-printed JSON, creating parent directories."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, 'w', encoding='utf-8') as f:
        f.write(spec.to_json(indent=2, ensure_ascii=False))
        f.write("\n")
    logger.info(f"💾 Saved spec '{spec.name}' to {target}")
    return target


def load_spec(path: PathLike) -> Spec:
    """
    Load a spec written by ``save_spec``.

    Raises:
        SpecLoadError: if the file is missing or is not a valid spec
    """
    data = _read_json(Path(path))
    if not isinstance(data, dict):
        raise SpecLoadError(f"{path} does not contain a spec object")
    try:
        return Spec.from_dict(data)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise SpecLoadError(f"Invalid spec in {path}: {e}") from e


def load_session_records(path: PathLike) -> List[Dict[str, Any]]:
    """
    Raw session dictionaries from a JSON file or a directory of ``*.json``.

    A file may hold one session, a list of sessions, or ``{"sessions": [...]}``.
    Directory entries are read in name order.
    """
    source = Path(path)
    if source.is_dir():
        files = sorted(source.glob("*.json"))
        logger.debug(f"Reading {len(files)} session files from {source}")
    else:
        files = [source]

    records = []
    for file_path in files:
        records.extend(_as_records(_read_json(file_path), 'sessions'))
    return records


def load_sessions(path: PathLike) -> List[Session]:
    """Parse sessions from ``path``, skipping records that are not sessions."""
    sessions = []
    for index, record in enumerate(load_session_records(path)):
        if not isinstance(record, dict) or not isinstance(record.get('header'), dict):
            logger.warning(f"⚠️ Skipping session record #{index} in {path}: no header")
            continue
        try:
            sessions.append(parse_session(record))
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"⚠️ Skipping session record #{index} in {path}: {e}")

    logger.info(f"Loaded {len(sessions)} sessions from {path}")
    return sessions


def load_routes(path: PathLike) -> List[Route]:
    """
    Load extractor routes from a JSON file (a list or ``{"routes": [...]}``).

    Routes without a usable path are skipped with a warning.
    """
    routes = []
    for index, record in enumerate(_as_records(_read_json(Path(path)), 'routes')):
        try:
            routes.append(Route.from_dict(record))
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"⚠️ Skipping route #{index} in {path}: {e}")
    return routes
