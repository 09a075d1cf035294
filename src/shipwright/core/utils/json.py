"""Helpers for writing pipeline metadata as JSON files."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel


def normalize_for_json(obj: Any) -> Any:
    """Normalize an object for JSON serialization.

    Pydantic models are dumped using their field aliases so the written
    files keep the wire names (``pullRequest``, ``continue``).

    Args:
        obj: The object to normalize.

    Returns:
        A JSON-serializable version of the object.
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj

    if isinstance(obj, Enum):
        return obj.value

    if isinstance(obj, BaseModel):
        return normalize_for_json(obj.model_dump(by_alias=True))

    if isinstance(obj, Path):
        return str(obj)

    if isinstance(obj, dict):
        return {key: normalize_for_json(value) for key, value in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [normalize_for_json(item) for item in obj]

    return obj


def write_json_file(
    path: Union[str, Path], data: Any, indent: Optional[int] = None
) -> Path:
    """Serialize ``data`` to ``path``.

    Args:
        path: Destination file.
        data: Model, dict or list to write.
        indent: Pretty-print indent; ``None`` writes compact JSON.

    Returns:
        The resolved path that was written.
    """
    target = Path(path).resolve()
    separators = None if indent is not None else (",", ":")
    content = json.dumps(normalize_for_json(data), indent=indent, separators=separators)
    target.write_text(content, encoding="utf-8")
    return target
