"""
Commit instructions for re-importing a flattened image.

``docker import --change`` accepts Dockerfile-style instructions; these are
derived from the runtime configuration of the image being flattened so the
single-layer result behaves like the original.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping


@dataclass
class CommitInstructions:
    """Ordered ``--change`` instructions plus the source image size."""

    changes: List[str] = field(default_factory=list)
    size: int = 0


def _json_array(values: List[str]) -> str:
    return json.dumps(list(values), separators=(",", ":"))


def format_env(entry: str) -> str:
    """Render one ``KEY=value`` environment entry as an ENV instruction."""
    key, _, value = entry.partition("=")
    if " " in value:
        escaped = (
            value.replace("\n", " ").replace('"', '\\"').replace("!", "\\!")
        )
        value = f'"{escaped}"'
    return f"ENV {key}={value}"


def get_changes_for_import(inspected: Mapping[str, Any]) -> CommitInstructions:
    """
    Translate an image inspection record into commit instructions.

    Args:
        inspected: Image record as returned by ``docker image inspect``

    Returns:
        CommitInstructions in USER, WORKDIR, ENV, EXPOSE, CMD, ENTRYPOINT order
    """
    config: Dict[str, Any] = inspected.get("Config") or {}
    changes: List[str] = []

    user = config.get("User")
    working = config.get("WorkingDir")
    env = config.get("Env") or []
    ports = list((config.get("ExposedPorts") or {}).keys())
    cmd = config.get("Cmd") or []
    entrypoint = config.get("Entrypoint") or []

    if user:
        changes.append(f"USER {user}")
    if working:
        changes.append(f"WORKDIR {working}")
    for entry in env:
        changes.append(format_env(entry))
    for port in ports:
        changes.append(f"EXPOSE {port}")
    if cmd:
        changes.append("CMD " + _json_array(cmd))
    if entrypoint:
        changes.append("ENTRYPOINT " + _json_array(entrypoint))

    return CommitInstructions(changes=changes, size=int(inspected.get("Size") or 0))
