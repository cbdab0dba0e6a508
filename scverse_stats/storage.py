"""
JSON snapshot persistence in the output directory.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from rich.console import Console

from scverse_stats.config import get_output_dir

console = Console()


def save_json(
    filename: str, data: BaseModel | dict[str, Any], exclude_none: bool = False
) -> Path:
    """
    Write a snapshot to the output directory.

    Args:
        filename: File name inside the output directory (e.g. "github.json").
        data: A validated record or a plain JSON-compatible dict.
        exclude_none: Drop fields whose value is None (records only).

    Returns:
        Path of the written file.
    """
    if isinstance(data, BaseModel):
        payload = data.model_dump(mode="json", exclude_none=exclude_none)
    else:
        payload = data

    output_dir = get_output_dir()
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / filename

    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)

    console.print(f"[dim]Saved {filename}[/dim]")
    return filepath


def load_json(filename: str) -> Any | None:
    """Load a snapshot from the output directory, None if missing or invalid."""
    filepath = get_output_dir() / filename
    if not filepath.exists():
        return None
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError):
        # Corrupted or unreadable snapshot - treat as absent
        return None
