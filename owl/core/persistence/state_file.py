"""
State file persistence — atomic read/write for PackageState.

State is stored as JSON in .state/packages.json under the owl directory.
Writes are atomic (write to temp file, fsync, then replace) so a crash
mid-write leaves either the old or the new file, never a truncated one.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from owl.core.models.state import PackageState

logger = logging.getLogger(__name__)

# Default state file path (relative to the owl directory)
DEFAULT_STATE_DIR = ".state"
DEFAULT_STATE_FILE = "packages.json"


class StateError(Exception):
    """Raised when the state file exists but cannot be read or written."""


def default_state_path(owl_dir: Path) -> Path:
    """Get the default state file path for an owl directory."""
    return owl_dir / DEFAULT_STATE_DIR / DEFAULT_STATE_FILE


def load_state(path: Path) -> PackageState:
    """Load package state from a JSON file.

    Args:
        path: Path to the state JSON file.

    Returns:
        PackageState model. If the file doesn't exist, returns an empty state.

    Raises:
        StateError: If the file exists but is unreadable or invalid.
    """
    if not path.is_file():
        logger.info("No state file at %s — starting fresh", path)
        return PackageState()

    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise StateError(f"Cannot read state file {path}: {e}") from e

    try:
        data = json.loads(raw)
        state = PackageState.model_validate(data)
    except json.JSONDecodeError as e:
        raise StateError(f"Corrupt state file {path}: {e}") from e
    except ValidationError as e:
        raise StateError(f"Invalid state file {path}: {e}") from e

    logger.debug(
        "Loaded state from %s (%d managed, %d untracked, %d hidden)",
        path, len(state.managed), len(state.untracked), len(state.hidden),
    )
    return state


def save_state(state: PackageState, path: Path) -> None:
    """Save package state to a JSON file (atomic write).

    Args:
        state: The state to save.
        path: Target path for the state file.

    Raises:
        StateError: If the file cannot be written.
    """
    data = state.model_dump(mode="json")
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=".packages_",
            suffix=".tmp",
        )
        tmp = Path(tmp_path)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
            logger.debug("State saved to %s", path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
    except OSError as e:
        logger.debug("Failed to save state to %s: %s", path, e)
        raise StateError(f"Failed to save state to {path}: {e}") from e
