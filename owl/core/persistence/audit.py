"""
Audit ledger — one NDJSON line per state-changing owl run.

``adopt``, ``apply`` and ``state hide|unhide|forget`` append an entry
when they changed something; ``owl history`` reads them back. Lines are
only ever appended, and a broken line is skipped on read so one bad
write can't hide the rest of the history.
"""

from __future__ import annotations

import json
import logging
import secrets
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

AuditStatus = Literal["ok", "partial", "failed"]


def generate_operation_id() -> str:
    """``op-YYYYMMDD-HHMMSS-xxxxxx`` — sortable, unique enough per host."""
    return f"op-{datetime.now(UTC):%Y%m%d-%H%M%S}-{secrets.token_hex(3)}"


class AuditEntry(BaseModel):
    """What one owl command did."""

    operation_id: str = Field(default_factory=generate_operation_id)
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat(timespec="seconds"))
    command: str                    # adopt, apply, hide, unhide, forget
    status: AuditStatus = "ok"

    # bucket → package names, e.g. {"adopted": [...], "removals": [...]}
    packages: dict[str, list[str]] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)

    @property
    def package_count(self) -> int:
        return sum(len(names) for names in self.packages.values())


class AuditLedger:
    """Append-only NDJSON file of ``AuditEntry`` records."""

    def __init__(self, path: Path):
        self.path = path

    def append(self, entry: AuditEntry) -> bool:
        """Append one entry. A write failure is logged, never raised.

        Returns:
            Whether the entry reached the file.
        """
        line = entry.model_dump_json() + "\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error("Failed to record %s in %s: %s", entry.command, self.path, e)
            return False
        logger.debug("Recorded %s (%s)", entry.command, entry.operation_id)
        return True

    def read(self) -> list[AuditEntry]:
        """Every readable entry, oldest first."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error("Cannot read audit ledger %s: %s", self.path, e)
            return []

        entries = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                entries.append(AuditEntry.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning("%s:%d: skipping unreadable entry (%s)", self.path, lineno, e)
        return entries

    def tail(self, n: int = 20) -> list[AuditEntry]:
        """The ``n`` most recent entries, oldest first."""
        return self.read()[-n:] if n > 0 else []
