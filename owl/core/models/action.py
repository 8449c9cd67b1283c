"""
Receipt — what one backend or collaborator call did.

Package installs, removals, dotfile copies, service enables and env file
writes all answer with a Receipt instead of raising, so ``apply`` can
report a failed step and move on to the next one. Query failures are the
exception: those raise ``BackendError`` (an empty answer must not pass
for "nothing installed").
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ReceiptStatus = Literal["ok", "skipped", "failed"]


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Outcome of a single side effect, as shown by ``apply`` and ``--json``."""

    backend: str                    # paru, pacman, filesystem, systemd, mock
    operation: str                  # install_repo, remove, sync_dotfile, write_env, ...
    status: ReceiptStatus = "ok"

    packages: list[str] = Field(default_factory=list)
    output: str = ""                # captured stdout, or the skip reason
    error: str | None = None

    started_at: str = Field(default_factory=_utc_now)
    duration_ms: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @property
    def is_dry_run(self) -> bool:
        """A skip that only previewed the change."""
        return self.skipped and bool(self.metadata.get("dry_run"))

    @property
    def label(self) -> str:
        """Short line for terminal output."""
        if self.skipped and self.output:
            return self.output
        if self.packages:
            return f"{self.operation}: {', '.join(self.packages)}"
        return self.operation

    # ── Constructors ─────────────────────────────────────────────

    @classmethod
    def success(cls, backend: str, operation: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(backend=backend, operation=operation, output=output, **kwargs)

    @classmethod
    def failure(cls, backend: str, operation: str, error: str, **kwargs: Any) -> Receipt:
        return cls(backend=backend, operation=operation, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, backend: str, operation: str, reason: str = "", **kwargs: Any) -> Receipt:
        """Nothing to do (already up to date) or a dry-run preview."""
        return cls(backend=backend, operation=operation, status="skipped", output=reason, **kwargs)
