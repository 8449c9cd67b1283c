"""
Command runner — execute external commands and capture receipts.

The single place where owl spawns processes. Every backend operation
goes through ``CommandRunner.run`` with an ordered list of candidate
command lines: the first one that spawns is used, the rest are only
tried when an executable is missing.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import time
from collections.abc import Sequence

from owl.core.models.action import Receipt

logger = logging.getLogger(__name__)


class CommandRunner:
    """Run commands and turn their outcome into Receipts.

    Args:
        name: Label recorded as the receipt's backend.
        timeout: Default timeout in seconds for captured commands.
    """

    def __init__(self, name: str = "shell", timeout: int = 3600):
        self.name = name
        self.timeout = timeout

    @staticmethod
    def is_available(executable: str) -> bool:
        return shutil.which(executable) is not None

    def run(
        self,
        candidates: Sequence[Sequence[str]],
        *,
        operation: str,
        interactive: bool = False,
        packages: Sequence[str] = (),
        timeout: int | None = None,
    ) -> Receipt:
        """Run the first candidate command that can be spawned.

        Args:
            candidates: Command lines in priority order.
            operation: Operation label for the receipt.
            interactive: Inherit the terminal instead of capturing output
                (the tool drives its own prompts).
            packages: Package names the command acts on.
            timeout: Override the default timeout (captured mode only).

        Returns:
            Receipt. Never raises.
        """
        timeout = timeout or self.timeout
        spawn_errors: list[str] = []

        for cmd in candidates:
            command = shlex.join(cmd)
            logger.debug("Executing: %s (interactive=%s)", command, interactive)
            start = time.monotonic()

            try:
                if interactive:
                    result = subprocess.run(list(cmd), check=False)
                else:
                    result = subprocess.run(
                        list(cmd),
                        capture_output=True,
                        text=True,
                        timeout=timeout,
                        check=False,
                    )
            except (FileNotFoundError, PermissionError) as e:
                # Could not spawn — try the next candidate
                logger.debug("Cannot spawn %s: %s", cmd[0], e)
                spawn_errors.append(f"{cmd[0]}: {e}")
                continue
            except subprocess.TimeoutExpired:
                return Receipt.failure(
                    backend=self.name,
                    operation=operation,
                    error=f"Command timed out after {timeout}s",
                    packages=list(packages),
                    metadata={"command": command, "timeout": timeout},
                )
            except OSError as e:
                return Receipt.failure(
                    backend=self.name,
                    operation=operation,
                    error=f"Command execution error: {e}",
                    packages=list(packages),
                    metadata={"command": command},
                )

            elapsed_ms = int((time.monotonic() - start) * 1000)
            output = (result.stdout or "").strip()
            stderr = (result.stderr or "").strip()
            metadata = {"command": command, "return_code": result.returncode}

            if result.returncode == 0:
                return Receipt.success(
                    backend=self.name,
                    operation=operation,
                    output=output,
                    duration_ms=elapsed_ms,
                    packages=list(packages),
                    metadata={**metadata, "stderr": stderr},
                )
            return Receipt.failure(
                backend=self.name,
                operation=operation,
                error=stderr or f"{cmd[0]} exited with code {result.returncode}",
                output=output,
                duration_ms=elapsed_ms,
                packages=list(packages),
                metadata=metadata,
            )

        return Receipt.failure(
            backend=self.name,
            operation=operation,
            error="No command could be started: " + "; ".join(spawn_errors or ["no candidates"]),
            packages=list(packages),
            metadata={"candidates": [shlex.join(c) for c in candidates]},
        )
