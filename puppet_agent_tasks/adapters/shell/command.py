"""
Shell command runner — the single place ``subprocess.run`` is called.

Backends describe commands as argument lists and get a ``CommandResult``
back.  The runner never raises for a failing command: non-zero exits,
timeouts and missing binaries are all captured in the result so the
backend can classify them (lock busy, fatal, not installed).
"""

from __future__ import annotations

import logging
import os
import subprocess
import time

from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Conventional shell exit codes for conditions we synthesize
EXIT_TIMEOUT = 124
EXIT_NOT_FOUND = 127

_OUTPUT_TAIL = 4000


class CommandResult(BaseModel):
    """Outcome of one command."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def not_found(self) -> bool:
        return self.returncode == EXIT_NOT_FOUND

    @property
    def output(self) -> str:
        """stdout and stderr together; some tools report on either stream."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    def summary(self) -> str:
        """Short description for error messages."""
        tail = (self.stderr or self.stdout).strip().splitlines()[-3:]
        detail = " | ".join(tail)
        return f"exit {self.returncode}" + (f": {detail}" if detail else "")


class CommandRunner:
    """Run commands on the local host.

    Args:
        default_timeout: Seconds before a command is killed.
    """

    def __init__(self, default_timeout: int = 120):
        self._default_timeout = default_timeout

    def run(
        self,
        cmd: list[str],
        *,
        timeout: int | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """Execute ``cmd`` and capture its output.

        ``env`` is merged over the process environment for this command only.
        """
        timeout = timeout or self._default_timeout
        full_env = os.environ.copy()
        full_env.update(env or {})

        logger.debug("Executing: %s", " ".join(cmd))
        start = time.monotonic()
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=full_env,
                cwd=cwd,
            )
        except FileNotFoundError:
            return CommandResult(
                command=cmd,
                returncode=EXIT_NOT_FOUND,
                stderr=f"command not found: {cmd[0]}",
            )
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out after %ss: %s", timeout, cmd[0])
            return CommandResult(
                command=cmd,
                returncode=EXIT_TIMEOUT,
                stderr=f"Command timed out ({timeout}s)",
                elapsed_ms=int((time.monotonic() - start) * 1000),
            )
        except OSError as e:
            logger.warning("Cannot execute %s: %s", cmd[0], e)
            return CommandResult(command=cmd, returncode=EXIT_NOT_FOUND, stderr=str(e))

        result = CommandResult(
            command=cmd,
            returncode=proc.returncode,
            stdout=(proc.stdout or "")[-_OUTPUT_TAIL:],
            stderr=(proc.stderr or "")[-_OUTPUT_TAIL:],
            elapsed_ms=int((time.monotonic() - start) * 1000),
        )
        if not result.ok:
            logger.debug("Command failed (%s): %s", result.summary(), cmd[0])
        return result
