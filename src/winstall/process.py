"""External process abstraction for testability.

Installers never call `subprocess` directly; they receive a ProcessRunner
so tests can substitute a mock and assert on the exact command lines.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence

logger = logging.getLogger(__name__)

POWERSHELL = "powershell"
POWERSHELL_FLAGS = ["-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass"]


class ProcessRunner:
    """Production process runner wrapping `subprocess.run`.

    Satisfies the CommandRunner protocol structurally.
    """

    def run(
        self,
        args: Sequence[str],
        capture: bool = True,
        check: bool = False,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run a command to completion.

        Args:
            args: Program and arguments; never passed through a shell.
            capture: Capture stdout/stderr as text. Interactive installers
                are run uncaptured so their UI stays usable.
            check: Raise CalledProcessError on a non-zero exit code.
            timeout: Optional timeout in seconds.

        Returns:
            The completed process.

        Raises:
            FileNotFoundError: If the program does not exist.
            subprocess.CalledProcessError: If check is set and the exit code is non-zero.
        """
        logger.debug("Running: %s", " ".join(args))
        if capture:
            return subprocess.run(
                list(args),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=check,
                timeout=timeout,
            )
        return subprocess.run(list(args), check=check, timeout=timeout)

    def which(self, program: str) -> str | None:
        """Resolve a program on PATH."""
        return shutil.which(program)

    def powershell(self, command: str, check: bool = False) -> subprocess.CompletedProcess[str]:
        """Run a PowerShell command string."""
        return self.run([POWERSHELL, *POWERSHELL_FLAGS, "-Command", command], check=check)


def ps_quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal."""
    return "'" + value.replace("'", "''") + "'"
