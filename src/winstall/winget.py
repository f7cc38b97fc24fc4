"""Adapter for the winget command-line package manager.

winget prints human-oriented tables::

    Name               Id                           Version  Source
    ---------------------------------------------------------------
    Visual Studio Code Microsoft.VisualStudioCode   1.95.3   winget

`parse_table` turns that output into rows. It is lenient: a line that
does not have at least name, id and version columns is skipped and
reported in `TableParseResult.skipped` rather than treated as an error.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from winstall.protocols import CommandRunner

logger = logging.getLogger(__name__)

WINGET = "winget"
SOURCE_AGREEMENTS = "--accept-source-agreements"
PACKAGE_AGREEMENTS = "--accept-package-agreements"

_SEPARATOR = re.compile(r"^-{3,}$")
_ROW = re.compile(
    r"^(?P<name>.+?)\s{2,}(?P<id>\S+)\s+(?P<version>\S+)(?:\s+(?P<rest>.*))?$"
)


class PackageManagerError(Exception):
    """winget could not be invoked."""

    pass


@dataclass(frozen=True)
class TableRow:
    """One parsed row of winget tabular output."""

    name: str
    id: str
    version: str
    source: str | None = None


@dataclass
class TableParseResult:
    """Rows parsed from a table plus the data lines that were discarded."""

    rows: list[TableRow] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def _visible(line: str) -> str:
    # Progress spinners are redrawn with carriage returns; keep the final frame.
    return line.rstrip("\r").rsplit("\r", 1)[-1].rstrip()


def _columns(header: str) -> list[int]:
    starts = [match.start() for match in re.finditer(r"\S+", header)]
    # The name column always starts at the left edge.
    return [0, *starts[1:]] if starts else []


def _split_columns(line: str, columns: list[int]) -> TableRow | None:
    if len(columns) < 3 or len(line) <= columns[2]:
        return None
    if any(line[start - 1] != " " for start in columns[1:] if start < len(line)):
        return None
    bounds = list(zip(columns, [*columns[1:], None]))
    fields = [line[start:end].strip() for start, end in bounds]
    name, package_id, version = fields[:3]
    if not (name and package_id and version) or " " in package_id:
        return None
    source = fields[-1] if len(fields) > 3 and fields[-1] else None
    return TableRow(name=name, id=package_id, version=version, source=source)


def _split_loose(line: str) -> TableRow | None:
    match = _ROW.match(line.strip())
    if not match:
        return None
    rest = (match.group("rest") or "").split()
    return TableRow(
        name=match.group("name").strip(),
        id=match.group("id"),
        version=match.group("version"),
        source=rest[-1] if rest else None,
    )


def parse_table(output: str) -> TableParseResult:
    """Parse winget tabular output.

    Everything up to and including the dashed separator line is header.
    Columns are cut at the offsets of the header words; rows that do not
    fit those offsets fall back to splitting on runs of two or more spaces.
    Output without a separator (e.g. "No package found") yields no rows.

    Args:
        output: Captured stdout of `winget search` or `winget list`.

    Returns:
        Parsed rows in output order and the skipped lines.
    """
    result = TableParseResult()
    header = ""
    columns: list[int] | None = None
    for raw in output.split("\n"):
        line = _visible(raw)
        if columns is None:
            if _SEPARATOR.match(line.strip()):
                columns = _columns(header)
            elif line.strip():
                header = line
            continue
        if not line.strip():
            continue

        row = _split_columns(line, columns) or _split_loose(line)
        if row is None:
            result.skipped.append(line)
            continue
        result.rows.append(row)

    if result.skipped:
        logger.debug("Skipped %d unparseable winget lines", len(result.skipped))
    return result


class WingetClient:
    """Thin wrapper over the winget subcommands winstall uses."""

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def is_available(self) -> bool:
        """Check whether winget is on PATH."""
        return self.runner.which(WINGET) is not None

    def _run(self, args: list[str], capture: bool = True):
        try:
            return self.runner.run([WINGET, *args], capture=capture)
        except FileNotFoundError as e:
            raise PackageManagerError("package manager not available") from e

    def search(self, term: str) -> list[TableRow]:
        """Search the configured sources.

        Raises:
            PackageManagerError: If winget is missing.
        """
        completed = self._run(["search", term, SOURCE_AGREEMENTS])
        return parse_table(completed.stdout or "").rows

    def show(self, package_id: str) -> bool:
        """Check that an exact package id exists. Only the exit code counts."""
        completed = self._run(["show", "--id", package_id, "--exact", SOURCE_AGREEMENTS])
        return completed.returncode == 0

    def install(self, package_id: str) -> int:
        """Install a package silently and return winget's exit code.

        Output is not captured so winget's progress stays visible.
        """
        completed = self._run(
            [
                "install",
                "--id",
                package_id,
                "--exact",
                "--silent",
                PACKAGE_AGREEMENTS,
                SOURCE_AGREEMENTS,
            ],
            capture=False,
        )
        return completed.returncode

    def list_installed(self) -> list[TableRow]:
        """Packages winget reports as installed."""
        completed = self._run(["list", SOURCE_AGREEMENTS])
        return parse_table(completed.stdout or "").rows
