"""Shared data types for installation results."""

from __future__ import annotations

from dataclasses import dataclass, field

__all__ = ["InstallOutcome", "RunSummary"]


@dataclass
class InstallOutcome:
    """Result of a single installation attempt.

    Attributes:
        name: Display name of the software record.
        type: Installation type of the record (e.g. "PackageManager").
        success: True if the backend reported success.
        message: Human-readable outcome, always set.
        warnings: Non-fatal problems surfaced alongside the outcome.
    """

    name: str
    type: str
    success: bool
    message: str
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not self.name:
            raise ValueError("name cannot be empty")
        if not self.message:
            raise ValueError("message cannot be empty")

    @classmethod
    def ok(cls, name: str, type: str, message: str = "installed") -> InstallOutcome:
        """Build a successful outcome."""
        return cls(name=name, type=type, success=True, message=message)

    @classmethod
    def failed(cls, name: str, type: str, message: str) -> InstallOutcome:
        """Build a failed outcome."""
        return cls(name=name, type=type, success=False, message=message)


@dataclass
class RunSummary:
    """Aggregated outcomes of one batch install."""

    items: list[InstallOutcome] = field(default_factory=list)
    cancelled: bool = False

    def add(self, outcome: InstallOutcome) -> None:
        """Record an outcome in selection order."""
        self.items.append(outcome)

    @property
    def success_count(self) -> int:
        return sum(1 for item in self.items if item.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for item in self.items if not item.success)

    @property
    def total(self) -> int:
        return len(self.items)
