"""
Maintenance Tasks

One-shot data jobs run by the scripts in ``scripts/``:
    - addresses: kitchen address migration, default repair, geocoding
    - admin: admin account creation
    - seed: demo marketplace data
"""

from dataclasses import dataclass, field


@dataclass
class MaintenanceReport:
    """Per-record outcome counts of a maintenance run."""
    task: str
    found: int = 0
    succeeded: int = 0
    failed: int = 0
    messages: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0


__all__ = ["MaintenanceReport"]
