"""Result types for SAP reconciliation runs."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass
class SapSyncResult:
    """Result of one reconciliation pass (equipment or work orders)."""

    added: int = 0
    updated: int = 0
    errors: int = 0
    error_details: list[dict] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def total_synced(self) -> int:
        return self.added + self.updated

    @property
    def has_errors(self) -> bool:
        return self.errors > 0

    def record_error(self, code: str | None, error: Exception | str) -> None:
        self.errors += 1
        self.error_details.append({"code": code or "?", "error": str(error)})

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SapSyncReport:
    """Combined result of a full equipment + work order sync.

    A side whose reconciliation raised is left as None; ``error`` carries the
    first failure message (equipment before work orders).
    """

    equipment: SapSyncResult | None = None
    work_orders: SapSyncResult | None = None
    success: bool = True
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "equipment": self.equipment.to_dict() if self.equipment else None,
            "work_orders": self.work_orders.to_dict() if self.work_orders else None,
            "success": self.success,
            "error": self.error,
        }
