import enum
from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cmms.db import Base
from cmms.models.sync import SapSyncStatus


class EquipmentCategory(enum.Enum):
    hydraulic = "hydraulic"
    material_handling = "material_handling"
    automated_machinery = "automated_machinery"
    storage_tank = "storage_tank"
    heating_system = "heating_system"
    electrical = "electrical"
    mechanical = "mechanical"
    other = "other"


class EquipmentStatus(enum.Enum):
    active = "active"
    inactive = "inactive"
    installing = "installing"
    needs_inspection = "needs_inspection"
    in_maintenance = "in_maintenance"
    decommissioned = "decommissioned"
    unknown = "unknown"


class Equipment(Base):
    __tablename__ = "equipment"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # External code shared with SAP (e.g. EQP-1042); the sync join key.
    equipment_code: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[EquipmentCategory] = mapped_column(
        Enum(EquipmentCategory), default=EquipmentCategory.other
    )
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    status: Mapped[EquipmentStatus] = mapped_column(
        Enum(EquipmentStatus), default=EquipmentStatus.active
    )
    manufacturer: Mapped[str | None] = mapped_column(String(120))
    model: Mapped[str | None] = mapped_column(String(120))
    install_date: Mapped[str | None] = mapped_column(String(10))
    specifications: Mapped[dict | None] = mapped_column(JSON)
    notes: Mapped[str | None] = mapped_column(Text)
    next_maintenance_date: Mapped[str | None] = mapped_column(String(10))
    last_maintenance_date: Mapped[str | None] = mapped_column(String(10))
    last_maintenance_status: Mapped[str | None] = mapped_column(String(200))
    sap_last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sap_sync_status: Mapped[SapSyncStatus | None] = mapped_column(Enum(SapSyncStatus))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    work_orders = relationship("WorkOrder", back_populates="equipment")
    history = relationship("MaintenanceHistory", back_populates="equipment")
