import enum
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cmms.db import Base
from cmms.models.sync import SapSyncStatus


class WorkOrderPriority(enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class WorkOrderStatus(enum.Enum):
    open = "open"
    in_progress = "in_progress"
    waiting_for_parts = "waiting_for_parts"
    completed = "completed"
    closed = "closed"
    cancelled = "cancelled"
    unknown = "unknown"


class WorkOrderType(enum.Enum):
    """Known work order types. The ``work_type`` column itself is free text."""

    planned = "planned"
    preventive = "preventive"
    corrective = "corrective"
    improvement = "improvement"
    calibration = "calibration"
    other = "other"


class Staff(Base):
    __tablename__ = "staff"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    position: Mapped[str] = mapped_column(String(120), nullable=False)
    specialization: Mapped[str | None] = mapped_column(String(120))
    contact_info: Mapped[str | None] = mapped_column(String(200))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # SAP PersonResponsible identifier for this staff member
    sap_personnel_number: Mapped[str | None] = mapped_column(String(20), unique=True)

    work_orders = relationship("WorkOrder", back_populates="assigned_to")


class WorkOrder(Base):
    __tablename__ = "work_orders"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    work_order_code: Mapped[str | None] = mapped_column(String(40), unique=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    equipment_id: Mapped[int | None] = mapped_column(ForeignKey("equipment.id"))
    priority: Mapped[WorkOrderPriority] = mapped_column(
        Enum(WorkOrderPriority), default=WorkOrderPriority.medium
    )
    status: Mapped[WorkOrderStatus] = mapped_column(
        Enum(WorkOrderStatus), default=WorkOrderStatus.open
    )
    work_type: Mapped[str | None] = mapped_column(String(80))
    assigned_to_id: Mapped[int | None] = mapped_column(ForeignKey("staff.id"))
    created_date: Mapped[str] = mapped_column(String(10), nullable=False)
    due_date: Mapped[str | None] = mapped_column(String(10))
    completion_date: Mapped[str | None] = mapped_column(String(10))
    notes: Mapped[str | None] = mapped_column(Text)
    estimated_hours: Mapped[int | None] = mapped_column(Integer)
    actual_hours: Mapped[int | None] = mapped_column(Integer)
    location: Mapped[str | None] = mapped_column(String(200))
    parts: Mapped[list] = mapped_column(JSON, default=list)
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

    equipment = relationship("Equipment", back_populates="work_orders")
    assigned_to = relationship("Staff", back_populates="work_orders")
