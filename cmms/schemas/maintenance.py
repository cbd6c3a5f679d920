from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MaintenanceHistoryBase(BaseModel):
    equipment_id: int
    work_order_id: int | None = None
    performed_by_id: int
    date: str = Field(min_length=10, max_length=10)
    description: str = Field(min_length=1)
    outcome: str | None = None


class MaintenanceHistoryCreate(MaintenanceHistoryBase):
    pass


class MaintenanceHistoryRead(MaintenanceHistoryBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
