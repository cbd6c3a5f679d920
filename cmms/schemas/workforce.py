from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from cmms.models.sync import SapSyncStatus
from cmms.models.workforce import WorkOrderPriority, WorkOrderStatus


class WorkOrderBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    work_order_code: str | None = Field(default=None, max_length=40)
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    equipment_id: int | None = None
    priority: WorkOrderPriority = WorkOrderPriority.medium
    status: WorkOrderStatus = WorkOrderStatus.open
    work_type: str | None = Field(default=None, max_length=80)
    assigned_to_id: int | None = None
    created_date: str | None = None
    due_date: str | None = None
    completion_date: str | None = None
    notes: str | None = None
    estimated_hours: int | None = Field(default=None, ge=0)
    actual_hours: int | None = Field(default=None, ge=0)
    location: str | None = Field(default=None, max_length=200)
    parts: list = Field(default_factory=list)


class WorkOrderCreate(WorkOrderBase):
    pass


class WorkOrderUpdate(BaseModel):
    work_order_code: str | None = Field(default=None, max_length=40)
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    equipment_id: int | None = None
    priority: WorkOrderPriority | None = None
    status: WorkOrderStatus | None = None
    work_type: str | None = Field(default=None, max_length=80)
    assigned_to_id: int | None = None
    created_date: str | None = None
    due_date: str | None = None
    completion_date: str | None = None
    notes: str | None = None
    estimated_hours: int | None = Field(default=None, ge=0)
    actual_hours: int | None = Field(default=None, ge=0)
    location: str | None = Field(default=None, max_length=200)
    parts: list | None = None


class WorkOrderRead(WorkOrderBase):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    created_date: str
    sap_last_sync_at: datetime | None = None
    sap_sync_status: SapSyncStatus | None = None
    created_at: datetime
    updated_at: datetime


class StaffBase(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    position: str = Field(min_length=1, max_length=120)
    specialization: str | None = Field(default=None, max_length=120)
    contact_info: str | None = Field(default=None, max_length=200)
    is_active: bool = True
    sap_personnel_number: str | None = Field(default=None, max_length=20)


class StaffCreate(StaffBase):
    pass


class StaffUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    position: str | None = Field(default=None, min_length=1, max_length=120)
    specialization: str | None = Field(default=None, max_length=120)
    contact_info: str | None = Field(default=None, max_length=200)
    is_active: bool | None = None
    sap_personnel_number: str | None = Field(default=None, max_length=20)


class StaffRead(StaffBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
