from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from cmms.models.equipment import EquipmentCategory, EquipmentStatus
from cmms.models.sync import SapSyncStatus


class EquipmentBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    equipment_code: str = Field(min_length=1, max_length=40)
    name: str = Field(min_length=1, max_length=200)
    category: EquipmentCategory = EquipmentCategory.other
    location: str = Field(default="", max_length=200)
    status: EquipmentStatus = EquipmentStatus.active
    manufacturer: str | None = Field(default=None, max_length=120)
    model: str | None = Field(default=None, max_length=120)
    install_date: str | None = None
    specifications: dict[str, str] | None = None
    notes: str | None = None
    next_maintenance_date: str | None = None
    last_maintenance_date: str | None = None
    last_maintenance_status: str | None = None


class EquipmentCreate(EquipmentBase):
    pass


class EquipmentUpdate(BaseModel):
    equipment_code: str | None = Field(default=None, min_length=1, max_length=40)
    name: str | None = Field(default=None, min_length=1, max_length=200)
    category: EquipmentCategory | None = None
    location: str | None = Field(default=None, max_length=200)
    status: EquipmentStatus | None = None
    manufacturer: str | None = Field(default=None, max_length=120)
    model: str | None = Field(default=None, max_length=120)
    install_date: str | None = None
    specifications: dict[str, str] | None = None
    notes: str | None = None
    next_maintenance_date: str | None = None
    last_maintenance_date: str | None = None
    last_maintenance_status: str | None = None


class EquipmentRead(EquipmentBase):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    sap_last_sync_at: datetime | None = None
    sap_sync_status: SapSyncStatus | None = None
    created_at: datetime
    updated_at: datetime
