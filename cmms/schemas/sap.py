"""Schemas for SAP PM OData payloads.

SAP responses are treated as untrusted input. Every field is narrowed to a
string before mapping: missing or null values become ``""``, numbers are
stringified and anything else is dropped to ``""``. Validation of a mapping
payload therefore never fails; only a non-object payload is rejected.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SapRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return ""

    @classmethod
    def parse(cls, payload: Any):
        if not isinstance(payload, dict):
            raise ValueError(f"Expected SAP entity object, got {type(payload).__name__}")
        return cls.model_validate(payload)


class SapEquipment(SapRecord):
    equipment: str = Field(default="", alias="Equipment")
    name: str = Field(default="", alias="EquipmentName")
    category: str = Field(default="", alias="EquipmentCategory")
    functional_location: str = Field(default="", alias="FunctionalLocation")
    status: str = Field(default="", alias="EquipmentStatus")
    status_description: str = Field(default="", alias="TechObjStatusDesc")
    manufacturer: str = Field(default="", alias="Manufacturer")
    part_number: str = Field(default="", alias="ManufacturerPartNumber")
    acquisition_date: str = Field(default="", alias="AcquisitionDate")
    serial_number: str = Field(default="", alias="SerialNumber")
    technical_id: str = Field(default="", alias="TechnicalIdentification")
    maintenance_plant: str = Field(default="", alias="MaintenancePlant")
    technical_information: str = Field(default="", alias="TechnicalInformation")
    last_maintenance_date: str = Field(default="", alias="LastMaintenanceDate")


class SapWorkOrder(SapRecord):
    maintenance_order: str = Field(default="", alias="MaintenanceOrder")
    description: str = Field(default="", alias="MaintenanceOrderDesc")
    short_text: str = Field(default="", alias="ShortText")
    long_text: str = Field(default="", alias="LongText")
    object_type: str = Field(default="", alias="MaintObjectType")
    functional_location: str = Field(default="", alias="FunctionalLocation")
    equipment: str = Field(default="", alias="Equipment")
    planning_plant: str = Field(default="", alias="MaintenancePlanningPlant")
    priority: str = Field(default="", alias="MaintenancePriority")
    order_type: str = Field(default="", alias="OrderType")
    status: str = Field(default="", alias="StatusInternalID")
    status_text: str = Field(default="", alias="StatusText")
    creation_date: str = Field(default="", alias="CreationDate")
    scheduled_start_date: str = Field(default="", alias="ScheduledStartDate")
    scheduled_end_date: str = Field(default="", alias="ScheduledEndDate")
    actual_start_date: str = Field(default="", alias="ActualStartDate")
    actual_end_date: str = Field(default="", alias="ActualEndDate")
    person_responsible: str = Field(default="", alias="PersonResponsible")
