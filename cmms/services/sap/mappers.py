"""SAP PM to CMMS field mappers.

Maps SAP PM OData entities to local schemas and back:
- Equipment ↔ Equipment
- MaintenanceOrder ↔ WorkOrder

Every enumerated field has one explicit table per direction. Unknown SAP
codes degrade to a fixed local value and local values without an entry fall
back to a fixed SAP code, so mapping never raises on odd input. Free text
longer than the local column is truncated.

Known asymmetries (not round-trip safe):
- ``WorkOrderStatus.unknown`` is sent as ``I0001`` and reads back as ``open``.
- ``WorkOrderType.other`` (and any free-text type) is sent as ``PM03`` and
  reads back as ``corrective``.
- Serial number, technical identifier and maintenance plant are copied from
  SAP into ``specifications`` but never sent back.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from enum import Enum
from typing import Any, TypeVar

from cmms.models.equipment import Equipment, EquipmentCategory, EquipmentStatus
from cmms.models.workforce import (
    Staff,
    WorkOrder,
    WorkOrderPriority,
    WorkOrderStatus,
    WorkOrderType,
)
from cmms.schemas.equipment import EquipmentCreate
from cmms.schemas.sap import SapEquipment, SapWorkOrder
from cmms.schemas.workforce import WorkOrderCreate
from cmms.services.sap import endpoints

T = TypeVar("T")

_SAP_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})")

# Keys of the one-way specifications enrichment.
SPEC_SERIAL_NUMBER = "serial_number"
SPEC_TECHNICAL_ID = "technical_id"
SPEC_MAINTENANCE_PLANT = "maintenance_plant"

# Local column widths for free text copied from SAP.
NAME_MAX_LENGTH = 200
LOCATION_MAX_LENGTH = 200
MANUFACTURER_MAX_LENGTH = 120
MODEL_MAX_LENGTH = 120
STATUS_TEXT_MAX_LENGTH = 200
TITLE_MAX_LENGTH = 200


def _map_lookup(mapping: dict[str, T], value: Any, default: T) -> T:
    if isinstance(value, str):
        return mapping.get(value, default)
    return default


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _truncate(value: str | None, max_len: int) -> str | None:
    """Truncate string to max length."""
    if not value:
        return value
    return value[:max_len] if len(value) > max_len else value


# -----------------------------------------------------------------------------
# Code tables
# -----------------------------------------------------------------------------

SAP_EQUIPMENT_CATEGORY_MAP = {
    "M": EquipmentCategory.mechanical,
    "E": EquipmentCategory.electrical,
    "H": EquipmentCategory.hydraulic,
    "P": EquipmentCategory.material_handling,
    "A": EquipmentCategory.automated_machinery,
    "T": EquipmentCategory.heating_system,
    "S": EquipmentCategory.storage_tank,
    "O": EquipmentCategory.other,
}
LOCAL_EQUIPMENT_CATEGORY_MAP = {
    EquipmentCategory.mechanical.value: "M",
    EquipmentCategory.electrical.value: "E",
    EquipmentCategory.hydraulic.value: "H",
    EquipmentCategory.material_handling.value: "P",
    EquipmentCategory.automated_machinery.value: "A",
    EquipmentCategory.heating_system.value: "T",
    EquipmentCategory.storage_tank.value: "S",
    EquipmentCategory.other.value: "O",
}

SAP_EQUIPMENT_STATUS_MAP = {
    "ACTV": EquipmentStatus.active,
    "INAC": EquipmentStatus.inactive,
    "INST": EquipmentStatus.installing,
    "MREQ": EquipmentStatus.needs_inspection,
    "MACT": EquipmentStatus.in_maintenance,
    "DISC": EquipmentStatus.decommissioned,
    "UNKN": EquipmentStatus.unknown,
}
LOCAL_EQUIPMENT_STATUS_MAP = {
    EquipmentStatus.active.value: "ACTV",
    EquipmentStatus.inactive.value: "INAC",
    EquipmentStatus.installing.value: "INST",
    EquipmentStatus.needs_inspection.value: "MREQ",
    EquipmentStatus.in_maintenance.value: "MACT",
    EquipmentStatus.decommissioned.value: "DISC",
    EquipmentStatus.unknown.value: "UNKN",
}

# SAP PM priority scale: 1 very high, 2 high, 3 medium, 4 low
SAP_PRIORITY_MAP = {
    "1": WorkOrderPriority.urgent,
    "2": WorkOrderPriority.high,
    "3": WorkOrderPriority.medium,
    "4": WorkOrderPriority.low,
}
LOCAL_PRIORITY_MAP = {
    WorkOrderPriority.urgent.value: "1",
    WorkOrderPriority.high.value: "2",
    WorkOrderPriority.medium.value: "3",
    WorkOrderPriority.low.value: "4",
}

SAP_WORK_ORDER_STATUS_MAP = {
    "I0001": WorkOrderStatus.open,
    "I0002": WorkOrderStatus.in_progress,
    "I0068": WorkOrderStatus.waiting_for_parts,
    "I0009": WorkOrderStatus.completed,
    "I0045": WorkOrderStatus.closed,
    "I0076": WorkOrderStatus.cancelled,
}
LOCAL_WORK_ORDER_STATUS_MAP = {
    WorkOrderStatus.open.value: "I0001",
    WorkOrderStatus.in_progress.value: "I0002",
    WorkOrderStatus.waiting_for_parts.value: "I0068",
    WorkOrderStatus.completed.value: "I0009",
    WorkOrderStatus.closed.value: "I0045",
    WorkOrderStatus.cancelled.value: "I0076",
    WorkOrderStatus.unknown.value: "I0001",
}

SAP_ORDER_TYPE_MAP = {
    "PM01": WorkOrderType.planned,
    "PM02": WorkOrderType.preventive,
    "PM03": WorkOrderType.corrective,
    "PM04": WorkOrderType.improvement,
    "PM05": WorkOrderType.calibration,
}
LOCAL_ORDER_TYPE_MAP = {
    WorkOrderType.planned.value: "PM01",
    WorkOrderType.preventive.value: "PM02",
    WorkOrderType.corrective.value: "PM03",
    WorkOrderType.improvement.value: "PM04",
    WorkOrderType.calibration.value: "PM05",
    WorkOrderType.other.value: "PM03",
}

# enum -> outbound table; every member must have an entry
MAPPED_ENUMS = {
    EquipmentCategory: LOCAL_EQUIPMENT_CATEGORY_MAP,
    EquipmentStatus: LOCAL_EQUIPMENT_STATUS_MAP,
    WorkOrderPriority: LOCAL_PRIORITY_MAP,
    WorkOrderStatus: LOCAL_WORK_ORDER_STATUS_MAP,
    WorkOrderType: LOCAL_ORDER_TYPE_MAP,
}


def sap_to_local_category(code: Any) -> EquipmentCategory:
    return _map_lookup(SAP_EQUIPMENT_CATEGORY_MAP, code, EquipmentCategory.other)


def local_to_sap_category(category: EquipmentCategory | str | None) -> str:
    return _map_lookup(LOCAL_EQUIPMENT_CATEGORY_MAP, _enum_value(category), "O")


def sap_to_local_equipment_status(code: Any) -> EquipmentStatus:
    return _map_lookup(SAP_EQUIPMENT_STATUS_MAP, code, EquipmentStatus.unknown)


def local_to_sap_equipment_status(status: EquipmentStatus | str | None) -> str:
    return _map_lookup(LOCAL_EQUIPMENT_STATUS_MAP, _enum_value(status), "UNKN")


def sap_to_local_priority(code: Any) -> WorkOrderPriority:
    return _map_lookup(SAP_PRIORITY_MAP, code, WorkOrderPriority.medium)


def local_to_sap_priority(priority: WorkOrderPriority | str | None) -> str:
    return _map_lookup(LOCAL_PRIORITY_MAP, _enum_value(priority), "3")


def sap_to_local_work_order_status(code: Any) -> WorkOrderStatus:
    return _map_lookup(SAP_WORK_ORDER_STATUS_MAP, code, WorkOrderStatus.unknown)


def local_to_sap_work_order_status(status: WorkOrderStatus | str | None) -> str:
    return _map_lookup(LOCAL_WORK_ORDER_STATUS_MAP, _enum_value(status), "I0001")


def sap_to_local_order_type(code: Any) -> WorkOrderType:
    return _map_lookup(SAP_ORDER_TYPE_MAP, code, WorkOrderType.other)


def local_to_sap_order_type(work_type: WorkOrderType | str | None) -> str:
    return _map_lookup(LOCAL_ORDER_TYPE_MAP, _enum_value(work_type), "PM03")


# -----------------------------------------------------------------------------
# Dates
# -----------------------------------------------------------------------------


def parse_sap_date(value: Any) -> str | None:
    """Convert a packed SAP date (``YYYYMMDD[Thhmmss]``) to ``YYYY-MM-DD``.

    Blank or malformed values return None.
    """
    if not value or not isinstance(value, str):
        return None
    match = _SAP_DATE_RE.match(value)
    if not match:
        return None
    year, month, day = match.groups()
    return f"{year}-{month}-{day}"


def format_sap_date(value: str | None) -> str | None:
    """Convert ``YYYY-MM-DD`` to the packed SAP ``YYYYMMDD`` form."""
    if not value:
        return None
    return value.replace("-", "")


# -----------------------------------------------------------------------------
# Equipment
# -----------------------------------------------------------------------------


def map_sap_equipment_to_local(remote: SapEquipment) -> EquipmentCreate:
    """Map an SAP Equipment entity to a local equipment payload.

    ``next_maintenance_date`` is not part of the mapping so a sync never
    overwrites a locally planned date.
    """
    return EquipmentCreate(
        equipment_code=remote.equipment,
        name=_truncate(remote.name or remote.equipment, NAME_MAX_LENGTH),
        category=sap_to_local_category(remote.category),
        location=_truncate(remote.functional_location, LOCATION_MAX_LENGTH),
        status=sap_to_local_equipment_status(remote.status),
        manufacturer=_truncate(remote.manufacturer, MANUFACTURER_MAX_LENGTH) or None,
        model=_truncate(remote.part_number, MODEL_MAX_LENGTH) or None,
        install_date=parse_sap_date(remote.acquisition_date),
        specifications={
            SPEC_SERIAL_NUMBER: remote.serial_number,
            SPEC_TECHNICAL_ID: remote.technical_id,
            SPEC_MAINTENANCE_PLANT: remote.maintenance_plant,
        },
        notes=remote.technical_information or None,
        last_maintenance_date=parse_sap_date(remote.last_maintenance_date),
        last_maintenance_status=_truncate(remote.status_description, STATUS_TEXT_MAX_LENGTH) or None,
    )


def map_local_equipment_to_sap(equipment: Equipment) -> dict:
    """Map a local equipment record to an SAP Equipment payload."""
    return {
        "Equipment": equipment.equipment_code,
        "EquipmentName": equipment.name,
        "EquipmentCategory": local_to_sap_category(equipment.category),
        "EquipmentStatus": local_to_sap_equipment_status(equipment.status),
        "FunctionalLocation": equipment.location or "",
        "Manufacturer": equipment.manufacturer or "",
        "ManufacturerPartNumber": equipment.model or "",
        "AcquisitionDate": format_sap_date(equipment.install_date),
        "TechnicalInformation": equipment.notes or "",
    }


# -----------------------------------------------------------------------------
# Work orders
# -----------------------------------------------------------------------------


def map_sap_work_order_to_local(
    remote: SapWorkOrder,
    find_equipment: Callable[[str], Equipment | None],
    find_staff: Callable[[str], Staff | None],
) -> WorkOrderCreate:
    """Map an SAP MaintenanceOrder entity to a local work order payload.

    Args:
        remote: Narrowed SAP work order
        find_equipment: Resolves an SAP equipment code to a local record
        find_staff: Resolves an SAP PersonResponsible to a local staff member

    An unresolved equipment code leaves ``equipment_id`` as None; the
    result is still a valid payload. Notes, parts and hour estimates are
    locally owned and left unset.
    """
    equipment = find_equipment(remote.equipment) if remote.equipment else None
    assignee = find_staff(remote.person_responsible) if remote.person_responsible else None

    location = _truncate(remote.functional_location, LOCATION_MAX_LENGTH) or None
    if location is None and equipment is not None:
        location = equipment.location or None

    data: dict[str, Any] = {
        "work_order_code": remote.maintenance_order,
        "title": _truncate(
            remote.description or remote.short_text or remote.maintenance_order, TITLE_MAX_LENGTH
        ),
        "description": remote.long_text or remote.short_text or "",
        "equipment_id": equipment.id if equipment is not None else None,
        "priority": sap_to_local_priority(remote.priority),
        "status": sap_to_local_work_order_status(remote.status),
        "work_type": sap_to_local_order_type(remote.order_type).value,
        "assigned_to_id": assignee.id if assignee is not None else None,
        "due_date": parse_sap_date(remote.scheduled_end_date),
        "completion_date": parse_sap_date(remote.actual_end_date),
        "location": location,
    }
    # created_date is required locally; leave it unset so storage defaults it
    created_date = parse_sap_date(remote.creation_date)
    if created_date:
        data["created_date"] = created_date
    return WorkOrderCreate(**data)


def map_local_work_order_to_sap(
    work_order: WorkOrder,
    get_equipment: Callable[[int], Equipment | None],
    get_staff: Callable[[int], Staff | None],
) -> dict:
    """Map a local work order to an SAP MaintenanceOrder payload.

    The equipment reference is sent as ``""`` when the local equipment cannot
    be found, and ``PersonResponsible`` as ``""`` when the assignee has no SAP
    personnel number.
    """
    equipment = get_equipment(work_order.equipment_id) if work_order.equipment_id else None
    assignee = get_staff(work_order.assigned_to_id) if work_order.assigned_to_id else None

    return {
        "MaintenanceOrder": work_order.work_order_code or "",
        "MaintenanceOrderDesc": work_order.title,
        "ShortText": work_order.title,
        "LongText": work_order.description or "",
        "MaintObjectType": endpoints.OBJECT_TYPE_EQUIPMENT,
        "Equipment": equipment.equipment_code if equipment is not None else "",
        "FunctionalLocation": work_order.location or "",
        "StatusInternalID": local_to_sap_work_order_status(work_order.status),
        "MaintenancePriority": local_to_sap_priority(work_order.priority),
        "OrderType": local_to_sap_order_type(work_order.work_type),
        "ScheduledEndDate": format_sap_date(work_order.due_date),
        "ActualEndDate": format_sap_date(work_order.completion_date),
        "PersonResponsible": (assignee.sap_personnel_number or "") if assignee is not None else "",
    }
