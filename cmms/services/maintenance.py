from datetime import UTC, date, datetime

from fastapi import HTTPException
from sqlalchemy.orm import Session

from cmms.models.equipment import Equipment
from cmms.models.maintenance import MaintenanceHistory
from cmms.models.sync import SapSyncStatus
from cmms.models.workforce import Staff, WorkOrder
from cmms.schemas.equipment import EquipmentCreate, EquipmentUpdate
from cmms.schemas.maintenance import MaintenanceHistoryCreate
from cmms.schemas.workforce import (
    StaffCreate,
    StaffUpdate,
    WorkOrderCreate,
    WorkOrderUpdate,
)


def _persist(db: Session, record, commit: bool):
    if commit:
        db.commit()
        db.refresh(record)
    else:
        db.flush()
    return record


def _ensure_equipment(db: Session, equipment_id: int) -> Equipment:
    item = db.get(Equipment, equipment_id)
    if not item:
        raise HTTPException(status_code=404, detail="Equipment not found")
    return item


def _ensure_staff(db: Session, staff_id: int):
    if not db.get(Staff, staff_id):
        raise HTTPException(status_code=404, detail="Staff member not found")


def mark_sync(db: Session, record: Equipment | WorkOrder, status: SapSyncStatus, commit: bool = False):
    """Stamp SAP sync bookkeeping on an equipment or work order record."""
    record.sap_last_sync_at = datetime.now(UTC)
    record.sap_sync_status = status
    return _persist(db, record, commit)


class EquipmentRecords:
    @staticmethod
    def create(db: Session, payload: EquipmentCreate, commit: bool = True):
        item = Equipment(**payload.model_dump())
        db.add(item)
        return _persist(db, item, commit)

    @staticmethod
    def get(db: Session, equipment_id: int):
        return _ensure_equipment(db, equipment_id)

    @staticmethod
    def get_by_code(db: Session, equipment_code: str) -> Equipment | None:
        if not equipment_code:
            return None
        return db.query(Equipment).filter(Equipment.equipment_code == equipment_code).first()

    @staticmethod
    def list(db: Session, limit: int = 50, offset: int = 0):
        return db.query(Equipment).order_by(Equipment.id).limit(limit).offset(offset).all()

    @staticmethod
    def update(
        db: Session,
        equipment: int | Equipment,
        payload: EquipmentCreate | EquipmentUpdate,
        commit: bool = True,
    ):
        item = equipment if isinstance(equipment, Equipment) else _ensure_equipment(db, equipment)
        data = payload.model_dump(exclude_unset=True)
        new_code = data.get("equipment_code")
        if new_code is not None and item.equipment_code and new_code != item.equipment_code:
            raise ValueError(
                f"Equipment code is immutable ({item.equipment_code!r} -> {new_code!r})"
            )
        for key, value in data.items():
            setattr(item, key, value)
        return _persist(db, item, commit)

    @staticmethod
    def delete(db: Session, equipment_id: int):
        item = _ensure_equipment(db, equipment_id)
        db.delete(item)
        db.commit()


class WorkOrders:
    @staticmethod
    def create(db: Session, payload: WorkOrderCreate, commit: bool = True):
        data = payload.model_dump()
        if not data.get("created_date"):
            data["created_date"] = date.today().isoformat()
        if data.get("equipment_id") is not None and not data.get("location"):
            equipment = db.get(Equipment, data["equipment_id"])
            if equipment:
                data["location"] = equipment.location
        work_order = WorkOrder(**data)
        db.add(work_order)
        return _persist(db, work_order, commit)

    @staticmethod
    def get(db: Session, work_order_id: int):
        work_order = db.get(WorkOrder, work_order_id)
        if not work_order:
            raise HTTPException(status_code=404, detail="Work order not found")
        return work_order

    @staticmethod
    def get_by_code(db: Session, work_order_code: str) -> WorkOrder | None:
        if not work_order_code:
            return None
        return db.query(WorkOrder).filter(WorkOrder.work_order_code == work_order_code).first()

    @staticmethod
    def list(db: Session, equipment_id: int | None = None, limit: int = 50, offset: int = 0):
        query = db.query(WorkOrder)
        if equipment_id is not None:
            query = query.filter(WorkOrder.equipment_id == equipment_id)
        return query.order_by(WorkOrder.id).limit(limit).offset(offset).all()

    @staticmethod
    def update(
        db: Session,
        work_order: int | WorkOrder,
        payload: WorkOrderCreate | WorkOrderUpdate,
        commit: bool = True,
    ):
        if not isinstance(work_order, WorkOrder):
            work_order = WorkOrders.get(db, work_order)
        data = payload.model_dump(exclude_unset=True)
        new_code = data.get("work_order_code")
        if new_code is not None and work_order.work_order_code and new_code != work_order.work_order_code:
            raise ValueError(
                f"Work order code is immutable ({work_order.work_order_code!r} -> {new_code!r})"
            )
        for key, value in data.items():
            setattr(work_order, key, value)
        return _persist(db, work_order, commit)

    @staticmethod
    def delete(db: Session, work_order_id: int):
        work_order = WorkOrders.get(db, work_order_id)
        db.delete(work_order)
        db.commit()


class StaffMembers:
    @staticmethod
    def create(db: Session, payload: StaffCreate, commit: bool = True):
        member = Staff(**payload.model_dump())
        db.add(member)
        return _persist(db, member, commit)

    @staticmethod
    def get(db: Session, staff_id: int):
        member = db.get(Staff, staff_id)
        if not member:
            raise HTTPException(status_code=404, detail="Staff member not found")
        return member

    @staticmethod
    def get_by_personnel_number(db: Session, personnel_number: str) -> Staff | None:
        if not personnel_number:
            return None
        return db.query(Staff).filter(Staff.sap_personnel_number == personnel_number).first()

    @staticmethod
    def list(db: Session, is_active: bool | None = None, limit: int = 50, offset: int = 0):
        query = db.query(Staff)
        if is_active is not None:
            query = query.filter(Staff.is_active == is_active)
        return query.order_by(Staff.id).limit(limit).offset(offset).all()

    @staticmethod
    def update(db: Session, staff_id: int, payload: StaffUpdate, commit: bool = True):
        member = StaffMembers.get(db, staff_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(member, key, value)
        return _persist(db, member, commit)

    @staticmethod
    def delete(db: Session, staff_id: int):
        member = StaffMembers.get(db, staff_id)
        member.is_active = False
        db.commit()


class MaintenanceHistoryRecords:
    @staticmethod
    def create(db: Session, payload: MaintenanceHistoryCreate, commit: bool = True):
        _ensure_equipment(db, payload.equipment_id)
        _ensure_staff(db, payload.performed_by_id)
        if payload.work_order_id is not None:
            WorkOrders.get(db, payload.work_order_id)
        entry = MaintenanceHistory(**payload.model_dump())
        db.add(entry)
        return _persist(db, entry, commit)

    @staticmethod
    def get(db: Session, entry_id: int):
        entry = db.get(MaintenanceHistory, entry_id)
        if not entry:
            raise HTTPException(status_code=404, detail="Maintenance history entry not found")
        return entry

    @staticmethod
    def list(db: Session, equipment_id: int | None = None, limit: int = 50, offset: int = 0):
        query = db.query(MaintenanceHistory)
        if equipment_id is not None:
            query = query.filter(MaintenanceHistory.equipment_id == equipment_id)
        return query.order_by(MaintenanceHistory.date.desc()).limit(limit).offset(offset).all()

    @staticmethod
    def delete(db: Session, entry_id: int):
        entry = MaintenanceHistoryRecords.get(db, entry_id)
        db.delete(entry)
        db.commit()


equipment = EquipmentRecords()
work_orders = WorkOrders()
staff = StaffMembers()
maintenance_history = MaintenanceHistoryRecords()
