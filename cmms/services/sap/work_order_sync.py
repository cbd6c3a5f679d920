"""Work order sync between SAP PM maintenance orders and local work orders."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cmms.models.equipment import Equipment
from cmms.models.sync import SapSyncStatus
from cmms.models.workforce import Staff, WorkOrder
from cmms.schemas.sap import SapWorkOrder
from cmms.schemas.workforce import WorkOrderCreate
from cmms.services import maintenance
from cmms.services.sap import endpoints
from cmms.services.sap.client import SapClient, SapNotFoundError, build_sap_client
from cmms.services.sap.mappers import map_local_work_order_to_sap, map_sap_work_order_to_local
from cmms.services.sap.results import SapSyncResult

logger = logging.getLogger(__name__)

WORK_ORDER_LIST_FILTER = f"MaintObjectType eq {endpoints.odata_literal(endpoints.OBJECT_TYPE_EQUIPMENT)}"


def _record_code(record: Any) -> str | None:
    if isinstance(record, dict):
        code = record.get("MaintenanceOrder")
        return str(code) if code else None
    return None


class SapWorkOrderSync:
    """
    Service for syncing work orders with SAP PM maintenance orders.

    Work orders are matched on ``work_order_code``. A local work order with
    no code is never matched by a pull; pushing it creates the SAP order and
    adopts the key SAP assigns.

    Equipment references travel as SAP equipment codes and are resolved to
    local ids while mapping. An unknown code leaves ``equipment_id`` empty;
    the next sync after the equipment arrives fills it in.
    """

    def __init__(self, db: Session, client: SapClient | None = None):
        self.db = db
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> SapClient:
        if self._client is None:
            self._client = build_sap_client()
        return self._client

    async def close(self):
        """Close the SAP client if this service built it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # -- lookups -------------------------------------------------------------

    def _find_equipment(self, equipment_code: str) -> Equipment | None:
        try:
            return maintenance.equipment.get_by_code(self.db, equipment_code)
        except SQLAlchemyError as e:
            logger.error("Error finding equipment by SAP code %s: %s", equipment_code, e)
            return None

    def _find_staff(self, personnel_number: str) -> Staff | None:
        try:
            return maintenance.staff.get_by_personnel_number(self.db, personnel_number)
        except SQLAlchemyError as e:
            logger.error("Error finding staff by SAP personnel number %s: %s", personnel_number, e)
            return None

    def _get_equipment(self, equipment_id: int) -> Equipment | None:
        try:
            return self.db.get(Equipment, equipment_id)
        except SQLAlchemyError as e:
            logger.error("Error finding SAP equipment code for local id %s: %s", equipment_id, e)
            return None

    def _get_staff(self, staff_id: int) -> Staff | None:
        try:
            return self.db.get(Staff, staff_id)
        except SQLAlchemyError as e:
            logger.error("Error finding staff %s: %s", staff_id, e)
            return None

    def _map(self, record: Any) -> WorkOrderCreate:
        return map_sap_work_order_to_local(
            SapWorkOrder.parse(record), self._find_equipment, self._find_staff
        )

    def _map_all(self, records: list[dict]) -> list[WorkOrderCreate]:
        items = []
        for record in records:
            try:
                items.append(self._map(record))
            except ValueError as e:
                logger.error("Failed to map SAP work order %s: %s", _record_code(record), e)
        return items

    # -- pull ----------------------------------------------------------------

    async def _fetch_records(self, filter_expr: str = WORK_ORDER_LIST_FILTER) -> list[dict]:
        payload = await self._get_client().get(
            endpoints.WORK_ORDERS,
            params={"$filter": filter_expr},
        )
        return endpoints.odata_results(payload)

    async def fetch_remote_by_id(self, work_order_code: str) -> WorkOrderCreate | None:
        """Fetch one SAP maintenance order mapped to local shape.

        Returns None on 404 or when the entity cannot be mapped; other SAP
        errors are raised.
        """
        try:
            payload = await self._get_client().get(
                endpoints.entity_path(endpoints.WORK_ORDERS, work_order_code)
            )
        except SapNotFoundError:
            return None
        entity = endpoints.odata_entity(payload)
        if entity is None:
            return None
        try:
            return self._map(entity)
        except ValueError as e:
            logger.error("Failed to map SAP work order %s: %s", work_order_code, e)
            return None

    async def fetch_all_remote(self) -> list[WorkOrderCreate]:
        """Fetch all equipment-bound SAP maintenance orders (not persisted)."""
        return self._map_all(await self._fetch_records())

    async def fetch_remote_by_equipment(self, equipment_code: str) -> list[WorkOrderCreate]:
        """Fetch the SAP maintenance orders raised against one equipment code."""
        records = await self._fetch_records(f"Equipment eq {endpoints.odata_literal(equipment_code)}")
        return self._map_all(records)

    # -- push ----------------------------------------------------------------

    async def _exists_remote(self, work_order_code: str | None) -> bool:
        if not work_order_code:
            return False
        try:
            payload = await self._get_client().get(
                endpoints.entity_path(endpoints.WORK_ORDERS, work_order_code)
            )
        except SapNotFoundError:
            return False
        return payload is not None

    def _record_push(self, work_order: WorkOrder, status: SapSyncStatus, assigned_code: str | None = None):
        try:
            if assigned_code and not work_order.work_order_code:
                work_order.work_order_code = assigned_code
            maintenance.mark_sync(self.db, work_order, status, commit=True)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to record SAP push status for work order %s: %s", work_order.id, e)

    async def push_one(self, work_order: WorkOrder) -> bool:
        """Send one local work order to SAP.

        Returns:
            True on success, False on any failure (logged, never raised)
        """
        assigned_code = None
        try:
            body = map_local_work_order_to_sap(work_order, self._get_equipment, self._get_staff)
            code = work_order.work_order_code
            if await self._exists_remote(code):
                await self._get_client().put(endpoints.entity_path(endpoints.WORK_ORDERS, code), body)
                action = "updated"
            else:
                created = await self._get_client().post(endpoints.WORK_ORDERS, body)
                entity = endpoints.odata_entity(created) or {}
                if entity.get("MaintenanceOrder"):
                    assigned_code = str(entity["MaintenanceOrder"])
                action = "created"
        except Exception as e:
            logger.error("Failed to push work order %s to SAP: %s", work_order.id, e)
            self._record_push(work_order, SapSyncStatus.failed)
            return False

        logger.info("Work order %s %s in SAP", work_order.id, action)
        self._record_push(work_order, SapSyncStatus.synced, assigned_code)
        return True

    # -- reconcile -----------------------------------------------------------

    def _upsert(self, record: Any) -> str:
        payload = self._map(record)
        if not payload.work_order_code:
            raise ValueError("SAP maintenance order has no MaintenanceOrder key")
        existing = maintenance.work_orders.get_by_code(self.db, payload.work_order_code)
        if existing:
            work_order = maintenance.work_orders.update(self.db, existing, payload, commit=False)
            action = "updated"
        else:
            work_order = maintenance.work_orders.create(self.db, payload, commit=False)
            action = "created"
        maintenance.mark_sync(self.db, work_order, SapSyncStatus.synced)
        return action

    async def reconcile_all(self) -> SapSyncResult:
        """Pull all equipment-bound SAP maintenance orders into local storage.

        Per-record failures are counted and never stop the batch; orphaned
        orders (unknown equipment code) are stored with no equipment. Failing
        to fetch the collection at all raises.
        """
        start_time = datetime.now(UTC)
        result = SapSyncResult()

        records = await self._fetch_records()
        logger.info("Fetched %d work orders from SAP", len(records))

        for record in records:
            code = _record_code(record)
            savepoint = self.db.begin_nested()
            try:
                action = self._upsert(record)
                savepoint.commit()
            except Exception as e:
                savepoint.rollback()
                logger.error("Failed to sync work order %s: %s", code, e)
                result.record_error(code, e)
                continue
            if action == "created":
                result.added += 1
            else:
                result.updated += 1

        self.db.commit()
        result.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()
        logger.info(
            "Work order sync completed: added=%d updated=%d errors=%d",
            result.added,
            result.updated,
            result.errors,
        )
        return result
