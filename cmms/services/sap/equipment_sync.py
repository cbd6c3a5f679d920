"""Equipment sync between SAP PM and the local equipment register."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cmms.models.equipment import Equipment
from cmms.models.sync import SapSyncStatus
from cmms.schemas.equipment import EquipmentCreate
from cmms.schemas.sap import SapEquipment
from cmms.services import maintenance
from cmms.services.sap import endpoints
from cmms.services.sap.client import SapClient, SapNotFoundError, build_sap_client
from cmms.services.sap.mappers import map_local_equipment_to_sap, map_sap_equipment_to_local
from cmms.services.sap.results import SapSyncResult

logger = logging.getLogger(__name__)

EQUIPMENT_LIST_FILTER = "EquipmentCategory ne '' and EquipmentStatus ne ''"


def _record_code(record: Any) -> str | None:
    if isinstance(record, dict):
        code = record.get("Equipment")
        return str(code) if code else None
    return None


class SapEquipmentSync:
    """
    Service for syncing equipment with SAP PM.

    Pull (reconcile): SAP is authoritative for every mapped field; records
    are matched on ``equipment_code`` and created or updated locally.
    Push: one local record is sent to SAP, updated there if the code exists
    and created otherwise.
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

    async def _fetch_records(self) -> list[dict]:
        payload = await self._get_client().get(
            endpoints.EQUIPMENT,
            params={"$filter": EQUIPMENT_LIST_FILTER},
        )
        return endpoints.odata_results(payload)

    async def fetch_remote_by_id(self, equipment_code: str) -> EquipmentCreate | None:
        """Fetch one SAP equipment record mapped to local shape.

        Returns None when SAP answers 404 or the entity cannot be mapped;
        any other SAP error is raised.
        """
        try:
            payload = await self._get_client().get(
                endpoints.entity_path(endpoints.EQUIPMENT, equipment_code)
            )
        except SapNotFoundError:
            return None
        entity = endpoints.odata_entity(payload)
        if entity is None:
            return None
        try:
            return map_sap_equipment_to_local(SapEquipment.parse(entity))
        except ValueError as e:
            logger.error("Failed to map SAP equipment %s: %s", equipment_code, e)
            return None

    async def fetch_all_remote(self) -> list[EquipmentCreate]:
        """Fetch all SAP equipment mapped to local shape (not persisted).

        Records that cannot be mapped are logged and skipped.
        """
        items = []
        for record in await self._fetch_records():
            try:
                items.append(map_sap_equipment_to_local(SapEquipment.parse(record)))
            except ValueError as e:
                logger.error("Failed to map SAP equipment %s: %s", _record_code(record), e)
        return items

    async def _exists_remote(self, equipment_code: str) -> bool:
        try:
            payload = await self._get_client().get(
                endpoints.entity_path(endpoints.EQUIPMENT, equipment_code)
            )
        except SapNotFoundError:
            return False
        return payload is not None

    def _record_push(self, item: Equipment, status: SapSyncStatus):
        try:
            maintenance.mark_sync(self.db, item, status, commit=True)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to record SAP push status for equipment %s: %s", item.id, e)

    async def push_one(self, item: Equipment) -> bool:
        """Send one local equipment record to SAP.

        Returns:
            True on success, False on any failure (logged, never raised)
        """
        try:
            body = map_local_equipment_to_sap(item)
            if await self._exists_remote(item.equipment_code):
                await self._get_client().put(
                    endpoints.entity_path(endpoints.EQUIPMENT, item.equipment_code), body
                )
                action = "updated"
            else:
                await self._get_client().post(endpoints.EQUIPMENT, body)
                action = "created"
        except Exception as e:
            logger.error("Failed to push equipment %s to SAP: %s", item.id, e)
            self._record_push(item, SapSyncStatus.failed)
            return False

        logger.info("Equipment %s %s in SAP", item.equipment_code, action)
        self._record_push(item, SapSyncStatus.synced)
        return True

    def _upsert(self, record: Any) -> str:
        payload = map_sap_equipment_to_local(SapEquipment.parse(record))
        existing = maintenance.equipment.get_by_code(self.db, payload.equipment_code)
        if existing:
            item = maintenance.equipment.update(self.db, existing, payload, commit=False)
            action = "updated"
        else:
            item = maintenance.equipment.create(self.db, payload, commit=False)
            action = "created"
        maintenance.mark_sync(self.db, item, SapSyncStatus.synced)
        return action

    async def reconcile_all(self) -> SapSyncResult:
        """Pull all SAP equipment into local storage.

        Per-record failures are counted and never stop the batch. Failing to
        fetch the collection at all raises.
        """
        start_time = datetime.now(UTC)
        result = SapSyncResult()

        records = await self._fetch_records()
        logger.info("Fetched %d equipment records from SAP", len(records))

        for record in records:
            code = _record_code(record)
            savepoint = self.db.begin_nested()
            try:
                action = self._upsert(record)
                savepoint.commit()
            except Exception as e:
                savepoint.rollback()
                logger.error("Failed to sync equipment %s: %s", code, e)
                result.record_error(code, e)
                continue
            if action == "created":
                result.added += 1
            else:
                result.updated += 1

        self.db.commit()
        result.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()
        logger.info(
            "Equipment sync completed: added=%d updated=%d errors=%d",
            result.added,
            result.updated,
            result.errors,
        )
        return result
