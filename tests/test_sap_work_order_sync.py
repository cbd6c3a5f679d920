"""Tests for SAP work order sync."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from cmms.models.sync import SapSyncStatus
from cmms.models.workforce import WorkOrder, WorkOrderPriority, WorkOrderStatus
from cmms.schemas.equipment import EquipmentCreate
from cmms.schemas.workforce import WorkOrderCreate
from cmms.services import maintenance
from cmms.services.sap import endpoints
from cmms.services.sap.client import SapNotFoundError, SapRequestError
from cmms.services.sap.work_order_sync import SapWorkOrderSync
from tests.sap_payloads import odata_collection, odata_entity, sap_work_order_record


@pytest.fixture()
def sync_service(db_session):
    svc = SapWorkOrderSync(db_session)
    svc._client = MagicMock()
    svc._client.get = AsyncMock()
    svc._client.post = AsyncMock()
    svc._client.put = AsyncMock()
    return svc


class TestFetch:
    @pytest.mark.asyncio
    async def test_fetch_all_remote_resolves_equipment(self, sync_service, equipment, technician):
        sync_service._client.get.return_value = odata_collection(sap_work_order_record())

        items = await sync_service.fetch_all_remote()

        assert len(items) == 1
        assert items[0].equipment_id == equipment.id
        assert items[0].assigned_to_id == technician.id
        assert sync_service._client.get.call_args.kwargs["params"] == {"$filter": "MaintObjectType eq 'EQUI'"}

    @pytest.mark.asyncio
    async def test_orphan_does_not_fail_fetch(self, sync_service, equipment):
        sync_service._client.get.return_value = odata_collection(
            sap_work_order_record("4000001", equipment="EQP-404"),
            sap_work_order_record("4000002"),
        )

        items = await sync_service.fetch_all_remote()

        assert [i.equipment_id for i in items] == [None, equipment.id]

    @pytest.mark.asyncio
    async def test_fetch_remote_by_equipment(self, sync_service):
        sync_service._client.get.return_value = odata_collection(sap_work_order_record(equipment="EQP-O'NEIL"))

        items = await sync_service.fetch_remote_by_equipment("EQP-O'NEIL")

        assert len(items) == 1
        assert sync_service._client.get.call_args.kwargs["params"] == {"$filter": "Equipment eq 'EQP-O''NEIL'"}

    @pytest.mark.asyncio
    async def test_fetch_remote_by_id(self, sync_service):
        sync_service._client.get.return_value = odata_entity(sap_work_order_record())

        item = await sync_service.fetch_remote_by_id("4000123")

        assert item.work_order_code == "4000123"
        assert item.priority == WorkOrderPriority.high
        sync_service._client.get.assert_awaited_once_with(
            "/API_MAINTENANCEORDER/MaintenanceOrder('4000123')"
        )

    @pytest.mark.asyncio
    async def test_fetch_remote_by_id_not_found(self, sync_service):
        sync_service._client.get.side_effect = SapNotFoundError("missing", status_code=404)
        assert await sync_service.fetch_remote_by_id("4000404") is None


class TestPushOne:
    @pytest.mark.asyncio
    async def test_updates_when_remote_exists(self, sync_service, work_order):
        sync_service._client.get.return_value = odata_entity(sap_work_order_record())

        assert await sync_service.push_one(work_order) is True

        path, body = sync_service._client.put.call_args.args
        assert path == "/API_MAINTENANCEORDER/MaintenanceOrder('4000123')"
        assert body["Equipment"] == "EQP-1042"
        assert body["PersonResponsible"] == "00004711"
        sync_service._client.post.assert_not_awaited()
        assert work_order.sap_sync_status == SapSyncStatus.synced

    @pytest.mark.asyncio
    async def test_new_order_adopts_sap_key(self, sync_service, db_session, equipment):
        work_order = maintenance.work_orders.create(
            db_session, WorkOrderCreate(title="Check hoses", equipment_id=equipment.id)
        )
        sync_service._client.post.return_value = odata_entity({"MaintenanceOrder": "4000777"})

        assert await sync_service.push_one(work_order) is True

        sync_service._client.get.assert_not_awaited()
        assert sync_service._client.post.call_args.args[0] == endpoints.WORK_ORDERS
        assert work_order.work_order_code == "4000777"

    @pytest.mark.asyncio
    async def test_creates_when_code_unknown_remotely(self, sync_service, work_order):
        sync_service._client.get.side_effect = SapNotFoundError("missing", status_code=404)
        sync_service._client.post.return_value = None

        assert await sync_service.push_one(work_order) is True
        assert work_order.work_order_code == "4000123"

    @pytest.mark.asyncio
    async def test_failure_returns_false(self, sync_service, work_order):
        sync_service._client.get.side_effect = SapRequestError("timeout")

        assert await sync_service.push_one(work_order) is False
        assert work_order.sap_sync_status == SapSyncStatus.failed


class TestReconcileAll:
    @pytest.mark.asyncio
    async def test_creates_and_updates_by_code(self, sync_service, db_session, work_order):
        work_order.notes = "Bring spare seal kit"
        db_session.commit()
        sync_service._client.get.return_value = odata_collection(
            sap_work_order_record(StatusInternalID="I0009", ActualEndDate="20240314"),
            sap_work_order_record("4000124", MaintenanceOrderDesc="Lubricate guides", OrderType="PM02"),
        )

        result = await sync_service.reconcile_all()

        assert (result.added, result.updated, result.errors) == (1, 1, 0)
        db_session.refresh(work_order)
        assert work_order.status == WorkOrderStatus.completed
        assert work_order.completion_date == "2024-03-14"
        assert work_order.notes == "Bring spare seal kit"
        created = maintenance.work_orders.get_by_code(db_session, "4000124")
        assert created.work_type == "preventive"
        assert created.created_date == "2024-03-01"
        assert created.sap_sync_status == SapSyncStatus.synced

    @pytest.mark.asyncio
    async def test_uncoded_local_order_is_never_matched(self, sync_service, db_session, equipment):
        maintenance.work_orders.create(
            db_session, WorkOrderCreate(title="Replace main seal", equipment_id=equipment.id)
        )
        sync_service._client.get.return_value = odata_collection(sap_work_order_record())

        result = await sync_service.reconcile_all()

        assert (result.added, result.updated) == (1, 0)
        assert db_session.query(WorkOrder).count() == 2

    @pytest.mark.asyncio
    async def test_orphan_is_stored_and_linked_later(self, sync_service, db_session, equipment):
        sync_service._client.get.return_value = odata_collection(
            sap_work_order_record("4000500", equipment="EQP-2000", FunctionalLocation="Yard")
        )

        result = await sync_service.reconcile_all()

        assert (result.added, result.errors) == (1, 0)
        orphan = maintenance.work_orders.get_by_code(db_session, "4000500")
        assert orphan.equipment_id is None
        assert orphan.location == "Yard"

        late = maintenance.equipment.create(db_session, EquipmentCreate(equipment_code="EQP-2000", name="Forklift 1"))
        result = await sync_service.reconcile_all()

        assert result.updated == 1
        db_session.refresh(orphan)
        assert orphan.equipment_id == late.id

    @pytest.mark.asyncio
    async def test_idempotent(self, sync_service, db_session, equipment):
        sync_service._client.get.return_value = odata_collection(
            sap_work_order_record("4000001"), sap_work_order_record("4000002")
        )

        first = await sync_service.reconcile_all()
        second = await sync_service.reconcile_all()

        assert (first.added, first.updated) == (2, 0)
        assert (second.added, second.updated) == (0, 2)

    @pytest.mark.asyncio
    async def test_record_without_key_is_counted(self, sync_service, db_session, equipment):
        sync_service._client.get.return_value = odata_collection(
            sap_work_order_record(""),
            sap_work_order_record("4000002"),
        )

        result = await sync_service.reconcile_all()

        assert (result.added, result.errors) == (1, 1)
        assert db_session.query(WorkOrder).count() == 1

    @pytest.mark.asyncio
    async def test_persistence_failure_rolls_back_only_that_record(self, sync_service, db_session, equipment):
        real_mark_sync = maintenance.mark_sync

        def mark_sync(db, record, status, commit=False):
            if record.work_order_code == "4000002":
                raise IntegrityError("UPDATE work_orders", {}, Exception("constraint failed"))
            return real_mark_sync(db, record, status, commit=commit)

        sync_service._client.get.return_value = odata_collection(
            sap_work_order_record("4000001"),
            sap_work_order_record("4000002"),
            sap_work_order_record("4000003"),
        )

        with patch.object(maintenance, "mark_sync", side_effect=mark_sync):
            result = await sync_service.reconcile_all()

        assert (result.added, result.errors) == (2, 1)
        assert result.error_details[0]["code"] == "4000002"
        codes = [wo.work_order_code for wo in db_session.query(WorkOrder).order_by(WorkOrder.id)]
        assert codes == ["4000001", "4000003"]

    @pytest.mark.asyncio
    async def test_overlong_text_is_truncated(self, sync_service, db_session, equipment):
        sync_service._client.get.return_value = odata_collection(
            sap_work_order_record("4000009", MaintenanceOrderDesc="T" * 250, FunctionalLocation="Y" * 201)
        )

        result = await sync_service.reconcile_all()

        assert (result.added, result.errors) == (1, 0)
        work_order = maintenance.work_orders.get_by_code(db_session, "4000009")
        assert work_order.title == "T" * 200
        assert work_order.location == "Y" * 200
