"""Tests for the SAP full-sync coordinator."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cmms.models.equipment import Equipment
from cmms.models.workforce import WorkOrder
from cmms.services.sap import endpoints
from cmms.services.sap.client import SapAuthenticationError, SapConfigurationError, SapRequestError
from cmms.services.sap.coordinator import SapSyncCoordinator
from cmms.services.sap.results import SapSyncReport, SapSyncResult
from tests.sap_payloads import odata_collection, sap_equipment_record, sap_work_order_record


def fake_client(equipment=None, work_orders=None):
    responses = {endpoints.EQUIPMENT: equipment, endpoints.WORK_ORDERS: work_orders}

    async def get(path, params=None):
        response = responses[path]
        if isinstance(response, Exception):
            raise response
        return response

    client = MagicMock()
    client.get = AsyncMock(side_effect=get)
    client.aclose = AsyncMock()
    return client


class TestSyncAll:
    @pytest.mark.asyncio
    async def test_both_sides_succeed(self, db_session):
        client = fake_client(
            equipment=odata_collection(sap_equipment_record("EQP-1"), sap_equipment_record("EQP-2")),
            work_orders=odata_collection(sap_work_order_record("4000001", equipment="EQP-1")),
        )

        report = await SapSyncCoordinator(db_session, client).sync_all()

        assert report.success is True
        assert report.error is None
        assert report.equipment.added == 2
        assert report.work_orders.added == 1
        assert db_session.query(Equipment).count() == 2
        assert db_session.query(WorkOrder).count() == 1
        client.aclose.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_work_order_failure_keeps_equipment_result(self, db_session, equipment):
        client = fake_client(
            equipment=odata_collection(
                sap_equipment_record("EQP-1042"),
                sap_equipment_record("EQP-2"),
                sap_equipment_record("EQP-3"),
            ),
            work_orders=SapRequestError("gateway unreachable"),
        )

        report = await SapSyncCoordinator(db_session, client).sync_all()

        assert report.success is False
        assert report.error == "gateway unreachable"
        assert (report.equipment.added, report.equipment.updated, report.equipment.errors) == (2, 1, 0)
        assert report.work_orders is None
        assert db_session.query(Equipment).count() == 3

    @pytest.mark.asyncio
    async def test_equipment_failure_does_not_cancel_work_orders(self, db_session):
        client = fake_client(
            equipment=SapAuthenticationError("bad credentials"),
            work_orders=odata_collection(sap_work_order_record("4000001")),
        )

        report = await SapSyncCoordinator(db_session, client).sync_all()

        assert report.success is False
        assert report.error == "bad credentials"
        assert report.equipment is None
        assert report.work_orders.added == 1

    @pytest.mark.asyncio
    async def test_first_error_is_equipment_when_both_fail(self, db_session):
        client = fake_client(
            equipment=SapRequestError("equipment down"),
            work_orders=SapRequestError("orders down"),
        )

        report = await SapSyncCoordinator(db_session, client).sync_all()

        assert report.success is False
        assert report.error == "equipment down"

    @pytest.mark.asyncio
    async def test_per_record_errors_are_not_overall_failure(self, db_session):
        client = fake_client(
            equipment=odata_collection(sap_equipment_record("EQP-1"), sap_equipment_record("")),
            work_orders=odata_collection(),
        )

        report = await SapSyncCoordinator(db_session, client).sync_all()

        assert report.success is True
        assert report.equipment.errors == 1

    @pytest.mark.asyncio
    async def test_unconfigured_reports_failure(self, db_session):
        with patch(
            "cmms.services.sap.coordinator.build_sap_client",
            side_effect=SapConfigurationError("SAP integration not configured (missing SAP_API_URL)"),
        ):
            report = await SapSyncCoordinator(db_session).sync_all()

        assert report.success is False
        assert "SAP_API_URL" in report.error
        assert report.to_dict()["equipment"] is None

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self, db_session):
        client = fake_client(equipment=odata_collection(), work_orders=odata_collection())
        with patch("cmms.services.sap.coordinator.build_sap_client", return_value=client):
            await SapSyncCoordinator(db_session).sync_all()
        client.aclose.assert_awaited_once()


class TestReportSerialization:
    def test_to_dict(self):
        report = SapSyncReport(equipment=SapSyncResult(added=2, updated=1), success=False, error="boom")
        data = report.to_dict()

        assert data["equipment"]["added"] == 2
        assert data["work_orders"] is None
        assert data["success"] is False
        assert data["error"] == "boom"
