"""Tests for the SAP Celery task."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cmms.celery_app import celery_app
from cmms.services.sap.results import SapSyncReport, SapSyncResult
from cmms.tasks.sap import sync_sap_all


def test_task_registered_and_scheduled():
    assert "cmms.tasks.sap.sync_sap_all" in celery_app.tasks
    schedule = celery_app.conf.beat_schedule["sap-sync-all"]
    assert schedule["task"] == "cmms.tasks.sap.sync_sap_all"


def test_sync_sap_all_returns_report():
    session = MagicMock()
    report = SapSyncReport(
        equipment=SapSyncResult(added=2, updated=1),
        work_orders=SapSyncResult(added=1, errors=1, error_details=[{"code": "4000001", "error": "bad"}]),
    )
    coordinator = MagicMock()
    coordinator.sync_all = AsyncMock(return_value=report)

    with (
        patch("cmms.tasks.sap.SessionLocal", return_value=session),
        patch("cmms.tasks.sap.SapSyncCoordinator", return_value=coordinator) as coordinator_cls,
    ):
        result = sync_sap_all()

    assert result["success"] is True
    assert result["equipment"]["added"] == 2
    assert result["work_orders"]["errors"] == 1
    assert coordinator_cls.call_args.args[0] is session
    session.close.assert_called_once()


def test_sync_sap_all_reports_failure_without_raising():
    session = MagicMock()
    coordinator = MagicMock()
    coordinator.sync_all = AsyncMock(return_value=SapSyncReport(success=False, error="SAP down"))

    with (
        patch("cmms.tasks.sap.SessionLocal", return_value=session),
        patch("cmms.tasks.sap.SapSyncCoordinator", return_value=coordinator),
    ):
        result = sync_sap_all()

    assert result == {"equipment": None, "work_orders": None, "success": False, "error": "SAP down"}


def test_sync_sap_all_rolls_back_on_unexpected_error():
    session = MagicMock()
    coordinator = MagicMock()
    coordinator.sync_all = AsyncMock(side_effect=RuntimeError("database gone"))

    with (
        patch("cmms.tasks.sap.SessionLocal", return_value=session),
        patch("cmms.tasks.sap.SapSyncCoordinator", return_value=coordinator),
        pytest.raises(RuntimeError),
    ):
        sync_sap_all()

    session.rollback.assert_called_once()
    session.close.assert_called_once()
