"""Full SAP sync: equipment and work order reconciliation run together."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.orm import Session

from cmms.services.sap.client import SapClient, SapConfigurationError, SapSession, build_sap_client
from cmms.services.sap.equipment_sync import SapEquipmentSync
from cmms.services.sap.results import SapSyncReport
from cmms.services.sap.work_order_sync import SapWorkOrderSync

logger = logging.getLogger(__name__)


class SapSyncCoordinator:
    """
    Runs both reconciliations concurrently and joins both outcomes.

    Neither side is cancelled when the other raises. The report carries each
    side's result when it finished, ``success=False`` when either raised, and
    the first error message (equipment before work orders).

    Work orders resolve equipment codes against what is stored locally when
    each record is mapped, so an order pulled before its equipment in the
    same run is stored without equipment and linked on the next run.
    """

    def __init__(self, db: Session, client: SapClient | None = None, session: SapSession | None = None):
        self.db = db
        self._client = client
        self._session = session

    async def sync_all(self) -> SapSyncReport:
        owns_client = self._client is None
        try:
            client = self._client or build_sap_client(session=self._session)
        except SapConfigurationError as e:
            logger.error("SAP full sync not started: %s", e)
            return SapSyncReport(success=False, error=str(e))

        try:
            outcomes = await asyncio.gather(
                SapEquipmentSync(self.db, client).reconcile_all(),
                SapWorkOrderSync(self.db, client).reconcile_all(),
                return_exceptions=True,
            )
        finally:
            if owns_client:
                await client.aclose()

        report = SapSyncReport()
        for side, outcome in zip(("equipment", "work_orders"), outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error("SAP %s reconciliation failed: %s", side, outcome)
                if report.success:
                    report.success = False
                    report.error = str(outcome)
            else:
                setattr(report, side, outcome)

        logger.info(
            "SAP full sync finished: success=%s equipment=%s work_orders=%s",
            report.success,
            report.equipment.total_synced if report.equipment else None,
            report.work_orders.total_synced if report.work_orders else None,
        )
        return report
