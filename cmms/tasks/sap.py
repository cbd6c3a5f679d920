import asyncio
import time

from cmms.celery_app import celery_app
from cmms.db import SessionLocal
from cmms.logging import get_logger
from cmms.services.sap import SapSession, SapSyncCoordinator

# Token reused across runs in the same worker process.
_worker_session = SapSession()


@celery_app.task(
    name="cmms.tasks.sap.sync_sap_all",
    time_limit=600,
    soft_time_limit=540,
)
def sync_sap_all():
    """
    Pull equipment and work orders from SAP PM.

    Returns:
        Dict with the combined sync report
    """
    start = time.monotonic()
    session = SessionLocal()
    logger = get_logger(__name__)
    logger.info("SAP_SYNC_START")

    try:
        report = asyncio.run(SapSyncCoordinator(session, session=_worker_session).sync_all())

        if report.success:
            logger.info("SAP_SYNC_COMPLETE duration=%.2fs", time.monotonic() - start)
        else:
            logger.warning("SAP_SYNC_FAILED error=%s", report.error)
        for side in (report.equipment, report.work_orders):
            if side is not None and side.has_errors:
                for detail in side.error_details:
                    logger.warning("SAP_SYNC_ERROR code=%s error=%s", detail["code"], detail["error"])

        return report.to_dict()

    except Exception as e:
        logger.exception("SAP_SYNC_FAILED error=%s", str(e))
        session.rollback()
        raise

    finally:
        session.close()
