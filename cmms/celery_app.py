from datetime import timedelta

from celery import Celery

from cmms.config import settings

celery_app = Celery(
    "cmms",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["cmms.tasks.sap"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "sap-sync-all": {
            "task": "cmms.tasks.sap.sync_sap_all",
            "schedule": timedelta(minutes=settings.sap_sync_interval_minutes),
        },
    },
)
