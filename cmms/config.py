import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./cmms.db")
    db_pool_pre_ping: bool = os.getenv("DB_POOL_PRE_PING", "1") not in ("0", "false", "False")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # SAP PM integration settings
    sap_api_url: str | None = os.getenv("SAP_API_URL")
    sap_gateway: str = os.getenv("SAP_GATEWAY", "/sap/opu/odata/sap")
    sap_client_id: str | None = os.getenv("SAP_CLIENT_ID")
    sap_username: str | None = os.getenv("SAP_API_USERNAME")
    sap_password: str | None = os.getenv("SAP_API_PASSWORD")
    sap_timeout_seconds: float = float(os.getenv("SAP_TIMEOUT_SECONDS", "30"))
    sap_sync_interval_minutes: int = int(os.getenv("SAP_SYNC_INTERVAL_MINUTES", "60"))

    # Celery
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    celery_result_backend: str = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")


settings = Settings()
