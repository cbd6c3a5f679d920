"""SAP PM integration: OData client, field mappers and sync engines."""

from cmms.services.sap.client import (
    SapAuthenticationError,
    SapClient,
    SapConfigurationError,
    SapError,
    SapNotFoundError,
    SapRequestError,
    SapSession,
    build_sap_client,
)
from cmms.services.sap.coordinator import SapSyncCoordinator
from cmms.services.sap.equipment_sync import SapEquipmentSync
from cmms.services.sap.results import SapSyncReport, SapSyncResult
from cmms.services.sap.work_order_sync import SapWorkOrderSync

__all__ = [
    "SapAuthenticationError",
    "SapClient",
    "SapConfigurationError",
    "SapError",
    "SapNotFoundError",
    "SapRequestError",
    "SapSession",
    "build_sap_client",
    "SapSyncCoordinator",
    "SapEquipmentSync",
    "SapSyncReport",
    "SapSyncResult",
    "SapWorkOrderSync",
]
