"""SAP PM OData endpoint paths and payload helpers.

Entity paths are relative to the configured gateway prefix.
"""

from typing import Any

EQUIPMENT = "/API_EQUIPMENT/Equipment"
WORK_ORDERS = "/API_MAINTENANCEORDER/MaintenanceOrder"

# Served from the host root, not the gateway.
AUTH_TOKEN = "/auth/token"

# Maintenance object type for equipment-bound orders.
OBJECT_TYPE_EQUIPMENT = "EQUI"


def odata_literal(value: str) -> str:
    """Quote a value as an OData string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def entity_path(collection: str, key: str) -> str:
    """Build an entity-keyed path such as ``/API_EQUIPMENT/Equipment('EQP-1042')``."""
    return f"{collection}({odata_literal(key)})"


def odata_results(payload: Any) -> list[dict]:
    """Extract ``d.results`` from an OData v2 collection response."""
    if not isinstance(payload, dict):
        return []
    body = payload.get("d")
    if isinstance(body, dict):
        results = body.get("results")
        return results if isinstance(results, list) else []
    results = payload.get("value")
    return results if isinstance(results, list) else []


def odata_entity(payload: Any) -> dict | None:
    """Extract the entity object from an OData v2 single-entity response."""
    if not isinstance(payload, dict):
        return None
    body = payload.get("d")
    return body if isinstance(body, dict) else None
