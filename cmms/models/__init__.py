from cmms.models.equipment import (  # noqa: F401
    Equipment,
    EquipmentCategory,
    EquipmentStatus,
)
from cmms.models.maintenance import MaintenanceHistory  # noqa: F401
from cmms.models.sync import SapSyncStatus  # noqa: F401
from cmms.models.workforce import (  # noqa: F401
    Staff,
    WorkOrder,
    WorkOrderPriority,
    WorkOrderStatus,
    WorkOrderType,
)
