import enum


class SapSyncStatus(enum.Enum):
    synced = "synced"
    failed = "failed"
