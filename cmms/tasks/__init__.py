from cmms.tasks.sap import sync_sap_all  # noqa: F401
