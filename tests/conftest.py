import os

import pytest
from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cmms.db import Base
from cmms.models import (  # noqa: F401
    Equipment,
    EquipmentCategory,
    EquipmentStatus,
    MaintenanceHistory,
    Staff,
    WorkOrder,
)
from cmms.schemas.equipment import EquipmentCreate
from cmms.schemas.workforce import StaffCreate, WorkOrderCreate
from cmms.services import maintenance

load_dotenv(os.path.join(os.getcwd(), ".env"))


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite handles BEGIN itself and breaks SAVEPOINT; take over.
    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autoflush=False,
        autocommit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def equipment(db_session):
    return maintenance.equipment.create(
        db_session,
        EquipmentCreate(
            equipment_code="EQP-1042",
            name="Hydraulic Press 3",
            category=EquipmentCategory.hydraulic,
            location="Hall B / Line 2",
            status=EquipmentStatus.active,
            manufacturer="Schuler",
            model="HP-400",
            install_date="2019-04-01",
            notes="400 t press",
        ),
    )


@pytest.fixture()
def technician(db_session):
    return maintenance.staff.create(
        db_session,
        StaffCreate(
            name="Dana Kowalski",
            position="Maintenance Technician",
            specialization="Hydraulics",
            sap_personnel_number="00004711",
        ),
    )


@pytest.fixture()
def work_order(db_session, equipment, technician):
    return maintenance.work_orders.create(
        db_session,
        WorkOrderCreate(
            work_order_code="4000123",
            title="Replace main seal",
            description="Oil leak at main cylinder seal",
            equipment_id=equipment.id,
            work_type="corrective",
            assigned_to_id=technician.id,
            due_date="2024-03-15",
        ),
    )
