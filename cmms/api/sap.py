from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from cmms.db import get_db
from cmms.schemas.equipment import EquipmentCreate
from cmms.schemas.workforce import WorkOrderCreate
from cmms.services import maintenance as maintenance_service
from cmms.services.sap import (
    SapClient,
    SapConfigurationError,
    SapEquipmentSync,
    SapError,
    SapSyncCoordinator,
    SapWorkOrderSync,
    build_sap_client,
)

router = APIRouter(prefix="/api/sap", tags=["sap"])


async def get_sap_client(request: Request):
    """SAP client bound to the application-wide token session."""
    try:
        client = build_sap_client(session=request.app.state.sap_session)
    except SapConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    try:
        yield client
    finally:
        await client.aclose()


def _bad_gateway(message: str, exc: Exception | None = None) -> HTTPException:
    detail = f"{message}: {exc}" if exc is not None else message
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


@router.get("/equipment", response_model=list[EquipmentCreate])
async def list_remote_equipment(
    db: Session = Depends(get_db), client: SapClient = Depends(get_sap_client)
):
    try:
        return await SapEquipmentSync(db, client).fetch_all_remote()
    except SapError as exc:
        raise _bad_gateway("Failed to fetch SAP equipment", exc) from exc


@router.get("/equipment/{equipment_code}", response_model=EquipmentCreate)
async def get_remote_equipment(
    equipment_code: str,
    db: Session = Depends(get_db),
    client: SapClient = Depends(get_sap_client),
):
    try:
        item = await SapEquipmentSync(db, client).fetch_remote_by_id(equipment_code)
    except SapError as exc:
        raise _bad_gateway("Failed to fetch SAP equipment", exc) from exc
    if item is None:
        raise HTTPException(status_code=404, detail="Equipment not found in SAP")
    return item


@router.get("/work-orders", response_model=list[WorkOrderCreate])
async def list_remote_work_orders(
    db: Session = Depends(get_db), client: SapClient = Depends(get_sap_client)
):
    try:
        return await SapWorkOrderSync(db, client).fetch_all_remote()
    except SapError as exc:
        raise _bad_gateway("Failed to fetch SAP work orders", exc) from exc


@router.get("/equipment/{equipment_code}/work-orders", response_model=list[WorkOrderCreate])
async def list_remote_work_orders_for_equipment(
    equipment_code: str,
    db: Session = Depends(get_db),
    client: SapClient = Depends(get_sap_client),
):
    try:
        return await SapWorkOrderSync(db, client).fetch_remote_by_equipment(equipment_code)
    except SapError as exc:
        raise _bad_gateway("Failed to fetch SAP work orders", exc) from exc


@router.post("/sync/equipment", response_model=dict)
async def sync_equipment(db: Session = Depends(get_db), client: SapClient = Depends(get_sap_client)):
    try:
        result = await SapEquipmentSync(db, client).reconcile_all()
    except Exception as exc:
        raise _bad_gateway("Equipment sync failed", exc) from exc
    return result.to_dict()


@router.post("/sync/work-orders", response_model=dict)
async def sync_work_orders(db: Session = Depends(get_db), client: SapClient = Depends(get_sap_client)):
    try:
        result = await SapWorkOrderSync(db, client).reconcile_all()
    except Exception as exc:
        raise _bad_gateway("Work order sync failed", exc) from exc
    return result.to_dict()


@router.post("/sync/all", response_model=dict)
async def sync_all(db: Session = Depends(get_db), client: SapClient = Depends(get_sap_client)):
    report = await SapSyncCoordinator(db, client).sync_all()
    if not report.success:
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=report.to_dict())
    return report.to_dict()


@router.post("/equipment/{equipment_id}", response_model=dict)
async def push_equipment(
    equipment_id: int,
    db: Session = Depends(get_db),
    client: SapClient = Depends(get_sap_client),
):
    item = maintenance_service.equipment.get(db, equipment_id)
    if not await SapEquipmentSync(db, client).push_one(item):
        raise _bad_gateway(f"Failed to push equipment {item.equipment_code} to SAP")
    return {"success": True, "equipment_code": item.equipment_code}


@router.post("/work-orders/{work_order_id}", response_model=dict)
async def push_work_order(
    work_order_id: int,
    db: Session = Depends(get_db),
    client: SapClient = Depends(get_sap_client),
):
    work_order = maintenance_service.work_orders.get(db, work_order_id)
    if not await SapWorkOrderSync(db, client).push_one(work_order):
        raise _bad_gateway(f"Failed to push work order {work_order_id} to SAP")
    return {"success": True, "work_order_code": work_order.work_order_code}


@router.post("/test-connection", response_model=dict)
async def test_sap_connection(client: SapClient = Depends(get_sap_client)):
    return {"success": await client.test_connection()}
