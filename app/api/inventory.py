import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.inventory_record import (
    InventoryEntry,
    InventoryRecordOut,
    OpeningStock,
    ProductHistoryOut,
    ProductSummaryPage,
    RecordList,
    SaveResult,
)
from app.services import export_service, inventory_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def _snapshots(records) -> list[InventoryRecordOut]:
    return [InventoryRecordOut.model_validate(r) for r in records]


@router.get("/records", response_model=RecordList)
def list_records(limit: int | None = Query(None, ge=1), db: Session = Depends(get_db)):
    try:
        records = inventory_service.list_recent_records(db, limit=limit)
    except SQLAlchemyError as e:
        logger.error("Error fetching records: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch records"})
    return {"records": _snapshots(records)}


@router.post("/records", response_model=SaveResult, status_code=201)
def save_record(data: InventoryEntry, response: Response, db: Session = Depends(get_db)):
    try:
        record, created = inventory_service.save_record(db, data)
    except ValueError as e:
        raise HTTPException(400, str(e))
    if not created:
        response.status_code = 200
    return SaveResult(
        record=InventoryRecordOut.model_validate(record),
        created=created,
        message="Record saved successfully!" if created else "Record updated successfully!",
    )


@router.get("/records/opening-stock", response_model=OpeningStock)
def opening_stock(
    item_name: str = Query(..., min_length=1),
    day: date | None = Query(None, alias="date"),
    db: Session = Depends(get_db),
):
    return inventory_service.get_opening_stock(db, item_name, day or date.today())


@router.get("/records/lookup", response_model=InventoryRecordOut)
def lookup_record(
    item_name: str = Query(..., min_length=1),
    day: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
):
    record = inventory_service.get_record_for_date(db, item_name.strip(), day)
    if not record:
        raise HTTPException(404, "No record for this product and date")
    return record


@router.get("/search", response_model=list[InventoryRecordOut])
def search(q: str = "", db: Session = Depends(get_db)):
    return inventory_service.search_records(db, q)


@router.get("/products", response_model=ProductSummaryPage)
def list_products(
    q: str = "",
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    records = _snapshots(inventory_service.list_recent_records(db))
    summaries = inventory_service.build_product_summaries(records)
    stats = inventory_service.product_stats(summaries)
    summaries = inventory_service.filter_product_summaries(summaries, q)
    return {**inventory_service.paginate(summaries, page, page_size), "stats": stats}


@router.get("/products/{item_name:path}/history", response_model=ProductHistoryOut)
def product_history(
    item_name: str,
    q: str = "",
    field: str = "all",
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    records = _snapshots(inventory_service.get_product_records(db, item_name))
    if not records:
        raise HTTPException(404, f"No records found for product: {item_name}")

    movements = inventory_service.build_stock_movements(records)
    try:
        movements = inventory_service.filter_movements(movements, q, field)
    except ValueError as e:
        raise HTTPException(400, str(e))

    page_data = inventory_service.paginate(movements, page, page_size)
    return {
        "item_name": item_name,
        "summary": inventory_service.summarize_product_history(records),
        "movements": page_data.pop("items"),
        **page_data,
    }


@router.get("/export")
def export_records(db: Session = Depends(get_db)):
    records = _snapshots(inventory_service.list_recent_records(db))
    if not records:
        raise HTTPException(404, "No data to export. Please save some records first.")
    content = export_service.records_csv(records)
    filename = export_service.records_filename()
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
