from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.inventory_record import InventoryRecordOut
from app.services import export_service, inventory_service, report_service

router = APIRouter(prefix="/reports", tags=["Reports"])


def _build_reports(db: Session, start_date: date | None, end_date: date | None) -> dict:
    default_start, default_end = report_service.default_date_range()
    if end_date is None:
        # records may be dated ahead of today
        end_date = max(start_date, default_end) if start_date else default_end
    start_date = start_date or default_start
    if start_date > end_date:
        raise HTTPException(400, "start_date must not be after end_date")
    records = [InventoryRecordOut.model_validate(r) for r in inventory_service.list_recent_records(db)]
    return report_service.generate_reports(records, start_date, end_date)


def _csv_response(content: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("")
def reports(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: Session = Depends(get_db),
):
    return _build_reports(db, start_date, end_date)


@router.get("/overview")
def overview(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: Session = Depends(get_db),
):
    return report_service.report_overview(_build_reports(db, start_date, end_date))


@router.get("/stock-movements/{day}/export")
def export_daily_activities(day: date, db: Session = Depends(get_db)):
    bundle = _build_reports(db, day, day)
    movement = next((m for m in bundle["stock_movements"] if m["date"] == day), None)
    if not movement:
        raise HTTPException(404, f"No stock movements on {day.isoformat()}")
    return _csv_response(
        export_service.daily_activities_csv(movement["daily_activities"]),
        export_service.daily_activities_filename(day),
    )


@router.get("/{view}/export")
def export_report(
    view: str,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: Session = Depends(get_db),
):
    if view not in export_service.REPORT_EXPORTS:
        raise HTTPException(404, f"Unknown report: {view}")
    bundle = _build_reports(db, start_date, end_date)
    range_ = bundle["date_range"]
    return _csv_response(
        export_service.report_csv(view, bundle),
        export_service.report_filename(view, range_["start"], range_["end"]),
    )
