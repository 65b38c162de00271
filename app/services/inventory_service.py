import logging
import math
import re
from datetime import date, datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.inventory_record import InventoryRecord
from app.schemas.inventory_record import InventoryEntry, InventoryRecordOut
from app.services.report_service import MOVEMENT_FIELDS, group_by_product

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("all", "date", "movement_type", "values")

# leading number of a search term, so "3 kg" searches for 3
NUMBER_PREFIX = re.compile(r"\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?")


def calculate_balances(
    opening_stock: int,
    new_stock: int,
    issued_production: int,
    returns: int,
    rebagging: int,
    damaged: int,
) -> tuple[int, int]:
    """Return (new_balance, closing_stock). Closing stock is clamped at zero."""
    new_balance = opening_stock + new_stock
    closing_stock = max(0, new_balance - issued_production + returns + rebagging - damaged)
    return new_balance, closing_stock


def is_date_in_past(day: date, today: date | None = None) -> bool:
    return day < (today or date.today())


# --- Store lookups ---

def list_recent_records(db: Session, limit: int | None = None) -> list[InventoryRecord]:
    return (
        db.query(InventoryRecord)
        .order_by(InventoryRecord.date.desc())
        .limit(limit or settings.RECORDS_LIMIT)
        .all()
    )


def get_latest_record(db: Session, item_name: str, before: date | None = None) -> InventoryRecord | None:
    q = db.query(InventoryRecord).filter(InventoryRecord.item_name == item_name)
    if before:
        q = q.filter(InventoryRecord.date < before)
    return q.order_by(InventoryRecord.date.desc()).first()


def get_record_for_date(db: Session, item_name: str, day: date) -> InventoryRecord | None:
    return (
        db.query(InventoryRecord)
        .filter(InventoryRecord.item_name == item_name, InventoryRecord.date == day)
        .first()
    )


def get_product_records(db: Session, item_name: str) -> list[InventoryRecord]:
    return (
        db.query(InventoryRecord)
        .filter(InventoryRecord.item_name == item_name)
        .order_by(InventoryRecord.date.desc())
        .all()
    )


def search_records(db: Session, term: str) -> list[InventoryRecord]:
    """Latest record of every product whose name contains ``term`` (case-insensitive)."""
    term = (term or "").strip()
    if not term:
        return []
    try:
        records = (
            db.query(InventoryRecord)
            .filter(InventoryRecord.item_name.ilike(f"%{term}%"))
            .order_by(InventoryRecord.date.desc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.error("Product search failed for %r: %s", term, e)
        return []

    latest: dict[str, InventoryRecord] = {}
    for r in records:
        current = latest.get(r.item_name)
        if current is None or r.date > current.date:
            latest[r.item_name] = r
    return sorted(latest.values(), key=lambda r: r.date, reverse=True)


def get_opening_stock(db: Session, item_name: str, day: date | None = None) -> dict:
    """Continuity lookup for the entry form.

    A known product opens with the closing stock of its previous record and the
    field is locked; a new product leaves the opening stock to the user.
    """
    item_name = item_name.strip()
    previous = get_latest_record(db, item_name, before=day)
    if previous is None:
        return {
            "item_name": item_name,
            "opening_stock": None,
            "read_only": False,
            "message": "New product detected - set opening stock manually",
        }
    return {
        "item_name": item_name,
        "opening_stock": previous.closing_stock,
        "read_only": True,
        "message": f"Opening stock loaded from {previous.date.isoformat()}",
    }


# --- Saving ---

def validate_entry(entry: InventoryEntry, today: date | None = None) -> None:
    if not entry.item_name:
        raise ValueError("Please enter an item name or product code.")
    if entry.date is None:
        raise ValueError("Please select a date.")
    if is_date_in_past(entry.date, today):
        raise ValueError("Cannot modify data for past dates. Please select today or a future date.")


def save_record(db: Session, entry: InventoryEntry, today: date | None = None) -> tuple[InventoryRecord, bool]:
    """Insert the day's record, or update it if one already exists for that product and date.

    Returns (record, created).
    """
    validate_entry(entry, today)

    previous = get_latest_record(db, entry.item_name, before=entry.date)
    if previous is not None:
        if entry.opening_stock is not None and entry.opening_stock != previous.closing_stock:
            logger.warning(
                "Opening stock %d for %s on %s replaced by previous closing stock %d",
                entry.opening_stock, entry.item_name, entry.date, previous.closing_stock,
            )
        opening_stock = previous.closing_stock
    else:
        opening_stock = entry.opening_stock or 0

    new_balance, closing_stock = calculate_balances(
        opening_stock,
        entry.new_stock,
        entry.issued_production,
        entry.returns,
        entry.rebagging,
        entry.damaged,
    )
    values = {
        "item_name": entry.item_name,
        "date": entry.date,
        "opening_stock": opening_stock,
        "new_stock": entry.new_stock,
        "new_balance": new_balance,
        "issued_production": entry.issued_production,
        "returns": entry.returns,
        "rebagging": entry.rebagging,
        "damaged": entry.damaged,
        "closing_stock": closing_stock,
        "timestamp": datetime.now(timezone.utc).replace(tzinfo=None),
    }

    record = get_record_for_date(db, entry.item_name, entry.date)
    created = record is None
    if created:
        record = InventoryRecord(**values)
        db.add(record)
    else:
        for field, value in values.items():
            setattr(record, field, value)

    db.commit()
    db.refresh(record)
    logger.info(
        "%s record %s for %s on %s (closing stock %d)",
        "Created" if created else "Updated", record.id, record.item_name, record.date, record.closing_stock,
    )
    return record, created


# --- Product list ---

def _trend(current: int, previous: int) -> str:
    if current > previous:
        return "increasing"
    if current < previous:
        return "decreasing"
    return "stable"


def build_product_summaries(records: list[InventoryRecordOut]) -> list[dict]:
    summaries = []
    for item_name, product_records in group_by_product(records).items():
        ordered = sorted(product_records, key=lambda r: r.date, reverse=True)
        latest = ordered[0]
        trend = "stable"
        if len(ordered) >= 2:
            trend = _trend(ordered[0].closing_stock, ordered[1].closing_stock)
        summaries.append({
            "item_name": item_name,
            "latest_record": latest,
            "current_stock": latest.closing_stock,
            "last_updated": latest.date,
            "total_records": len(product_records),
            "stock_trend": trend,
        })

    summaries.sort(key=lambda s: s["last_updated"], reverse=True)
    return summaries


def filter_product_summaries(summaries: list[dict], term: str | None) -> list[dict]:
    term = (term or "").strip().lower()
    if not term:
        return summaries
    return [s for s in summaries if term in s["item_name"].lower()]


def product_stats(summaries: list[dict]) -> dict:
    """Counts shown above the product list, over every product regardless of the search term."""
    return {
        "total_products": len(summaries),
        "in_stock": sum(1 for s in summaries if s["current_stock"] > 0),
        "out_of_stock": sum(1 for s in summaries if s["current_stock"] == 0),
        "total_records": sum(s["total_records"] for s in summaries),
    }


# --- Product history ---

def _movement_type(stock_in: int, stock_out: int) -> str:
    if stock_in > 0 and stock_out == 0:
        return "stock_in"
    if stock_out > 0 and stock_in == 0:
        return "stock_out"
    if stock_in > 0 and stock_out > 0:
        return "mixed"
    return "stable"


def build_stock_movements(records: list[InventoryRecordOut]) -> list[dict]:
    movements = []
    for r in records:
        stock_in = r.new_stock + r.returns + r.rebagging
        stock_out = r.issued_production + r.damaged
        movements.append({
            "date": r.date,
            "movement_type": _movement_type(stock_in, stock_out),
            "stock_in": stock_in,
            "stock_out": stock_out,
            "net_change": stock_in - stock_out,
            "opening_stock": r.opening_stock,
            "closing_stock": r.closing_stock,
            "details": {field: getattr(r, field) for field in MOVEMENT_FIELDS},
        })
    return movements


def summarize_product_history(records: list[InventoryRecordOut]) -> dict:
    total_in = sum(r.new_stock + r.returns + r.rebagging for r in records)
    total_out = sum(r.issued_production + r.damaged for r in records)
    days_with_activity = len(records)
    return {
        "total_stock_in": total_in,
        "total_stock_out": total_out,
        "total_returns": sum(r.returns for r in records),
        "total_rebagging": sum(r.rebagging for r in records),
        "total_damaged": sum(r.damaged for r in records),
        "average_daily_usage": total_out / days_with_activity if days_with_activity else 0.0,
        "stock_turnover_rate": total_out / total_in * 100 if total_in > 0 else 0.0,
    }


def _movement_numbers(movement: dict) -> list[int]:
    return [
        movement["opening_stock"],
        movement["closing_stock"],
        movement["net_change"],
        *movement["details"].values(),
    ]


def filter_movements(movements: list[dict], term: str | None, field: str = "all") -> list[dict]:
    term = (term or "").strip()
    if not term:
        return movements
    if field not in SEARCH_FIELDS:
        raise ValueError(f"Unknown search field: {field}")

    needle = term.lower()
    if field == "date":
        return [m for m in movements if needle in m["date"].isoformat()]
    if field == "movement_type":
        return [m for m in movements if needle in m["movement_type"].lower()]
    if field == "values":
        match = NUMBER_PREFIX.match(term)
        if not match:
            return []
        number = float(match.group(0))
        return [m for m in movements if number in _movement_numbers(m)]

    return [
        m for m in movements
        if needle in m["date"].isoformat()
        or needle in m["movement_type"].lower()
        or any(term in str(n) for n in _movement_numbers(m))
    ]


def paginate(items: list, page: int = 1, page_size: int | None = None) -> dict:
    page_size = page_size or settings.DEFAULT_PAGE_SIZE
    if page < 1 or page_size < 1:
        raise ValueError("page and page_size must be positive")
    start = (page - 1) * page_size
    return {
        "items": items[start:start + page_size],
        "page": page,
        "page_size": page_size,
        "total_items": len(items),
        "total_pages": math.ceil(len(items) / page_size),
    }
