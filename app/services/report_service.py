"""Report aggregation over daily inventory records.

Every function here is pure: it takes record snapshots (``InventoryRecordOut``,
quantities already defaulted to 0) and returns plain dicts ready for JSON or CSV.
"""
from datetime import date, timedelta

from app.config import settings
from app.schemas.inventory_record import InventoryRecordOut

MOVEMENT_FIELDS = ("new_stock", "issued_production", "returns", "rebagging", "damaged")

HIGH_ACTIVITY = 100
MEDIUM_ACTIVITY = 50


def default_date_range(today: date | None = None) -> tuple[date, date]:
    today = today or date.today()
    return today - timedelta(days=settings.REPORT_DEFAULT_DAYS), today


def filter_by_date_range(records: list[InventoryRecordOut], start: date, end: date) -> list[InventoryRecordOut]:
    return [r for r in records if start <= r.date <= end]


def group_by_product(records: list[InventoryRecordOut]) -> dict[str, list[InventoryRecordOut]]:
    groups: dict[str, list[InventoryRecordOut]] = {}
    for r in records:
        groups.setdefault(r.item_name, []).append(r)
    return groups


def group_by_date(records: list[InventoryRecordOut]) -> dict[date, list[InventoryRecordOut]]:
    groups: dict[date, list[InventoryRecordOut]] = {}
    for r in records:
        groups.setdefault(r.date, []).append(r)
    return groups


def _chronological(records: list[InventoryRecordOut]) -> list[InventoryRecordOut]:
    return sorted(records, key=lambda r: r.date)


def _trend(net_change: int) -> str:
    if net_change > 0:
        return "increasing"
    if net_change < 0:
        return "decreasing"
    return "stable"


def _percentage(part: int, whole: int) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def _stock_in(r: InventoryRecordOut) -> int:
    return r.new_stock + r.returns + r.rebagging


def _stock_out(r: InventoryRecordOut) -> int:
    return r.issued_production + r.damaged


def _activity(r: InventoryRecordOut) -> int:
    return sum(getattr(r, field) for field in MOVEMENT_FIELDS)


# --- Views ---

def out_of_stock_report(records: list[InventoryRecordOut], today: date | None = None) -> list[dict]:
    today = today or date.today()
    result = []
    for item_name, product_records in group_by_product(records).items():
        latest = max(product_records, key=lambda r: r.date)
        if latest.closing_stock != 0:
            continue
        result.append({
            "item_name": item_name,
            "last_stock": latest.closing_stock,
            "last_date": latest.date,
            "days_since_stock": (today - latest.date).days,
        })
    result.sort(key=lambda x: x["days_since_stock"], reverse=True)
    return result


def stock_movement_report(records: list[InventoryRecordOut]) -> list[dict]:
    result = []
    for day, day_records in group_by_date(records).items():
        total_in = sum(_stock_in(r) for r in day_records)
        total_out = sum(_stock_out(r) for r in day_records)
        result.append({
            "date": day,
            "total_in": total_in,
            "total_out": total_out,
            "net_change": total_in - total_out,
            "product_count": len(day_records),
            "daily_activities": [
                {
                    "item_name": r.item_name,
                    "new_stock": r.new_stock,
                    "issued_production": r.issued_production,
                    "returns": r.returns,
                    "rebagging": r.rebagging,
                    "damaged": r.damaged,
                    "opening_stock": r.opening_stock,
                    "closing_stock": r.closing_stock,
                    "net_change": _stock_in(r) - _stock_out(r),
                }
                for r in day_records
            ],
        })
    result.sort(key=lambda x: x["date"])
    return result


def stock_balance_report(records: list[InventoryRecordOut]) -> list[dict]:
    result = []
    for item_name, product_records in group_by_product(records).items():
        ordered = _chronological(product_records)
        first, last = ordered[0], ordered[-1]
        net_change = last.closing_stock - first.opening_stock
        result.append({
            "item_name": item_name,
            "opening_stock": first.opening_stock,
            "closing_stock": last.closing_stock,
            "net_change": net_change,
            "movement_type": _trend(net_change),
        })
    result.sort(key=lambda x: abs(x["net_change"]), reverse=True)
    return result


def production_report(records: list[InventoryRecordOut]) -> list[dict]:
    result = []
    for item_name, product_records in group_by_product(records).items():
        total_issued = sum(r.issued_production for r in product_records)
        if total_issued <= 0:
            continue
        latest = max(product_records, key=lambda r: r.date)
        result.append({
            "item_name": item_name,
            "total_issued": total_issued,
            # mean over the records present, not over calendar days
            "avg_daily_usage": total_issued / len(product_records),
            "last_issued_date": latest.date,
            "stock_level": latest.closing_stock,
        })
    result.sort(key=lambda x: x["total_issued"], reverse=True)
    return result


def returns_rebagging_report(records: list[InventoryRecordOut]) -> list[dict]:
    result = []
    for item_name, product_records in group_by_product(records).items():
        total_returns = sum(r.returns for r in product_records)
        total_rebagging = sum(r.rebagging for r in product_records)
        if total_returns <= 0 and total_rebagging <= 0:
            continue
        total_stock_in = sum(r.new_stock for r in product_records)
        latest = max(product_records, key=lambda r: r.date)
        result.append({
            "item_name": item_name,
            "total_returns": total_returns,
            "total_rebagging": total_rebagging,
            "return_rate": _percentage(total_returns, total_stock_in),
            "last_activity": latest.date,
        })
    result.sort(key=lambda x: x["total_returns"] + x["total_rebagging"], reverse=True)
    return result


def damaged_stock_report(records: list[InventoryRecordOut]) -> list[dict]:
    result = []
    for item_name, product_records in group_by_product(records).items():
        total_damaged = sum(r.damaged for r in product_records)
        if total_damaged <= 0:
            continue
        total_stock_in = sum(r.new_stock for r in product_records)
        latest = max(product_records, key=lambda r: r.date)
        result.append({
            "item_name": item_name,
            "total_damaged": total_damaged,
            "damage_percentage": _percentage(total_damaged, total_stock_in),
            "last_damage_date": latest.date,
            "total_stock_in": total_stock_in,
        })
    result.sort(key=lambda x: x["damage_percentage"], reverse=True)
    return result


def stock_history_report(records: list[InventoryRecordOut]) -> list[dict]:
    result = []
    for item_name, product_records in group_by_product(records).items():
        ordered = _chronological(product_records)
        first, last = ordered[0], ordered[-1]
        result.append({
            "item_name": item_name,
            "total_records": len(product_records),
            "first_record": first.date,
            "last_record": last.date,
            "stock_trend": _trend(last.closing_stock - first.opening_stock),
        })
    result.sort(key=lambda x: x["total_records"], reverse=True)
    return result


# --- Weekly summary ---

def _activity_level(total_activity: int) -> str:
    if total_activity > HIGH_ACTIVITY:
        return "high"
    if total_activity > MEDIUM_ACTIVITY:
        return "medium"
    return "low"


def _summary_product_rows(records: list[InventoryRecordOut]) -> list[dict]:
    rows = []
    for item_name, product_records in group_by_product(records).items():
        total_activity = sum(_activity(r) for r in product_records)
        if total_activity == 0:
            continue
        ordered = _chronological(product_records)
        first, last = ordered[0], ordered[-1]
        net_change = last.closing_stock - first.opening_stock
        total_issued = sum(r.issued_production for r in product_records)
        rows.append({
            "item_name": item_name,
            "opening_stock": first.opening_stock,
            "closing_stock": last.closing_stock,
            "net_change": net_change,
            "movement_type": _trend(net_change),
            "total_stock_in": sum(r.new_stock for r in product_records),
            "total_issued": total_issued,
            "avg_daily_usage": total_issued / len(product_records),
            "total_returns": sum(r.returns for r in product_records),
            "total_rebagging": sum(r.rebagging for r in product_records),
            "total_damaged": sum(r.damaged for r in product_records),
            "total_activity": total_activity,
            "activity_level": _activity_level(total_activity),
        })
    rows.sort(key=lambda x: x["total_activity"], reverse=True)
    return rows


def _summary_day_rows(records: list[InventoryRecordOut]) -> list[dict]:
    rows = []
    for day, day_records in group_by_date(records).items():
        most_active = None
        top = None
        for r in day_records:
            if most_active is None or _activity(r) > _activity(most_active):
                most_active = r
            if top is None or abs(r.new_stock - r.issued_production) > abs(top.new_stock - top.issued_production):
                top = r
        stock_in = sum(r.new_stock for r in day_records)
        stock_out = sum(r.issued_production for r in day_records)
        rows.append({
            "date": day,
            "day_name": day.strftime("%A"),
            "total_stock_in": stock_in,
            "total_stock_out": stock_out,
            "total_returns": sum(r.returns for r in day_records),
            "total_rebagging": sum(r.rebagging for r in day_records),
            "total_damaged": sum(r.damaged for r in day_records),
            "net_change": stock_in - stock_out,
            "product_count": len(day_records),
            "most_active_product": most_active.item_name,
            "top_product": top.item_name,
            "top_product_net_change": top.new_stock - top.issued_production,
        })
    rows.sort(key=lambda x: x["date"])
    return rows


def weekly_summary(records: list[InventoryRecordOut]) -> dict:
    """Period totals between the first and last date present in ``records``.

    Net change here is new stock minus issued to production only; returns,
    rebagging and damaged are reported separately.
    """
    dates = [r.date for r in records]
    total_stock_in = sum(r.new_stock for r in records)
    total_stock_out = sum(r.issued_production for r in records)
    total_returns = sum(r.returns for r in records)
    total_rebagging = sum(r.rebagging for r in records)
    total_damaged = sum(r.damaged for r in records)

    return {
        "week_start": min(dates) if dates else None,
        "week_end": max(dates) if dates else None,
        "totals": {
            "total_stock_in": total_stock_in,
            "total_stock_out": total_stock_out,
            "total_returns": total_returns,
            "total_rebagging": total_rebagging,
            "total_damaged": total_damaged,
            "net_change": total_stock_in - total_stock_out,
            "product_count": len({r.item_name for r in records}),
            "record_count": len(records),
        },
        "products": _summary_product_rows(records),
        "days": _summary_day_rows(records),
        "efficiency": {
            "return_rate": _percentage(total_returns, total_stock_in),
            "damage_rate": _percentage(total_damaged, total_stock_in),
            "rebagging_rate": _percentage(total_rebagging, total_stock_in),
            "stock_turnover": total_stock_out / max(total_stock_in, 1),
        },
    }


# --- Bundle ---

def generate_reports(
    records: list[InventoryRecordOut],
    start_date: date,
    end_date: date,
    today: date | None = None,
) -> dict:
    filtered = filter_by_date_range(records, start_date, end_date)
    return {
        "date_range": {"start": start_date, "end": end_date},
        "out_of_stock": out_of_stock_report(filtered, today=today),
        "stock_movements": stock_movement_report(filtered),
        "stock_balances": stock_balance_report(filtered),
        "production": production_report(filtered),
        "returns_rebagging": returns_rebagging_report(filtered),
        "damaged_stock": damaged_stock_report(filtered),
        "stock_history": stock_history_report(filtered),
        "weekly_summary": weekly_summary(filtered),
    }


def report_overview(bundle: dict) -> dict:
    out_of_stock = bundle["out_of_stock"]
    return {
        "date_range": bundle["date_range"],
        "longest_out_of_stock": out_of_stock[0] if out_of_stock else None,
        "out_of_stock_count": len(out_of_stock),
        "total_stock_in": sum(m["total_in"] for m in bundle["stock_movements"]),
        "total_stock_out": sum(m["total_out"] for m in bundle["stock_movements"]),
        "production_count": len(bundle["production"]),
        "returns_rebagging_count": len(bundle["returns_rebagging"]),
        "damaged_count": len(bundle["damaged_stock"]),
    }
