import csv
import io
from datetime import date

from app.schemas.inventory_record import InventoryRecordOut

RAW_COLUMNS = [
    "Date", "Item Name", "Opening Stock", "New Stock", "New Balance",
    "Issued to Production", "Returns", "Rebagging", "Damaged", "Closing Stock",
]

DAILY_ACTIVITY_COLUMNS = [
    "Product Name", "New Stock", "Issued to Production", "Returns", "Rebagging",
    "Damaged", "Opening Stock", "Closing Stock", "Net Change",
]


def _fixed(value: float) -> str:
    return f"{value:.2f}"


def _iso(value) -> str:
    return value.isoformat() if value else ""


# view -> (bundle key, header, row builder)
REPORT_EXPORTS = {
    "out-of-stock": (
        "out_of_stock",
        ["Product Name", "Last Stock", "Last Date", "Days Since Stock"],
        lambda x: [x["item_name"], x["last_stock"], _iso(x["last_date"]), x["days_since_stock"]],
    ),
    "stock-movements": (
        "stock_movements",
        ["Date", "Total Stock In", "Total Stock Out", "Net Change", "Product Count"],
        lambda x: [_iso(x["date"]), x["total_in"], x["total_out"], x["net_change"], x["product_count"]],
    ),
    "stock-balances": (
        "stock_balances",
        ["Product Name", "Opening Stock", "Closing Stock", "Net Change", "Movement Type"],
        lambda x: [x["item_name"], x["opening_stock"], x["closing_stock"], x["net_change"], x["movement_type"]],
    ),
    "production": (
        "production",
        ["Product Name", "Total Issued", "Average Daily Usage", "Last Issued Date", "Current Stock Level"],
        lambda x: [
            x["item_name"], x["total_issued"], _fixed(x["avg_daily_usage"]),
            _iso(x["last_issued_date"]), x["stock_level"],
        ],
    ),
    "returns-rebagging": (
        "returns_rebagging",
        ["Product Name", "Total Returns", "Total Rebagging", "Return Rate (%)", "Last Activity"],
        lambda x: [
            x["item_name"], x["total_returns"], x["total_rebagging"],
            _fixed(x["return_rate"]), _iso(x["last_activity"]),
        ],
    ),
    "damaged-stock": (
        "damaged_stock",
        ["Product Name", "Total Damaged", "Damage Percentage (%)", "Last Damage Date", "Total Stock In"],
        lambda x: [
            x["item_name"], x["total_damaged"], _fixed(x["damage_percentage"]),
            _iso(x["last_damage_date"]), x["total_stock_in"],
        ],
    ),
    "stock-history": (
        "stock_history",
        ["Product Name", "Total Records", "First Record Date", "Last Record Date", "Stock Trend"],
        lambda x: [x["item_name"], x["total_records"], _iso(x["first_record"]), _iso(x["last_record"]), x["stock_trend"]],
    ),
    "weekly-summary": (
        "weekly_summary",
        [
            "Product Name", "Opening Stock", "Closing Stock", "Net Change", "Total Stock In",
            "Total Issued", "Returns", "Rebagging", "Damaged", "Activity Level",
        ],
        lambda x: [
            x["item_name"], x["opening_stock"], x["closing_stock"], x["net_change"], x["total_stock_in"],
            x["total_issued"], x["total_returns"], x["total_rebagging"], x["total_damaged"], x["activity_level"],
        ],
    ),
}


def _write_csv(header: list[str], rows: list[list]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buf.getvalue().rstrip("\n")


def report_csv(view: str, bundle: dict) -> str:
    """Serialise one report view of a bundle from ``report_service.generate_reports``."""
    if view not in REPORT_EXPORTS:
        raise KeyError(view)
    key, header, build_row = REPORT_EXPORTS[view]
    data = bundle[key]
    if view == "weekly-summary":
        data = data["products"]
    return _write_csv(header, [build_row(item) for item in data])


def report_filename(view: str, start_date: date, end_date: date) -> str:
    stem = REPORT_EXPORTS[view][0]
    return f"{stem}_report_{start_date.isoformat()}_to_{end_date.isoformat()}.csv"


def daily_activities_csv(activities: list[dict]) -> str:
    rows = [
        [
            a["item_name"], a["new_stock"], a["issued_production"], a["returns"], a["rebagging"],
            a["damaged"], a["opening_stock"], a["closing_stock"], a["net_change"],
        ]
        for a in activities
    ]
    return _write_csv(DAILY_ACTIVITY_COLUMNS, rows)


def daily_activities_filename(day: date) -> str:
    return f"daily_activities_{day.isoformat()}.csv"


def _quoted(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def records_csv(records: list[InventoryRecordOut]) -> str:
    """Full export of raw records. Item names are always quoted."""
    lines = [",".join(RAW_COLUMNS)]
    for r in records:
        lines.append(",".join([
            r.date.isoformat(),
            _quoted(r.item_name),
            str(r.opening_stock),
            str(r.new_stock),
            str(r.new_balance),
            str(r.issued_production),
            str(r.returns),
            str(r.rebagging),
            str(r.damaged),
            str(r.closing_stock),
        ]))
    return "\n".join(lines)


def records_filename(today: date | None = None) -> str:
    return f"inventory_records_{(today or date.today()).isoformat()}.csv"
