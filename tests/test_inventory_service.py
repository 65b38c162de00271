from datetime import date, timedelta

import pytest
from conftest import make_record

from app.models.inventory_record import InventoryRecord
from app.schemas.inventory_record import InventoryEntry
from app.services import inventory_service

TODAY = date.today()
TOMORROW = TODAY + timedelta(days=1)


@pytest.mark.parametrize(
    "quantities, expected",
    [
        ((10, 5, 3, 0, 0, 0), (15, 12)),
        ((12, 0, 12, 0, 0, 0), (12, 0)),
        ((5, 0, 20, 1, 1, 0), (5, 0)),
        ((0, 10, 2, 3, 4, 5), (10, 10)),
    ],
)
def test_calculate_balances(quantities, expected):
    assert inventory_service.calculate_balances(*quantities) == expected


def test_is_date_in_past():
    assert inventory_service.is_date_in_past(date(2024, 1, 1), today=date(2024, 1, 2))
    assert not inventory_service.is_date_in_past(date(2024, 1, 2), today=date(2024, 1, 2))


def test_save_record_computes_balances(db):
    entry = InventoryEntry(
        item_name="  Flour 25kg  ", date=TODAY, opening_stock=10,
        new_stock=5, issued_production=3, returns=1, rebagging=2, damaged=4,
    )
    record, created = inventory_service.save_record(db, entry)

    assert created
    assert record.item_name == "Flour 25kg"
    assert record.new_balance == 15
    assert record.closing_stock == 15 - 3 + 1 + 2 - 4
    assert record.timestamp is not None


def test_save_record_same_day_updates(db):
    inventory_service.save_record(db, InventoryEntry(item_name="Sugar", date=TODAY, opening_stock=5, new_stock=1))
    record, created = inventory_service.save_record(
        db, InventoryEntry(item_name="Sugar", date=TODAY, opening_stock=5, new_stock=9),
    )

    assert not created
    assert record.closing_stock == 14
    assert db.query(InventoryRecord).filter(InventoryRecord.item_name == "Sugar").count() == 1


def test_save_record_carries_previous_closing_stock(db):
    inventory_service.save_record(
        db, InventoryEntry(item_name="Salt", date=TODAY, opening_stock=20, issued_production=5),
    )
    record, _ = inventory_service.save_record(
        db, InventoryEntry(item_name="Salt", date=TOMORROW, opening_stock=999, new_stock=1),
    )

    assert record.opening_stock == 15
    assert record.closing_stock == 16


def test_updating_earlier_day_leaves_later_opening_stock(db):
    inventory_service.save_record(db, InventoryEntry(item_name="Salt", date=TODAY, opening_stock=10))
    inventory_service.save_record(db, InventoryEntry(item_name="Salt", date=TOMORROW, new_stock=2))
    inventory_service.save_record(db, InventoryEntry(item_name="Salt", date=TODAY, opening_stock=10, new_stock=5))

    later = inventory_service.get_record_for_date(db, "Salt", TOMORROW)
    db.refresh(later)
    assert later.opening_stock == 10
    assert later.closing_stock == 12


def test_save_record_new_product_without_opening_stock(db):
    record, _ = inventory_service.save_record(db, InventoryEntry(item_name="Yeast", date=TODAY, new_stock=3))
    assert record.opening_stock == 0
    assert record.closing_stock == 3


@pytest.mark.parametrize(
    "entry, message",
    [
        (InventoryEntry(item_name="   ", date=TODAY), "item name"),
        (InventoryEntry(item_name="Oil"), "select a date"),
        (InventoryEntry(item_name="Oil", date=TODAY - timedelta(days=1)), "past dates"),
    ],
)
def test_save_record_validation(db, entry, message):
    with pytest.raises(ValueError, match=message):
        inventory_service.save_record(db, entry)
    assert db.query(InventoryRecord).count() == 0


def test_get_opening_stock(db):
    assert inventory_service.get_opening_stock(db, "Rice", TODAY)["read_only"] is False

    inventory_service.save_record(db, InventoryEntry(item_name="Rice", date=TODAY, opening_stock=8, new_stock=2))
    result = inventory_service.get_opening_stock(db, "Rice", TOMORROW)

    assert result["opening_stock"] == 10
    assert result["read_only"] is True


def test_search_records_latest_per_product(db):
    for name, day, stock in [
        ("Red Bag", TODAY, 1),
        ("Red Bag", TOMORROW, 2),
        ("Blue bag", TODAY, 3),
        ("Box", TODAY, 4),
    ]:
        inventory_service.save_record(db, InventoryEntry(item_name=name, date=day, new_stock=stock))

    results = inventory_service.search_records(db, "BAG")

    assert [r.item_name for r in results] == ["Red Bag", "Blue bag"]
    assert results[0].date == TOMORROW
    assert inventory_service.search_records(db, "  ") == []


def test_list_recent_records_limit(db):
    for offset in range(5):
        inventory_service.save_record(
            db, InventoryEntry(item_name="Tape", date=TODAY + timedelta(days=offset), new_stock=1),
        )
    records = inventory_service.list_recent_records(db, limit=3)
    assert [r.date for r in records] == [TODAY + timedelta(days=n) for n in (4, 3, 2)]


def test_build_product_summaries():
    records = [
        make_record("A", "2024-01-01", opening_stock=10),
        make_record("A", "2024-01-03", opening_stock=10, new_stock=5),
        make_record("B", "2024-01-02", opening_stock=4, issued_production=1),
    ]
    summaries = inventory_service.build_product_summaries(records)

    assert [s["item_name"] for s in summaries] == ["A", "B"]
    assert summaries[0]["current_stock"] == 15
    assert summaries[0]["stock_trend"] == "increasing"
    assert summaries[0]["total_records"] == 2
    assert summaries[1]["stock_trend"] == "stable"
    assert inventory_service.filter_product_summaries(summaries, "b") == [summaries[1]]


def test_product_stats():
    records = [
        make_record("A", "2024-01-01", opening_stock=10),
        make_record("A", "2024-01-02", opening_stock=10, issued_production=10),
        make_record("B", "2024-01-02", new_stock=4),
    ]
    stats = inventory_service.product_stats(inventory_service.build_product_summaries(records))

    assert stats == {"total_products": 2, "in_stock": 1, "out_of_stock": 1, "total_records": 3}
    assert inventory_service.product_stats([])["total_products"] == 0


def test_build_stock_movements_types():
    records = [
        make_record("A", "2024-01-01", new_stock=5),
        make_record("A", "2024-01-02", opening_stock=5, issued_production=2),
        make_record("A", "2024-01-03", opening_stock=3, returns=1, damaged=1),
        make_record("A", "2024-01-04", opening_stock=3),
    ]
    movements = inventory_service.build_stock_movements(records)

    assert [m["movement_type"] for m in movements] == ["stock_in", "stock_out", "mixed", "stable"]
    assert movements[1]["net_change"] == -2
    assert movements[2]["details"]["returns"] == 1


def test_summarize_product_history():
    records = [
        make_record("A", "2024-01-01", new_stock=10, returns=2, rebagging=1),
        make_record("A", "2024-01-02", opening_stock=13, issued_production=4, damaged=2),
    ]
    summary = inventory_service.summarize_product_history(records)

    assert summary["total_stock_in"] == 13
    assert summary["total_stock_out"] == 6
    assert summary["average_daily_usage"] == 3.0
    assert summary["stock_turnover_rate"] == 6 / 13 * 100
    assert inventory_service.summarize_product_history([])["stock_turnover_rate"] == 0.0


def test_filter_movements():
    records = [
        make_record("A", "2024-01-01", new_stock=7),
        make_record("A", "2024-02-01", opening_stock=7, issued_production=3),
    ]
    movements = inventory_service.build_stock_movements(records)

    assert inventory_service.filter_movements(movements, "2024-02", "date") == [movements[1]]
    assert inventory_service.filter_movements(movements, "OUT", "movement_type") == [movements[1]]
    assert inventory_service.filter_movements(movements, "3", "values") == [movements[1]]
    assert inventory_service.filter_movements(movements, "3 kg", "values") == [movements[1]]
    assert inventory_service.filter_movements(movements, "abc", "values") == []
    assert inventory_service.filter_movements(movements, "stock_in") == [movements[0]]
    assert inventory_service.filter_movements(movements, "") == movements
    with pytest.raises(ValueError):
        inventory_service.filter_movements(movements, "x", "colour")


def test_paginate():
    page = inventory_service.paginate(list(range(25)), page=3, page_size=10)

    assert page["items"] == [20, 21, 22, 23, 24]
    assert page["total_items"] == 25
    assert page["total_pages"] == 3
    assert inventory_service.paginate([], page=1, page_size=10)["total_pages"] == 0
