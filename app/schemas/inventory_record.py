import datetime

from pydantic import BaseModel, Field, field_validator


class InventoryEntry(BaseModel):
    """A day's entry as submitted from the stock form."""

    item_name: str
    date: datetime.date | None = None
    # None = take it from the previous day's closing stock
    opening_stock: int | None = Field(None, ge=0)
    new_stock: int = Field(0, ge=0)
    issued_production: int = Field(0, ge=0)
    returns: int = Field(0, ge=0)
    rebagging: int = Field(0, ge=0)
    damaged: int = Field(0, ge=0)

    @field_validator("item_name", mode="before")
    @classmethod
    def strip_item_name(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class InventoryRecordOut(BaseModel):
    id: int | None = None
    item_name: str
    date: datetime.date
    opening_stock: int = 0
    new_stock: int = 0
    new_balance: int = 0
    issued_production: int = 0
    returns: int = 0
    rebagging: int = 0
    damaged: int = 0
    closing_stock: int = 0
    timestamp: datetime.datetime | None = None

    model_config = {"from_attributes": True}

    @field_validator(
        "opening_stock", "new_stock", "new_balance", "issued_production",
        "returns", "rebagging", "damaged", "closing_stock",
        mode="before",
    )
    @classmethod
    def default_missing_quantity(cls, v):
        return 0 if v is None else v


class RecordList(BaseModel):
    records: list[InventoryRecordOut] = []


class SaveResult(BaseModel):
    record: InventoryRecordOut
    created: bool
    message: str


class OpeningStock(BaseModel):
    item_name: str
    opening_stock: int | None = None
    read_only: bool = False
    message: str = ""


class ProductSummary(BaseModel):
    item_name: str
    latest_record: InventoryRecordOut
    current_stock: int
    last_updated: datetime.date
    total_records: int
    stock_trend: str  # increasing, decreasing, stable


class MovementDetails(BaseModel):
    new_stock: int = 0
    issued_production: int = 0
    returns: int = 0
    rebagging: int = 0
    damaged: int = 0


class StockMovement(BaseModel):
    date: datetime.date
    movement_type: str  # stock_in, stock_out, mixed, stable
    stock_in: int
    stock_out: int
    net_change: int
    opening_stock: int
    closing_stock: int
    details: MovementDetails


class ProductHistorySummary(BaseModel):
    total_stock_in: int = 0
    total_stock_out: int = 0
    total_returns: int = 0
    total_rebagging: int = 0
    total_damaged: int = 0
    average_daily_usage: float = 0.0
    stock_turnover_rate: float = 0.0


class Page(BaseModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int


class ProductStats(BaseModel):
    total_products: int = 0
    in_stock: int = 0
    out_of_stock: int = 0
    total_records: int = 0


class ProductSummaryPage(Page):
    items: list[ProductSummary] = []
    stats: ProductStats = ProductStats()


class ProductHistoryOut(Page):
    item_name: str
    summary: ProductHistorySummary
    movements: list[StockMovement] = []
