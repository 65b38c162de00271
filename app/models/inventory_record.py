import datetime

from sqlalchemy import Date, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class InventoryRecord(Base):
    """One product's stock movements for one day."""

    __tablename__ = "inventory_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False, index=True)

    opening_stock: Mapped[int] = mapped_column(Integer, default=0)
    new_stock: Mapped[int] = mapped_column(Integer, default=0)
    new_balance: Mapped[int] = mapped_column(Integer, default=0)  # opening + new
    issued_production: Mapped[int] = mapped_column(Integer, default=0)
    returns: Mapped[int] = mapped_column(Integer, default=0)
    rebagging: Mapped[int] = mapped_column(Integer, default=0)
    damaged: Mapped[int] = mapped_column(Integer, default=0)
    closing_stock: Mapped[int] = mapped_column(Integer, default=0)  # never negative

    timestamp: Mapped[datetime.datetime] = mapped_column(DateTime, server_default=func.now())
