import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Text, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from dietcoach.core.database import Base
from dietcoach.utils.dates import utcnow


class WaterIntakeLog(Base):
    __tablename__ = "water_intake_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    unit: Mapped[str] = mapped_column(String(8), nullable=False, default="ml")  # ml | oz
    consumed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(32), default="app")  # manual | app | device


class CaloriesIntakeLog(Base):
    __tablename__ = "calories_intake_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    calories: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    food_item: Mapped[str] = mapped_column(String(128), nullable=False)
    quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    meal_type: Mapped[str] = mapped_column(String(32), nullable=False, default="snack")
    carbs: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)
    proteins: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)
    fats: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2), nullable=True)
    consumed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(32), default="app")  # manual | app | barcode
