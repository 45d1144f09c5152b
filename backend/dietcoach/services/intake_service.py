from __future__ import annotations

from datetime import datetime, date, time, timedelta
from decimal import Decimal
from typing import Optional, Dict, Any, List

import pytz
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dietcoach.core.config import get_settings
from dietcoach.models.intake import WaterIntakeLog, CaloriesIntakeLog
from dietcoach.schemas.intake import (
    WATER_UNITS,
    MEAL_TYPES,
    WaterIntakeLogOut,
    CaloriesIntakeLogOut,
)
from dietcoach.schemas.results import ToolResult
from dietcoach.utils.dates import utcnow
from dietcoach.utils.logger import get_logger

logger = get_logger("intake_service")
settings = get_settings()

ML_PER_OZ = 29.5735


def _positive(value: Optional[float]) -> bool:
    return value is not None and value > 0


def _to_float(value: Any) -> float:
    return float(value) if value is not None else 0.0


def _reporting_tz():
    return pytz.FixedOffset(settings.INTAKE_UTC_OFFSET_MINUTES)


def day_window(day: date) -> Dict[str, Any]:
    """
    One calendar day in the fixed reporting offset (IST, UTC+5:30 by default).

    Returns naive UTC bounds so they can be compared with stored timestamps.
    """
    tz = _reporting_tz()
    start_local = tz.localize(datetime.combine(day, time.min))
    end_local = start_local + timedelta(days=1) - timedelta(microseconds=1)

    return {
        "start": start_local.astimezone(pytz.utc).replace(tzinfo=None),
        "end": end_local.astimezone(pytz.utc).replace(tzinfo=None),
        "date": day.isoformat(),
    }


def today_window(now: Optional[datetime] = None) -> Dict[str, Any]:
    local_now = pytz.utc.localize(now or utcnow()).astimezone(_reporting_tz())
    return day_window(local_now.date())


def timezone_label() -> str:
    minutes = settings.INTAKE_UTC_OFFSET_MINUTES
    sign = "+" if minutes >= 0 else "-"
    hours, mins = divmod(abs(minutes), 60)
    offset = f"UTC{sign}{hours}:{mins:02d}"
    return f"IST ({offset})" if minutes == 330 else offset


class IntakeService:
    """Water and calorie intake log for one user."""

    def __init__(self, db: AsyncSession, user_id: str):
        self.db = db
        self.user_id = user_id

    async def add_water_intake(
        self,
        amount: float,
        unit: str = "ml",
        consumed_at: Optional[datetime] = None,
        notes: Optional[str] = None,
        source: str = "manual",
    ) -> ToolResult:
        if not self.user_id:
            return ToolResult.fail("User ID is required")
        if not _positive(amount):
            return ToolResult.fail("Amount must be a positive number")
        if unit not in WATER_UNITS:
            return ToolResult.fail("Unit must be either 'ml' or 'oz'")

        entry = WaterIntakeLog(
            user_id=self.user_id,
            amount=Decimal(str(amount)),
            unit=unit,
            consumed_at=consumed_at or utcnow(),
            created_at=utcnow(),
            notes=notes or None,
            source=source,
        )
        try:
            self.db.add(entry)
            await self.db.commit()
            await self.db.refresh(entry)
        except Exception as e:
            logger.exception(f"Error adding water intake for user {self.user_id}: {e}")
            await self.db.rollback()
            return ToolResult.fail(str(e) or "Failed to create water intake log")

        logger.info(f"Logged {amount}{unit} of water for user {self.user_id}")
        return ToolResult.ok(WaterIntakeLogOut.model_validate(entry).model_dump(mode="json", by_alias=True))

    async def add_calories_intake(
        self,
        calories: float,
        food_item: str,
        quantity: Optional[float] = None,
        unit: Optional[str] = None,
        meal_type: str = "snack",
        carbs: Optional[float] = None,
        proteins: Optional[float] = None,
        fats: Optional[float] = None,
        consumed_at: Optional[datetime] = None,
        notes: Optional[str] = None,
        source: str = "manual",
    ) -> ToolResult:
        if not self.user_id:
            return ToolResult.fail("User ID is required")
        if not _positive(calories):
            return ToolResult.fail("Calories must be a positive number")
        if not food_item or not food_item.strip():
            return ToolResult.fail("Food item name is required")
        if len(food_item.strip()) > 128:
            return ToolResult.fail("Food item name too long")
        if meal_type not in MEAL_TYPES:
            return ToolResult.fail("Meal type must be 'breakfast', 'lunch', 'dinner', or 'snack'")
        if quantity is not None and quantity <= 0:
            return ToolResult.fail("Quantity must be a positive number")
        for label, value in (("Carbs", carbs), ("Proteins", proteins), ("Fats", fats)):
            if value is not None and value <= 0:
                return ToolResult.fail(f"{label} must be a positive number")

        entry = CaloriesIntakeLog(
            user_id=self.user_id,
            calories=Decimal(str(calories)),
            food_item=food_item.strip(),
            quantity=Decimal(str(quantity)) if quantity else None,
            unit=unit or None,
            meal_type=meal_type,
            carbs=Decimal(str(carbs)) if carbs is not None else None,
            proteins=Decimal(str(proteins)) if proteins is not None else None,
            fats=Decimal(str(fats)) if fats is not None else None,
            consumed_at=consumed_at or utcnow(),
            created_at=utcnow(),
            notes=notes or None,
            source=source,
        )
        try:
            self.db.add(entry)
            await self.db.commit()
            await self.db.refresh(entry)
        except Exception as e:
            logger.exception(f"Error adding calories intake for user {self.user_id}: {e}")
            await self.db.rollback()
            return ToolResult.fail(str(e) or "Failed to create calories intake log")

        logger.info(f"Logged {calories} kcal ({food_item}) for user {self.user_id}")
        return ToolResult.ok(CaloriesIntakeLogOut.model_validate(entry).model_dump(mode="json", by_alias=True))

    async def get_daily_calories_total(self, day: Optional[date] = None) -> ToolResult:
        """Total calories for one calendar day in the reporting timezone (today by default)."""
        if not self.user_id:
            return ToolResult.fail("User ID is required")

        window = day_window(day) if day else today_window()
        start, end = window["start"], window["end"]
        try:
            result = await self.db.execute(
                select(CaloriesIntakeLog.calories).where(
                    CaloriesIntakeLog.user_id == self.user_id,
                    CaloriesIntakeLog.consumed_at >= start,
                    CaloriesIntakeLog.consumed_at <= end,
                )
            )
            total = sum(_to_float(c) for c in result.scalars().all())
        except Exception as e:
            logger.exception(f"Error getting daily calories total: {e}")
            return ToolResult.fail(str(e))
        return ToolResult.ok({"total": round(total, 2)})

    async def _entries_between(self, model, start: datetime, end: datetime) -> List[Any]:
        result = await self.db.execute(
            select(model)
            .where(
                model.user_id == self.user_id,
                model.consumed_at >= start,
                model.consumed_at <= end,
            )
            .order_by(model.consumed_at.asc())
        )
        return result.scalars().all()

    async def get_today_calorie_intake(self) -> Dict[str, Any]:
        window = today_window()
        entries = await self._entries_between(CaloriesIntakeLog, window["start"], window["end"])

        by_meal: Dict[str, Dict[str, Any]] = {}
        for entry in entries:
            bucket = by_meal.setdefault(entry.meal_type, {"calories": 0.0, "entries": []})
            bucket["calories"] += _to_float(entry.calories)
            bucket["entries"].append(entry.id)

        return {
            "total_calories": round(sum(_to_float(e.calories) for e in entries), 2),
            "carbs": round(sum(_to_float(e.carbs) for e in entries), 2),
            "proteins": round(sum(_to_float(e.proteins) for e in entries), 2),
            "fats": round(sum(_to_float(e.fats) for e in entries), 2),
            "entry_count": len(entries),
            "calories_by_meal": by_meal,
            "date": window["date"],
        }

    async def get_today_water_intake(self) -> Dict[str, Any]:
        window = today_window()
        entries = await self._entries_between(WaterIntakeLog, window["start"], window["end"])

        total_ml = 0.0
        by_unit = {"ml": 0.0, "oz": 0.0}
        for entry in entries:
            amount = _to_float(entry.amount)
            if entry.unit == "oz":
                total_ml += amount * ML_PER_OZ
                by_unit["oz"] += amount
            else:
                total_ml += amount
                by_unit["ml"] += amount

        return {
            "total_water_ml": round(total_ml, 2),
            "total_water_oz": round(total_ml / ML_PER_OZ, 2),
            "entry_count": len(entries),
            "water_by_unit": by_unit,
            "date": window["date"],
        }

    async def get_today_intake_summary(self) -> ToolResult:
        # Totals are always summed from rows; there is no running counter to race on.
        try:
            calories = await self.get_today_calorie_intake()
            water = await self.get_today_water_intake()
        except Exception as e:
            logger.exception(f"Error fetching today's intake summary for user {self.user_id}: {e}")
            return ToolResult.fail("Failed to fetch intake summary")

        return ToolResult.ok({
            "calories": calories,
            "water": water,
            "date": today_window()["date"],
            "timezone": timezone_label(),
        })
