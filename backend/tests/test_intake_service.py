import pytest
from datetime import date, datetime, timedelta
from sqlalchemy import select, func

from dietcoach.models.intake import WaterIntakeLog, CaloriesIntakeLog
from dietcoach.services.intake_service import IntakeService, today_window, timezone_label
from dietcoach.utils.dates import utcnow


def test_today_window_uses_ist_offset():
    # 20:00 UTC is already 01:30 the next day in IST
    window = today_window(datetime(2025, 1, 1, 20, 0))

    assert window["date"] == "2025-01-02"
    assert window["start"] == datetime(2025, 1, 1, 18, 30)
    assert window["end"] == datetime(2025, 1, 2, 18, 29, 59, 999999)


def test_timezone_label():
    assert timezone_label() == "IST (UTC+5:30)"


@pytest.mark.asyncio
async def test_water_round_trip(db, user):
    service = IntakeService(db, user.id)

    result = await service.add_water_intake(250, "ml")
    assert result.success
    assert result.data["amount"] == 250
    assert result.data["userId"] == user.id

    summary = await service.get_today_intake_summary()
    assert summary.success
    assert summary.data["water"]["total_water_ml"] >= 250
    assert summary.data["water"]["entry_count"] == 1
    assert summary.data["timezone"] == "IST (UTC+5:30)"


@pytest.mark.asyncio
async def test_water_totals_convert_ounces(db, user):
    service = IntakeService(db, user.id)
    await service.add_water_intake(500, "ml")
    await service.add_water_intake(10, "oz")

    water = await service.get_today_water_intake()

    assert water["total_water_ml"] == round(500 + 10 * 29.5735, 2)
    assert water["total_water_oz"] == round((500 + 10 * 29.5735) / 29.5735, 2)
    assert water["water_by_unit"] == {"ml": 500.0, "oz": 10.0}


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -1, -250])
async def test_non_positive_water_writes_nothing(db, user, amount):
    result = await IntakeService(db, user.id).add_water_intake(amount, "ml")

    assert not result.success
    assert result.error == "Amount must be a positive number"
    count = (await db.execute(select(func.count(WaterIntakeLog.id)))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
async def test_calories_grouped_by_meal(db, user):
    service = IntakeService(db, user.id)
    await service.add_calories_intake(350, "Poha", meal_type="breakfast", carbs=60, proteins=8, fats=9)
    await service.add_calories_intake(120, "Apple", meal_type="snack", carbs=25, proteins=1, fats=0.5)
    await service.add_calories_intake(80, "Banana", meal_type="snack", carbs=20, proteins=1, fats=0.3)

    calories = await service.get_today_calorie_intake()

    assert calories["total_calories"] == 550
    assert calories["carbs"] == 105
    assert calories["proteins"] == 10
    assert calories["fats"] == 9.8
    assert calories["entry_count"] == 3
    assert calories["calories_by_meal"]["snack"]["calories"] == 200
    assert len(calories["calories_by_meal"]["snack"]["entries"]) == 2


@pytest.mark.asyncio
async def test_entries_outside_today_are_ignored(db, user):
    service = IntakeService(db, user.id)
    await service.add_water_intake(300, "ml", consumed_at=utcnow() - timedelta(days=2))

    water = await service.get_today_water_intake()

    assert water["entry_count"] == 0
    assert water["total_water_ml"] == 0


@pytest.mark.asyncio
async def test_other_users_entries_are_not_counted(db, user):
    await IntakeService(db, "someone-else").add_calories_intake(500, "Pizza")

    calories = await IntakeService(db, user.id).get_today_calorie_intake()

    assert calories["entry_count"] == 0


@pytest.mark.asyncio
async def test_invalid_meal_type(db, user):
    result = await IntakeService(db, user.id).add_calories_intake(100, "Toast", meal_type="brunch")

    assert not result.success
    assert result.error == "Meal type must be 'breakfast', 'lunch', 'dinner', or 'snack'"
    count = (await db.execute(select(func.count(CaloriesIntakeLog.id)))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
async def test_daily_calories_total(db, user):
    service = IntakeService(db, user.id)
    await service.add_calories_intake(200, "Rice")
    await service.add_calories_intake(150, "Dal")

    result = await service.get_daily_calories_total()

    assert result.success
    assert result.data == {"total": 350}


@pytest.mark.asyncio
async def test_daily_calories_total_uses_reporting_day(db, user):
    service = IntakeService(db, user.id)
    # 17:00 UTC is 22:30 IST on Jan 1, 20:00 UTC is already 01:30 IST on Jan 2
    await service.add_calories_intake(400, "Biryani", consumed_at=datetime(2025, 1, 1, 17, 0))
    await service.add_calories_intake(150, "Chai", consumed_at=datetime(2025, 1, 1, 20, 0))

    jan_1 = await service.get_daily_calories_total(date(2025, 1, 1))
    jan_2 = await service.get_daily_calories_total(date(2025, 1, 2))

    assert jan_1.data == {"total": 400}
    assert jan_2.data == {"total": 150}
