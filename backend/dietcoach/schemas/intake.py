from datetime import datetime
from typing import Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

WaterUnit = Literal["ml", "oz"]
WaterSource = Literal["manual", "app", "device"]
MealType = Literal["breakfast", "lunch", "dinner", "snack"]
CaloriesSource = Literal["manual", "app", "barcode"]

WATER_UNITS = ("ml", "oz")
MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")


def _require_positive(value: Optional[float], label: str) -> Optional[float]:
    if value is None:
        return value
    if value <= 0:
        raise ValueError(f"{label} must be a positive number")
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WaterIntakeArgs(CamelModel):
    """Arguments of the logWaterIntake tool."""

    amount: float
    unit: WaterUnit = "ml"
    consumed_at: Optional[str] = None
    notes: Optional[str] = None
    source: WaterSource = "app"

    @field_validator("amount")
    @classmethod
    def _amount_positive(cls, v):
        return _require_positive(v, "Amount")

    @field_validator("unit", mode="before")
    @classmethod
    def _unit_known(cls, v):
        if v is None:
            return "ml"
        if v not in WATER_UNITS:
            raise ValueError("Unit must be either 'ml' or 'oz'")
        return v

    @field_validator("consumed_at")
    @classmethod
    def _iso_timestamp(cls, v):
        if v is not None:
            try:
                datetime.fromisoformat(v.replace("Z", "+00:00"))
            except ValueError:
                raise ValueError("consumedAt must be an ISO-8601 datetime")
        return v


class CaloriesIntakeArgs(CamelModel):
    """Arguments of the logCaloriesIntake tool."""

    calories: float
    carbs: float
    proteins: float
    fats: float
    food_item: str
    quantity: Optional[float] = None
    unit: Optional[str] = None
    meal_type: MealType = "snack"
    consumed_at: Optional[str] = None
    notes: Optional[str] = None
    source: CaloriesSource = "app"

    @field_validator("calories")
    @classmethod
    def _calories_positive(cls, v):
        return _require_positive(v, "Calories")

    @field_validator("carbs")
    @classmethod
    def _carbs_positive(cls, v):
        return _require_positive(v, "Carbs")

    @field_validator("proteins")
    @classmethod
    def _proteins_positive(cls, v):
        return _require_positive(v, "Proteins")

    @field_validator("fats")
    @classmethod
    def _fats_positive(cls, v):
        return _require_positive(v, "Fats")

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v):
        return _require_positive(v, "Quantity")

    @field_validator("food_item")
    @classmethod
    def _food_item_length(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("Food item name is required")
        if len(v) > 128:
            raise ValueError("Food item name too long")
        return v

    @field_validator("unit")
    @classmethod
    def _unit_length(cls, v):
        if v is not None and len(v) > 32:
            raise ValueError("Unit name too long")
        return v

    @field_validator("meal_type", mode="before")
    @classmethod
    def _meal_type_known(cls, v):
        if v is None:
            return "snack"
        if v not in MEAL_TYPES:
            raise ValueError("Meal type must be 'breakfast', 'lunch', 'dinner', or 'snack'")
        return v

    @field_validator("consumed_at")
    @classmethod
    def _iso_timestamp(cls, v):
        if v is not None:
            try:
                datetime.fromisoformat(v.replace("Z", "+00:00"))
            except ValueError:
                raise ValueError("consumedAt must be an ISO-8601 datetime")
        return v


class WaterIntakeLogOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    amount: float
    unit: str
    consumed_at: datetime
    created_at: datetime
    notes: Optional[str] = None
    source: Optional[str] = None


class CaloriesIntakeLogOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    calories: float
    food_item: str
    quantity: Optional[float] = None
    unit: Optional[str] = None
    meal_type: str
    carbs: Optional[float] = None
    proteins: Optional[float] = None
    fats: Optional[float] = None
    consumed_at: datetime
    created_at: datetime
    notes: Optional[str] = None
    source: Optional[str] = None


class IntakeSummary(CamelModel):
    """Body of GET /api/user/intake."""

    calorie_amount: float = 0
    water_intake_amount: float = 0
    water_intake_amount_oz: float = Field(0, alias="waterIntakeAmountOZ")
    carbs_amount: float = 0
    proteins_amount: float = 0
    fats_amount: float = 0
    date: str
    timezone: str
    calorie_entry_count: int = 0
    water_entry_count: int = 0
