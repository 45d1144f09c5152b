from typing import Any, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from dietcoach.schemas.intake import WaterIntakeArgs, CaloriesIntakeArgs
from dietcoach.schemas.results import ToolResult, first_error_message
from dietcoach.services.intake_service import IntakeService
from dietcoach.services.memory_service import MemoryService
from dietcoach.utils.dates import parse_iso_datetime
from dietcoach.utils.logger import get_logger

logger = get_logger("coach_tools")

MEMORY_SEARCH_LIMIT = 100


def format_amount(value: float) -> str:
    """250.0 -> "250", 1.5 -> "1.5"; never exponent notation."""
    value = float(value)
    return str(int(value)) if value.is_integer() else str(value)


class CoachTools:
    """
    Actions the coaching agent can take, bound to one user for one chat turn.

    Every tool returns a ``ToolResult``; bad arguments and storage failures
    come back as ``success=False`` so the agent can tell the user about them.
    """

    def __init__(self, db: AsyncSession, user_id: str):
        self.db = db
        self.user_id = user_id
        self.intake = IntakeService(db, user_id)
        self.memories = MemoryService(db, user_id)

    async def log_water_intake(self, **kwargs) -> ToolResult:
        try:
            args = WaterIntakeArgs.model_validate(kwargs)
        except ValidationError as e:
            return ToolResult.fail(first_error_message(e))

        try:
            result = await self.intake.add_water_intake(
                amount=args.amount,
                unit=args.unit,
                consumed_at=parse_iso_datetime(args.consumed_at),
                notes=args.notes,
                source=args.source,
            )
        except Exception as e:
            logger.exception(f"logWaterIntake failed: {e}")
            return ToolResult.fail(str(e) or "Failed to log water intake")

        if not result.success:
            return ToolResult.fail(result.error)
        return ToolResult.ok(
            result.data,
            message=f"Successfully logged {format_amount(args.amount)}{args.unit} of water intake",
        )

    async def log_calories_intake(self, **kwargs) -> ToolResult:
        try:
            args = CaloriesIntakeArgs.model_validate(kwargs)
        except ValidationError as e:
            return ToolResult.fail(first_error_message(e))

        try:
            result = await self.intake.add_calories_intake(
                calories=args.calories,
                food_item=args.food_item,
                quantity=args.quantity,
                unit=args.unit,
                meal_type=args.meal_type,
                carbs=args.carbs,
                proteins=args.proteins,
                fats=args.fats,
                consumed_at=parse_iso_datetime(args.consumed_at),
                notes=args.notes,
                source=args.source,
            )
        except Exception as e:
            logger.exception(f"logCaloriesIntake failed: {e}")
            return ToolResult.fail(str(e) or "Failed to log calories intake")

        if not result.success:
            return ToolResult.fail(result.error)
        return ToolResult.ok(
            result.data,
            message=f"Successfully logged {format_amount(args.calories)} calories for {args.food_item}",
        )

    async def search_memories(self) -> ToolResult:
        try:
            return await self.memories.search(limit=MEMORY_SEARCH_LIMIT)
        except Exception as e:
            logger.exception(f"searchUserMemoryTool failed: {e}")
            return ToolResult.fail(str(e) or "Failed to search user memories")

    async def execute(self, name: Optional[str], args: Dict[str, Any]) -> ToolResult:
        if not name:
            return ToolResult.fail("Tool name is missing")

        logger.info(f"Executing tool {name} for user {self.user_id}")
        if name == "logWaterIntake":
            return await self.log_water_intake(**args)
        if name == "logCaloriesIntake":
            return await self.log_calories_intake(**args)
        if name == "searchUserMemoryTool":
            return await self.search_memories()
        return ToolResult.fail(f"Unknown tool {name}")
