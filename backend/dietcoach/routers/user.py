from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from dietcoach.core.database import get_db
from dietcoach.models.user import User
from dietcoach.routers.auth import get_current_user
from dietcoach.schemas.intake import IntakeSummary
from dietcoach.schemas.user import PersonalDetailsUpdate, PromptSettings
from dietcoach.services.intake_service import IntakeService

logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/intake")
async def get_intake(userId: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    """Today's totals in the fixed reporting timezone."""
    if not userId:
        raise HTTPException(status_code=400, detail="User ID is required")

    result = await IntakeService(db, userId).get_today_intake_summary()
    if not result.success:
        return JSONResponse(status_code=500, content={"success": False, "error": result.error})

    calories, water = result.data["calories"], result.data["water"]
    summary = IntakeSummary(
        calorie_amount=calories["total_calories"],
        water_intake_amount=water["total_water_ml"],
        water_intake_amount_oz=water["total_water_oz"],
        carbs_amount=calories["carbs"],
        proteins_amount=calories["proteins"],
        fats_amount=calories["fats"],
        date=result.data["date"],
        timezone=result.data["timezone"],
        calorie_entry_count=calories["entry_count"],
        water_entry_count=water["entry_count"],
    )
    return {"success": True, "data": summary.model_dump(by_alias=True)}


@router.post("/update-details")
async def update_details(details: PersonalDetailsUpdate, db: AsyncSession = Depends(get_db)):
    # Access is gated by the /api middleware only.
    result = await db.execute(select(User).where(User.email == details.email))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    for field, value in details.model_dump(exclude_unset=True, exclude={"email"}).items():
        setattr(user, field, value)

    try:
        await db.commit()
    except Exception as e:
        logger.error(f"Failed to update details for {details.email}: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update user details")

    logger.info(f"Updated onboarding details for user {user.id}")
    return {"success": True}


@router.get("/prompt", response_model=PromptSettings)
async def get_prompt(current_user: User = Depends(get_current_user)):
    return PromptSettings(prompt=current_user.prompt or "")


@router.put("/prompt", response_model=PromptSettings)
async def update_prompt(
    payload: PromptSettings,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    current_user.prompt = payload.prompt.strip() or None
    await db.commit()
    return PromptSettings(prompt=current_user.prompt or "")
