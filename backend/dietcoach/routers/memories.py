from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from dietcoach.core.database import get_db
from dietcoach.routers.auth import get_current_user
from dietcoach.schemas.memory import Memory as MemorySchema, MemoryUpdate
from dietcoach.services.memory_service import MemoryService
from dietcoach.models.user import User

router = APIRouter(prefix="/api/memories", tags=["memories"])


@router.get("", response_model=list[MemorySchema])
async def list_memories(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = MemoryService(db, user_id=current_user.id)
    result = await service.get_memories()
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return result.data


@router.patch("/{memory_id}", response_model=MemorySchema)
async def update_memory(
    memory_id: str,
    payload: MemoryUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = MemoryService(db, user_id=current_user.id)
    result = await service.update_memory(memory_id, **payload.model_dump(exclude_unset=True))
    if not result.success:
        status_code = 404 if result.error.startswith("Memory not found") else 400
        raise HTTPException(status_code=status_code, detail=result.error)
    return result.data


@router.delete("/{memory_id}")
async def delete_memory(
    memory_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = MemoryService(db, user_id=current_user.id)
    result = await service.deactivate_memory(memory_id)
    if not result.success:
        raise HTTPException(status_code=404, detail="Memory not found")
    return {"status": "ok"}
