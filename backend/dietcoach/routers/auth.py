import time
import uuid
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from jose import JWTError
import logging

from dietcoach.core.database import get_db
from dietcoach.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    decode_access_token,
    oauth2_scheme,
)
from dietcoach.models.user import User
from dietcoach.schemas.user import UserCreate, Token, UserResponse

logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/api/auth", tags=["auth"])


def _token_for(user: User) -> Token:
    return Token(access_token=create_access_token(data={"sub": user.id}), token_type="bearer")


@router.post("/register", response_model=UserResponse)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    logger.info(f"Registration request for {user_data.email}")

    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        logger.warning(f"User already exists: {user_data.email}")
        raise HTTPException(status_code=400, detail="Email already registered")

    try:
        new_user = User(email=user_data.email, hashed_password=get_password_hash(user_data.password))
        db.add(new_user)
        await db.commit()
        await db.refresh(new_user)
    except Exception as e:
        logger.exception(f"Registration error: {type(e).__name__}: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Registration failed")

    logger.info(f"User created with ID: {new_user.id}")
    return new_user


@router.post("/login", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == form_data.username))
    user = result.scalar_one_or_none()

    if not user or not user.hashed_password or not verify_password(form_data.password, user.hashed_password):
        logger.warning(f"Login failed for: {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info(f"Login successful for: {user.email}")
    return _token_for(user)


@router.post("/guest", response_model=Token)
async def guest_login(db: AsyncSession = Depends(get_db)):
    """Anonymous account with the smaller daily message quota."""
    guest = User(email=f"guest-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}", is_guest=True)
    db.add(guest)
    await db.commit()
    await db.refresh(guest)
    logger.info(f"Guest user created with ID: {guest.id}")
    return _token_for(guest)


async def get_current_user(token: str = Depends(oauth2_scheme), db: AsyncSession = Depends(get_db)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = await db.get(User, user_id)
    if user is None:
        raise credentials_exception
    return user


@router.get("/me", response_model=UserResponse)
async def read_users_me(current_user: User = Depends(get_current_user)):
    return current_user
