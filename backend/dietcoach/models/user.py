import uuid
from typing import Optional, List
from sqlalchemy import String, Text, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column

from dietcoach.core.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    hashed_password: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    is_guest: Mapped[bool] = mapped_column(Boolean, default=False)

    # onboarding form
    first_name: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    date_of_birth: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    weight: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    height: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    mobile_number: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    dietary_preference: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    medical_conditions: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    food_liking: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    food_disliking: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    fitness_goal: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    activity_level: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    # free-form coaching instructions written by the user
    prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @property
    def has_onboarded(self) -> bool:
        return bool(self.first_name)
