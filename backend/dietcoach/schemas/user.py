from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr
from pydantic.alias_generators import to_camel


class UserCreate(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str


class UserResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    email: str
    is_guest: bool
    has_onboarded: bool


class PersonalDetailsUpdate(BaseModel):
    """Onboarding form. Unknown keys are ignored, missing keys stay untouched."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    weight: Optional[str] = None
    height: Optional[str] = None
    mobile_number: Optional[str] = None
    dietary_preference: Optional[str] = None
    medical_conditions: Optional[List[str]] = None
    food_liking: Optional[List[str]] = None
    food_disliking: Optional[List[str]] = None
    fitness_goal: Optional[str] = None
    activity_level: Optional[str] = None
    gender: Optional[str] = None


class PersonalDetails(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    weight: Optional[str] = None
    height: Optional[str] = None
    mobile_number: Optional[str] = None
    dietary_preference: Optional[str] = None
    medical_conditions: Optional[List[str]] = None
    food_liking: Optional[List[str]] = None
    food_disliking: Optional[List[str]] = None


class PromptSettings(BaseModel):
    prompt: str
