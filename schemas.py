import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class LoginIn(BaseModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


class UserIn(BaseModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    name: str = Field(..., min_length=1, max_length=100)
    lastname: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: Optional[str] = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    lastname: Optional[str] = Field(default=None, min_length=1, max_length=100)
    password: Optional[str] = Field(default=None, min_length=1)


class CategoryTypeIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    is_global: bool = False
    user_id: int


class RecordIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str = Field(..., min_length=1, max_length=200)
    value: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    type_id: int
    status: bool
    date: dt.date
    observation: Optional[str] = None
    user_id: int


class RecordUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    value: Optional[Decimal] = Field(
        default=None, ge=0, max_digits=12, decimal_places=2
    )
    type_id: Optional[int] = None
    status: Optional[bool] = None
    date: Optional[dt.date] = None
    observation: Optional[str] = None


class SavingGoalIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    percentage: Decimal = Field(..., ge=0, le=100, max_digits=5, decimal_places=2)
    status: bool = False
    date: dt.date
    user_id: int


class SavingGoalUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: Optional[Decimal] = Field(
        default=None, ge=0, max_digits=12, decimal_places=2
    )
    percentage: Optional[Decimal] = Field(
        default=None, ge=0, le=100, max_digits=5, decimal_places=2
    )
    status: Optional[bool] = None
    date: Optional[dt.date] = None
