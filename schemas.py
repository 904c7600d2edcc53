from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field


class ApiResponse(BaseModel):
    """The one envelope every endpoint answers with."""

    status_code: int
    message: str
    data: Any = None
    success: bool = True
    errors: List[str] = []


class DonationCreate(BaseModel):
    # Everything optional so missing fields are reported together, not by pydantic one at a time.
    # The donation form posts camelCase keys, API clients usually snake_case.
    full_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("full_name", "fullname", "fullName")
    )
    email: Optional[Union[str, int]] = None
    phone: Optional[Union[str, int]] = None
    food_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("food_type", "foodType")
    )
    full_address: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("full_address", "fullAddress")
    )
    food_quantity: Optional[Union[str, int]] = Field(
        default=None, validation_alias=AliasChoices("food_quantity", "foodQuantity")
    )
    notes: Optional[str] = None


class DonationStatusUpdate(BaseModel):
    status: Optional[str] = None


class DonationQuantityUpdate(BaseModel):
    food_quantity: Optional[Union[str, int]] = Field(
        default=None, validation_alias=AliasChoices("food_quantity", "foodQuantity")
    )


class DonationNotesUpdate(BaseModel):
    notes: Optional[str] = None


class DonationRead(BaseModel):
    id: str
    unique_id: str
    user_id: Optional[str]
    full_name: str
    email: str
    phone: str
    food_type: str
    full_address: str
    food_quantity: str
    notes: str
    status: str
    donation_date: datetime
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DailyCount(BaseModel):
    date: str
    count: int


class DonationStatistics(BaseModel):
    total_donations: int = 0
    by_status: Dict[str, int] = {}
    by_food_type: Dict[str, int] = {}
    recent_donations: List[DailyCount] = []


class UserCreate(BaseModel):
    full_name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    phone: str = Field(pattern=r"^[0-9]{10}$")
    city: str = Field(min_length=1)
    pincode: str = Field(min_length=1)
    address: str = Field(min_length=1)


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    phone: Optional[str] = Field(default=None, pattern=r"^[0-9]{10}$")
    city: Optional[str] = None
    pincode: Optional[str] = None
    address: Optional[str] = None


class UserRead(BaseModel):
    id: str
    full_name: str
    email: str
    phone: str
    city: str
    pincode: str
    address: str
    total_donations: int
    donation_ids: List[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdminCreate(UserCreate):
    pass


class AdminRead(BaseModel):
    id: str
    full_name: str
    email: str
    phone: str
    city: str
    pincode: str
    address: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LoginData(BaseModel):
    email: EmailStr
    password: str


class PasswordReset(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)


class DonationsWithCounts(BaseModel):
    donations: List[DonationRead]
    counts: Dict[str, int]


class DashboardStats(BaseModel):
    total_users: int
    total_donations: int
    total_food_quantity: int
    status_counts: Dict[str, int]
    recent_donations: List[DonationRead]
    recent_users: List[UserRead]


StatusFilter = Literal["pending", "accepted", "completed", "cancelled", "all"]
