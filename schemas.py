from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, StrictBool, StringConstraints, model_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, List, Literal, Optional
from datetime import datetime, timezone

from models import BloodGroup, EventCategory, EventStatus, Role

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class APIModel(BaseModel):
    """camelCase on the wire, snake_case in Python; both accepted on input."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def normalize_role(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


RoleName = Annotated[Role, BeforeValidator(normalize_role)]
UtcDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]


# User schemas
class User(APIModel):
    """Safe projection of a user: never carries the password hash."""
    id: int
    name: str
    email: str
    role: Role
    created_at: datetime

class UserCreate(APIModel):
    name: NonEmptyStr
    email: EmailStr
    role: RoleName
    password: NonEmptyStr

class UserSignup(APIModel):
    name: NonEmptyStr
    email: EmailStr
    password: NonEmptyStr

class UserLogin(APIModel):
    email: EmailStr
    password: NonEmptyStr

class RegisterResponse(APIModel):
    message: str
    user: User

class ProfileResponse(APIModel):
    user: User

# Authentication schemas
class Token(APIModel):
    access_token: str
    token_type: str
    user: User

class Identity(BaseModel):
    """Who the session token says the caller is."""
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    role: Role

class Message(APIModel):
    message: str

# Contact schemas
class ContactCreate(APIModel):
    name: NonEmptyStr
    email: EmailStr
    message: NonEmptyStr
    phone: Optional[str] = None
    subject: Optional[str] = None

class ContactUpdate(APIModel):
    id: int
    resolved: StrictBool

class ContactDelete(APIModel):
    id: int

class Contact(APIModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    subject: Optional[str] = None
    message: str
    resolved: bool
    created_at: datetime

class ContactEnvelope(APIModel):
    contact: Contact

class ContactList(APIModel):
    contacts: List[Contact]

# Blood donation schemas
class DonorOwner(APIModel):
    id: int
    name: str
    email: str

class BloodDonorCreate(APIModel):
    name: NonEmptyStr
    email: EmailStr
    blood_group: BloodGroup
    city: NonEmptyStr
    message: NonEmptyStr
    phone: Optional[str] = None
    user_id: Optional[int] = None

class BloodDonorUpdate(APIModel):
    id: int
    user_id: Optional[int] = None
    name: Optional[NonEmptyStr] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    blood_group: Optional[BloodGroup] = None
    city: Optional[NonEmptyStr] = None
    message: Optional[NonEmptyStr] = None

class BloodDonor(APIModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    blood_group: BloodGroup
    city: str
    message: str
    donation_date: datetime
    user_id: Optional[int] = None
    user: Optional[DonorOwner] = None
    created_at: datetime

# Event schemas
class EventCreator(APIModel):
    id: int
    name: str
    email: str
    role: Role

class EventCreate(APIModel):
    title: NonEmptyStr
    description: NonEmptyStr
    start_date: UtcDateTime = Field(alias="date")
    end_date: UtcDateTime
    location: NonEmptyStr
    category: EventCategory

    @model_validator(mode="after")
    def check_date_order(self):
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before date")
        return self

class EventRefresh(APIModel):
    id: int

class Event(APIModel):
    id: int
    title: str
    description: str
    start_date: datetime
    end_date: datetime
    location: str
    category: EventCategory
    status: EventStatus
    created_by_id: int
    created_by: Optional[EventCreator] = None
    created_at: datetime

class EventCreated(APIModel):
    message: str
    event: Event

class EventDeleted(APIModel):
    message: str
    event: Event

class EventStatusUpdate(APIModel):
    message: str
    event: Optional[Event] = None

# Dashboard schemas
class DashboardStats(APIModel):
    total_contacts: int
    active_events: int
    total_admins: int
    total_moderators: int

class Activity(APIModel):
    type: Literal["contact", "event"]
    id: int
    title: str
    email: Optional[str] = None
    resolved: Optional[bool] = None
    status: Optional[EventStatus] = None
    created_at: datetime

class Dashboard(APIModel):
    stats: DashboardStats
    recent_activities: List[Activity]
