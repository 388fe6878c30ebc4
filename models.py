import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, Enum, ForeignKey
from sqlalchemy.orm import relationship
from database import Base


def utcnow() -> datetime:
    """Current time as naive UTC, the form every timestamp column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    EDITOR = "EDITOR"
    VIEWER = "VIEWER"


class BloodGroup(str, enum.Enum):
    A_POSITIVE = "A+"
    A_NEGATIVE = "A-"
    B_POSITIVE = "B+"
    B_NEGATIVE = "B-"
    AB_POSITIVE = "AB+"
    AB_NEGATIVE = "AB-"
    O_POSITIVE = "O+"
    O_NEGATIVE = "O-"


class EventCategory(str, enum.Enum):
    HEALTH = "HEALTH"
    EDUCATION = "EDUCATION"
    ART_AND_CULTURE = "ART_AND_CULTURE"
    ENVIRONMENT = "ENVIRONMENT"
    NATURAL_DISASTER_RELIEF = "NATURAL_DISASTER_RELIEF"
    SPORTS_AND_ADVENTURE = "SPORTS_AND_ADVENTURE"


class EventStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"  # display-only, no endpoint transitions into it


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    role = Column(Enum(Role, name="user_role"), nullable=False, default=Role.VIEWER)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, onupdate=utcnow)

    donations = relationship("BloodDonor", back_populates="user")
    events = relationship("Event", back_populates="created_by")


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    subject = Column(String, nullable=True)
    message = Column(Text, nullable=False)
    resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, onupdate=utcnow)


class BloodDonor(Base):
    __tablename__ = "blood_donors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    phone = Column(String, nullable=True)
    blood_group = Column(Enum(BloodGroup, name="blood_group"), nullable=False, index=True)
    city = Column(String, nullable=False, index=True)
    message = Column(Text, nullable=False)
    donation_date = Column(DateTime, default=utcnow, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, onupdate=utcnow)

    user = relationship("User", back_populates="donations")


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    location = Column(String, nullable=False)
    category = Column(Enum(EventCategory, name="event_category"), nullable=False)
    status = Column(Enum(EventStatus, name="event_status"), nullable=False, default=EventStatus.ACTIVE, index=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, onupdate=utcnow)

    created_by = relationship("User", back_populates="events")
