import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from database import get_db
from models import Contact, Event, EventStatus, Role, User
from schemas import Dashboard, Identity
from dependencies import get_identity

logger = logging.getLogger(__name__)

router = APIRouter()

RECENT_ACTIVITY_LIMIT = 5

def recent_activities(db: Session, limit: int = RECENT_ACTIVITY_LIMIT) -> list:
    """Newest contacts and events merged into one feed, newest first."""
    contacts = db.query(Contact).order_by(Contact.created_at.desc()).limit(limit).all()
    events = db.query(Event).order_by(Event.created_at.desc()).limit(limit).all()

    feed = [
        {
            "type": "contact",
            "id": contact.id,
            "title": contact.name,
            "email": contact.email,
            "resolved": contact.resolved,
            "created_at": contact.created_at,
        }
        for contact in contacts
    ] + [
        {
            "type": "event",
            "id": event.id,
            "title": event.title,
            "status": event.status,
            "created_at": event.created_at,
        }
        for event in events
    ]
    feed.sort(key=lambda item: item["created_at"], reverse=True)
    return feed[:limit]

@router.get("", response_model=Dashboard, response_model_exclude_none=True)
async def get_dashboard(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity)
):
    """Headline counts plus the recent activity feed, computed on every call"""
    stats = {
        "total_contacts": db.query(Contact).count(),
        "active_events": db.query(Event).filter(Event.status == EventStatus.ACTIVE).count(),
        "total_admins": db.query(User).filter(User.role == Role.ADMIN).count(),
        "total_moderators": db.query(User).filter(User.role == Role.MODERATOR).count(),
    }
    logger.debug(f"Dashboard stats for user {identity.id}: {stats}")
    return {"stats": stats, "recent_activities": recent_activities(db)}
