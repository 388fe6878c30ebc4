import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from database import get_db
from models import Event, EventStatus, User, utcnow
from schemas import Event as EventSchema, EventCreate, EventCreated, EventDeleted, EventRefresh, EventStatusUpdate, Identity
from dependencies import get_current_user, get_identity

logger = logging.getLogger(__name__)

router = APIRouter()

def get_event_or_404(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    return event

@router.post("", response_model=EventCreated, status_code=status.HTTP_201_CREATED)
async def create_event(
    event: EventCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create an ACTIVE event owned by the logged-in user"""
    db_event = Event(
        **event.model_dump(),
        status=EventStatus.ACTIVE,
        created_by_id=current_user.id
    )
    try:
        db.add(db_event)
        db.commit()
        db.refresh(db_event)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Event creation error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create event"
        )

    logger.info(f"Event {db_event.id} created by user {current_user.id}")
    return {"message": "Event created", "event": db_event}

@router.get("", response_model=List[EventSchema])
async def get_events(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity)
):
    """All events, most recently created first, each with its creator"""
    return (
        db.query(Event)
        .options(joinedload(Event.created_by))
        .order_by(Event.created_at.desc())
        .all()
    )

@router.patch("", response_model=EventStatusUpdate, response_model_exclude_none=True)
async def refresh_event_status(
    target: EventRefresh,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity)
):
    """
    Complete an event whose end date has been reached.
    Safe to call repeatedly: before the end date nothing changes.
    """
    event = get_event_or_404(db, target.id)

    if utcnow() < event.end_date:
        return {"message": "Event is still active"}

    if event.status != EventStatus.COMPLETED:
        event.status = EventStatus.COMPLETED
        try:
            db.commit()
            db.refresh(event)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Event update error for {event.id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update event status"
            )
        logger.info(f"Event {event.id} marked COMPLETED")

    return {"message": "Event status updated", "event": event}

@router.delete("/{event_id}", response_model=EventDeleted)
async def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity)
):
    """Delete an event by id"""
    db_event = get_event_or_404(db, event_id)
    deleted = EventSchema.model_validate(db_event)

    try:
        db.delete(db_event)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Event deletion error for {event_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete event"
        )

    logger.info(f"Event {event_id} deleted by user {identity.id}")
    return {"message": "Event deleted successfully", "event": deleted}
