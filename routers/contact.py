import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from database import get_db
from models import Contact
from schemas import Contact as ContactSchema, ContactCreate, ContactDelete, ContactEnvelope, ContactList, ContactUpdate, Identity
from dependencies import get_identity

logger = logging.getLogger(__name__)

router = APIRouter()

def get_contact_or_404(db: Session, contact_id: int) -> Contact:
    contact = db.get(Contact, contact_id)
    if not contact:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Contact not found"
        )
    return contact

@router.post("", response_model=ContactEnvelope, status_code=status.HTTP_201_CREATED)
async def create_contact(contact: ContactCreate, db: Session = Depends(get_db)):
    """Store a contact-form submission (public)"""
    db_contact = Contact(**contact.model_dump())
    try:
        db.add(db_contact)
        db.commit()
        db.refresh(db_contact)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error saving contact: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save contact information"
        )

    logger.info(f"Contact {db_contact.id} received")
    return {"contact": db_contact}

@router.get("", response_model=ContactList)
async def get_contacts(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity)
):
    """All contacts, newest first; search and status filtering happen client-side"""
    contacts = db.query(Contact).order_by(Contact.created_at.desc()).all()
    return {"contacts": contacts}

@router.patch("", response_model=ContactEnvelope)
async def update_contact(
    update: ContactUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity)
):
    """Mark a contact resolved or unresolved"""
    contact = get_contact_or_404(db, update.id)
    contact.resolved = update.resolved
    try:
        db.commit()
        db.refresh(contact)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating contact {update.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update contact status"
        )

    logger.info(f"Contact {contact.id} resolved={contact.resolved} by user {identity.id}")
    return {"contact": contact}

@router.delete("", response_model=ContactEnvelope)
async def delete_contact(
    target: ContactDelete,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity)
):
    """Delete a resolved contact; the request body carries the id"""
    contact = get_contact_or_404(db, target.id)
    if not contact.resolved:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only resolved contacts can be deleted"
        )

    deleted = ContactSchema.model_validate(contact)
    try:
        db.delete(contact)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting contact {target.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete contact"
        )

    logger.info(f"Contact {target.id} deleted by user {identity.id}")
    return {"contact": deleted}
