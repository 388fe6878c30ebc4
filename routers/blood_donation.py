import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from database import get_db
from models import BloodDonor, BloodGroup, User
from schemas import BloodDonor as BloodDonorSchema, BloodDonorCreate, BloodDonorUpdate, Identity, Message
from dependencies import get_identity
from eligibility import record_donation
from policy import check_owner

logger = logging.getLogger(__name__)

router = APIRouter()

CLEARABLE_FIELDS = {"phone"}

def get_donation_or_404(db: Session, donation_id: int) -> BloodDonor:
    donation = db.get(BloodDonor, donation_id)
    if not donation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Donation not found"
        )
    return donation

def resolve_donor_account(db: Session, donation: BloodDonorCreate) -> Optional[User]:
    """The account a donation counts against: explicit userId, else the matching email."""
    if donation.user_id is not None:
        user = db.get(User, donation.user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )
        return user
    return db.query(User).filter(User.email == donation.email).first()

@router.post("", response_model=BloodDonorSchema, status_code=status.HTTP_201_CREATED)
async def create_donation(donation: BloodDonorCreate, db: Session = Depends(get_db)):
    """
    Record a blood donation (public)
    - refused with 400 when the donor already gave blood within the last 3 months
    """
    user = resolve_donor_account(db, donation)
    values = donation.model_dump(exclude={"user_id"})
    values["user_id"] = user.id if user else None

    try:
        new_id = record_donation(db, values)
        if new_id is None:
            db.rollback()
        else:
            db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating blood donation: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create blood donation record"
        )

    if new_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You can only donate blood once every 3 months"
        )

    logger.info(f"Blood donation {new_id} recorded")
    return db.get(BloodDonor, new_id)

@router.get("", response_model=List[BloodDonorSchema])
async def get_donations(
    blood_group: Optional[BloodGroup] = Query(None, alias="bloodGroup"),
    city: Optional[str] = None,
    user_id: Optional[int] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity)
):
    """Donations, latest donation first, optionally filtered by blood group, city or owner"""
    query = db.query(BloodDonor).options(joinedload(BloodDonor.user))
    if blood_group:
        query = query.filter(BloodDonor.blood_group == blood_group)
    if city:
        query = query.filter(BloodDonor.city == city)
    if user_id is not None:
        query = query.filter(BloodDonor.user_id == user_id)
    return query.order_by(BloodDonor.donation_date.desc()).all()

@router.patch("", response_model=BloodDonorSchema)
async def update_donation(
    update: BloodDonorUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity)
):
    """Update the supplied fields of a donation; userId, when given, must own it"""
    donation = get_donation_or_404(db, update.id)
    check_owner(donation.user_id, update.user_id)

    # Update only provided fields; phone is the only one that can be cleared
    update_data = {
        field: value
        for field, value in update.model_dump(exclude_unset=True, exclude={"id", "user_id"}).items()
        if value is not None or field in CLEARABLE_FIELDS
    }
    for field, value in update_data.items():
        setattr(donation, field, value)

    try:
        db.commit()
        db.refresh(donation)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating blood donation {update.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update blood donation"
        )

    logger.info(f"Blood donation {donation.id} updated by user {identity.id}: {sorted(update_data)}")
    return donation

@router.delete("", response_model=Message)
async def delete_donation(
    donation_id: int = Query(..., alias="id"),
    user_id: Optional[int] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity)
):
    """Delete a donation; userId, when given, must own it"""
    donation = get_donation_or_404(db, donation_id)
    check_owner(donation.user_id, user_id)

    try:
        db.delete(donation)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting blood donation {donation_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete blood donation"
        )

    logger.info(f"Blood donation {donation_id} deleted by user {identity.id}")
    return {"message": "Blood donation record deleted successfully"}
