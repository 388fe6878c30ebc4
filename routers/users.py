import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import EmailStr
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from database import get_db
from models import Role, User
from schemas import Identity, User as UserSchema, UserCreate, normalize_role
from dependencies import get_identity, get_password_hash

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("", response_model=UserSchema, status_code=status.HTTP_201_CREATED)
async def create_user(
    user: UserCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity)
):
    """Create a dashboard user with an explicit role"""
    if db.query(User).filter(User.email == user.email).first():
        logger.warning(f"User creation refused, {user.email} already exists")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists"
        )

    db_user = User(
        name=user.name,
        email=user.email,
        password=get_password_hash(user.password),
        role=user.role
    )
    try:
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating user: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user"
        )

    logger.info(f"User {db_user.id} ({db_user.role.value}) created by user {identity.id}")
    return db_user

@router.get("", response_model=Union[UserSchema, List[UserSchema]])
async def get_users(
    email: Optional[EmailStr] = None,
    role: Optional[str] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity)
):
    """
    List users, newest first
    - email: return only that user (404 when unknown)
    - role: filter by role, case-insensitive
    """
    if email:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )
        return user

    query = db.query(User)
    if role:
        try:
            query = query.filter(User.role == Role(normalize_role(role)))
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown role: {role}"
            )
    return query.order_by(User.created_at.desc()).all()
