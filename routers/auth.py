import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from database import get_db, settings
from models import Role, User
from schemas import Identity, Message, ProfileResponse, RegisterResponse, Token, UserLogin, UserSignup
from dependencies import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    SESSION_COOKIE,
    create_access_token,
    get_identity,
    get_password_hash,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_ROLE = Role.VIEWER

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(user: UserSignup, db: Session = Depends(get_db)):
    # Check if user already exists
    if db.query(User).filter(User.email == user.email).first():
        logger.warning(f"Registration refused, {user.email} already registered")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists"
        )

    db_user = User(
        name=user.name,
        email=user.email,
        password=get_password_hash(user.password),
        role=DEFAULT_ROLE
    )
    try:
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Registration error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error"
        )

    logger.info(f"User {db_user.id} registered")
    return {"message": "User registered successfully", "user": db_user}

@router.post("/auth/login", response_model=Token)
async def login(user_credentials: UserLogin, response: Response, db: Session = Depends(get_db)):
    """Check credentials and open a session (bearer token plus http-only cookie)"""
    user = db.query(User).filter(User.email == user_credentials.email).first()

    if not user or not verify_password(user_credentials.password, user.password):
        logger.warning(f"Failed login for {user_credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(user)
    response.set_cookie(
        SESSION_COOKIE,
        access_token,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
    )
    logger.info(f"User {user.id} logged in")
    return {"access_token": access_token, "token_type": "bearer", "user": user}

@router.post("/auth/logout", response_model=Message)
async def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE)
    return {"message": "Logged out"}

@router.get("/profile", response_model=ProfileResponse)
async def read_profile(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db)
):
    """
    Get the logged-in user's profile, looked up by the session's email
    """
    user = db.query(User).filter(User.email == identity.email).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return {"user": user}
