import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError
from database import get_db, settings
from models import User
from schemas import Identity

logger = logging.getLogger(__name__)

# Security setup
SECRET_KEY = settings.SECRET_KEY
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
SESSION_COOKIE = "session_token"

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": user.email,
        "id": user.id,
        "role": user.role.value,
        "exp": expire,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def verify_token(token: str) -> Optional[Identity]:
    """Decode a session token; None when it is missing, expired or forged."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected session token: {e}")
        return None
    try:
        return Identity(id=payload.get("id"), email=payload.get("sub"), role=payload.get("role"))
    except ValidationError:
        logger.warning("Session token is missing identity claims")
        return None

def read_session_token(request: Request) -> Optional[str]:
    # Bearer header first, session cookie for browser navigation
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return request.cookies.get(SESSION_COOKIE)

def identify_request(request: Request) -> Optional[Identity]:
    token = read_session_token(request)
    if not token:
        return None
    return verify_token(token)

def get_identity(request: Request) -> Identity:
    """The identity the session gate attached to this request."""
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity

def get_current_user(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db)
) -> User:
    user = db.get(User, identity.id)
    if user is None:
        logger.warning(f"Session refers to missing user {identity.id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user
