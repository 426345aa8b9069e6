# Authentication Dependencies
# Resolves the bearer JWT issued by the identity service into a User / Actor

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import jwt, JWTError
from typing import Optional
from pydantic import BaseModel
import os

from database.config import get_db
from database.models import User
from auth.roles import Actor


# JWT Configuration
JWT_SECRET = os.getenv("JWT_SECRET_KEY", "your-secret-key-here")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

security = HTTPBearer()


class TokenData(BaseModel):
    user_id: Optional[str] = None
    email: Optional[str] = None


def decode_access_token(token: str) -> Optional[TokenData]:
    """Decode and validate JWT token."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("user_id") or payload.get("sub")
    email = payload.get("email")
    if user_id is None and email is None:
        return None
    return TokenData(user_id=user_id, email=email)


def create_access_token(user: User) -> str:
    """Issue a token for a user. Used by tests and local tooling."""
    return jwt.encode({"sub": user.id, "email": user.email}, JWT_SECRET, algorithm=JWT_ALGORITHM)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Validate JWT token and return current user.
    This is the core authentication dependency.
    """
    token_data = decode_access_token(credentials.credentials)

    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    query = db.query(User)
    if token_data.user_id:
        user = query.filter(User.id == token_data.user_id).first()
    else:
        user = query.filter(User.email == token_data.email).first()

    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return user


async def get_current_actor(current_user: User = Depends(get_current_user)) -> Actor:
    """(actor_id, role) pair handed to the campaign facades."""
    return Actor.from_user(current_user)
