from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin import auth as firebase_auth
from firebase_admin.exceptions import FirebaseError
from sqlalchemy.orm import Session
import logging

from app.core.settings import settings
from app.db import get_db
from app.exceptions import ForbiddenException, UnauthorizedException
from app.models.user import User, UserRole
from app.utils.datetime import utc_now

logger = logging.getLogger("app.auth")

security = HTTPBearer(auto_error=False)

# Test tokens for development (persisted so FK constraints pass)
MOCK_USERS = {
    "mock-therapist-token": ("therapist-1", "Therapist One", "therapist@example.com", UserRole.therapist),
    "mock-other-therapist-token": ("therapist-2", "Therapist Two", "therapist2@example.com", UserRole.therapist),
    "mock-admin-token": ("admin-1", "Admin One", "admin@example.com", UserRole.admin),
}


def _mock_user(db: Session, token: str) -> User:
    uid, name, email, role = MOCK_USERS[token]
    user = db.query(User).filter(User.id == uid).first()
    if not user:
        user = User(id=uid, name=name, email=email, role=role, created_at=utc_now())
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("Authorization header missing or invalid")
    token = credentials.credentials

    if token in MOCK_USERS and not settings.is_production:
        return _mock_user(db, token)

    try:
        decoded_token = firebase_auth.verify_id_token(token)
        user_id = decoded_token["uid"]
        email = decoded_token["email"]
    except (FirebaseError, ValueError, KeyError) as e:
        logger.info(f"Rejected bearer token: {type(e).__name__}")
        raise UnauthorizedException("Invalid or expired Firebase token")

    full_name = decoded_token.get("name")
    if not full_name:
        given = decoded_token.get("given_name", "")
        family = decoded_token.get("family_name", "")
        full_name = (given + " " + family).strip() or None

    # First try to find user by Firebase UID
    user = db.query(User).filter(User.id == user_id).first()
    if user:
        return user

    # Existing account created before the Firebase UID was known
    user = db.query(User).filter(User.email == email).first()
    if user:
        user.id = user_id
        db.commit()
        return user

    role = UserRole.admin if decoded_token.get("role") == "admin" else UserRole.therapist
    user = User(
        id=user_id,
        email=email,
        name=full_name if full_name else email.split('@')[0].title(),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def require_therapist(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.therapist:
        raise ForbiddenException("Therapist access required")
    return user
