# talenthunt/auth/dependencies.py
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
import logging

from talenthunt.database import get_db
from talenthunt.exceptions import AuthenticationError, PermissionDenied
from talenthunt.models.user import User
from talenthunt.utils.token import decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    payload = decode_access_token(credentials.credentials)
    if not payload or payload.get("type") != "access" or not payload.get("sub"):
        raise AuthenticationError("Invalid token", headers={"WWW-Authenticate": "Bearer"})

    user = db.query(User).filter(User.id == payload["sub"]).first()
    if user is None or not user.is_active:
        logger.warning(f"🔑 Token for unknown or inactive user {payload.get('sub')}")
        raise AuthenticationError("User not found or inactive", headers={"WWW-Authenticate": "Bearer"})
    return user


def get_current_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        raise PermissionDenied("Admin access required")
    return user
