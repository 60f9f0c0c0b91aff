# talenthunt/services/identity_service.py
"""Account lifecycle: register, verify email, set/reset password, login."""
from typing import Optional, Tuple
import logging

from sqlalchemy.orm import Session

from talenthunt.exceptions import AuthenticationError, ConflictError, InvalidCode, NotFoundError, ValidationError
from talenthunt.models.bulk_registration import BulkParticipant
from talenthunt.models.user import User
from talenthunt.models.verification_code import EMAIL_VERIFICATION, PASSWORD_RESET
from talenthunt.services import code_issuer
from talenthunt.services.code_issuer import IssuedCode, normalize_email
from talenthunt.utils.dates import utcnow
from talenthunt.utils.hash import hash_password, verify_password
from talenthunt.utils.token import create_access_token

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account with this email exists, you will receive a password reset OTP."


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def issue_token(user: User) -> str:
    return create_access_token({"sub": user.id, "email": user.email, "role": user.role})


def register(db: Session, first_name: str, last_name: str, email: str) -> Tuple[User, IssuedCode]:
    """
    Start an account. An unverified account with the same email is replaced
    (its codes go with it); a verified one is a conflict.
    """
    email = normalize_email(email)
    existing = get_user_by_email(db, email)

    if existing is not None:
        if existing.is_email_verified:
            raise ConflictError("User with this email already exists")
        logger.info(f"♻️ Superseding unverified account for {email}")
        code_issuer.delete_codes(db, email)
        db.query(BulkParticipant).filter(BulkParticipant.participant_user_id == existing.id).update(
            {"participant_user_id": None}, synchronize_session=False
        )
        db.delete(existing)
        db.flush()

    user = User(first_name=first_name.strip(), last_name=last_name.strip(), email=email)
    db.add(user)
    db.flush()

    # Invitations created before the account was replaced follow the new id
    db.query(BulkParticipant).filter(BulkParticipant.email == email).update(
        {"participant_user_id": user.id}, synchronize_session=False
    )
    db.commit()
    db.refresh(user)

    issued = code_issuer.issue(db, email, EMAIL_VERIFICATION)
    return user, issued


def create_invited_user(db: Session, first_name: str, last_name: str, email: str) -> User:
    """Unverified placeholder account for a bulk participant; caller commits."""
    user = User(first_name=first_name.strip(), last_name=last_name.strip(), email=normalize_email(email))
    db.add(user)
    db.flush()
    return user


def verify_email(db: Session, email: str, code: str) -> User:
    user = get_user_by_email(db, email)
    if user is None:
        raise InvalidCode()

    check = code_issuer.consume(db, email, code, EMAIL_VERIFICATION)
    if not check.valid:
        raise InvalidCode(check.message)

    user.is_email_verified = True
    db.commit()
    db.refresh(user)
    logger.info(f"✅ Email verified for {user.email}")
    return user


def set_password(db: Session, email: str, password: str) -> Tuple[User, str]:
    user = get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("User not found")
    if not user.is_email_verified:
        raise ValidationError("Email verification required before setting password")
    if user.is_password_set:
        raise ConflictError("Password already set. Use password reset instead")

    user.password_hash = hash_password(password)
    user.is_password_set = True
    user.last_login = utcnow()
    db.commit()
    db.refresh(user)
    return user, issue_token(user)


def login(db: Session, email: str, password: str) -> Tuple[User, str]:
    user = get_user_by_email(db, email)
    if user is None or not user.is_active:
        raise AuthenticationError("Invalid email or password")
    if not user.is_email_verified:
        raise AuthenticationError("Please verify your email before logging in")
    if not user.is_password_set:
        raise AuthenticationError("Please complete your registration by setting a password")
    if not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid email or password")

    user.last_login = utcnow()
    db.commit()
    return user, issue_token(user)


def forgot_password(db: Session, email: str) -> Optional[IssuedCode]:
    """Returns a code only for verified accounts; callers always answer generically."""
    user = get_user_by_email(db, email)
    if user is None or not user.is_email_verified:
        return None
    return code_issuer.issue(db, user.email, PASSWORD_RESET)


def verify_reset_code(db: Session, email: str, code: str) -> None:
    check = code_issuer.peek(db, email, code, PASSWORD_RESET)
    if not check.valid:
        raise InvalidCode(check.message)


def reset_password(db: Session, email: str, code: str, new_password: str) -> User:
    user = get_user_by_email(db, email)
    if user is None:
        raise InvalidCode()

    check = code_issuer.consume(db, email, code, PASSWORD_RESET)
    if not check.valid:
        raise InvalidCode(check.message)

    user.password_hash = hash_password(new_password)
    user.is_password_set = True
    db.commit()
    db.refresh(user)
    logger.info(f"🔑 Password reset for {user.email}")
    return user


def resend_code(db: Session, email: str) -> Tuple[User, IssuedCode]:
    """New code for whichever purpose fits the account's state."""
    user = get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("User not found")
    purpose = code_issuer.detect_purpose(user)
    return user, code_issuer.issue(db, user.email, purpose)
