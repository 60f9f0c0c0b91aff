# talenthunt/services/code_issuer.py
"""
One-time verification codes.

Codes are never overwritten: ``issue`` always adds a row and verification
targets the newest unused, unexpired row for (email, code, purpose). Marking a
code used is a conditional UPDATE on ``used = false`` so that of two requests
racing on the same code only one sees a rowcount of 1.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from talenthunt.config import settings
from talenthunt.models.user import User
from talenthunt.models.verification_code import (
    VerificationCode,
    EMAIL_VERIFICATION,
    PASSWORD_RESET,
    PURPOSES,
)
from talenthunt.utils.dates import utcnow
from talenthunt.utils.otp import generate_otp

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Invalid or expired OTP"


@dataclass
class IssuedCode:
    code: str
    expires_at: datetime


@dataclass
class CodeCheck:
    valid: bool
    message: str


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_purpose(purpose: str) -> str:
    if purpose not in PURPOSES:
        raise ValueError(f"Unknown verification purpose: {purpose}")
    return purpose


def issue(db: Session, email: str, purpose: str, ttl_minutes: Optional[int] = None) -> IssuedCode:
    """Store a fresh code. Earlier unused codes stay valid until they expire."""
    _check_purpose(purpose)
    ttl = ttl_minutes if ttl_minutes is not None else settings.OTP_EXPIRE_MINUTES
    now = utcnow()

    record = VerificationCode(
        email=normalize_email(email),
        code=generate_otp(),
        purpose=purpose,
        used=False,
        created_at=now,
        expires_at=now + timedelta(minutes=ttl),
    )
    db.add(record)
    db.commit()

    logger.info(f"[OTP] Issued {purpose} code for {record.email}, expires {record.expires_at.isoformat()}")
    return IssuedCode(code=record.code, expires_at=record.expires_at)


def _find_valid(db: Session, email: str, code: str, purpose: str) -> Optional[VerificationCode]:
    return (
        db.query(VerificationCode)
        .filter(
            VerificationCode.email == normalize_email(email),
            VerificationCode.code == str(code).strip(),
            VerificationCode.purpose == purpose,
            VerificationCode.used.is_(False),
            VerificationCode.expires_at > utcnow(),
        )
        .order_by(VerificationCode.created_at.desc())
        .first()
    )


def peek(db: Session, email: str, code: str, purpose: str) -> CodeCheck:
    """Same validity check as ``consume`` but leaves the code unused."""
    _check_purpose(purpose)
    if _find_valid(db, email, code, purpose) is None:
        return CodeCheck(valid=False, message=GENERIC_FAILURE)
    return CodeCheck(valid=True, message="OTP is valid")


def consume(db: Session, email: str, code: str, purpose: str) -> CodeCheck:
    """Burn the newest matching code. Only one concurrent caller can win."""
    _check_purpose(purpose)
    record = _find_valid(db, email, code, purpose)
    if record is None:
        logger.info(f"[OTP] Rejected {purpose} code for {normalize_email(email)}")
        return CodeCheck(valid=False, message=GENERIC_FAILURE)

    now = utcnow()
    won = (
        db.query(VerificationCode)
        .filter(VerificationCode.id == record.id, VerificationCode.used.is_(False))
        .update({"used": True, "used_at": now}, synchronize_session=False)
    )
    db.commit()

    if won != 1:
        logger.info(f"[OTP] Lost race for {purpose} code {record.id}")
        return CodeCheck(valid=False, message=GENERIC_FAILURE)

    db.expire(record)
    logger.info(f"[OTP] ✅ Consumed {purpose} code for {record.email}")
    return CodeCheck(valid=True, message="OTP verified successfully")


def detect_purpose(user: User) -> str:
    return PASSWORD_RESET if user.is_email_verified else EMAIL_VERIFICATION


def delete_codes(db: Session, email: str) -> int:
    """Drop every code for an email (used when a stale identity is replaced)."""
    return (
        db.query(VerificationCode)
        .filter(VerificationCode.email == normalize_email(email))
        .delete(synchronize_session=False)
    )


def purge_expired(db: Session, before: Optional[datetime] = None) -> int:
    cutoff = before or utcnow()
    removed = (
        db.query(VerificationCode)
        .filter(or_(VerificationCode.expires_at <= cutoff, VerificationCode.used.is_(True)))
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info(f"[OTP] Purged {removed} expired/used codes")
    return removed
