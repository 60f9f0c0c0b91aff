from sqlalchemy import Column, String, Boolean, DateTime, Index
import uuid

from talenthunt.database import Base
from talenthunt.utils.dates import utcnow

EMAIL_VERIFICATION = "email_verification"
PASSWORD_RESET = "password_reset"
PURPOSES = (EMAIL_VERIFICATION, PASSWORD_RESET)


class VerificationCode(Base):
    __tablename__ = "verification_codes"
    __table_args__ = (
        Index("ix_verification_codes_lookup", "email", "purpose", "created_at"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, nullable=False)
    code = Column(String(10), nullable=False)
    purpose = Column(String, nullable=False)  # email_verification, password_reset
    used = Column(Boolean, default=False, nullable=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<VerificationCode email={self.email} purpose={self.purpose} used={self.used}>"
