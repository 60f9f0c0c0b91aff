# talenthunt/models/user.py
from sqlalchemy import Column, String, Boolean, DateTime
import uuid

from talenthunt.database import Base
from talenthunt.utils.dates import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)

    is_email_verified = Column(Boolean, default=False, nullable=False)
    is_password_set = Column(Boolean, default=False, nullable=False)
    role = Column(String(20), default="user", nullable=False)  # user, sponsor, admin
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_login = Column(DateTime, nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self):
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "role": self.role,
            "is_email_verified": self.is_email_verified,
            "is_password_set": self.is_password_set,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.email} role={self.role}>"
