# talenthunt/models/contestant.py
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
import uuid

from talenthunt.database import Base
from talenthunt.utils.dates import utcnow

CONTESTANT_STATUSES = ("active", "inactive", "eliminated", "winner")


class Contestant(Base):
    __tablename__ = "contestants"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=True)
    registration_id = Column(String, ForeignKey("registrations.id"), unique=True, nullable=False)
    contestant_number = Column(String(20), unique=True, nullable=False)

    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    talent_category = Column(String(50), nullable=True)
    stage_name = Column(String(100), nullable=True)
    profile_photo = Column(String, nullable=True)

    status = Column(String(20), default="active", nullable=False, index=True)

    # Projection of completed votes; only the payment fan-out moves these
    total_votes = Column(Integer, default=0, nullable=False)
    total_vote_amount = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "contestant_number": self.contestant_number,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "stage_name": self.stage_name,
            "talent_category": self.talent_category,
            "profile_photo": self.profile_photo,
            "status": self.status,
            "total_votes": self.total_votes,
            "total_vote_amount": self.total_vote_amount,
        }

    def __repr__(self):
        return f"<Contestant {self.contestant_number} votes={self.total_votes}>"
