# talenthunt/models/vote.py
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, CheckConstraint
import uuid

from talenthunt.database import Base
from talenthunt.models.types import JSONType
from talenthunt.utils.dates import utcnow


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (
        CheckConstraint("number_of_votes >= 1", name="ck_vote_count_positive"),
        CheckConstraint("amount_paid >= 0", name="ck_vote_amount_non_negative"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    contestant_id = Column(String, ForeignKey("contestants.id"), nullable=False, index=True)
    contestant_email = Column(String(255), nullable=True)
    number_of_votes = Column(Integer, nullable=False)
    amount_paid = Column(Integer, nullable=False)
    currency = Column(String(3), default="NGN", nullable=False)
    voter_info = Column(JSONType, nullable=True)

    payment_reference = Column(String, unique=True, index=True, nullable=False)
    payment_status = Column(String(20), default="pending", nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "contestant_id": self.contestant_id,
            "number_of_votes": self.number_of_votes,
            "amount_paid": self.amount_paid,
            "currency": self.currency,
            "voter_info": self.voter_info,
            "payment_reference": self.payment_reference,
            "payment_status": self.payment_status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Vote {self.payment_reference} x{self.number_of_votes} {self.payment_status}>"
