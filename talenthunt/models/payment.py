# talenthunt/models/payment.py
from sqlalchemy import Column, String, Integer, DateTime, Text
import enum
import uuid

from talenthunt.database import Base
from talenthunt.models.types import JSONType
from talenthunt.utils.dates import utcnow


class SubjectType(str, enum.Enum):
    """What a payment reference settles."""

    REGISTRATION = "registration"
    BULK = "bulk"
    VOTE = "vote"
    TICKET = "ticket"


INITIATED = "initiated"
PENDING = "pending"
SUCCESSFUL = "successful"
FAILED = "failed"
CANCELLED = "cancelled"
REFUNDED = "refunded"

OPEN_STATUSES = (INITIATED, PENDING)
TERMINAL_STATUSES = (SUCCESSFUL, FAILED, CANCELLED, REFUNDED)


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    reference = Column(String, unique=True, index=True, nullable=False)
    amount = Column(Integer, nullable=False)  # whole Naira
    currency = Column(String(3), default="NGN", nullable=False)
    status = Column(String(20), default=INITIATED, nullable=False, index=True)

    subject_type = Column(String(20), nullable=False)
    subject_id = Column(String, nullable=False, index=True)

    gateway_reference = Column(String, nullable=True)
    payment_method = Column(String(50), nullable=True)
    gateway_response = Column(JSONType, nullable=True)
    payment_metadata = Column(JSONType, nullable=True)
    failure_reason = Column(Text, nullable=True)

    processed_at = Column(DateTime, nullable=True)
    refunded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self):
        return f"<PaymentTransaction {self.reference}: {self.subject_type} - ₦{self.amount} {self.status}>"

    def to_dict(self, include_internal=False):
        """Convert to dictionary, optionally including the raw gateway payload"""
        data = {
            "id": self.id,
            "reference": self.reference,
            "amount": self.amount,
            "amount_display": f"₦{self.amount:,}",
            "currency": self.currency,
            "status": self.status,
            "subject_type": self.subject_type,
            "subject_id": self.subject_id,
            "gateway_reference": self.gateway_reference,
            "payment_method": self.payment_method,
            "failure_reason": self.failure_reason,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
            "refunded_at": self.refunded_at.isoformat() if self.refunded_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

        if include_internal:
            data.update({
                "gateway_response": self.gateway_response,
                "payment_metadata": self.payment_metadata,
            })

        return data
