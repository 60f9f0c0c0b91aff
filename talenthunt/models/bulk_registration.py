# talenthunt/models/bulk_registration.py
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
import uuid

from talenthunt.database import Base
from talenthunt.utils.dates import utcnow

POOL_STATUSES = ("draft", "payment_pending", "active", "completed", "expired")
INVITATION_STATUSES = ("pending", "sent", "registered", "completed")


class BulkRegistration(Base):
    __tablename__ = "bulk_registrations"
    __table_args__ = (
        CheckConstraint("used_slots >= 0 AND used_slots <= total_slots", name="ck_bulk_slots_in_range"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    bulk_registration_number = Column(String(30), unique=True, nullable=False)

    total_slots = Column(Integer, nullable=False)
    used_slots = Column(Integer, default=0, nullable=False)
    price_per_slot = Column(Integer, nullable=False)
    total_amount = Column(Integer, nullable=False)
    currency = Column(String(3), default="NGN", nullable=False)

    payment_status = Column(String(20), default="pending", nullable=False)
    payment_reference = Column(String, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    status = Column(String(20), default="draft", nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    participants = relationship(
        "BulkParticipant",
        back_populates="bulk_registration",
        cascade="all, delete-orphan",
        order_by="BulkParticipant.added_at",
    )

    @property
    def available_slots(self) -> int:
        return max(self.total_slots - self.used_slots, 0)

    def to_dict(self, include_participants: bool = False) -> dict:
        data = {
            "id": self.id,
            "bulk_registration_number": self.bulk_registration_number,
            "total_slots": self.total_slots,
            "used_slots": self.used_slots,
            "available_slots": self.available_slots,
            "price_per_slot": self.price_per_slot,
            "total_amount": self.total_amount,
            "currency": self.currency,
            "status": self.status,
            "payment": {
                "status": self.payment_status,
                "reference": self.payment_reference,
                "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            },
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_participants:
            data["participants"] = [p.to_dict() for p in self.participants]
        return data

    def __repr__(self):
        return f"<BulkRegistration {self.bulk_registration_number} {self.used_slots}/{self.total_slots} {self.status}>"


class BulkParticipant(Base):
    __tablename__ = "bulk_participants"
    __table_args__ = (
        UniqueConstraint("bulk_registration_id", "email", name="uq_bulk_participant_email"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    bulk_registration_id = Column(
        String, ForeignKey("bulk_registrations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone_no = Column(String(20), nullable=True)

    participant_user_id = Column(String, ForeignKey("users.id"), nullable=True)
    registration_id = Column(String, nullable=True)

    invitation_status = Column(String(20), default="pending", nullable=False)
    invitation_sent_at = Column(DateTime, nullable=True)
    registered_at = Column(DateTime, nullable=True)
    added_at = Column(DateTime, default=utcnow)

    bulk_registration = relationship("BulkRegistration", back_populates="participants")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone_no": self.phone_no,
            "participant_user_id": self.participant_user_id,
            "registration_id": self.registration_id,
            "invitation_status": self.invitation_status,
            "invitation_sent_at": self.invitation_sent_at.isoformat() if self.invitation_sent_at else None,
            "registered_at": self.registered_at.isoformat() if self.registered_at else None,
            "added_at": self.added_at.isoformat() if self.added_at else None,
        }
