# talenthunt/models/registration.py
from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid

from talenthunt.database import Base
from talenthunt.models.types import JSONType
from talenthunt.utils.dates import utcnow

# Wizard steps
STEP_PERSONAL = 1
STEP_TALENT = 2
STEP_GROUP = 3
STEP_GUARDIAN = 4
STEP_MEDIA = 5
STEP_AUDITION = 6
STEP_TERMS = 7
STEP_PAYMENT = 8

# step number -> column holding that step's sub-document
STEP_FIELDS = {
    STEP_PERSONAL: "personal_info",
    STEP_TALENT: "talent_info",
    STEP_GROUP: "group_info",
    STEP_GUARDIAN: "guardian_info",
    STEP_MEDIA: "media_info",
    STEP_AUDITION: "audition_info",
    STEP_TERMS: "terms_conditions",
}

REQUIRED_STEPS = {
    "individual": frozenset({1, 2, 4, 5, 6, 7, 8}),
    "group": frozenset({1, 2, 3, 5, 6, 7, 8}),
    "bulk": frozenset({1, 2, 4, 5, 6, 7, 8}),
}

REGISTRATION_TYPES = tuple(REQUIRED_STEPS)
STATUSES = ("draft", "submitted", "under_review", "approved", "rejected", "qualified", "disqualified")
ACTIVE_STATUSES = ("draft", "submitted", "under_review", "approved")
PAYMENT_STATUSES = ("pending", "processing", "completed", "failed", "refunded")


class Registration(Base):
    __tablename__ = "registrations"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    registration_number = Column(String(30), unique=True, nullable=False)
    registration_type = Column(String(20), nullable=False)  # individual, group, bulk
    bulk_registration_id = Column(String, ForeignKey("bulk_registrations.id"), nullable=True)

    status = Column(String(20), default="draft", nullable=False, index=True)
    current_step = Column(Integer, default=0, nullable=False)

    # Step sub-documents, updated independently of each other
    personal_info = Column(JSONType, nullable=True)
    talent_info = Column(JSONType, nullable=True)
    group_info = Column(JSONType, nullable=True)
    guardian_info = Column(JSONType, nullable=True)
    media_info = Column(JSONType, nullable=True)
    audition_info = Column(JSONType, nullable=True)
    terms_conditions = Column(JSONType, nullable=True)

    # Payment
    payment_amount = Column(Integer, nullable=False)
    payment_currency = Column(String(3), default="NGN", nullable=False)
    payment_status = Column(String(20), default="pending", nullable=False, index=True)
    payment_reference = Column(String, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    submitted_at = Column(DateTime, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    review_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    steps = relationship(
        "RegistrationStep",
        cascade="all, delete-orphan",
        order_by="RegistrationStep.step_number",
        lazy="selectin",
    )

    @property
    def completed_steps(self) -> list[int]:
        return sorted(step.step_number for step in self.steps)

    @property
    def required_steps(self) -> frozenset:
        return REQUIRED_STEPS[self.registration_type]

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "registration_number": self.registration_number,
            "registration_type": self.registration_type,
            "status": self.status,
            "current_step": self.current_step,
            "completed_steps": self.completed_steps,
            "bulk_registration_id": self.bulk_registration_id,
            "payment": {
                "amount": self.payment_amount,
                "currency": self.payment_currency,
                "status": self.payment_status,
                "reference": self.payment_reference,
                "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            },
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "review_notes": self.review_notes,
        }
        for field in STEP_FIELDS.values():
            data[field] = getattr(self, field)
        return data

    def __repr__(self):
        return f"<Registration {self.registration_number} {self.registration_type} status={self.status}>"


class RegistrationStep(Base):
    """One row per completed wizard step; the unique key gives set semantics."""

    __tablename__ = "registration_steps"
    __table_args__ = (
        UniqueConstraint("registration_id", "step_number", name="uq_registration_step"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    registration_id = Column(String, ForeignKey("registrations.id", ondelete="CASCADE"), nullable=False, index=True)
    step_number = Column(Integer, nullable=False)
    completed_at = Column(DateTime, default=utcnow)
