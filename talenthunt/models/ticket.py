# talenthunt/models/ticket.py
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text
import uuid

from talenthunt.database import Base
from talenthunt.models.types import JSONType
from talenthunt.utils.dates import utcnow

TICKET_TYPES = ("regular", "vip", "table_of_5", "table_of_10")


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    ticket_type = Column(String(20), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Integer, nullable=False)
    currency = Column(String(3), default="NGN", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    available_quantity = Column(Integer, nullable=True)  # None means unlimited
    sold_quantity = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def remaining(self):
        if self.available_quantity is None:
            return None
        return max(self.available_quantity - self.sold_quantity, 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ticket_type": self.ticket_type,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "currency": self.currency,
            "is_active": self.is_active,
            "available_quantity": self.available_quantity,
            "sold_quantity": self.sold_quantity,
            "remaining": self.remaining,
        }


class TicketPurchase(Base):
    __tablename__ = "ticket_purchases"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    purchase_reference = Column(String, unique=True, nullable=False)

    buyer_first_name = Column(String(50), nullable=False)
    buyer_last_name = Column(String(50), nullable=False)
    buyer_email = Column(String(255), nullable=False, index=True)
    buyer_phone = Column(String(20), nullable=True)

    # [{ticket_type, quantity, unit_price, total_price}]
    items = Column(JSONType, nullable=False)
    total_amount = Column(Integer, nullable=False)
    currency = Column(String(3), default="NGN", nullable=False)

    payment_status = Column(String(20), default="pending", nullable=False, index=True)
    payment_reference = Column(String, unique=True, index=True, nullable=False)
    paid_at = Column(DateTime, nullable=True)

    ticket_numbers = Column(JSONType, nullable=True)
    ticket_sent = Column(Boolean, default=False, nullable=False)
    ticket_sent_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_reference": self.purchase_reference,
            "buyer": {
                "first_name": self.buyer_first_name,
                "last_name": self.buyer_last_name,
                "email": self.buyer_email,
                "phone": self.buyer_phone,
            },
            "items": self.items,
            "total_amount": self.total_amount,
            "currency": self.currency,
            "payment_status": self.payment_status,
            "payment_reference": self.payment_reference,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "ticket_numbers": self.ticket_numbers or [],
            "ticket_sent": self.ticket_sent,
        }
