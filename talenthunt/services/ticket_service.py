# talenthunt/services/ticket_service.py
import logging
import secrets
from typing import Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from talenthunt.config import settings
from talenthunt.exceptions import ConflictError, NotFoundError, TicketsUnavailable, ValidationError
from talenthunt.models.payment import PaymentTransaction, SubjectType
from talenthunt.models.ticket import TICKET_TYPES, Ticket, TicketPurchase
from talenthunt.services.email_service import EmailDispatcher
from talenthunt.services.payment_intents import create_intent
from talenthunt.utils.dates import utcnow
from talenthunt.utils.otp import generate_reference

logger = logging.getLogger(__name__)

MAX_PER_LINE = 50


def create_ticket_type(
    db: Session,
    ticket_type: str,
    name: str,
    price: int,
    description: Optional[str] = None,
    available_quantity: Optional[int] = None,
    is_active: bool = True,
) -> Ticket:
    if ticket_type not in TICKET_TYPES:
        raise ValidationError(f"ticket_type must be one of {', '.join(TICKET_TYPES)}")
    if price <= 0:
        raise ValidationError("price must be greater than 0")

    ticket = Ticket(
        ticket_type=ticket_type,
        name=name,
        description=description,
        price=price,
        currency=settings.CURRENCY,
        available_quantity=available_quantity,
        is_active=is_active,
    )
    db.add(ticket)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"Ticket type {ticket_type} already exists")
    db.refresh(ticket)
    return ticket


def list_tickets(db: Session, active_only: bool = True) -> list:
    query = db.query(Ticket)
    if active_only:
        query = query.filter(Ticket.is_active.is_(True))
    return query.order_by(Ticket.price).all()


def get_purchase(db: Session, purchase_reference: str) -> TicketPurchase:
    purchase = (
        db.query(TicketPurchase)
        .filter(
            or_(
                TicketPurchase.purchase_reference == purchase_reference,
                TicketPurchase.payment_reference == purchase_reference,
            )
        )
        .first()
    )
    if purchase is None:
        raise NotFoundError("Ticket purchase not found")
    return purchase


def _merge_lines(lines) -> dict:
    quantities = {}
    for ticket_type, quantity in lines:
        if quantity < 1 or quantity > MAX_PER_LINE:
            raise ValidationError(f"Quantity for {ticket_type} must be between 1 and {MAX_PER_LINE}")
        quantities[ticket_type] = quantities.get(ticket_type, 0) + quantity
    if not quantities:
        raise ValidationError("At least one ticket is required")
    return quantities


def _reserve(db: Session, ticket: Ticket, quantity: int) -> bool:
    return (
        db.query(Ticket)
        .filter(
            Ticket.id == ticket.id,
            Ticket.is_active.is_(True),
            or_(
                Ticket.available_quantity.is_(None),
                Ticket.sold_quantity + quantity <= Ticket.available_quantity,
            ),
        )
        .update({"sold_quantity": Ticket.sold_quantity + quantity}, synchronize_session=False)
    ) == 1


def _release(db: Session, items: list) -> None:
    for item in items:
        db.query(Ticket).filter(Ticket.ticket_type == item["ticket_type"]).update(
            {"sold_quantity": Ticket.sold_quantity - item["quantity"]}, synchronize_session=False
        )


def purchase_tickets(
    db: Session,
    first_name: str,
    last_name: str,
    email: str,
    phone: Optional[str],
    lines,
) -> Tuple[TicketPurchase, PaymentTransaction]:
    """Reserve inventory and open a payment intent. ``lines`` is [(ticket_type, quantity)]."""
    quantities = _merge_lines(lines)

    items = []
    for ticket_type, quantity in quantities.items():
        ticket = db.query(Ticket).filter(Ticket.ticket_type == ticket_type).first()
        if ticket is None or not ticket.is_active:
            db.rollback()
            raise ValidationError(f"Ticket type {ticket_type} is not available")
        if not _reserve(db, ticket, quantity):
            db.rollback()
            raise TicketsUnavailable(f"Insufficient {ticket.name} tickets available")
        items.append({
            "ticket_type": ticket_type,
            "quantity": quantity,
            "unit_price": ticket.price,
            "total_price": ticket.price * quantity,
        })

    total = sum(item["total_price"] for item in items)
    purchase = TicketPurchase(
        purchase_reference=generate_reference("TKT"),
        buyer_first_name=first_name.strip(),
        buyer_last_name=last_name.strip(),
        buyer_email=email.strip().lower(),
        buyer_phone=phone,
        items=items,
        total_amount=total,
        currency=settings.CURRENCY,
        payment_status="pending",
        payment_reference=generate_reference("ETH_TKT"),
    )
    db.add(purchase)
    db.flush()

    transaction = create_intent(
        db,
        SubjectType.TICKET,
        purchase.id,
        total,
        reference=purchase.payment_reference,
        metadata={"type": "ticket_purchase", "purchaseReference": purchase.purchase_reference},
    )
    db.commit()
    db.refresh(purchase)
    logger.info(f"🎟️ Ticket purchase {purchase.purchase_reference} reserved ({sum(quantities.values())} tickets, ₦{total:,})")
    return purchase, transaction


# -------------------- PAYMENT FAN-OUT --------------------
def mint_ticket_numbers(items: list) -> list:
    numbers = []
    for item in items:
        for _ in range(item["quantity"]):
            numbers.append(f"ETH-{item['ticket_type'].upper()}-{secrets.token_hex(4).upper()}")
    return numbers


def settle(db: Session, purchase: TicketPurchase) -> bool:
    now = utcnow()
    settled = (
        db.query(TicketPurchase)
        .filter(TicketPurchase.id == purchase.id, TicketPurchase.payment_status.in_(("pending", "processing")))
        .update(
            {
                "payment_status": "completed",
                "paid_at": now,
                "ticket_numbers": mint_ticket_numbers(purchase.items),
                "updated_at": now,
            },
            synchronize_session=False,
        )
    )
    db.flush()
    db.refresh(purchase)
    return settled == 1


def mark_failed(db: Session, purchase: TicketPurchase) -> None:
    failed = (
        db.query(TicketPurchase)
        .filter(TicketPurchase.id == purchase.id, TicketPurchase.payment_status.in_(("pending", "processing")))
        .update({"payment_status": "failed", "updated_at": utcnow()}, synchronize_session=False)
    )
    if failed == 1:
        _release(db, purchase.items)
        logger.info(f"Released inventory for failed purchase {purchase.purchase_reference}")
    db.flush()


def refund(db: Session, purchase: TicketPurchase) -> bool:
    refunded = (
        db.query(TicketPurchase)
        .filter(TicketPurchase.id == purchase.id, TicketPurchase.payment_status == "completed")
        .update({"payment_status": "refunded", "updated_at": utcnow()}, synchronize_session=False)
    )
    if refunded == 1:
        _release(db, purchase.items)
    db.flush()
    return refunded == 1


async def deliver_tickets(db: Session, purchase: TicketPurchase, dispatcher: EmailDispatcher) -> bool:
    if purchase.payment_status != "completed" or purchase.ticket_sent or not purchase.ticket_numbers:
        return False
    sent = await dispatcher.send_tickets(
        purchase.buyer_email,
        purchase.buyer_first_name,
        purchase.purchase_reference,
        purchase.ticket_numbers,
        purchase.items,
    )
    if sent:
        purchase.ticket_sent = True
        purchase.ticket_sent_at = utcnow()
        db.commit()
    return sent
