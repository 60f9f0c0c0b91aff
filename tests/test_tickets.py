import asyncio

import pytest

from talenthunt.exceptions import TicketsUnavailable, ValidationError
from talenthunt.models.ticket import Ticket
from talenthunt.services import payment_service, ticket_service
from talenthunt.services.gateway_normalizer import Failure, Success


@pytest.fixture
def vip(db):
    return ticket_service.create_ticket_type(db, "vip", "VIP", 25000, available_quantity=3)


def buy(db, *lines):
    return ticket_service.purchase_tickets(db, "Efe", "Osa", "Efe@Example.com", None, list(lines))


def test_purchase_reserves_inventory(db, vip):
    purchase, transaction = buy(db, ("vip", 2))
    assert purchase.total_amount == 50000
    assert transaction.amount == 50000
    assert transaction.reference == purchase.payment_reference
    assert purchase.buyer_email == "efe@example.com"

    db.refresh(vip)
    assert vip.sold_quantity == 2
    assert vip.remaining == 1


def test_oversell_is_refused(db, vip):
    buy(db, ("vip", 2))
    with pytest.raises(TicketsUnavailable):
        buy(db, ("vip", 2))
    db.refresh(vip)
    assert vip.sold_quantity == 2


def test_unknown_or_inactive_type(db, vip):
    with pytest.raises(ValidationError):
        buy(db, ("regular", 1))
    ticket_service.create_ticket_type(db, "regular", "Regular", 5000, is_active=False)
    with pytest.raises(ValidationError):
        buy(db, ("regular", 1))


def test_lines_of_the_same_type_are_merged(db, vip):
    purchase, _ = buy(db, ("vip", 1), ("vip", 1))
    assert purchase.items == [{"ticket_type": "vip", "quantity": 2, "unit_price": 25000, "total_price": 50000}]


def test_settle_mints_one_number_per_ticket(db, vip):
    purchase, transaction = buy(db, ("vip", 2))
    result = payment_service.apply(db, transaction.reference, Success(reference=transaction.reference, amount=50000))
    assert result.applied is True

    db.refresh(purchase)
    assert purchase.payment_status == "completed"
    assert len(purchase.ticket_numbers) == 2
    assert all(number.startswith("ETH-VIP-") for number in purchase.ticket_numbers)
    assert len(set(purchase.ticket_numbers)) == 2


def test_failed_payment_releases_inventory(db, vip):
    _, transaction = buy(db, ("vip", 3))
    payment_service.apply(db, transaction.reference, Failure(reference=transaction.reference, reason="Declined"))
    db.refresh(vip)
    assert vip.sold_quantity == 0

    # replaying the failure must not release twice
    payment_service.apply(db, transaction.reference, Failure(reference=transaction.reference, reason="Declined"))
    db.refresh(vip)
    assert vip.sold_quantity == 0


def test_refund_releases_inventory(db, vip):
    purchase, transaction = buy(db, ("vip", 1))
    payment_service.apply(db, transaction.reference, Success(reference=transaction.reference, amount=None))
    payment_service.refund(db, transaction.reference, "event cancelled")

    db.refresh(purchase)
    db.refresh(vip)
    assert purchase.payment_status == "refunded"
    assert vip.sold_quantity == 0


def test_deliver_tickets_once(db, vip, dispatcher):
    purchase, transaction = buy(db, ("vip", 1))
    assert asyncio.run(ticket_service.deliver_tickets(db, purchase, dispatcher)) is False

    payment_service.apply(db, transaction.reference, Success(reference=transaction.reference, amount=25000))
    db.refresh(purchase)
    assert asyncio.run(ticket_service.deliver_tickets(db, purchase, dispatcher)) is True
    assert dispatcher.sent[-1]["tickets"] == purchase.ticket_numbers
    assert purchase.ticket_sent is True

    assert asyncio.run(ticket_service.deliver_tickets(db, purchase, dispatcher)) is False
    assert len([m for m in dispatcher.sent if m["kind"] == "tickets"]) == 1


def test_unlimited_inventory(db):
    ticket_service.create_ticket_type(db, "regular", "Regular", 5000)
    buy(db, ("regular", 50))
    buy(db, ("regular", 50))
    assert db.query(Ticket).filter(Ticket.ticket_type == "regular").one().sold_quantity == 100
