# talenthunt/routes/tickets.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from talenthunt.auth.dependencies import get_current_admin
from talenthunt.database import get_db
from talenthunt.models.user import User
from talenthunt.schemas.ticket import TicketCreate, TicketPurchaseRequest
from talenthunt.services import ticket_service
from talenthunt.services.payment_intents import intent_response

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.get("/")
def list_tickets(db: Session = Depends(get_db)):
    return {"status": "success", "data": [t.to_dict() for t in ticket_service.list_tickets(db)]}


@router.post("/", status_code=201)
def create_ticket(payload: TicketCreate, db: Session = Depends(get_db), admin: User = Depends(get_current_admin)):
    ticket = ticket_service.create_ticket_type(
        db,
        payload.ticket_type,
        payload.name,
        payload.price,
        description=payload.description,
        available_quantity=payload.available_quantity,
        is_active=payload.is_active,
    )
    return {"status": "success", "message": "Ticket type created", "data": ticket.to_dict()}


@router.post("/purchase", status_code=201)
def purchase_tickets(payload: TicketPurchaseRequest, db: Session = Depends(get_db)):
    purchase, transaction = ticket_service.purchase_tickets(
        db,
        payload.first_name,
        payload.last_name,
        payload.email,
        payload.phone,
        [(line.ticket_type, line.quantity) for line in payload.tickets],
    )
    return {
        "status": "success",
        "message": "Tickets reserved, awaiting payment",
        "data": {"purchase": purchase.to_dict(), "payment": intent_response(transaction)},
    }


@router.get("/purchase/{reference}")
def get_purchase(reference: str, db: Session = Depends(get_db)):
    return {"status": "success", "data": ticket_service.get_purchase(db, reference).to_dict()}
