# talenthunt/routes/bulk.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from talenthunt.auth.dependencies import get_current_user
from talenthunt.database import get_db
from talenthunt.models.user import User
from talenthunt.schemas.auth import EmailRequest
from talenthunt.schemas.bulk import AddParticipantRequest, CreateBulkRequest
from talenthunt.services import slot_pool_service
from talenthunt.services.email_service import EmailDispatcher, get_email_dispatcher
from talenthunt.services.payment_intents import intent_response

router = APIRouter(prefix="/bulk", tags=["Bulk Registration"])


@router.post("/", status_code=201)
def create_bulk_registration(
    payload: CreateBulkRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pool = slot_pool_service.create_pool(db, current_user, payload.total_slots)
    return {"status": "success", "message": "Bulk registration created", "data": pool.to_dict()}


@router.get("/")
def list_bulk_registrations(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"status": "success", "data": [p.to_dict() for p in slot_pool_service.list_pools(db, current_user)]}


@router.get("/participants/status")
def participant_status(email: str, db: Session = Depends(get_db)):
    participant, pool = slot_pool_service.find_participant(db, email)
    return {
        "status": "success",
        "data": {
            "participant": participant.to_dict(),
            "bulk_registration_id": pool.id,
            "bulk_registration_number": pool.bulk_registration_number,
        },
    }


@router.post("/participants/resend-invitation")
async def resend_invitation(
    payload: EmailRequest,
    db: Session = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    sent = await slot_pool_service.resend_invitation(db, payload.email, dispatcher)
    return {
        "status": "success",
        "message": "Invitation sent" if sent else "Invitation could not be delivered, try again later",
        "data": {"email_sent": sent},
    }


@router.get("/{pool_id}")
def get_bulk_registration(pool_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    pool = slot_pool_service.get_pool(db, pool_id, current_user)
    return {"status": "success", "data": pool.to_dict(include_participants=True)}


@router.post("/{pool_id}/payment/initialize", status_code=201)
def initialize_bulk_payment(pool_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    pool, transaction = slot_pool_service.initialize_pool_payment(db, pool_id, current_user)
    return {
        "status": "success",
        "message": f"Payment initialized for {pool.total_slots} slots",
        "data": intent_response(transaction),
    }


@router.post("/{pool_id}/participants", status_code=201)
async def add_participant(
    pool_id: str,
    payload: AddParticipantRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    participant, pool = await slot_pool_service.add_participant(
        db,
        pool_id,
        current_user,
        payload.first_name,
        payload.last_name,
        payload.email,
        payload.phone_no,
        dispatcher,
    )
    return {
        "status": "success",
        "message": "Participant added",
        "data": {
            "participant": participant.to_dict(),
            "available_slots": pool.available_slots,
            "pool_status": pool.status,
        },
    }
