# talenthunt/routes/contestants.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from talenthunt.auth.dependencies import get_current_admin
from talenthunt.database import get_db
from talenthunt.models.user import User
from talenthunt.schemas.vote import VoteIntentRequest
from talenthunt.services import vote_service
from talenthunt.services.payment_intents import intent_response

router = APIRouter(prefix="/contestants", tags=["Contestants & Voting"])


@router.get("/")
def list_contestants(status: Optional[str] = "active", db: Session = Depends(get_db)):
    return {"status": "success", "data": [c.to_dict() for c in vote_service.list_contestants(db, status)]}


@router.get("/tally")
def vote_tally(db: Session = Depends(get_db)):
    return {"status": "success", "data": vote_service.vote_tally(db)}


@router.post("/promote/{registration_id}", status_code=201)
def promote_registration(registration_id: str, db: Session = Depends(get_db), admin: User = Depends(get_current_admin)):
    contestant = vote_service.promote_to_contestant(db, registration_id)
    return {"status": "success", "message": f"Contestant {contestant.contestant_number} created", "data": contestant.to_dict()}


@router.get("/{contestant_id}")
def get_contestant(contestant_id: str, db: Session = Depends(get_db)):
    return {"status": "success", "data": vote_service.get_contestant(db, contestant_id).to_dict()}


@router.get("/{contestant_id}/votes")
def contestant_votes(
    contestant_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    payment_status: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return {"status": "success", "data": vote_service.get_contestant_votes(db, contestant_id, page, limit, payment_status)}


@router.post("/{contestant_id}/votes", status_code=201)
def create_vote_intent(contestant_id: str, payload: VoteIntentRequest, db: Session = Depends(get_db)):
    vote, transaction = vote_service.record_vote_intent(
        db,
        contestant_id,
        payload.number_of_votes,
        payload.amount_paid,
        reference=payload.payment_reference,
        voter_info=payload.voter_info.model_dump(mode="json", exclude_none=True) if payload.voter_info else None,
    )
    return {
        "status": "success",
        "message": "Vote recorded, awaiting payment",
        "data": {"vote": vote.to_dict(), "payment": intent_response(transaction)},
    }


@router.get("/{contestant_id}/audit")
def audit_totals(contestant_id: str, db: Session = Depends(get_db), admin: User = Depends(get_current_admin)):
    return {"status": "success", "data": vote_service.audit_contestant_totals(db, contestant_id)}
