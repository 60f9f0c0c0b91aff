# talenthunt/services/vote_service.py
"""
Paid votes and the contestant roster.

A ``Vote`` row is written at intent time with ``payment_status='pending'``.
Contestant totals are a projection over completed votes and only move inside
the reconciler's transaction, in the same commit that flips the vote, so the
projection can never run ahead of or behind the ledger.
"""
from typing import Optional, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from talenthunt.exceptions import ConflictError, NotFoundError, ValidationError
from talenthunt.models.contestant import Contestant
from talenthunt.models.payment import PaymentTransaction, SubjectType
from talenthunt.models.registration import Registration
from talenthunt.models.user import User
from talenthunt.models.vote import Vote
from talenthunt.services.gateway_normalizer import GatewayOutcome, Ambiguous
from talenthunt.services.payment_intents import create_intent
from talenthunt.utils.dates import utcnow

logger = logging.getLogger(__name__)

PROMOTABLE_STATUSES = ("submitted", "approved", "qualified")


def get_contestant(db: Session, contestant_id: str) -> Contestant:
    contestant = db.query(Contestant).filter(Contestant.id == contestant_id).first()
    if contestant is None:
        raise NotFoundError("Contestant not found")
    return contestant


def list_contestants(db: Session, status: Optional[str] = "active") -> list:
    query = db.query(Contestant)
    if status:
        query = query.filter(Contestant.status == status)
    return query.order_by(Contestant.contestant_number).all()


# -------------------- INTENTS --------------------
def record_vote_intent(
    db: Session,
    contestant_id: str,
    number_of_votes: int,
    amount_paid: int,
    reference: Optional[str] = None,
    voter_info: Optional[dict] = None,
) -> Tuple[Vote, PaymentTransaction]:
    if number_of_votes < 1:
        raise ValidationError("numberOfVotes must be at least 1")
    if amount_paid <= 0:
        raise ValidationError("amountPaid must be greater than 0")

    contestant = get_contestant(db, contestant_id)
    if contestant.status != "active":
        raise ConflictError("Contestant is not accepting votes")

    if reference:
        existing = db.query(Vote).filter(Vote.payment_reference == reference).first()
        if existing is not None:
            if (existing.contestant_id, existing.number_of_votes, existing.amount_paid) != (
                contestant.id, number_of_votes, amount_paid
            ):
                raise ConflictError("Payment reference already used for a different vote")
            transaction = db.query(PaymentTransaction).filter(PaymentTransaction.reference == reference).first()
            return existing, transaction

    try:
        transaction = create_intent(
            db,
            SubjectType.VOTE,
            contestant.id,
            amount_paid,
            reference=reference,
            metadata={
                "type": "vote_payment",
                "contestantId": contestant.id,
                "votesPurchased": number_of_votes,
                "amountPaid": amount_paid,
            },
        )
        vote = Vote(
            contestant_id=contestant.id,
            contestant_email=contestant.email,
            number_of_votes=number_of_votes,
            amount_paid=amount_paid,
            voter_info=voter_info,
            payment_reference=transaction.reference,
            payment_status="pending",
        )
        db.add(vote)
        db.flush()
        transaction.subject_id = vote.id
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Payment reference already exists")

    db.refresh(vote)
    logger.info(f"🗳️ Vote intent {vote.payment_reference}: {number_of_votes} votes for {contestant.contestant_number}")
    return vote, transaction


def intent_from_metadata(db: Session, outcome: GatewayOutcome) -> Optional[PaymentTransaction]:
    """
    Create the vote intent for a reference the system has never seen, using
    the contestant/vote hints the payer's checkout attached as metadata.
    Returns None when the metadata doesn't describe a vote.
    """
    if isinstance(outcome, Ambiguous) or not outcome.reference:
        return None
    meta = outcome.metadata or {}
    if meta.get("type") != "vote_payment" or not meta.get("contestantId"):
        return None

    try:
        votes = int(meta.get("votesPurchased") or meta.get("numberOfVotes") or 0)
        amount = int(float(meta.get("amountPaid") or outcome.amount or 0))
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Vote metadata has invalid votesPurchased/amountPaid")

    voter_info = {k: meta[k] for k in ("voterName", "voterEmail", "voterPhone") if meta.get(k)}
    _, transaction = record_vote_intent(
        db,
        str(meta["contestantId"]),
        votes,
        amount,
        reference=outcome.reference,
        voter_info=voter_info or None,
    )
    logger.info(f"Vote intent {outcome.reference} recorded from gateway metadata")
    return transaction


# -------------------- PAYMENT FAN-OUT --------------------
def credit(db: Session, vote: Vote) -> bool:
    """Flip pending -> completed and add to the contestant's totals. No commit."""
    flipped = (
        db.query(Vote)
        .filter(Vote.id == vote.id, Vote.payment_status.in_(("pending", "processing")))
        .update({"payment_status": "completed", "updated_at": utcnow()}, synchronize_session=False)
    )
    if flipped != 1:
        logger.info(f"Vote {vote.payment_reference} already settled; no credit")
        return False

    db.query(Contestant).filter(Contestant.id == vote.contestant_id).update(
        {
            "total_votes": Contestant.total_votes + vote.number_of_votes,
            "total_vote_amount": Contestant.total_vote_amount + vote.amount_paid,
        },
        synchronize_session=False,
    )
    db.flush()
    logger.info(f"✅ Credited {vote.number_of_votes} votes to contestant {vote.contestant_id}")
    return True


def mark_failed(db: Session, vote: Vote) -> None:
    db.query(Vote).filter(Vote.id == vote.id, Vote.payment_status.in_(("pending", "processing"))).update(
        {"payment_status": "failed", "updated_at": utcnow()}, synchronize_session=False
    )


def refund(db: Session, vote: Vote) -> bool:
    reversed_ = (
        db.query(Vote)
        .filter(Vote.id == vote.id, Vote.payment_status == "completed")
        .update({"payment_status": "refunded", "updated_at": utcnow()}, synchronize_session=False)
    )
    if reversed_ != 1:
        return False
    db.query(Contestant).filter(Contestant.id == vote.contestant_id).update(
        {
            "total_votes": Contestant.total_votes - vote.number_of_votes,
            "total_vote_amount": Contestant.total_vote_amount - vote.amount_paid,
        },
        synchronize_session=False,
    )
    db.flush()
    logger.info(f"↩️ Reversed {vote.number_of_votes} votes for contestant {vote.contestant_id}")
    return True


# -------------------- READS --------------------
def _completed_totals(db: Session, contestant_id: str) -> Tuple[int, int]:
    votes, amount = (
        db.query(
            func.coalesce(func.sum(Vote.number_of_votes), 0),
            func.coalesce(func.sum(Vote.amount_paid), 0),
        )
        .filter(Vote.contestant_id == contestant_id, Vote.payment_status == "completed")
        .one()
    )
    return int(votes), int(amount)


def get_contestant_votes(
    db: Session,
    contestant_id: str,
    page: int = 1,
    limit: int = 20,
    payment_status: Optional[str] = None,
) -> dict:
    contestant = get_contestant(db, contestant_id)
    page = max(page, 1)
    limit = min(max(limit, 1), 100)

    query = db.query(Vote).filter(Vote.contestant_id == contestant.id)
    if payment_status:
        query = query.filter(Vote.payment_status == payment_status)
    total = query.count()
    votes = query.order_by(Vote.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    total_votes, total_amount = _completed_totals(db, contestant.id)
    return {
        "contestant": contestant.to_dict(),
        "votes": [v.to_dict() for v in votes],
        "totals": {"total_votes": total_votes, "total_vote_amount": total_amount},
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


def vote_tally(db: Session) -> list:
    contestants = (
        db.query(Contestant)
        .filter(Contestant.status.in_(("active", "winner")))
        .order_by(Contestant.total_votes.desc(), Contestant.contestant_number)
        .all()
    )
    return [
        {"rank": i, **c.to_dict()} for i, c in enumerate(contestants, start=1)
    ]


def audit_contestant_totals(db: Session, contestant_id: str) -> dict:
    contestant = get_contestant(db, contestant_id)
    ledger_votes, ledger_amount = _completed_totals(db, contestant.id)
    consistent = (ledger_votes, ledger_amount) == (contestant.total_votes, contestant.total_vote_amount)
    if not consistent:
        logger.error(
            f"❌ Vote totals drift for {contestant.contestant_number}: "
            f"projection {contestant.total_votes}/{contestant.total_vote_amount}, ledger {ledger_votes}/{ledger_amount}"
        )
    return {
        "contestant_id": contestant.id,
        "recorded_votes": contestant.total_votes,
        "ledger_votes": ledger_votes,
        "recorded_amount": contestant.total_vote_amount,
        "ledger_amount": ledger_amount,
        "consistent": consistent,
    }


# -------------------- ROSTER --------------------
def _next_contestant_number(db: Session) -> str:
    numbers = db.query(Contestant.contestant_number).filter(Contestant.contestant_number.like("CNT-%")).all()
    highest = 0
    for (number,) in numbers:
        suffix = number.split("-", 1)[1]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"CNT-{highest + 1:03d}"


def promote_to_contestant(db: Session, registration_id: str, attempts: int = 3) -> Contestant:
    registration = db.query(Registration).filter(Registration.id == registration_id).first()
    if registration is None:
        raise NotFoundError("Registration not found")
    if registration.status not in PROMOTABLE_STATUSES:
        raise ConflictError(f"Only {', '.join(PROMOTABLE_STATUSES)} registrations can be promoted")
    if db.query(Contestant.id).filter(Contestant.registration_id == registration.id).first():
        raise ConflictError("Registration has already been promoted")

    user = db.query(User).filter(User.id == registration.user_id).first()
    personal = registration.personal_info or {}
    talent = registration.talent_info or {}
    media = registration.media_info or {}
    group = registration.group_info or {}

    for attempt in range(attempts):
        contestant = Contestant(
            user_id=registration.user_id,
            registration_id=registration.id,
            contestant_number=_next_contestant_number(db),
            first_name=personal.get("firstName") or (user.first_name if user else ""),
            last_name=personal.get("lastName") or (user.last_name if user else ""),
            email=personal.get("email") or (user.email if user else ""),
            talent_category=talent.get("otherTalentCategory") if talent.get("talentCategory") == "Other" else talent.get("talentCategory"),
            stage_name=talent.get("stageName") or group.get("groupName"),
            profile_photo=(media.get("profilePhoto") or {}).get("url"),
            status="active",
        )
        db.add(contestant)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"Contestant number clash on attempt {attempt + 1}; retrying")
            continue
        db.refresh(contestant)
        logger.info(f"🎤 Registration {registration.registration_number} promoted to {contestant.contestant_number}")
        return contestant

    raise ConflictError("Could not allocate a contestant number, please retry")
