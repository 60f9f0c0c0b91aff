# talenthunt/services/slot_pool_service.py
"""
Bulk slot pools bought by sponsors.

``used_slots`` only moves through a conditional UPDATE
(``used_slots < total_slots AND status = 'active'``) committed together with
the participant insert, so concurrent adds can never overshoot the pool.
"""
from typing import Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from talenthunt.config import settings
from talenthunt.exceptions import ConflictError, NotFoundError, PoolExhausted, PoolNotActive, ValidationError
from talenthunt.models.bulk_registration import BulkParticipant, BulkRegistration
from talenthunt.models.payment import PaymentTransaction, SubjectType
from talenthunt.models.user import User
from talenthunt.models.verification_code import EMAIL_VERIFICATION
from talenthunt.services import code_issuer, identity_service
from talenthunt.services.code_issuer import normalize_email
from talenthunt.services.email_service import EmailDispatcher
from talenthunt.services.payment_intents import create_intent
from talenthunt.utils.dates import utcnow
from talenthunt.utils.otp import generate_number

logger = logging.getLogger(__name__)


def create_pool(db: Session, owner: User, total_slots: int) -> BulkRegistration:
    if not settings.BULK_MIN_SLOTS <= total_slots <= settings.BULK_MAX_SLOTS:
        raise ValidationError(
            f"Total slots must be between {settings.BULK_MIN_SLOTS} and {settings.BULK_MAX_SLOTS}"
        )

    pool = BulkRegistration(
        owner_id=owner.id,
        bulk_registration_number=generate_number("BULK-ETH"),
        total_slots=total_slots,
        used_slots=0,
        price_per_slot=settings.BULK_PRICE_PER_SLOT,
        total_amount=settings.BULK_PRICE_PER_SLOT * total_slots,
        currency=settings.CURRENCY,
        status="draft",
    )
    db.add(pool)
    db.commit()
    db.refresh(pool)
    logger.info(f"📦 Bulk registration {pool.bulk_registration_number} created by {owner.email} ({total_slots} slots)")
    return pool


def get_pool(db: Session, pool_id: str, owner: Optional[User] = None) -> BulkRegistration:
    query = db.query(BulkRegistration).filter(BulkRegistration.id == pool_id)
    if owner is not None and owner.role != "admin":
        query = query.filter(BulkRegistration.owner_id == owner.id)
    pool = query.first()
    if pool is None:
        raise NotFoundError("Bulk registration not found")
    return pool


def list_pools(db: Session, owner: User) -> list:
    return (
        db.query(BulkRegistration)
        .filter(BulkRegistration.owner_id == owner.id)
        .order_by(BulkRegistration.created_at.desc())
        .all()
    )


def initialize_pool_payment(db: Session, pool_id: str, owner: User) -> Tuple[BulkRegistration, PaymentTransaction]:
    pool = get_pool(db, pool_id, owner)
    if pool.status not in ("draft", "payment_pending"):
        raise ConflictError("Payment has already been completed for this bulk registration")

    transaction = create_intent(
        db,
        SubjectType.BULK,
        pool.id,
        pool.total_amount,
        metadata={"type": "bulk_payment", "bulkRegistrationId": pool.id, "totalSlots": pool.total_slots},
    )
    pool.status = "payment_pending"
    pool.payment_status = "pending"
    pool.payment_reference = transaction.reference
    db.commit()
    db.refresh(pool)
    return pool, transaction


# -------------------- PAYMENT FAN-OUT --------------------
def activate(db: Session, pool: BulkRegistration, transaction: PaymentTransaction) -> BulkRegistration:
    """Reconciler-only. Replays against an active pool change nothing."""
    now = utcnow()
    won = (
        db.query(BulkRegistration)
        .filter(BulkRegistration.id == pool.id, BulkRegistration.status.in_(("draft", "payment_pending")))
        .update(
            {
                "status": "active",
                "payment_status": "completed",
                "payment_reference": transaction.reference,
                "paid_at": now,
                "updated_at": now,
            },
            synchronize_session=False,
        )
    )
    db.refresh(pool)
    if won != 1:
        logger.info(f"Bulk registration {pool.bulk_registration_number} already {pool.status}; activation skipped")
        return pool

    owner = db.query(User).filter(User.id == pool.owner_id).first()
    if owner is not None and owner.role == "user":
        owner.role = "sponsor"
        logger.info(f"✅ {owner.email} is now a sponsor")
    db.flush()
    logger.info(f"✅ Bulk registration {pool.bulk_registration_number} activated")
    return pool


def mark_payment_failed(db: Session, pool: BulkRegistration, transaction: PaymentTransaction) -> None:
    if pool.status in ("draft", "payment_pending"):
        pool.status = "payment_pending"
        pool.payment_status = "failed"
        db.flush()


def refund(db: Session, pool: BulkRegistration, transaction: PaymentTransaction) -> None:
    if pool.used_slots > 0:
        raise ConflictError("Cannot refund a bulk registration that already has participants")
    pool.status = "expired"
    pool.payment_status = "refunded"
    db.flush()


# -------------------- PARTICIPANTS --------------------
async def add_participant(
    db: Session,
    pool_id: str,
    owner: Optional[User],
    first_name: str,
    last_name: str,
    email: str,
    phone_no: Optional[str],
    dispatcher: EmailDispatcher,
) -> Tuple[BulkParticipant, BulkRegistration]:
    email = normalize_email(email)
    pool = get_pool(db, pool_id, owner)

    if pool.status == "completed" or pool.used_slots >= pool.total_slots:
        raise PoolExhausted()
    if pool.status != "active":
        raise PoolNotActive()

    duplicate = (
        db.query(BulkParticipant.id)
        .filter(BulkParticipant.bulk_registration_id == pool.id, BulkParticipant.email == email)
        .first()
    )
    if duplicate:
        raise ConflictError("Email already used for another participant in this bulk registration")

    user = identity_service.get_user_by_email(db, email)
    if user is not None and user.is_email_verified:
        raise ConflictError("Email already registered in the system")

    claimed = (
        db.query(BulkRegistration)
        .filter(
            BulkRegistration.id == pool.id,
            BulkRegistration.status == "active",
            BulkRegistration.used_slots < BulkRegistration.total_slots,
        )
        .update({"used_slots": BulkRegistration.used_slots + 1}, synchronize_session=False)
    )
    if claimed != 1:
        db.rollback()
        db.refresh(pool)
        if pool.status == "completed" or pool.used_slots >= pool.total_slots:
            raise PoolExhausted()
        raise PoolNotActive()

    try:
        if user is None:
            user = identity_service.create_invited_user(db, first_name, last_name, email)
        participant = BulkParticipant(
            bulk_registration_id=pool.id,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email,
            phone_no=phone_no,
            participant_user_id=user.id,
            invitation_status="pending",
        )
        db.add(participant)
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already used for another participant in this bulk registration")

    db.query(BulkRegistration).filter(
        BulkRegistration.id == pool.id,
        BulkRegistration.used_slots >= BulkRegistration.total_slots,
    ).update({"status": "completed"}, synchronize_session=False)
    db.commit()
    db.refresh(pool)
    db.refresh(participant)
    logger.info(f"👥 {email} added to {pool.bulk_registration_number} ({pool.used_slots}/{pool.total_slots})")

    await send_invitation(db, pool, participant, dispatcher)
    return participant, pool


async def send_invitation(db: Session, pool: BulkRegistration, participant: BulkParticipant, dispatcher: EmailDispatcher) -> bool:
    issued = code_issuer.issue(db, participant.email, EMAIL_VERIFICATION)
    owner = db.query(User).filter(User.id == pool.owner_id).first()
    sent = await dispatcher.send_invitation(
        participant.email,
        participant.first_name,
        owner.full_name if owner else "Your sponsor",
        pool.bulk_registration_number,
        issued.code,
    )
    if sent:
        participant.invitation_status = "sent"
        participant.invitation_sent_at = utcnow()
        db.commit()
    else:
        logger.warning(f"Invitation email to {participant.email} was not delivered")
    return sent


def find_participant(db: Session, email: str) -> Tuple[BulkParticipant, BulkRegistration]:
    participant = (
        db.query(BulkParticipant)
        .filter(BulkParticipant.email == normalize_email(email))
        .order_by(BulkParticipant.added_at.desc())
        .first()
    )
    if participant is None:
        raise NotFoundError("No bulk registration invitation found for this email")
    return participant, participant.bulk_registration


async def resend_invitation(db: Session, email: str, dispatcher: EmailDispatcher) -> bool:
    participant, pool = find_participant(db, email)
    if participant.registration_id:
        raise ConflictError("This participant has already completed registration")
    return await send_invitation(db, pool, participant, dispatcher)
