# talenthunt/services/payment_service.py
"""
Payment reconciliation.

Every money-moving flow (registration fee, bulk slots, votes, tickets) opens a
``PaymentTransaction`` keyed by a unique reference before the payer is sent to
the gateway. Gateway outcomes then arrive through the webhook or through a
client-polled verification call, possibly several times and in any order.

``apply`` guarantees each reference produces its side effect at most once:

1. the transaction row is loaded by reference (unknown -> ``UnknownReference``);
2. a row already in a terminal status is a replay and is answered from storage;
3. ambiguous outcomes are never applied (``AmbiguousGatewayStatus``);
4. the status moves with ``UPDATE ... WHERE status IN ('initiated', 'pending')``
   and only the caller whose UPDATE hit a row performs the fan-out;
5. the fan-out runs in the same database transaction as the status change, so
   a failing fan-out rolls the status back and the gateway's retry gets a
   second chance.
"""
from dataclasses import dataclass, field, asdict
from typing import Optional
import hashlib
import hmac
import logging

from sqlalchemy.orm import Session

from talenthunt.config import settings
from talenthunt.exceptions import (
    AmbiguousGatewayStatus,
    ConflictError,
    SubjectNotFound,
    UnknownReference,
    ValidationError,
    WorkflowTerminal,
)
from talenthunt.models.bulk_registration import BulkRegistration
from talenthunt.models.contestant import Contestant
from talenthunt.models.payment import (
    OPEN_STATUSES,
    FAILED,
    PENDING,
    REFUNDED,
    SUCCESSFUL,
    TERMINAL_STATUSES,
    PaymentTransaction,
    SubjectType,
)
from talenthunt.models.registration import Registration
from talenthunt.models.ticket import TicketPurchase
from talenthunt.models.user import User
from talenthunt.models.vote import Vote
from talenthunt.services import slot_pool_service, ticket_service, vote_service, workflow_service
from talenthunt.services.gateway_client import GatewayClient, GatewayError
from talenthunt.services.gateway_normalizer import (
    Ambiguous,
    Failure,
    GatewayOutcome,
    Success,
    get_convention,
    normalize,
)
from talenthunt.services.payment_intents import create_intent
from talenthunt.utils.dates import utcnow

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-paystack-signature"


@dataclass
class ReconcileResult:
    reference: str
    status: str
    subject_type: str
    subject_id: str
    applied: bool
    replayed: bool
    detail: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


# -------------------- INTENTS --------------------
def initialize_registration_payment(db: Session, registration_id: str, user: Optional[User] = None) -> PaymentTransaction:
    registration = workflow_service.get_registration(db, registration_id, user)
    if registration.status != "draft":
        raise WorkflowTerminal()
    if registration.payment_status == "completed":
        raise ConflictError("Payment has already been completed for this registration")

    transaction = create_intent(
        db,
        SubjectType.REGISTRATION,
        registration.id,
        registration.payment_amount,
        metadata={
            "type": "registration_payment",
            "registrationId": registration.id,
            "registrationNumber": registration.registration_number,
        },
    )
    registration.payment_reference = transaction.reference
    registration.payment_status = "pending"
    db.commit()
    db.refresh(transaction)
    return transaction


def get_transaction(db: Session, reference: str) -> PaymentTransaction:
    transaction = db.query(PaymentTransaction).filter(PaymentTransaction.reference == reference).first()
    if transaction is None:
        raise UnknownReference(reference)
    return transaction


def payment_status(db: Session, registration: Registration) -> dict:
    transaction = None
    if registration.payment_reference:
        transaction = (
            db.query(PaymentTransaction)
            .filter(PaymentTransaction.reference == registration.payment_reference)
            .first()
        )
    return {
        "registration_id": registration.id,
        "payment_status": registration.payment_status,
        "amount": registration.payment_amount,
        "currency": registration.payment_currency,
        "reference": registration.payment_reference,
        "paid_at": registration.paid_at.isoformat() if registration.paid_at else None,
        "transaction": transaction.to_dict() if transaction else None,
        "can_submit": workflow_service.can_submit(registration),
    }


# -------------------- WEBHOOK SIGNATURE --------------------
def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()


def verify_signature(raw_body: bytes, signature: Optional[str], secret: Optional[str] = None) -> bool:
    secret = secret if secret is not None else settings.PAYMENT_WEBHOOK_SECRET
    if not secret or not signature:
        return False
    return hmac.compare_digest(compute_signature(raw_body, secret), signature.strip().lower())


# -------------------- RECONCILER --------------------
def _load_subject(db: Session, transaction: PaymentTransaction):
    subject_type = SubjectType(transaction.subject_type)
    model = {
        SubjectType.REGISTRATION: Registration,
        SubjectType.BULK: BulkRegistration,
        SubjectType.VOTE: Vote,
        SubjectType.TICKET: TicketPurchase,
    }[subject_type]
    subject = db.query(model).filter(model.id == transaction.subject_id).first()

    if subject_type is SubjectType.VOTE and subject is not None:
        if db.query(Contestant.id).filter(Contestant.id == subject.contestant_id).first() is None:
            subject = None

    if subject is None:
        logger.error(
            f"❌ [Reconcile] {transaction.reference} points to missing {transaction.subject_type} {transaction.subject_id}"
        )
        raise SubjectNotFound(transaction.reference, transaction.subject_type, transaction.subject_id)
    return subject_type, subject


def _fan_out(db: Session, transaction: PaymentTransaction, success: bool) -> None:
    subject_type, subject = _load_subject(db, transaction)

    if subject_type is SubjectType.REGISTRATION:
        if success:
            workflow_service.mark_payment_completed(db, subject, transaction)
        else:
            workflow_service.mark_payment_failed(db, subject, transaction)
    elif subject_type is SubjectType.BULK:
        if success:
            slot_pool_service.activate(db, subject, transaction)
        else:
            slot_pool_service.mark_payment_failed(db, subject, transaction)
    elif subject_type is SubjectType.VOTE:
        if success:
            vote_service.credit(db, subject)
        else:
            vote_service.mark_failed(db, subject)
    elif subject_type is SubjectType.TICKET:
        if success:
            ticket_service.settle(db, subject)
        else:
            ticket_service.mark_failed(db, subject)


def _describe(db: Session, transaction: PaymentTransaction) -> dict:
    """Current state of the paid-for record, for responses."""
    subject_type = SubjectType(transaction.subject_type)
    if subject_type is SubjectType.REGISTRATION:
        registration = db.query(Registration).filter(Registration.id == transaction.subject_id).first()
        if registration is None:
            return {}
        return {
            "registration_number": registration.registration_number,
            "payment_status": registration.payment_status,
            "completed_steps": registration.completed_steps,
            "can_submit": workflow_service.can_submit(registration),
        }
    if subject_type is SubjectType.BULK:
        pool = db.query(BulkRegistration).filter(BulkRegistration.id == transaction.subject_id).first()
        if pool is None:
            return {}
        return {
            "bulk_registration_number": pool.bulk_registration_number,
            "status": pool.status,
            "available_slots": pool.available_slots,
            "can_add_participants": pool.status == "active",
        }
    if subject_type is SubjectType.VOTE:
        vote = db.query(Vote).filter(Vote.id == transaction.subject_id).first()
        if vote is None:
            return {}
        contestant = db.query(Contestant).filter(Contestant.id == vote.contestant_id).first()
        return {
            "vote_status": vote.payment_status,
            "number_of_votes": vote.number_of_votes,
            "contestant_id": vote.contestant_id,
            "contestant_total_votes": contestant.total_votes if contestant else None,
        }
    purchase = db.query(TicketPurchase).filter(TicketPurchase.id == transaction.subject_id).first()
    if purchase is None:
        return {}
    return {
        "purchase_reference": purchase.purchase_reference,
        "payment_status": purchase.payment_status,
        "ticket_numbers": purchase.ticket_numbers or [],
    }


def _result(db: Session, transaction: PaymentTransaction, applied: bool, replayed: bool) -> ReconcileResult:
    return ReconcileResult(
        reference=transaction.reference,
        status=transaction.status,
        subject_type=transaction.subject_type,
        subject_id=transaction.subject_id,
        applied=applied,
        replayed=replayed,
        detail=_describe(db, transaction),
    )


def _hold(db: Session, transaction: PaymentTransaction, outcome: Ambiguous) -> None:
    """Keep the raw payload for manual review and leave the record open."""
    db.query(PaymentTransaction).filter(
        PaymentTransaction.id == transaction.id,
        PaymentTransaction.status.in_(OPEN_STATUSES),
    ).update({"status": PENDING, "gateway_response": outcome.raw, "updated_at": utcnow()}, synchronize_session=False)
    db.commit()
    logger.warning(f"⚠️ [Reconcile] {transaction.reference} held for review: {outcome.reason}")


def apply(db: Session, reference: str, outcome: GatewayOutcome) -> ReconcileResult:
    transaction = db.query(PaymentTransaction).filter(PaymentTransaction.reference == reference).first()
    if transaction is None:
        logger.warning(f"[Reconcile] Unknown reference {reference}")
        raise UnknownReference(reference)

    if transaction.status in TERMINAL_STATUSES:
        logger.info(f"[Reconcile] {reference} already {transaction.status}; replay ignored")
        return _result(db, transaction, applied=False, replayed=True)

    if outcome.reference and outcome.reference != reference:
        raise ValidationError("Payment reference does not match the gateway payload")

    if isinstance(outcome, Success) and outcome.amount is not None and outcome.amount < transaction.amount:
        outcome = Ambiguous(
            raw=outcome.raw,
            reason=f"amount mismatch: expected {transaction.amount}, observed {outcome.amount}",
            reference=reference,
            metadata=outcome.metadata,
        )

    if isinstance(outcome, Ambiguous):
        _hold(db, transaction, outcome)
        raise AmbiguousGatewayStatus(reference, outcome.reason)

    success = isinstance(outcome, Success)
    raw = outcome.raw or {}
    data = raw.get("data") if isinstance(raw.get("data"), dict) else raw
    now = utcnow()
    values = {
        "status": SUCCESSFUL if success else FAILED,
        "processed_at": now,
        "updated_at": now,
        "gateway_response": raw,
        "gateway_reference": str(data.get("id") or data.get("transRef") or "") or None,
        "payment_method": data.get("channel") or data.get("paymentMethod") or data.get("payment_method"),
    }
    if isinstance(outcome, Failure):
        values["failure_reason"] = outcome.reason

    won = (
        db.query(PaymentTransaction)
        .filter(PaymentTransaction.id == transaction.id, PaymentTransaction.status.in_(OPEN_STATUSES))
        .update(values, synchronize_session=False)
    )
    if won != 1:
        db.rollback()
        db.refresh(transaction)
        logger.info(f"[Reconcile] {reference} settled concurrently as {transaction.status}")
        return _result(db, transaction, applied=False, replayed=True)

    try:
        _fan_out(db, transaction, success)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"❌ [Reconcile] Fan-out failed for {reference}; status change rolled back")
        raise

    db.refresh(transaction)
    logger.info(f"✅ [Reconcile] {reference} -> {transaction.status} ({transaction.subject_type} {transaction.subject_id})")
    return _result(db, transaction, applied=True, replayed=False)


def reconcile_payload(
    db: Session,
    payload: dict,
    reference: Optional[str] = None,
    allow_metadata_intent: bool = True,
) -> ReconcileResult:
    """
    Normalize a raw gateway payload and apply it. Unknown vote references are
    only recorded from metadata when ``allow_metadata_intent`` is set, which
    the signed webhook does and the client-facing verify call does not.
    """
    outcome = normalize(payload, get_convention(settings.PAYMENT_STATUS_CONVENTION))

    if reference and outcome.reference and outcome.reference != reference:
        raise ValidationError("Payment reference does not match the gateway payload")
    reference = reference or outcome.reference
    if not reference:
        logger.warning(f"⚠️ [Reconcile] Payload without reference: {getattr(outcome, 'reason', '')}")
        raise AmbiguousGatewayStatus(None, getattr(outcome, "reason", "missing reference"))

    exists = db.query(PaymentTransaction.id).filter(PaymentTransaction.reference == reference).first()
    if exists is None and (not allow_metadata_intent or vote_service.intent_from_metadata(db, outcome) is None):
        logger.warning(f"[Reconcile] Unknown reference {reference}")
        raise UnknownReference(reference)

    return apply(db, reference, outcome)


def verify_with_gateway(db: Session, reference: str, client: GatewayClient) -> ReconcileResult:
    """Ask the gateway for the transaction instead of trusting the caller's payload."""
    get_transaction(db, reference)
    try:
        data = client.fetch_transaction(reference)
    except GatewayError as e:
        return apply(db, reference, Ambiguous(raw={}, reason=str(e), reference=reference))
    if not data.get("reference"):
        data = {**data, "reference": reference}
    return apply(db, reference, normalize(data, get_convention(settings.PAYMENT_STATUS_CONVENTION)))


# -------------------- REFUNDS --------------------
def refund(db: Session, reference: str, reason: Optional[str] = None) -> ReconcileResult:
    transaction = get_transaction(db, reference)
    if transaction.status == REFUNDED:
        return _result(db, transaction, applied=False, replayed=True)

    now = utcnow()
    won = (
        db.query(PaymentTransaction)
        .filter(PaymentTransaction.id == transaction.id, PaymentTransaction.status == SUCCESSFUL)
        .update(
            {"status": REFUNDED, "refunded_at": now, "updated_at": now, "failure_reason": reason},
            synchronize_session=False,
        )
    )
    if won != 1:
        db.rollback()
        db.refresh(transaction)
        if transaction.status == REFUNDED:
            return _result(db, transaction, applied=False, replayed=True)
        raise ConflictError("Only successful payments can be refunded")

    try:
        subject_type, subject = _load_subject(db, transaction)
        if subject_type is SubjectType.REGISTRATION:
            workflow_service.mark_payment_refunded(db, subject, transaction)
        elif subject_type is SubjectType.BULK:
            slot_pool_service.refund(db, subject, transaction)
        elif subject_type is SubjectType.VOTE:
            vote_service.refund(db, subject)
        elif subject_type is SubjectType.TICKET:
            ticket_service.refund(db, subject)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"❌ Refund of {reference} failed; rolled back")
        raise

    db.refresh(transaction)
    logger.info(f"↩️ Payment {reference} refunded ({reason or 'no reason given'})")
    return _result(db, transaction, applied=True, replayed=False)
