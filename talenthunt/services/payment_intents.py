# talenthunt/services/payment_intents.py
from typing import Optional
import logging

from sqlalchemy.orm import Session

from talenthunt.config import settings
from talenthunt.models.payment import PaymentTransaction, SubjectType, INITIATED
from talenthunt.utils.otp import generate_reference

logger = logging.getLogger(__name__)

REFERENCE_PREFIXES = {
    SubjectType.REGISTRATION: "ETH",
    SubjectType.BULK: "ETH_BULK",
    SubjectType.VOTE: "VOTE",
    SubjectType.TICKET: "ETH_TKT",
}


def checkout_url(reference: str) -> str:
    return f"{settings.PAYMENT_CHECKOUT_URL.rstrip('/')}/{reference}"


def create_intent(
    db: Session,
    subject_type: SubjectType,
    subject_id: str,
    amount: int,
    reference: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> PaymentTransaction:
    """Add an open PaymentTransaction to the session; the caller commits."""
    transaction = PaymentTransaction(
        reference=reference or generate_reference(REFERENCE_PREFIXES[subject_type]),
        amount=int(amount),
        currency=settings.CURRENCY,
        status=INITIATED,
        subject_type=subject_type.value,
        subject_id=subject_id,
        payment_metadata=metadata,
    )
    db.add(transaction)
    db.flush()
    logger.info(f"💳 Payment intent {transaction.reference} for {subject_type.value} {subject_id} (₦{transaction.amount:,})")
    return transaction


def intent_response(transaction: PaymentTransaction) -> dict:
    return {
        "reference": transaction.reference,
        "authorization_url": checkout_url(transaction.reference),
        "access_code": f"access_{transaction.reference}",
        "amount": transaction.amount,
        "currency": transaction.currency,
    }
