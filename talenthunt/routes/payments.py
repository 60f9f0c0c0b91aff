# talenthunt/routes/payments.py
"""
Gateway-facing endpoints.

The webhook answers 2xx only when the event was applied or is a replay of one
already applied; anything else (unknown reference, ambiguous status, missing
subject) is a non-2xx so the gateway keeps retrying.
"""
from typing import Optional
import json
import logging

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from talenthunt.auth.dependencies import get_current_admin
from talenthunt.config import settings
from talenthunt.database import get_db
from talenthunt.exceptions import ValidationError
from talenthunt.models.payment import SUCCESSFUL, SubjectType
from talenthunt.models.user import User
from talenthunt.schemas.payment import RefundRequest
from talenthunt.services import payment_service, ticket_service
from talenthunt.services.email_service import EmailDispatcher, get_email_dispatcher
from talenthunt.services.gateway_client import GatewayClient, get_gateway_client
from talenthunt.services.payment_service import ReconcileResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


async def _after_apply(db: Session, result: ReconcileResult, dispatcher: EmailDispatcher) -> None:
    if result.applied and result.status == SUCCESSFUL and result.subject_type == SubjectType.TICKET.value:
        purchase = ticket_service.get_purchase(db, result.reference)
        await ticket_service.deliver_tickets(db, purchase, dispatcher)


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    raw_body = await request.body()
    signature = request.headers.get(payment_service.SIGNATURE_HEADER)
    if not payment_service.verify_signature(raw_body, signature):
        logger.warning("⚠️ Webhook rejected: invalid signature")
        raise ValidationError("Invalid signature")

    try:
        payload = json.loads(raw_body)
    except ValueError:
        raise ValidationError("Webhook body is not valid JSON")
    if not isinstance(payload, dict):
        raise ValidationError("Webhook body must be a JSON object")

    logger.info(f"📩 Webhook event: {payload.get('event', 'unknown')}")
    result = payment_service.reconcile_payload(db, payload)
    await _after_apply(db, result, dispatcher)
    return {"status": "success", "data": result.to_dict()}


@router.post("/verify/{reference}")
async def verify_payment(
    reference: str,
    payload: Optional[dict] = Body(default=None),
    db: Session = Depends(get_db),
    client: GatewayClient = Depends(get_gateway_client),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    if settings.PAYMENT_VERIFY_WITH_GATEWAY:
        result = payment_service.verify_with_gateway(db, reference, client)
    else:
        if not payload:
            raise ValidationError("Gateway payload is required")
        result = payment_service.reconcile_payload(db, payload, reference, allow_metadata_intent=False)

    await _after_apply(db, result, dispatcher)
    message = "Payment verified" if result.status == SUCCESSFUL else f"Payment {result.status}"
    return {"status": "success", "message": message, "data": result.to_dict()}


@router.get("/{reference}")
def get_payment(reference: str, db: Session = Depends(get_db)):
    transaction = payment_service.get_transaction(db, reference)
    return {"status": "success", "data": transaction.to_dict()}


@router.post("/{reference}/refund")
def refund_payment(
    reference: str,
    payload: RefundRequest = Body(default=RefundRequest()),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    result = payment_service.refund(db, reference, payload.reason)
    logger.info(f"Admin {admin.email} refunded {reference}")
    return {"status": "success", "message": "Payment refunded", "data": result.to_dict()}
