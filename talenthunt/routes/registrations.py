# talenthunt/routes/registrations.py
from types import SimpleNamespace
from typing import Optional
import logging

from fastapi import APIRouter, Body, Depends, File, UploadFile
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from talenthunt.auth.dependencies import get_current_admin, get_current_user
from talenthunt.database import get_db
from talenthunt.exceptions import ValidationError
from talenthunt.models.user import User
from talenthunt.schemas.registration import STEP_MODELS, CreateRegistrationRequest, ReviewRequest
from talenthunt.services import payment_service, workflow_service
from talenthunt.services.media_store import MediaStore, get_media_store
from talenthunt.services.payment_intents import intent_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/registrations", tags=["Registrations"])


def _progress(registration) -> dict:
    missing, payment_missing = workflow_service.missing_requirements(registration)
    return {
        "missing_steps": missing,
        "payment_missing": payment_missing,
        "can_submit": workflow_service.can_submit(registration),
    }


@router.post("/", status_code=201)
def create_registration(
    payload: CreateRegistrationRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    registration = workflow_service.create_registration(
        db, current_user, payload.registration_type, payload.bulk_registration_id
    )
    return {
        "status": "success",
        "message": "Registration created",
        "data": {**registration.to_dict(), **_progress(registration)},
    }


@router.get("/")
def list_registrations(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    registrations = workflow_service.list_registrations(db, current_user)
    return {"status": "success", "data": [r.to_dict() for r in registrations]}


@router.get("/{registration_id}")
def get_registration(registration_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    registration = workflow_service.get_registration(db, registration_id, current_user)
    return {"status": "success", "data": {**registration.to_dict(), **_progress(registration)}}


@router.put("/{registration_id}/steps/{step_number}")
def update_step(
    registration_id: str,
    step_number: int,
    body: dict = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    model = STEP_MODELS.get(step_number)
    if model is None:
        raise ValidationError(
            "Step 5 is saved through the media upload and step 8 by payment" if step_number in (5, 8)
            else "Step number must be between 1 and 7"
        )
    try:
        step = model.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError([
            {"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()
        ])

    registration = workflow_service.update_step(
        db, registration_id, step_number, step.payload(), step.next_step, current_user
    )
    return {
        "status": "success",
        "message": f"Step {step_number} saved",
        "data": {**registration.to_dict(), **_progress(registration)},
    }


@router.post("/{registration_id}/media")
async def upload_media(
    registration_id: str,
    profilePhoto: Optional[UploadFile] = File(None),
    videoUpload: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: MediaStore = Depends(get_media_store),
):
    files = {}
    for field, upload in (("profilePhoto", profilePhoto), ("videoUpload", videoUpload)):
        if upload is None or not upload.filename:
            continue
        files[field] = SimpleNamespace(
            filename=upload.filename,
            content_type=upload.content_type,
            content=await upload.read(),
        )
    if not files:
        raise ValidationError("No media file provided")

    registration = workflow_service.store_media(db, registration_id, files, store, current_user)
    return {
        "status": "success",
        "message": "Media uploaded",
        "data": {**registration.to_dict(), **_progress(registration)},
    }


@router.post("/{registration_id}/submit")
def submit_registration(registration_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    registration = workflow_service.submit(db, registration_id, current_user)
    return {"status": "success", "message": "Registration submitted", "data": registration.to_dict()}


@router.post("/{registration_id}/payment/initialize", status_code=201)
def initialize_payment(registration_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    transaction = payment_service.initialize_registration_payment(db, registration_id, current_user)
    return {"status": "success", "message": "Payment initialized", "data": intent_response(transaction)}


@router.get("/{registration_id}/payment")
def registration_payment_status(
    registration_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    registration = workflow_service.get_registration(db, registration_id, current_user)
    return {"status": "success", "data": payment_service.payment_status(db, registration)}


@router.delete("/{registration_id}")
def delete_registration(registration_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    workflow_service.delete_draft(db, registration_id, current_user)
    return {"status": "success", "message": "Registration deleted"}


@router.patch("/{registration_id}/review")
def review_registration(
    registration_id: str,
    payload: ReviewRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    registration = workflow_service.review(db, registration_id, payload.status, payload.notes)
    logger.info(f"Admin {admin.email} set {registration.registration_number} to {payload.status}")
    return {"status": "success", "message": "Registration reviewed", "data": registration.to_dict()}
