# talenthunt/services/workflow_service.py
"""
Registration wizard.

Each step's payload lives in its own JSON column and completed steps are rows
in ``registration_steps``, so two requests completing different steps of the
same registration never overwrite each other. Every write is conditioned on
``status = 'draft'``; once a registration is submitted the step columns are
frozen.
"""
from typing import Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from talenthunt.config import settings
from talenthunt.exceptions import (
    ConflictError,
    NotFoundError,
    PoolNotActive,
    StepValidationError,
    ValidationError,
    WorkflowIncomplete,
    WorkflowTerminal,
)
from talenthunt.models.bulk_registration import BulkParticipant, BulkRegistration
from talenthunt.models.payment import PaymentTransaction
from talenthunt.models.registration import (
    ACTIVE_STATUSES,
    REGISTRATION_TYPES,
    REQUIRED_STEPS,
    STEP_FIELDS,
    STEP_GROUP,
    STEP_MEDIA,
    STEP_PAYMENT,
    Registration,
    RegistrationStep,
)
from talenthunt.models.user import User
from talenthunt.services.media_store import ALLOWED_EXTENSIONS, MediaStore, MediaStoreError
from talenthunt.utils.dates import calculate_age, parse_date, utcnow
from talenthunt.utils.otp import generate_number

logger = logging.getLogger(__name__)

REVIEW_STATUSES = ("under_review", "approved", "rejected", "qualified", "disqualified")

# Fields that must be present once a step is marked complete
REQUIRED_FIELDS = {
    1: ("firstName", "lastName", "email", "phoneNo", "dateOfBirth", "gender", "tshirtSize"),
    2: ("talentCategory", "skillLevel"),
    3: ("groupName", "noOfGroupMembers", "members"),
    4: ("guardianName", "relationship", "guardianPhoneNo"),
    5: ("profilePhoto",),
    6: ("auditionLocation", "auditionDate", "auditionTime"),
    7: ("rulesAcceptance", "promotionalAcceptance"),
}


# -------------------- LOOKUPS --------------------
def get_registration(db: Session, registration_id: str, user: Optional[User] = None) -> Registration:
    """Owner-scoped fetch. Admins (or ``user=None``) see every registration."""
    query = db.query(Registration).filter(Registration.id == registration_id)
    if user is not None and user.role != "admin":
        query = query.filter(Registration.user_id == user.id)
    registration = query.first()
    if registration is None:
        raise NotFoundError("Registration not found")
    return registration


def list_registrations(db: Session, user: User) -> list:
    return (
        db.query(Registration)
        .filter(Registration.user_id == user.id)
        .order_by(Registration.created_at.desc())
        .all()
    )


def missing_requirements(registration: Registration) -> Tuple[list, bool]:
    """Required steps not yet done (payment excluded) and whether payment is outstanding."""
    completed = set(registration.completed_steps)
    missing = sorted(registration.required_steps - completed - {STEP_PAYMENT})
    payment_missing = registration.payment_status != "completed"
    return missing, payment_missing


def can_submit(registration: Registration) -> bool:
    missing, payment_missing = missing_requirements(registration)
    return registration.status == "draft" and not missing and not payment_missing


def next_step(registration_type: str, completed: set) -> Optional[int]:
    remaining = sorted(REQUIRED_STEPS[registration_type] - completed)
    return remaining[0] if remaining else None


# -------------------- CREATE --------------------
def create_registration(
    db: Session,
    user: User,
    registration_type: str,
    bulk_registration_id: Optional[str] = None,
) -> Registration:
    if registration_type not in REGISTRATION_TYPES:
        raise ValidationError(f"registration_type must be one of {', '.join(REGISTRATION_TYPES)}")

    active = (
        db.query(Registration)
        .filter(Registration.user_id == user.id, Registration.status.in_(ACTIVE_STATUSES))
        .first()
    )
    if active is not None:
        raise ConflictError("You already have an active registration")

    registration = Registration(
        user_id=user.id,
        registration_number=generate_number("ETH"),
        registration_type=registration_type,
        status="draft",
        current_step=0,
        payment_amount=settings.REGISTRATION_FEE,
        payment_currency=settings.CURRENCY,
        payment_status="pending",
    )

    participant = None
    if registration_type == "bulk":
        participant, pool = _claim_bulk_slot(db, user, bulk_registration_id)
        now = utcnow()
        registration.bulk_registration_id = pool.id
        registration.payment_amount = pool.price_per_slot
        registration.payment_currency = pool.currency
        registration.payment_status = "completed"
        registration.payment_reference = pool.payment_reference
        registration.paid_at = pool.paid_at or now
        registration.steps.append(RegistrationStep(step_number=STEP_PAYMENT))

    db.add(registration)
    db.flush()

    if participant is not None:
        participant.participant_user_id = user.id
        participant.registration_id = registration.id
        participant.invitation_status = "registered"
        participant.registered_at = utcnow()

    db.commit()
    db.refresh(registration)
    logger.info(f"📝 Registration {registration.registration_number} ({registration_type}) created for {user.email}")
    return registration


def _claim_bulk_slot(db: Session, user: User, bulk_registration_id: Optional[str]):
    if not bulk_registration_id:
        raise ValidationError("bulk_registration_id is required for bulk registrations")

    participant = (
        db.query(BulkParticipant)
        .filter(
            BulkParticipant.bulk_registration_id == bulk_registration_id,
            BulkParticipant.email == user.email,
        )
        .first()
    )
    if participant is None:
        raise NotFoundError("No bulk registration invitation found for this account")

    pool = db.query(BulkRegistration).filter(BulkRegistration.id == bulk_registration_id).first()
    if pool is None:
        raise NotFoundError("Bulk registration not found")
    if pool.status not in ("active", "completed"):
        raise PoolNotActive()
    if participant.registration_id:
        raise ConflictError("This bulk slot already has a registration")
    return participant, pool


# -------------------- STEPS --------------------
def _require(step: int, doc: dict, field: str, message: Optional[str] = None):
    value = doc.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise StepValidationError(step, field, message)


def validate_step(registration_type: str, step_number: int, doc: dict) -> dict:
    """Check required and conditional fields on the merged step document."""
    for field in REQUIRED_FIELDS.get(step_number, ()):
        _require(step_number, doc, field)

    if step_number == 1:
        try:
            dob = parse_date(doc.get("dateOfBirth"))
        except ValueError:
            raise StepValidationError(1, "dateOfBirth", "dateOfBirth must be a YYYY-MM-DD date")
        doc["age"] = calculate_age(dob)

    elif step_number == 2:
        if doc.get("talentCategory") == "Other":
            _require(2, doc, "otherTalentCategory", "Please specify your talent category")
        if doc.get("previouslyParticipated") == "Yes":
            previous = doc.get("previousParticipation") or {}
            if not previous.get("competitionName"):
                raise StepValidationError(2, "previousParticipation.competitionName", "Please provide the competition name")
            if previous.get("category") == "Other" and not previous.get("otherCategory"):
                raise StepValidationError(2, "previousParticipation.otherCategory", "Please specify the previous category")

    elif step_number == 3:
        try:
            count = int(doc.get("noOfGroupMembers"))
        except (TypeError, ValueError):
            raise StepValidationError(3, "noOfGroupMembers", "noOfGroupMembers must be a number")
        if not 2 <= count <= 5:
            raise StepValidationError(3, "noOfGroupMembers", "Groups must have between 2 and 5 members")
        members = doc.get("members") or []
        if members and len(members) != count:
            raise StepValidationError(3, "members", f"Expected {count} members, got {len(members)}")

    elif step_number == 4:
        if doc.get("relationship") == "Other":
            _require(4, doc, "otherRelationship", "Please specify the relationship")

    elif step_number == 6:
        if doc.get("auditionRequirement") == "Other":
            _require(6, doc, "otherRequirement", "Please specify the requirement")

    elif step_number == 7:
        if doc.get("rulesAcceptance") is not True:
            raise StepValidationError(7, "rulesAcceptance", "You must accept the competition rules")

    return doc


def update_step(
    db: Session,
    registration_id: str,
    step_number: int,
    payload: dict,
    next_step_hint: Optional[int] = None,
    user: Optional[User] = None,
) -> Registration:
    if step_number not in STEP_FIELDS:
        raise ValidationError("Only steps 1-7 can be edited; step 8 is completed by payment")
    if next_step_hint is not None and not 1 <= next_step_hint <= STEP_PAYMENT:
        raise ValidationError("next_step must be between 1 and 8")

    registration = get_registration(db, registration_id, user)
    if registration.status != "draft":
        raise WorkflowTerminal()
    if step_number == STEP_GROUP and registration.registration_type != "group":
        raise ValidationError("Group information only applies to group registrations")

    column = STEP_FIELDS[step_number]
    merged = dict(getattr(registration, column) or {})
    merged.update(payload)
    merged = validate_step(registration.registration_type, step_number, merged)

    updated = (
        db.query(Registration)
        .filter(Registration.id == registration.id, Registration.status == "draft")
        .update({column: merged, "updated_at": utcnow()}, synchronize_session=False)
    )
    if updated != 1:
        db.rollback()
        raise WorkflowTerminal()

    _complete_step(db, registration.id, step_number)
    _advance(db, registration, next_step_hint)
    db.commit()
    db.refresh(registration)

    logger.info(f"Step {step_number} saved for {registration.registration_number} (current step {registration.current_step})")
    return registration


def _complete_step(db: Session, registration_id: str, step_number: int) -> None:
    """Insert the completion row; a concurrent insert of the same step is fine."""
    exists = (
        db.query(RegistrationStep.id)
        .filter(RegistrationStep.registration_id == registration_id, RegistrationStep.step_number == step_number)
        .first()
    )
    if exists:
        return
    try:
        with db.begin_nested():
            db.add(RegistrationStep(registration_id=registration_id, step_number=step_number))
    except IntegrityError:
        logger.info(f"Step {step_number} of {registration_id} already recorded")


def _advance(db: Session, registration: Registration, hint: Optional[int] = None) -> None:
    if hint is not None:
        target = hint
    else:
        completed = {
            row.step_number
            for row in db.query(RegistrationStep.step_number).filter(RegistrationStep.registration_id == registration.id)
        }
        target = next_step(registration.registration_type, completed)
    if target is not None:
        db.query(Registration).filter(Registration.id == registration.id).update(
            {"current_step": target}, synchronize_session=False
        )


def store_media(
    db: Session,
    registration_id: str,
    files: dict,
    store: MediaStore,
    user: Optional[User] = None,
) -> Registration:
    """
    ``files`` maps a media field (profilePhoto, videoUpload) to an object with
    ``filename``, ``content_type`` and ``content`` bytes. Files are stored
    first; if any store fails nothing is written to the registration.
    """
    registration = get_registration(db, registration_id, user)
    if registration.status != "draft":
        raise WorkflowTerminal()

    media = {}
    for field, upload in files.items():
        if field not in ALLOWED_EXTENSIONS:
            raise StepValidationError(STEP_MEDIA, field, f"Unsupported media field '{field}'")
        ext = upload.filename.rsplit(".", 1)[-1].lower() if "." in upload.filename else ""
        if ext not in ALLOWED_EXTENSIONS[field]:
            raise StepValidationError(STEP_MEDIA, field, f"File type .{ext} is not allowed for {field}")
        try:
            url = store.store(upload.content, upload.filename, f"registrations/{registration.id}")
        except MediaStoreError as e:
            raise ValidationError(f"Failed to upload {field}: {e}")
        media[field] = {
            "url": url,
            "originalName": upload.filename,
            "size": len(upload.content),
            "mimetype": upload.content_type,
        }

    return update_step(db, registration_id, STEP_MEDIA, media, user=user)


# -------------------- SUBMIT / REVIEW --------------------
def submit(db: Session, registration_id: str, user: Optional[User] = None) -> Registration:
    registration = get_registration(db, registration_id, user)
    if registration.status != "draft":
        raise WorkflowTerminal("Registration has already been submitted")

    missing, payment_missing = missing_requirements(registration)
    if missing or payment_missing:
        raise WorkflowIncomplete(missing, payment_missing)

    now = utcnow()
    won = (
        db.query(Registration)
        .filter(
            Registration.id == registration.id,
            Registration.status == "draft",
            Registration.payment_status == "completed",
        )
        .update({"status": "submitted", "submitted_at": now, "updated_at": now}, synchronize_session=False)
    )
    if won != 1:
        db.rollback()
        db.refresh(registration)
        if registration.status != "draft":
            raise WorkflowTerminal("Registration has already been submitted")
        raise WorkflowIncomplete(*missing_requirements(registration))

    if registration.bulk_registration_id:
        db.query(BulkParticipant).filter(BulkParticipant.registration_id == registration.id).update(
            {"invitation_status": "completed"}, synchronize_session=False
        )

    db.commit()
    db.refresh(registration)
    logger.info(f"✅ Registration {registration.registration_number} submitted")
    return registration


def review(db: Session, registration_id: str, status: str, notes: Optional[str] = None) -> Registration:
    if status not in REVIEW_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(REVIEW_STATUSES)}")
    registration = get_registration(db, registration_id)
    if registration.status == "draft":
        raise ConflictError("Draft registrations cannot be reviewed")

    registration.status = status
    registration.review_notes = notes
    registration.reviewed_at = utcnow()
    db.commit()
    db.refresh(registration)
    logger.info(f"Registration {registration.registration_number} reviewed: {status}")
    return registration


def delete_draft(db: Session, registration_id: str, user: Optional[User] = None) -> None:
    registration = get_registration(db, registration_id, user)
    if registration.status != "draft":
        raise WorkflowTerminal("Cannot delete a submitted registration")
    if registration.payment_status == "completed":
        raise ConflictError("Cannot delete a paid registration")
    db.delete(registration)
    db.commit()
    logger.info(f"🗑️ Draft registration {registration.registration_number} deleted")


# -------------------- PAYMENT FAN-OUT --------------------
def mark_payment_completed(db: Session, registration: Registration, transaction: PaymentTransaction) -> bool:
    """Called inside the reconciler's transaction; does not commit."""
    now = utcnow()
    registration.payment_status = "completed"
    registration.payment_reference = transaction.reference
    registration.paid_at = now
    db.flush()
    _complete_step(db, registration.id, STEP_PAYMENT)
    db.flush()
    db.refresh(registration)
    if registration.current_step in (0, STEP_PAYMENT):
        _advance(db, registration)
        db.flush()
        db.refresh(registration)
    return can_submit(registration)


def mark_payment_failed(db: Session, registration: Registration, transaction: PaymentTransaction) -> None:
    if registration.payment_status != "completed":
        registration.payment_status = "failed"
        db.flush()


def mark_payment_refunded(db: Session, registration: Registration, transaction: PaymentTransaction) -> None:
    registration.payment_status = "refunded"
    db.query(RegistrationStep).filter(
        RegistrationStep.registration_id == registration.id,
        RegistrationStep.step_number == STEP_PAYMENT,
    ).delete(synchronize_session=False)
    db.flush()
    db.refresh(registration)
