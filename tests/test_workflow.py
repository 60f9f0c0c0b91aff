from types import SimpleNamespace

import pytest

from talenthunt.exceptions import (
    ConflictError,
    StepValidationError,
    ValidationError,
    WorkflowIncomplete,
    WorkflowTerminal,
)
from talenthunt.models.registration import RegistrationStep
from talenthunt.services import payment_service, vote_service, workflow_service
from talenthunt.services.media_store import MediaStoreError

PERSONAL = {
    "firstName": "Ada",
    "lastName": "Obi",
    "email": "ada@example.com",
    "phoneNo": "08012345678",
    "dateOfBirth": "2010-05-01",
    "gender": "Female",
    "tshirtSize": "M",
}
TALENT = {"talentCategory": "Singing", "skillLevel": "Intermediate"}
GUARDIAN = {"guardianName": "Mrs Obi", "relationship": "Mother", "guardianPhoneNo": "08087654321"}
AUDITION = {"auditionLocation": "Benin", "auditionDate": "2026-11-20", "auditionTime": "10:00"}
TERMS = {"rulesAcceptance": True, "promotionalAcceptance": False}
GROUP = {
    "groupName": "The Obis",
    "noOfGroupMembers": 2,
    "members": [
        {"firstName": "Ada", "lastName": "Obi", "dateOfBirth": "2001-01-01", "gender": "Female", "tshirtSize": "M"},
        {"firstName": "Uche", "lastName": "Obi", "dateOfBirth": "2003-01-01", "gender": "Male", "tshirtSize": "L"},
    ],
}


def photo(name="me.jpg"):
    return SimpleNamespace(filename=name, content_type="image/jpeg", content=b"\xff\xd8\xff")


def pay(db, registration):
    transaction = payment_service.initialize_registration_payment(db, registration.id)
    return payment_service.reconcile_payload(
        db, {"reference": transaction.reference, "status": "success", "amount": transaction.amount}
    )


def test_scenario_d_guardian_step_required_for_individual(db, user, media_store):
    registration = workflow_service.create_registration(db, user, "individual")
    workflow_service.update_step(db, registration.id, 1, PERSONAL)
    workflow_service.update_step(db, registration.id, 2, TALENT)
    workflow_service.store_media(db, registration.id, {"profilePhoto": photo()}, media_store)
    workflow_service.update_step(db, registration.id, 6, AUDITION)
    workflow_service.update_step(db, registration.id, 7, TERMS)

    with pytest.raises(WorkflowIncomplete) as exc:
        workflow_service.submit(db, registration.id)
    assert exc.value.missing_steps == [4]
    assert exc.value.payment_missing is True

    workflow_service.update_step(db, registration.id, 4, GUARDIAN)
    result = pay(db, registration)
    assert result.applied is True
    assert result.detail["can_submit"] is True

    submitted = workflow_service.submit(db, registration.id)
    assert submitted.status == "submitted"
    assert submitted.completed_steps == [1, 2, 4, 5, 6, 7, 8]
    assert submitted.submitted_at is not None


def test_submit_requires_payment(db, user, media_store):
    registration = workflow_service.create_registration(db, user, "individual")
    for step, payload in ((1, PERSONAL), (2, TALENT), (4, GUARDIAN), (6, AUDITION), (7, TERMS)):
        workflow_service.update_step(db, registration.id, step, payload)
    workflow_service.store_media(db, registration.id, {"profilePhoto": photo()}, media_store)

    with pytest.raises(WorkflowIncomplete) as exc:
        workflow_service.submit(db, registration.id)
    assert exc.value.missing_steps == []
    assert exc.value.payment_missing is True


def test_steps_are_frozen_after_submission(db, user, media_store):
    registration = workflow_service.create_registration(db, user, "individual")
    for step, payload in ((1, PERSONAL), (2, TALENT), (4, GUARDIAN), (6, AUDITION), (7, TERMS)):
        workflow_service.update_step(db, registration.id, step, payload)
    workflow_service.store_media(db, registration.id, {"profilePhoto": photo()}, media_store)
    pay(db, registration)
    workflow_service.submit(db, registration.id)

    with pytest.raises(WorkflowTerminal):
        workflow_service.update_step(db, registration.id, 2, {"skillLevel": "Advanced"})
    with pytest.raises(WorkflowTerminal):
        workflow_service.submit(db, registration.id)


def test_group_registration_skips_guardian(db, user, media_store):
    registration = workflow_service.create_registration(db, user, "group")
    for step, payload in ((1, PERSONAL), (2, TALENT), (3, GROUP), (6, AUDITION), (7, TERMS)):
        workflow_service.update_step(db, registration.id, step, payload)
    workflow_service.store_media(db, registration.id, {"profilePhoto": photo()}, media_store)
    pay(db, registration)

    assert workflow_service.submit(db, registration.id).status == "submitted"


def test_group_step_rejected_for_individual(db, user):
    registration = workflow_service.create_registration(db, user, "individual")
    with pytest.raises(ValidationError):
        workflow_service.update_step(db, registration.id, 3, GROUP)


def test_group_member_count_must_match(db, user):
    registration = workflow_service.create_registration(db, user, "group")
    with pytest.raises(StepValidationError) as exc:
        workflow_service.update_step(db, registration.id, 3, {**GROUP, "noOfGroupMembers": 3})
    assert exc.value.field == "members"


def test_step_update_merges_and_validates(db, user):
    registration = workflow_service.create_registration(db, user, "individual")
    with pytest.raises(StepValidationError) as exc:
        workflow_service.update_step(db, registration.id, 1, {"firstName": "Ada"})
    assert exc.value.field == "lastName"
    assert workflow_service.get_registration(db, registration.id).completed_steps == []

    updated = workflow_service.update_step(db, registration.id, 1, PERSONAL)
    assert updated.personal_info["age"] >= 15
    updated = workflow_service.update_step(db, registration.id, 1, {"tshirtSize": "L"})
    assert updated.personal_info["tshirtSize"] == "L"
    assert updated.personal_info["firstName"] == "Ada"
    assert updated.completed_steps == [1]


def test_conditional_fields(db, user):
    registration = workflow_service.create_registration(db, user, "individual")
    with pytest.raises(StepValidationError) as exc:
        workflow_service.update_step(db, registration.id, 2, {**TALENT, "talentCategory": "Other"})
    assert exc.value.field == "otherTalentCategory"

    with pytest.raises(StepValidationError):
        workflow_service.update_step(db, registration.id, 4, {**GUARDIAN, "relationship": "Other"})

    with pytest.raises(StepValidationError) as exc:
        workflow_service.update_step(db, registration.id, 7, {"rulesAcceptance": False, "promotionalAcceptance": True})
    assert exc.value.field == "rulesAcceptance"


def test_current_step_follows_hint_or_next_missing(db, user):
    registration = workflow_service.create_registration(db, user, "individual")
    updated = workflow_service.update_step(db, registration.id, 1, PERSONAL)
    assert updated.current_step == 2
    updated = workflow_service.update_step(db, registration.id, 2, TALENT, next_step_hint=6)
    assert updated.current_step == 6


def test_only_one_active_registration(db, user):
    workflow_service.create_registration(db, user, "individual")
    with pytest.raises(ConflictError):
        workflow_service.create_registration(db, user, "group")


def test_media_rejects_unknown_extension_and_store_failure(db, user, media_store):
    registration = workflow_service.create_registration(db, user, "individual")
    with pytest.raises(StepValidationError):
        workflow_service.store_media(db, registration.id, {"profilePhoto": photo("me.gif")}, media_store)

    class BrokenStore:
        def store(self, content, filename, folder):
            raise MediaStoreError("disk full")

    with pytest.raises(ValidationError):
        workflow_service.store_media(db, registration.id, {"profilePhoto": photo()}, BrokenStore())
    db.refresh(registration)
    assert registration.media_info is None
    assert registration.completed_steps == []


def test_paid_draft_cannot_be_deleted(db, user):
    registration = workflow_service.create_registration(db, user, "individual")
    pay(db, registration)
    with pytest.raises(ConflictError):
        workflow_service.delete_draft(db, registration.id)


def test_unpaid_draft_can_be_deleted(db, user):
    registration = workflow_service.create_registration(db, user, "individual")
    workflow_service.update_step(db, registration.id, 1, PERSONAL)
    workflow_service.delete_draft(db, registration.id)
    assert db.query(RegistrationStep).count() == 0


def test_review_and_promotion_to_contestant(db, user, media_store):
    registration = workflow_service.create_registration(db, user, "individual")
    with pytest.raises(ConflictError):
        workflow_service.review(db, registration.id, "approved")

    for step, payload in ((1, PERSONAL), (2, TALENT), (4, GUARDIAN), (6, AUDITION), (7, TERMS)):
        workflow_service.update_step(db, registration.id, step, payload)
    workflow_service.store_media(db, registration.id, {"profilePhoto": photo()}, media_store)
    pay(db, registration)
    workflow_service.submit(db, registration.id)

    with pytest.raises(ValidationError):
        workflow_service.review(db, registration.id, "draft")
    reviewed = workflow_service.review(db, registration.id, "approved", "Great voice")
    assert reviewed.status == "approved"
    assert reviewed.review_notes == "Great voice"

    contestant = vote_service.promote_to_contestant(db, registration.id)
    assert contestant.contestant_number == "CNT-001"
    assert contestant.talent_category == "Singing"
    assert contestant.profile_photo.endswith(".jpg")
    assert contestant.total_votes == 0

    with pytest.raises(ConflictError):
        vote_service.promote_to_contestant(db, registration.id)
