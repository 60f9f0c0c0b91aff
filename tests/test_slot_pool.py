import asyncio

import pytest

from talenthunt.exceptions import ConflictError, NotFoundError, PoolExhausted, PoolNotActive, ValidationError
from talenthunt.models.bulk_registration import BulkParticipant, BulkRegistration
from talenthunt.services import identity_service, payment_service, slot_pool_service, workflow_service

from conftest import make_user, rival_commits_first


def add(db, pool, owner, email, dispatcher, first_name="Guest"):
    return asyncio.run(
        slot_pool_service.add_participant(db, pool.id, owner, first_name, "Invitee", email, None, dispatcher)
    )


def activate(db, pool, owner):
    pool, transaction = slot_pool_service.initialize_pool_payment(db, pool.id, owner)
    return payment_service.reconcile_payload(
        db, {"reference": transaction.reference, "status": "success", "amount": transaction.amount}
    )


def test_scenario_b_pool_exhaustion(db, user, dispatcher):
    pool = slot_pool_service.create_pool(db, user, 3)
    assert pool.total_amount == 3 * pool.price_per_slot

    result = activate(db, pool, user)
    assert result.applied is True
    db.refresh(pool)
    assert pool.status == "active"
    assert user.role == "sponsor"

    for i in range(3):
        _, pool = add(db, pool, user, f"p{i}@example.com", dispatcher)
    assert pool.status == "completed"
    assert pool.used_slots == 3

    with pytest.raises(PoolExhausted):
        add(db, pool, user, "p4@example.com", dispatcher)
    db.refresh(pool)
    assert pool.used_slots == 3
    assert db.query(BulkParticipant).filter(BulkParticipant.bulk_registration_id == pool.id).count() == pool.used_slots


def test_pool_must_be_paid_before_adding(db, user, dispatcher):
    pool = slot_pool_service.create_pool(db, user, 2)
    with pytest.raises(PoolNotActive):
        add(db, pool, user, "p1@example.com", dispatcher)
    db.refresh(pool)
    assert pool.used_slots == 0


def test_slot_bounds(db, user):
    with pytest.raises(ValidationError):
        slot_pool_service.create_pool(db, user, 1)
    with pytest.raises(ValidationError):
        slot_pool_service.create_pool(db, user, 51)


def test_duplicate_and_verified_emails_are_rejected(db, user, dispatcher):
    pool = slot_pool_service.create_pool(db, user, 5)
    activate(db, pool, user)
    add(db, pool, user, "p1@example.com", dispatcher)

    with pytest.raises(ConflictError):
        add(db, pool, user, "P1@example.com", dispatcher)

    make_user(db, email="taken@example.com")
    with pytest.raises(ConflictError):
        add(db, pool, user, "taken@example.com", dispatcher)

    db.refresh(pool)
    assert pool.used_slots == 1


def test_invitation_is_sent_and_recorded(db, user, dispatcher):
    pool = slot_pool_service.create_pool(db, user, 2)
    activate(db, pool, user)
    participant, _ = add(db, pool, user, "guest@example.com", dispatcher)

    assert participant.invitation_status == "sent"
    invitation = dispatcher.sent[-1]
    assert invitation["kind"] == "invitation"
    assert invitation["number"] == pool.bulk_registration_number


def test_failed_invitation_keeps_the_slot(db, user, dispatcher):
    pool = slot_pool_service.create_pool(db, user, 2)
    activate(db, pool, user)
    dispatcher.fail = True
    participant, pool = add(db, pool, user, "guest@example.com", dispatcher)

    assert participant.invitation_status == "pending"
    assert pool.used_slots == 1

    dispatcher.fail = False
    assert asyncio.run(slot_pool_service.resend_invitation(db, "guest@example.com", dispatcher)) is True


def test_participant_registers_with_prepaid_slot(db, user, dispatcher):
    pool = slot_pool_service.create_pool(db, user, 2)
    activate(db, pool, user)
    add(db, pool, user, "guest@example.com", dispatcher)

    code = dispatcher.last_code("guest@example.com")
    guest = identity_service.verify_email(db, "guest@example.com", code)
    identity_service.set_password(db, "guest@example.com", "Password123")

    registration = workflow_service.create_registration(db, guest, "bulk", pool.id)
    assert registration.payment_status == "completed"
    assert registration.completed_steps == [8]
    assert registration.payment_amount == pool.price_per_slot

    participant = db.query(BulkParticipant).filter(BulkParticipant.email == "guest@example.com").one()
    assert participant.invitation_status == "registered"
    assert participant.registration_id == registration.id


def test_bulk_registration_needs_invitation(db, user, dispatcher):
    pool = slot_pool_service.create_pool(db, user, 2)
    activate(db, pool, user)
    stranger = make_user(db, email="stranger@example.com")
    with pytest.raises(NotFoundError):
        workflow_service.create_registration(db, stranger, "bulk", pool.id)


def test_refund_only_before_participants(db, user, dispatcher):
    pool = slot_pool_service.create_pool(db, user, 2)
    activate(db, pool, user)
    add(db, pool, user, "guest@example.com", dispatcher)

    with pytest.raises(ConflictError):
        payment_service.refund(db, pool.payment_reference, "changed mind")

    other = slot_pool_service.create_pool(db, user, 2)
    activate(db, other, user)
    result = payment_service.refund(db, other.payment_reference)
    assert result.applied is True
    db.refresh(other)
    assert other.status == "expired"
    assert other.payment_status == "refunded"


def test_last_slot_taken_concurrently(db, session_factory, user, dispatcher):
    pool = slot_pool_service.create_pool(db, user, 2)
    activate(db, pool, user)
    add(db, pool, user, "first@example.com", dispatcher)

    def rival():
        other = session_factory()
        try:
            other.query(BulkRegistration).filter(BulkRegistration.id == pool.id).update(
                {"used_slots": 2, "status": "completed"}, synchronize_session=False
            )
            other.commit()
        finally:
            other.close()

    with rival_commits_first(db, rival) as fired:
        with pytest.raises(PoolExhausted):
            add(db, pool, user, "late@example.com", dispatcher)

    assert fired
    db.refresh(pool)
    assert pool.used_slots == 2
    assert db.query(BulkParticipant).filter(BulkParticipant.email == "late@example.com").count() == 0
    assert identity_service.get_user_by_email(db, "late@example.com") is None
    assert not [m for m in dispatcher.sent if m["email"] == "late@example.com"]


def test_bulk_registration_with_vanished_pool(db, user):
    db.add(BulkParticipant(bulk_registration_id="gone", first_name="Ada", last_name="Obi", email=user.email))
    db.commit()
    with pytest.raises(NotFoundError):
        workflow_service.create_registration(db, user, "bulk", "gone")
