# alembic/versions/3f1c2a9d7e10_create_talent_hunt_tables.py
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '3f1c2a9d7e10'
down_revision = None
branch_labels = None
depends_on = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_password_set', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'verification_codes',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('code', sa.String(length=10), nullable=False),
        sa.Column('purpose', sa.String(), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_verification_codes_lookup', 'verification_codes', ['email', 'purpose', 'created_at'])

    op.create_table(
        'bulk_registrations',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('owner_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('bulk_registration_number', sa.String(length=30), nullable=False, unique=True),
        sa.Column('total_slots', sa.Integer(), nullable=False),
        sa.Column('used_slots', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('price_per_slot', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='NGN'),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('payment_reference', sa.String(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('used_slots >= 0 AND used_slots <= total_slots', name='ck_bulk_slots_in_range'),
    )
    op.create_index('ix_bulk_registrations_owner_id', 'bulk_registrations', ['owner_id'])
    op.create_index('ix_bulk_registrations_status', 'bulk_registrations', ['status'])

    op.create_table(
        'bulk_participants',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('bulk_registration_id', sa.String(),
                  sa.ForeignKey('bulk_registrations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone_no', sa.String(length=20), nullable=True),
        sa.Column('participant_user_id', sa.String(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('registration_id', sa.String(), nullable=True),
        sa.Column('invitation_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('invitation_sent_at', sa.DateTime(), nullable=True),
        sa.Column('registered_at', sa.DateTime(), nullable=True),
        sa.Column('added_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('bulk_registration_id', 'email', name='uq_bulk_participant_email'),
    )
    op.create_index('ix_bulk_participants_bulk_registration_id', 'bulk_participants', ['bulk_registration_id'])
    op.create_index('ix_bulk_participants_email', 'bulk_participants', ['email'])

    op.create_table(
        'registrations',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('registration_number', sa.String(length=30), nullable=False, unique=True),
        sa.Column('registration_type', sa.String(length=20), nullable=False),
        sa.Column('bulk_registration_id', sa.String(), sa.ForeignKey('bulk_registrations.id'), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('current_step', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('personal_info', JSONType, nullable=True),
        sa.Column('talent_info', JSONType, nullable=True),
        sa.Column('group_info', JSONType, nullable=True),
        sa.Column('guardian_info', JSONType, nullable=True),
        sa.Column('media_info', JSONType, nullable=True),
        sa.Column('audition_info', JSONType, nullable=True),
        sa.Column('terms_conditions', JSONType, nullable=True),
        sa.Column('payment_amount', sa.Integer(), nullable=False),
        sa.Column('payment_currency', sa.String(length=3), nullable=False, server_default='NGN'),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('payment_reference', sa.String(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_registrations_user_id', 'registrations', ['user_id'])
    op.create_index('ix_registrations_status', 'registrations', ['status'])
    op.create_index('ix_registrations_payment_status', 'registrations', ['payment_status'])

    op.create_table(
        'registration_steps',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('registration_id', sa.String(),
                  sa.ForeignKey('registrations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('step_number', sa.Integer(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('registration_id', 'step_number', name='uq_registration_step'),
    )
    op.create_index('ix_registration_steps_registration_id', 'registration_steps', ['registration_id'])

    op.create_table(
        'payment_transactions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('reference', sa.String(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='NGN'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='initiated'),
        sa.Column('subject_type', sa.String(length=20), nullable=False),
        sa.Column('subject_id', sa.String(), nullable=False),
        sa.Column('gateway_reference', sa.String(), nullable=True),
        sa.Column('payment_method', sa.String(length=50), nullable=True),
        sa.Column('gateway_response', JSONType, nullable=True),
        sa.Column('payment_metadata', JSONType, nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('refunded_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_payment_transactions_reference', 'payment_transactions', ['reference'], unique=True)
    op.create_index('ix_payment_transactions_status', 'payment_transactions', ['status'])
    op.create_index('ix_payment_transactions_subject_id', 'payment_transactions', ['subject_id'])

    op.create_table(
        'contestants',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('registration_id', sa.String(), sa.ForeignKey('registrations.id'), nullable=False, unique=True),
        sa.Column('contestant_number', sa.String(length=20), nullable=False, unique=True),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('talent_category', sa.String(length=50), nullable=True),
        sa.Column('stage_name', sa.String(length=100), nullable=True),
        sa.Column('profile_photo', sa.String(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('total_votes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_vote_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_contestants_email', 'contestants', ['email'])
    op.create_index('ix_contestants_status', 'contestants', ['status'])

    op.create_table(
        'votes',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('contestant_id', sa.String(), sa.ForeignKey('contestants.id'), nullable=False),
        sa.Column('contestant_email', sa.String(length=255), nullable=True),
        sa.Column('number_of_votes', sa.Integer(), nullable=False),
        sa.Column('amount_paid', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='NGN'),
        sa.Column('voter_info', JSONType, nullable=True),
        sa.Column('payment_reference', sa.String(), nullable=False),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('number_of_votes >= 1', name='ck_vote_count_positive'),
        sa.CheckConstraint('amount_paid >= 0', name='ck_vote_amount_non_negative'),
    )
    op.create_index('ix_votes_contestant_id', 'votes', ['contestant_id'])
    op.create_index('ix_votes_payment_reference', 'votes', ['payment_reference'], unique=True)
    op.create_index('ix_votes_payment_status', 'votes', ['payment_status'])

    op.create_table(
        'tickets',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('ticket_type', sa.String(length=20), nullable=False, unique=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='NGN'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('available_quantity', sa.Integer(), nullable=True),
        sa.Column('sold_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'ticket_purchases',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('purchase_reference', sa.String(), nullable=False, unique=True),
        sa.Column('buyer_first_name', sa.String(length=50), nullable=False),
        sa.Column('buyer_last_name', sa.String(length=50), nullable=False),
        sa.Column('buyer_email', sa.String(length=255), nullable=False),
        sa.Column('buyer_phone', sa.String(length=20), nullable=True),
        sa.Column('items', JSONType, nullable=False),
        sa.Column('total_amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='NGN'),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('payment_reference', sa.String(), nullable=False),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('ticket_numbers', JSONType, nullable=True),
        sa.Column('ticket_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('ticket_sent_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_ticket_purchases_buyer_email', 'ticket_purchases', ['buyer_email'])
    op.create_index('ix_ticket_purchases_payment_status', 'ticket_purchases', ['payment_status'])
    op.create_index('ix_ticket_purchases_payment_reference', 'ticket_purchases', ['payment_reference'], unique=True)


def downgrade() -> None:
    op.drop_table('ticket_purchases')
    op.drop_table('tickets')
    op.drop_table('votes')
    op.drop_table('contestants')
    op.drop_table('payment_transactions')
    op.drop_table('registration_steps')
    op.drop_table('registrations')
    op.drop_table('bulk_participants')
    op.drop_table('bulk_registrations')
    op.drop_table('verification_codes')
    op.drop_table('users')
