"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create ENUM types
    op.execute("CREATE TYPE loan_status AS ENUM ('requested', 'pending', 'active', 'completed', 'cancelled')")
    op.execute("CREATE TYPE loan_match_status AS ENUM ('unmatched', 'matching', 'matched', 'no_match')")
    op.execute("CREATE TYPE match_record_status AS ENUM ('pending', 'accepted', 'auto_accepted', 'declined', 'expired')")
    op.execute("CREATE TYPE trust_tier AS ENUM ('tier_1', 'tier_2', 'tier_3', 'tier_4')")

    # Create borrower_profiles table
    op.create_table(
        'borrower_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('borrower_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('trust_tier', postgresql.ENUM(name='trust_tier', create_type=False), nullable=False, server_default='tier_1'),
        sa.Column('completed_loans', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_borrower_profiles_borrower_id', 'borrower_profiles', ['borrower_id'], unique=True)

    # Create loan_requests table
    op.create_table(
        'loan_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('borrower_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='USD'),
        sa.Column('country', sa.String(length=2), nullable=True),
        sa.Column('state', sa.String(length=10), nullable=True),
        sa.Column('loan_type', sa.String(length=100), nullable=True),
        sa.Column('purpose', sa.Text(), nullable=True),
        sa.Column('total_installments', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', postgresql.ENUM(name='loan_status', create_type=False), nullable=False, server_default='requested'),
        sa.Column('match_status', postgresql.ENUM(name='loan_match_status', create_type=False), nullable=False, server_default='unmatched'),
        sa.Column('match_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_match_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('lender_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('business_lender_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('lender_name', sa.String(length=255), nullable=True),
        sa.Column('interest_rate', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('total_interest', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('total_amount', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('repayment_amount', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('amount_remaining', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('matched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('auto_matched', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.CheckConstraint(
            'lender_user_id IS NULL OR business_lender_id IS NULL',
            name='ck_loan_requests_single_lender',
        ),
    )
    op.create_index('ix_loan_requests_borrower_id', 'loan_requests', ['borrower_id'])
    op.create_index('ix_loan_requests_match_status', 'loan_requests', ['match_status'])
    op.create_index('ix_loan_requests_lender_user_id', 'loan_requests', ['lender_user_id'])
    op.create_index('ix_loan_requests_business_lender_id', 'loan_requests', ['business_lender_id'])

    # Create payment_schedule table
    op.create_table(
        'payment_schedule',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('loan_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('principal_amount', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('interest_amount', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.ForeignKeyConstraint(['loan_id'], ['loan_requests.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_payment_schedule_loan_id', 'payment_schedule', ['loan_id'])

    # Create lender_preferences table (individual and business lenders share it)
    op.create_table(
        'lender_preferences',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('lender_kind', sa.String(length=20), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('owner_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('capital_pool', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('capital_reserved', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('auto_accept', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('interest_rate', sa.Numeric(precision=5, scale=2), nullable=False, server_default='10.00'),
        sa.Column('min_amount', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('max_amount', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('countries', sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column('states', sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column('allow_first_time_borrowers', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('first_time_borrower_limit', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('lender_name', sa.String(length=255), nullable=True),
        sa.Column('lender_email', sa.String(length=255), nullable=True),
        sa.Column('total_loans_funded', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_amount_funded', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('last_loan_assigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            '(user_id IS NULL) <> (business_id IS NULL)',
            name='ck_lender_preferences_single_owner',
        ),
        sa.CheckConstraint(
            'capital_reserved <= capital_pool',
            name='ck_lender_preferences_reserved_within_pool',
        ),
    )
    op.create_index('ix_lender_preferences_lender_kind', 'lender_preferences', ['lender_kind'])
    op.create_index('ix_lender_preferences_is_active', 'lender_preferences', ['is_active'])
    op.create_index('ix_lender_preferences_user_id', 'lender_preferences', ['user_id'], unique=True)
    op.create_index('ix_lender_preferences_business_id', 'lender_preferences', ['business_id'], unique=True)
    op.create_index('ix_lender_preferences_owner_user_id', 'lender_preferences', ['owner_user_id'])

    # Create business_loan_types table
    op.create_table(
        'business_loan_types',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('lender_preference_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('loan_type', sa.String(length=100), nullable=False),
        sa.ForeignKeyConstraint(['lender_preference_id'], ['lender_preferences.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('lender_preference_id', 'loan_type', name='uq_business_loan_types_lender_type'),
    )
    op.create_index('ix_business_loan_types_lender_preference_id', 'business_loan_types', ['lender_preference_id'])

    # Create lender_tier_policies table
    op.create_table(
        'lender_tier_policies',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('lender_preference_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tier', postgresql.ENUM(name='trust_tier', create_type=False), nullable=False),
        sa.Column('interest_rate', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('max_loan_amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.ForeignKeyConstraint(['lender_preference_id'], ['lender_preferences.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('lender_preference_id', 'tier', name='uq_lender_tier_policies_tier'),
    )
    op.create_index('ix_lender_tier_policies_lender_preference_id', 'lender_tier_policies', ['lender_preference_id'])

    # Create loan_matches table
    op.create_table(
        'loan_matches',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('loan_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('lender_preference_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('lender_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('lender_business_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('attempt', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('match_rank', sa.Integer(), nullable=False),
        sa.Column('match_score', sa.Integer(), nullable=False),
        sa.Column('interest_rate', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('status', postgresql.ENUM(name='match_record_status', create_type=False), nullable=False, server_default='pending'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('decline_reason', sa.Text(), nullable=True),
        sa.Column('was_auto_accepted', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.ForeignKeyConstraint(['loan_id'], ['loan_requests.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['lender_preference_id'], ['lender_preferences.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('loan_id', 'lender_preference_id', 'attempt', name='uq_loan_matches_loan_lender_attempt'),
    )
    op.create_index('ix_loan_matches_loan_id', 'loan_matches', ['loan_id'])
    op.create_index('ix_loan_matches_lender_preference_id', 'loan_matches', ['lender_preference_id'])
    op.create_index('ix_loan_matches_lender_user_id', 'loan_matches', ['lender_user_id'])
    op.create_index('ix_loan_matches_lender_business_id', 'loan_matches', ['lender_business_id'])
    op.create_index('ix_loan_matches_status', 'loan_matches', ['status'])
    op.create_index('ix_loan_matches_expires_at', 'loan_matches', ['expires_at'])


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign key constraints)
    op.drop_index('ix_loan_matches_expires_at', table_name='loan_matches')
    op.drop_index('ix_loan_matches_status', table_name='loan_matches')
    op.drop_index('ix_loan_matches_lender_business_id', table_name='loan_matches')
    op.drop_index('ix_loan_matches_lender_user_id', table_name='loan_matches')
    op.drop_index('ix_loan_matches_lender_preference_id', table_name='loan_matches')
    op.drop_index('ix_loan_matches_loan_id', table_name='loan_matches')
    op.drop_table('loan_matches')

    op.drop_index('ix_lender_tier_policies_lender_preference_id', table_name='lender_tier_policies')
    op.drop_table('lender_tier_policies')

    op.drop_index('ix_business_loan_types_lender_preference_id', table_name='business_loan_types')
    op.drop_table('business_loan_types')

    op.drop_index('ix_lender_preferences_owner_user_id', table_name='lender_preferences')
    op.drop_index('ix_lender_preferences_business_id', table_name='lender_preferences')
    op.drop_index('ix_lender_preferences_user_id', table_name='lender_preferences')
    op.drop_index('ix_lender_preferences_is_active', table_name='lender_preferences')
    op.drop_index('ix_lender_preferences_lender_kind', table_name='lender_preferences')
    op.drop_table('lender_preferences')

    op.drop_index('ix_payment_schedule_loan_id', table_name='payment_schedule')
    op.drop_table('payment_schedule')

    op.drop_index('ix_loan_requests_business_lender_id', table_name='loan_requests')
    op.drop_index('ix_loan_requests_lender_user_id', table_name='loan_requests')
    op.drop_index('ix_loan_requests_match_status', table_name='loan_requests')
    op.drop_index('ix_loan_requests_borrower_id', table_name='loan_requests')
    op.drop_table('loan_requests')

    op.drop_index('ix_borrower_profiles_borrower_id', table_name='borrower_profiles')
    op.drop_table('borrower_profiles')

    # Drop ENUM types
    op.execute('DROP TYPE trust_tier')
    op.execute('DROP TYPE match_record_status')
    op.execute('DROP TYPE loan_match_status')
    op.execute('DROP TYPE loan_status')
