"""create call records, transcripts, escalation requests and business profiles

Revision ID: create_callrelay_tables
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'create_callrelay_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'call_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('conversation_key', sa.String(length=36), nullable=False),
        sa.Column('provider', sa.String(length=20), nullable=True),
        sa.Column('direction', sa.String(length=20), nullable=True),
        sa.Column('counterparty_number', sa.String(length=255), nullable=True),
        sa.Column('topic', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='initiated'),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('duration_seconds', sa.Float(), nullable=False, server_default='0'),
        sa.Column('duration_minutes', sa.Float(), nullable=False, server_default='0'),
        sa.Column('needs_review', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('recording_url', sa.Text(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_call_records_id', 'call_records', ['id'], unique=False)
    op.create_index('ix_call_records_conversation_key', 'call_records', ['conversation_key'], unique=True)

    op.create_table(
        'transcripts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('conversation_key', sa.String(length=36), nullable=False),
        sa.Column('transcript_text', sa.Text(), nullable=False, server_default=''),
        sa.Column('caller_info', sa.String(length=255), nullable=True),
        sa.Column('sales_flagged', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('fragment_ids', sa.JSON(), nullable=False),
        sa.Column('first_fragment_at', sa.DateTime(), nullable=True),
        sa.Column('last_fragment_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transcripts_id', 'transcripts', ['id'], unique=False)
    op.create_index('ix_transcripts_conversation_key', 'transcripts', ['conversation_key'], unique=True)

    op.create_table(
        'escalation_requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('parent_call_key', sa.String(length=36), nullable=False),
        sa.Column('parent_provider', sa.String(length=20), nullable=False),
        sa.Column('control_reference', sa.Text(), nullable=False, server_default=''),
        sa.Column('secondary_call_key', sa.String(length=36), nullable=False),
        sa.Column('secondary_provider', sa.String(length=20), nullable=False),
        sa.Column('item_requested', sa.Text(), nullable=False),
        sa.Column('caller_context', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('resolution', sa.Text(), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('relay_claimed_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_escalation_requests_parent_call_key', 'escalation_requests', ['parent_call_key'], unique=False)
    op.create_index('ix_escalation_requests_secondary_call_key', 'escalation_requests', ['secondary_call_key'], unique=True)
    op.create_index('ix_escalation_requests_status', 'escalation_requests', ['status'], unique=False)
    op.create_index('ix_escalation_requests_expires_at', 'escalation_requests', ['expires_at'], unique=False)

    op.create_table(
        'business_profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_name', sa.String(length=255), nullable=True),
        sa.Column('owner_phone', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_business_profiles_id', 'business_profiles', ['id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_business_profiles_id', 'business_profiles')
    op.drop_table('business_profiles')

    op.drop_index('ix_escalation_requests_expires_at', 'escalation_requests')
    op.drop_index('ix_escalation_requests_status', 'escalation_requests')
    op.drop_index('ix_escalation_requests_secondary_call_key', 'escalation_requests')
    op.drop_index('ix_escalation_requests_parent_call_key', 'escalation_requests')
    op.drop_table('escalation_requests')

    op.drop_index('ix_transcripts_conversation_key', 'transcripts')
    op.drop_index('ix_transcripts_id', 'transcripts')
    op.drop_table('transcripts')

    op.drop_index('ix_call_records_conversation_key', 'call_records')
    op.drop_index('ix_call_records_id', 'call_records')
    op.drop_table('call_records')
