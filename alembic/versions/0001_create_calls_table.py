"""create calls table

Revision ID: 0001_create_calls
Revises:
Create Date: 2025-09-02
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_create_calls'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'calls',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('call_id', sa.String(), nullable=False),
        sa.Column('direction', sa.String(), nullable=True),
        sa.Column('from_number', sa.String(), nullable=True),
        sa.Column('to_number', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('recording_url', sa.Text(), nullable=True),
        sa.Column('transcript', sa.Text(), nullable=True),
        sa.Column('transcript_url', sa.Text(), nullable=True),
        sa.Column('call_type', sa.String(), nullable=True),
        sa.Column('customer_name', sa.String(), nullable=True),
        sa.Column('customer_zip_code', sa.String(), nullable=True),
        sa.Column('lead_quality', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('zapier_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('zapier_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_calls_call_id', 'calls', ['call_id'], unique=True)
    op.create_index('ix_calls_status', 'calls', ['status'])
    op.create_index('ix_calls_start_time', 'calls', ['start_time'])
    op.create_index('ix_calls_call_type', 'calls', ['call_type'])
    op.create_index('idx_calls_type_start', 'calls', ['call_type', 'start_time'])


def downgrade() -> None:
    op.drop_index('idx_calls_type_start', table_name='calls')
    op.drop_index('ix_calls_call_type', table_name='calls')
    op.drop_index('ix_calls_start_time', table_name='calls')
    op.drop_index('ix_calls_status', table_name='calls')
    op.drop_index('ix_calls_call_id', table_name='calls')
    op.drop_table('calls')
