"""
Create call_logs table

Revision ID: 20260301_create_call_logs
Revises:
Create Date: 2026-03-01
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20260301_create_call_logs'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'call_logs',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('booking_id', sa.String(length=36), nullable=False),
        sa.Column('caller_id', sa.String(length=36), nullable=True),
        sa.Column('caller_type', sa.String(length=20), nullable=True),
        sa.Column('call_status', sa.String(length=20), nullable=False, server_default='completed'),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('end_reason', sa.String(length=32), nullable=True),
        sa.Column('call_started_at', sa.DateTime(), nullable=True),
        sa.Column('call_ended_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_call_logs_booking_id', 'call_logs', ['booking_id'])
    op.create_index('ix_call_logs_caller_id', 'call_logs', ['caller_id'])
    op.create_index('ix_call_logs_call_status', 'call_logs', ['call_status'])
    op.create_index('ix_call_logs_end_reason', 'call_logs', ['end_reason'])

    print("✅ Created 'call_logs' table")


def downgrade():
    op.drop_index('ix_call_logs_end_reason', table_name='call_logs')
    op.drop_index('ix_call_logs_call_status', table_name='call_logs')
    op.drop_index('ix_call_logs_caller_id', table_name='call_logs')
    op.drop_index('ix_call_logs_booking_id', table_name='call_logs')
    op.drop_table('call_logs')

    print("✅ Dropped 'call_logs' table")
