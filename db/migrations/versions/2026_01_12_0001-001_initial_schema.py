"""Initial schema - create availability_configs, reservations, and slot_counters tables.

Revision ID: 001
Revises:
Create Date: 2026-01-12

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


JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def upgrade() -> None:
    """Create initial database tables."""
    # Create availability_configs table
    op.create_table(
        'availability_configs',
        sa.Column('business_id', sa.String(length=128), nullable=False),
        sa.Column('config_json', JSON_TYPE, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('business_id', name=op.f('pk_availability_configs'))
    )
    op.create_index(op.f('ix_availability_configs_created_at'), 'availability_configs', ['created_at'], unique=False)

    # Create reservations table
    op.create_table(
        'reservations',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('business_id', sa.String(length=128), nullable=False),
        sa.Column('business_name', sa.String(length=200), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('user_name', sa.String(length=100), nullable=False),
        sa.Column('contact_info', JSON_TYPE, nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.String(length=5), nullable=False),
        sa.Column('party_size', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_reservations'))
    )

    # Create indexes for reservations
    op.create_index(op.f('ix_reservations_business_id'), 'reservations', ['business_id'], unique=False)
    op.create_index(op.f('ix_reservations_user_id'), 'reservations', ['user_id'], unique=False)
    op.create_index(op.f('ix_reservations_date'), 'reservations', ['date'], unique=False)
    op.create_index(op.f('ix_reservations_status'), 'reservations', ['status'], unique=False)
    op.create_index(op.f('ix_reservations_created_at'), 'reservations', ['created_at'], unique=False)
    op.create_index('ix_reservations_slot', 'reservations', ['business_id', 'date', 'time', 'status'], unique=False)
    op.create_index('ix_reservations_user_date', 'reservations', ['user_id', 'date'], unique=False)

    # Create slot_counters table
    op.create_table(
        'slot_counters',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('business_id', sa.String(length=128), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.String(length=5), nullable=False),
        sa.Column('active_count', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_slot_counters')),
        sa.UniqueConstraint('business_id', 'date', 'time', name='uq_slot_counters_slot')
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('slot_counters')

    op.drop_index('ix_reservations_user_date', table_name='reservations')
    op.drop_index('ix_reservations_slot', table_name='reservations')
    op.drop_index(op.f('ix_reservations_created_at'), table_name='reservations')
    op.drop_index(op.f('ix_reservations_status'), table_name='reservations')
    op.drop_index(op.f('ix_reservations_date'), table_name='reservations')
    op.drop_index(op.f('ix_reservations_user_id'), table_name='reservations')
    op.drop_index(op.f('ix_reservations_business_id'), table_name='reservations')
    op.drop_table('reservations')

    op.drop_index(op.f('ix_availability_configs_created_at'), table_name='availability_configs')
    op.drop_table('availability_configs')
