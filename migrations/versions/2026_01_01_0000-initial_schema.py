"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create initial database schema:
    - links table: short code -> destination mapping with ownership and lifecycle
    - click_events table: one row per resolved click for analytics
    """
    bind = op.get_bind()
    inspector = inspect(bind)
    existing_tables = inspector.get_table_names()

    if 'links' not in existing_tables:
        op.create_table(
            'links',
            sa.Column('id', sa.String(length=32), nullable=False),
            sa.Column('short_code', sa.String(length=20), nullable=False),
            sa.Column('destination_url', sa.Text(), nullable=False),
            sa.Column('owner_id', sa.String(length=255), nullable=True),
            sa.Column('title', sa.String(length=255), nullable=True),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('created_at', sa.BigInteger(), nullable=False),
            sa.Column('updated_at', sa.BigInteger(), nullable=False),
            sa.Column('expires_at', sa.BigInteger(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('click_count', sa.Integer(), nullable=False, server_default='0'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_links_short_code', 'links', ['short_code'], unique=True)
        op.create_index('uq_links_short_code_lower', 'links', [sa.text('lower(short_code)')], unique=True)
        op.create_index('ix_links_owner_id', 'links', ['owner_id'])
        op.create_index('ix_links_created_at', 'links', ['created_at'])

    if 'click_events' not in existing_tables:
        op.create_table(
            'click_events',
            sa.Column('id', sa.String(length=32), nullable=False),
            sa.Column('link_id', sa.String(length=32), nullable=False),
            sa.Column('short_code', sa.String(length=20), nullable=False),
            sa.Column('clicked_at', sa.BigInteger(), nullable=False),
            sa.Column('ip_address', sa.String(length=45), nullable=True),
            sa.Column('user_agent', sa.String(length=500), nullable=True),
            sa.Column('referrer', sa.Text(), nullable=True),
            sa.Column('country', sa.String(length=8), nullable=True),
            sa.Column('city', sa.String(length=128), nullable=True),
            sa.Column('device_type', sa.String(length=16), nullable=True),
            sa.Column('browser', sa.String(length=16), nullable=True),
            sa.Column('os', sa.String(length=16), nullable=True),
            sa.ForeignKeyConstraint(['link_id'], ['links.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_click_events_link_id', 'click_events', ['link_id'])
        op.create_index('ix_click_events_short_code', 'click_events', ['short_code'])
        op.create_index('ix_click_events_clicked_at', 'click_events', ['clicked_at'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('ix_click_events_clicked_at', table_name='click_events')
    op.drop_index('ix_click_events_short_code', table_name='click_events')
    op.drop_index('ix_click_events_link_id', table_name='click_events')
    op.drop_table('click_events')

    op.drop_index('ix_links_created_at', table_name='links')
    op.drop_index('ix_links_owner_id', table_name='links')
    op.drop_index('uq_links_short_code_lower', table_name='links')
    op.drop_index('ix_links_short_code', table_name='links')
    op.drop_table('links')
