"""add saved_views table

Revision ID: 5d2e8c41a7f3
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5d2e8c41a7f3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'saved_views',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('table_key', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('state', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        schema='public'
    )
    # Listing is always per table, newest first
    op.create_index(
        'ix_saved_views_table_key_updated_at',
        'saved_views',
        ['table_key', 'updated_at'],
        schema='public'
    )


def downgrade() -> None:
    op.drop_index('ix_saved_views_table_key_updated_at', table_name='saved_views', schema='public')
    op.drop_table('saved_views', schema='public')
