# tablekit/models/saved_views_table.py
# Named snapshots of a table's query state, scoped by table_key

from sqlalchemy import Table, Column, Text, TIMESTAMP, Index
from sqlalchemy.dialects.postgresql import JSONB

from tablekit.db.base import metadata


saved_views = Table(
    'saved_views',
    metadata,
    Column('id', Text, primary_key=True),
    Column('table_key', Text, nullable=False),
    Column('name', Text, nullable=False),
    Column('description', Text, nullable=True),
    Column('state', JSONB, nullable=False),  # TableQueryState, camelCase keys
    Column('created_at', TIMESTAMP(timezone=True), nullable=False),
    Column('updated_at', TIMESTAMP(timezone=True), nullable=False),
    Index('ix_saved_views_table_key_updated_at', 'table_key', 'updated_at'),
    schema='public',
)
