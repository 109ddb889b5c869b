"""Initial schema: the documents table.

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One row per document; the collection path partitions users
    op.create_table(
        'documents',
        sa.Column('collection', sa.String(length=255), nullable=False),
        sa.Column('doc_id', sa.String(length=64), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('collection', 'doc_id')
    )
    op.create_index('ix_documents_collection_created', 'documents', ['collection', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_documents_collection_created', table_name='documents')
    op.drop_table('documents')
