"""create_sync_tables

Revision ID: 4b7e2f91c3a8
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4b7e2f91c3a8'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_STATUS_CLAUSE = "status IN ('pending', 'processing')"


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('tracked_repositories',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('owner', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
    sa.Column('name', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
    sa.Column('sync_status', sa.Enum('idle', 'in_progress', 'completed', 'failed', name='reposyncstatus'), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('owner', 'name', name='uq_tracked_repositories_owner_name')
    )

    op.create_table('sync_jobs',
    sa.Column('id', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
    sa.Column('job_key', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
    sa.Column('type', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
    sa.Column('repo_id', sa.Integer(), nullable=False),
    sa.Column('user_id', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
    sa.Column('args', sa.JSON(), nullable=True),
    sa.Column('status', sa.Enum('pending', 'processing', 'completed', 'failed', name='jobstatus'), nullable=False),
    sa.Column('priority', sa.Integer(), nullable=False),
    sa.Column('last_error', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('started_at', sa.DateTime(), nullable=True),
    sa.Column('completed_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['repo_id'], ['tracked_repositories.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_sync_jobs_job_key'), 'sync_jobs', ['job_key'], unique=False)
    op.create_index(op.f('ix_sync_jobs_type'), 'sync_jobs', ['type'], unique=False)
    op.create_index(op.f('ix_sync_jobs_repo_id'), 'sync_jobs', ['repo_id'], unique=False)
    op.create_index(op.f('ix_sync_jobs_user_id'), 'sync_jobs', ['user_id'], unique=False)
    op.create_index(op.f('ix_sync_jobs_status'), 'sync_jobs', ['status'], unique=False)
    op.create_index('ix_sync_jobs_claim_order', 'sync_jobs', ['status', 'priority', 'created_at'], unique=False)
    op.create_index(
        'uq_sync_jobs_active_job_key', 'sync_jobs', ['job_key'], unique=True,
        postgresql_where=sa.text(ACTIVE_STATUS_CLAUSE),
        sqlite_where=sa.text(ACTIVE_STATUS_CLAUSE),
    )

    op.create_table('repo_sync_states',
    sa.Column('repo_id', sa.Integer(), nullable=False),
    sa.Column('item_kind', sa.Enum('issue', 'pull_request', name='itemkind'), nullable=False),
    sa.Column('last_synced_at', sa.DateTime(), nullable=True),
    sa.Column('needs_full_resync', sa.Boolean(), nullable=False, server_default='false'),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['repo_id'], ['tracked_repositories.id'], ),
    sa.PrimaryKeyConstraint('repo_id', 'item_kind')
    )

    op.create_table('synced_items',
    sa.Column('id', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
    sa.Column('external_id', sa.BigInteger(), nullable=False),
    sa.Column('repo_id', sa.Integer(), nullable=False),
    sa.Column('kind', postgresql.ENUM('issue', 'pull_request', name='itemkind', create_type=False), nullable=False),
    sa.Column('number', sa.Integer(), nullable=False),
    sa.Column('title', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
    sa.Column('body', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
    sa.Column('state', sa.Enum('open', 'closed', 'merged', name='itemstate'), nullable=False),
    sa.Column('labels', sa.JSON(), nullable=True),
    sa.Column('assignees', sa.JSON(), nullable=True),
    sa.Column('author_login', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
    sa.Column('comments_count', sa.Integer(), nullable=False),
    sa.Column('remote_created_at', sa.DateTime(), nullable=True),
    sa.Column('remote_updated_at', sa.DateTime(), nullable=True),
    sa.Column('closed_at', sa.DateTime(), nullable=True),
    sa.Column('merged_at', sa.DateTime(), nullable=True),
    sa.Column('sub_resource_fetched', sa.Boolean(), nullable=False, server_default='false'),
    sa.Column('synced_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['repo_id'], ['tracked_repositories.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_synced_items_external_id'), 'synced_items', ['external_id'], unique=True)
    op.create_index(op.f('ix_synced_items_repo_id'), 'synced_items', ['repo_id'], unique=False)
    op.create_index(op.f('ix_synced_items_kind'), 'synced_items', ['kind'], unique=False)
    op.create_index(op.f('ix_synced_items_state'), 'synced_items', ['state'], unique=False)

    op.create_table('item_comments',
    sa.Column('id', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
    sa.Column('item_id', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
    sa.Column('external_id', sa.BigInteger(), nullable=False),
    sa.Column('author_login', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
    sa.Column('body', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
    sa.Column('remote_created_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['item_id'], ['synced_items.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('item_id', 'external_id', name='uq_item_comments_item_external')
    )
    op.create_index(op.f('ix_item_comments_item_id'), 'item_comments', ['item_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_item_comments_item_id'), table_name='item_comments')
    op.drop_table('item_comments')
    op.drop_index(op.f('ix_synced_items_state'), table_name='synced_items')
    op.drop_index(op.f('ix_synced_items_kind'), table_name='synced_items')
    op.drop_index(op.f('ix_synced_items_repo_id'), table_name='synced_items')
    op.drop_index(op.f('ix_synced_items_external_id'), table_name='synced_items')
    op.drop_table('synced_items')
    op.drop_table('repo_sync_states')
    op.drop_index('uq_sync_jobs_active_job_key', table_name='sync_jobs')
    op.drop_index('ix_sync_jobs_claim_order', table_name='sync_jobs')
    op.drop_index(op.f('ix_sync_jobs_status'), table_name='sync_jobs')
    op.drop_index(op.f('ix_sync_jobs_user_id'), table_name='sync_jobs')
    op.drop_index(op.f('ix_sync_jobs_repo_id'), table_name='sync_jobs')
    op.drop_index(op.f('ix_sync_jobs_type'), table_name='sync_jobs')
    op.drop_index(op.f('ix_sync_jobs_job_key'), table_name='sync_jobs')
    op.drop_table('sync_jobs')
    op.drop_table('tracked_repositories')
    sa.Enum(name='itemstate').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='itemkind').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='jobstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='reposyncstatus').drop(op.get_bind(), checkfirst=True)
