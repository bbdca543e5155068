"""create_lead_tables

Revision ID: 202501150900
Revises:
Create Date: 2025-01-15 09:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '202501150900'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'instagram_posts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('post_url', sa.Text(), nullable=False),
        sa.Column('post_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_instagram_posts_created_at', 'instagram_posts', ['created_at'])

    op.create_table(
        'instagram_agent_leads',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('profile_url', sa.Text(), nullable=False),
        sa.Column('post_id', sa.Integer(), nullable=True),
        sa.Column('last_updated', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['instagram_posts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
    )
    op.create_index('ix_instagram_agent_leads_post_id', 'instagram_agent_leads', ['post_id'])
    op.create_index('ix_instagram_agent_leads_last_updated', 'instagram_agent_leads', ['last_updated'])

    op.create_table(
        'active_scrape_job',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('post_id', sa.Integer(), nullable=True),
        sa.Column('post_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['instagram_posts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('active_scrape_job')
    op.drop_index('ix_instagram_agent_leads_last_updated', table_name='instagram_agent_leads')
    op.drop_index('ix_instagram_agent_leads_post_id', table_name='instagram_agent_leads')
    op.drop_table('instagram_agent_leads')
    op.drop_index('ix_instagram_posts_created_at', table_name='instagram_posts')
    op.drop_table('instagram_posts')
