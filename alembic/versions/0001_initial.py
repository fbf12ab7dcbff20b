"""Initial schema: users, items, ratings, quota_records

Revision ID: 0001_initial
Revises: None
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('country', sa.String(80)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('author_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('blob_path', sa.String(512), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_items_author_id', 'items', ['author_id'])
    op.create_table(
        'ratings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('author_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('score', sa.SmallInteger(), nullable=False),
        sa.Column('comment', sa.String(50)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint('author_id', 'item_id', name='uq_ratings_author_item'),
        sa.CheckConstraint('score >= 1 AND score <= 10', name='ck_ratings_score_range'),
    )
    op.create_index('ix_ratings_author_id', 'ratings', ['author_id'])
    op.create_index('ix_ratings_item_id', 'ratings', ['item_id'])
    op.create_table(
        'quota_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('used_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.UniqueConstraint('actor_id', 'date', name='uq_quota_actor_date'),
        sa.CheckConstraint('used_attempts >= 0', name='ck_quota_used_non_negative'),
    )
    op.create_index('ix_quota_records_actor_id', 'quota_records', ['actor_id'])


def downgrade() -> None:
    op.drop_table('quota_records')
    op.drop_table('ratings')
    op.drop_table('items')
    op.drop_table('users')
