"""initial schema: users, subscriptions, videos, tags, reactions, history

Revision ID: 4c1d9e7a2b30
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4c1d9e7a2b30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('channel_name', sa.String(), nullable=False),
        sa.Column('channel_description', sa.Text(), nullable=False, server_default=''),
        sa.Column('avatar_ref', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('email', name=op.f('uq_users_email')),
        sa.UniqueConstraint('username', name=op.f('uq_users_username')),
    )

    op.create_table(
        'subscriptions',
        sa.Column('subscriber_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('channel_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('subscriber_id <> channel_id', name=op.f('ck_subscriptions_not_self')),
        sa.ForeignKeyConstraint(['subscriber_id'], ['users.id'], name=op.f('fk_subscriptions_subscriber_id_users'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['channel_id'], ['users.id'], name=op.f('fk_subscriptions_channel_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('subscriber_id', 'channel_id', name=op.f('pk_subscriptions')),
    )
    op.create_index('ix_subscriptions_channel_id', 'subscriptions', ['channel_id'])

    op.create_table(
        'videos',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(), nullable=False, server_default=''),
        sa.Column('description', sa.String(), nullable=False, server_default=''),
        sa.Column('category', sa.String(), nullable=False, server_default='General'),
        sa.Column('video_ref', sa.String(), nullable=True),
        sa.Column('thumbnail_ref', sa.String(), nullable=True),
        sa.Column('duration_seconds', sa.Float(), nullable=False, server_default='0'),
        sa.Column('views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_videos_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_videos')),
    )
    op.create_index('ix_videos_user_id_created_at', 'videos', ['user_id', 'created_at'])
    op.create_index('ix_videos_category_views', 'videos', ['category', 'views'])
    op.create_index('ix_videos_published_created_at', 'videos', ['is_published', 'created_at'])

    op.create_table(
        'video_tags',
        sa.Column('video_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tag', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], name=op.f('fk_video_tags_video_id_videos'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('video_id', 'tag', name=op.f('pk_video_tags')),
    )
    op.create_index('ix_video_tags_tag', 'video_tags', ['tag'])

    op.create_table(
        'video_reactions',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('video_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('value', sa.SmallInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('value IN (-1, 1)', name=op.f('ck_video_reactions_value')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_video_reactions_user_id_users'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], name=op.f('fk_video_reactions_video_id_videos'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id', 'video_id', name=op.f('pk_video_reactions')),
    )
    op.create_index('ix_video_reactions_video_value', 'video_reactions', ['video_id', 'value'])
    op.create_index('ix_video_reactions_user_created', 'video_reactions', ['user_id', 'created_at'])

    op.create_table(
        'watch_history',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('video_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('last_position_seconds', sa.Float(), nullable=False, server_default='0'),
        sa.Column('watched_seconds', sa.Float(), nullable=False, server_default='0'),
        sa.Column('last_watched_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_watch_history_user_id_users'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], name=op.f('fk_watch_history_video_id_videos'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id', 'video_id', name=op.f('pk_watch_history')),
    )
    op.create_index('ix_watch_history_user_lastwatched', 'watch_history', ['user_id', 'last_watched_at'])


def downgrade() -> None:
    op.drop_index('ix_watch_history_user_lastwatched', table_name='watch_history')
    op.drop_table('watch_history')
    op.drop_index('ix_video_reactions_user_created', table_name='video_reactions')
    op.drop_index('ix_video_reactions_video_value', table_name='video_reactions')
    op.drop_table('video_reactions')
    op.drop_index('ix_video_tags_tag', table_name='video_tags')
    op.drop_table('video_tags')
    op.drop_index('ix_videos_published_created_at', table_name='videos')
    op.drop_index('ix_videos_category_views', table_name='videos')
    op.drop_index('ix_videos_user_id_created_at', table_name='videos')
    op.drop_table('videos')
    op.drop_index('ix_subscriptions_channel_id', table_name='subscriptions')
    op.drop_table('subscriptions')
    op.drop_table('users')
