"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Detect database type
    bind = op.get_bind()
    is_sqlite = bind.dialect.name == 'sqlite'

    # Choose appropriate JSON type
    json_type = sa.JSON() if is_sqlite else postgresql.JSONB(astext_type=sa.Text())

    # Choose appropriate timestamp default
    timestamp_default = sa.text("(datetime('now'))") if is_sqlite else sa.text('now()')
    true_default = '1' if is_sqlite else 'true'
    false_default = '0' if is_sqlite else 'false'

    # Create users table
    op.create_table(
        'users',
        sa.Column('pk', sa.Integer(), nullable=False),
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('roles', json_type, nullable=False, server_default='["member"]'),
        sa.Column('plan', sa.String(length=50), nullable=False, server_default='free'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=true_default),
        sa.Column('counter_stars', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('pk'),
    )
    op.create_index('ix_users_id', 'users', ['id'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Create user_providers table
    op.create_table(
        'user_providers',
        sa.Column('pk', sa.Integer(), nullable=False),
        sa.Column('user_pk', sa.Integer(), nullable=False),
        sa.Column('provider', sa.String(length=50), nullable=False),
        sa.Column('provider_id', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.ForeignKeyConstraint(['user_pk'], ['users.pk'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('pk'),
        sa.UniqueConstraint('provider', 'provider_id', name='uq_user_providers_provider_id'),
    )
    op.create_index('ix_user_providers_user_pk', 'user_providers', ['user_pk'])

    # Create tokens table
    op.create_table(
        'tokens',
        sa.Column('pk', sa.Integer(), nullable=False),
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('scopes', json_type, nullable=False, server_default='[]'),
        sa.Column('provider', sa.String(length=50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=true_default),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('created_by_pk', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['created_by_pk'], ['users.pk'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('pk'),
    )
    op.create_index('ix_tokens_id', 'tokens', ['id'], unique=True)
    op.create_index('ix_tokens_token', 'tokens', ['token'], unique=True)
    op.create_index('ix_tokens_type', 'tokens', ['type'])
    op.create_index('ix_tokens_created_by_pk', 'tokens', ['created_by_pk'])

    # Create games table
    op.create_table(
        'games',
        sa.Column('pk', sa.Integer(), nullable=False),
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('manufacturer', sa.String(length=255), nullable=True),
        sa.Column('game_type', sa.String(length=10), nullable=False, server_default='na'),
        sa.Column('ipdb_number', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('counter_releases', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('counter_stars', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('counter_views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rating_average', sa.Float(), nullable=False, server_default='0'),
        sa.Column('rating_votes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by_pk', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.ForeignKeyConstraint(['created_by_pk'], ['users.pk'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('pk'),
    )
    op.create_index('ix_games_id', 'games', ['id'], unique=True)
    op.create_index('ix_games_title', 'games', ['title'])

    # Moderated entities share the same moderation columns
    def moderation_columns():
        return [
            sa.Column('is_approved', sa.Boolean(), nullable=False, server_default=false_default),
            sa.Column('is_refused', sa.Boolean(), nullable=False, server_default=false_default),
            sa.Column('auto_approved', sa.Boolean(), nullable=False, server_default=false_default),
        ]

    # Create releases table
    op.create_table(
        'releases',
        sa.Column('pk', sa.Integer(), nullable=False),
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('game_pk', sa.Integer(), nullable=False),
        sa.Column('counter_stars', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('counter_comments', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rating_average', sa.Float(), nullable=False, server_default='0'),
        sa.Column('rating_votes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by_pk', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('modified_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        *moderation_columns(),
        sa.ForeignKeyConstraint(['game_pk'], ['games.pk'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_pk'], ['users.pk'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('pk'),
    )
    op.create_index('ix_releases_id', 'releases', ['id'], unique=True)
    op.create_index('ix_releases_game_pk', 'releases', ['game_pk'])
    op.create_index('ix_releases_created_by_pk', 'releases', ['created_by_pk'])
    op.create_index('ix_releases_is_approved', 'releases', ['is_approved'])
    op.create_index('ix_releases_is_refused', 'releases', ['is_refused'])

    # Create backglasses table
    op.create_table(
        'backglasses',
        sa.Column('pk', sa.Integer(), nullable=False),
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('game_pk', sa.Integer(), nullable=False),
        sa.Column('counter_stars', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by_pk', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        *moderation_columns(),
        sa.ForeignKeyConstraint(['game_pk'], ['games.pk'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_pk'], ['users.pk'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('pk'),
    )
    op.create_index('ix_backglasses_id', 'backglasses', ['id'], unique=True)
    op.create_index('ix_backglasses_game_pk', 'backglasses', ['game_pk'])
    op.create_index('ix_backglasses_created_by_pk', 'backglasses', ['created_by_pk'])
    op.create_index('ix_backglasses_is_approved', 'backglasses', ['is_approved'])
    op.create_index('ix_backglasses_is_refused', 'backglasses', ['is_refused'])

    # Create roms table
    op.create_table(
        'roms',
        sa.Column('pk', sa.Integer(), nullable=False),
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('version', sa.String(length=50), nullable=True),
        sa.Column('language', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('game_pk', sa.Integer(), nullable=False),
        sa.Column('created_by_pk', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        *moderation_columns(),
        sa.ForeignKeyConstraint(['game_pk'], ['games.pk'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_pk'], ['users.pk'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('pk'),
    )
    op.create_index('ix_roms_id', 'roms', ['id'], unique=True)
    op.create_index('ix_roms_game_pk', 'roms', ['game_pk'])
    op.create_index('ix_roms_created_by_pk', 'roms', ['created_by_pk'])
    op.create_index('ix_roms_is_approved', 'roms', ['is_approved'])
    op.create_index('ix_roms_is_refused', 'roms', ['is_refused'])

    # Create moderation_events table
    op.create_table(
        'moderation_events',
        sa.Column('pk', sa.Integer(), nullable=False),
        sa.Column('entity_type', sa.String(length=20), nullable=False),
        sa.Column('entity_pk', sa.Integer(), nullable=False),
        sa.Column('event', sa.String(length=20), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('created_by_pk', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['created_by_pk'], ['users.pk'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('pk'),
    )
    op.create_index('ix_moderation_events_entity_type', 'moderation_events', ['entity_type'])
    op.create_index('ix_moderation_events_entity_pk', 'moderation_events', ['entity_pk'])

    # Create builds table
    op.create_table(
        'builds',
        sa.Column('pk', sa.Integer(), nullable=False),
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('platform', sa.String(length=10), nullable=False, server_default='vp'),
        sa.Column('major_version', sa.String(length=10), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('is_range', sa.Boolean(), nullable=False, server_default=false_default),
        sa.Column('built_at', sa.DateTime(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=true_default),
        sa.Column('created_by_pk', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.ForeignKeyConstraint(['created_by_pk'], ['users.pk'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('pk'),
    )
    op.create_index('ix_builds_id', 'builds', ['id'], unique=True)

    # Create media table
    op.create_table(
        'media',
        sa.Column('pk', sa.Integer(), nullable=False),
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('game_pk', sa.Integer(), nullable=True),
        sa.Column('release_pk', sa.Integer(), nullable=True),
        sa.Column('counter_stars', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by_pk', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.ForeignKeyConstraint(['game_pk'], ['games.pk'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['release_pk'], ['releases.pk'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_pk'], ['users.pk'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('pk'),
    )
    op.create_index('ix_media_id', 'media', ['id'], unique=True)
    op.create_index('ix_media_category', 'media', ['category'])
    op.create_index('ix_media_game_pk', 'media', ['game_pk'])
    op.create_index('ix_media_release_pk', 'media', ['release_pk'])

    # Create comments table
    op.create_table(
        'comments',
        sa.Column('pk', sa.Integer(), nullable=False),
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('release_pk', sa.Integer(), nullable=False),
        sa.Column('created_by_pk', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.ForeignKeyConstraint(['release_pk'], ['releases.pk'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_pk'], ['users.pk'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('pk'),
    )
    op.create_index('ix_comments_id', 'comments', ['id'], unique=True)
    op.create_index('ix_comments_release_pk', 'comments', ['release_pk'])

    # Create ratings and stars tables
    for table in ('ratings', 'stars'):
        columns = [
            sa.Column('pk', sa.Integer(), nullable=False),
            sa.Column('user_pk', sa.Integer(), nullable=False),
            sa.Column('entity_type', sa.String(length=20), nullable=False),
            sa.Column('entity_pk', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        ]
        if table == 'ratings':
            columns += [
                sa.Column('value', sa.Integer(), nullable=False),
                sa.Column('modified_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
            ]
        op.create_table(
            table,
            *columns,
            sa.ForeignKeyConstraint(['user_pk'], ['users.pk'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('pk'),
            sa.UniqueConstraint('user_pk', 'entity_type', 'entity_pk', name=f'uq_{table}_user_entity'),
        )
        op.create_index(f'ix_{table}_user_pk', table, ['user_pk'])
        op.create_index(f'ix_{table}_entity_pk', table, ['entity_pk'])

    # Create log_events table
    op.create_table(
        'log_events',
        sa.Column('pk', sa.Integer(), nullable=False),
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('event', sa.String(length=50), nullable=False),
        sa.Column('payload', json_type, nullable=False, server_default='{}'),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=true_default),
        sa.Column('actor_pk', sa.Integer(), nullable=True),
        sa.Column('game_pk', sa.Integer(), nullable=True),
        sa.Column('release_pk', sa.Integer(), nullable=True),
        sa.Column('backglass_pk', sa.Integer(), nullable=True),
        sa.Column('user_pk', sa.Integer(), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('logged_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.ForeignKeyConstraint(['actor_pk'], ['users.pk'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['game_pk'], ['games.pk'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['release_pk'], ['releases.pk'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['backglass_pk'], ['backglasses.pk'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['user_pk'], ['users.pk'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('pk'),
    )
    op.create_index('ix_log_events_id', 'log_events', ['id'], unique=True)
    op.create_index('ix_log_events_event', 'log_events', ['event'])
    op.create_index('ix_log_events_is_public', 'log_events', ['is_public'])
    op.create_index('ix_log_events_actor_pk', 'log_events', ['actor_pk'])
    op.create_index('ix_log_events_game_pk', 'log_events', ['game_pk'])
    op.create_index('ix_log_events_release_pk', 'log_events', ['release_pk'])
    # Composite index for the activity feed
    op.create_index('ix_log_events_public_logged_at', 'log_events', ['is_public', 'logged_at'])
    op.create_index('ix_log_events_logged_at', 'log_events', ['logged_at'])


def downgrade() -> None:
    op.drop_table('log_events')
    op.drop_table('stars')
    op.drop_table('ratings')
    op.drop_table('comments')
    op.drop_table('media')
    op.drop_table('builds')
    op.drop_table('moderation_events')
    op.drop_table('roms')
    op.drop_table('backglasses')
    op.drop_table('releases')
    op.drop_table('games')
    op.drop_table('tokens')
    op.drop_table('user_providers')
    op.drop_table('users')
