"""initial schema

Revision ID: 3c9f2a7d1e40
Revises:
Create Date: 2026-10-18 12:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c9f2a7d1e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum(
    'BASIC', 'ENGAGED', 'ACTIVE', 'PREMIUM', 'MODERATOR', 'ADMIN', 'SUPERADMIN',
    name='userrole',
)
membership_level = sa.Enum('BASIC', 'PREMIUM', 'VIP', name='membershiplevel')
trust_level = sa.Enum('NEW', 'BASIC', 'MEMBER', 'REGULAR', 'TRUSTED', 'LEADER', name='trustlevel')
token_purpose = sa.Enum('PASSWORD_RESET', 'EMAIL_VERIFICATION', name='tokenpurpose')
admin_action = sa.Enum(
    'SET_ROLE', 'SET_CONTENT_ACCESS', 'CREATE_RULE', 'UPDATE_RULE', 'DELETE_RULE',
    'GRANT_PERMISSION', 'REVOKE_PERMISSION', 'SESSION_MAINTENANCE',
    name='admin_action',
)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('full_name', sa.String(length=100), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=True),
        sa.Column('profile_image', sa.String(length=500), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('membership_level', membership_level, nullable=False),
        sa.Column('trust_level', trust_level, nullable=False),
        sa.Column('points_balance', sa.Integer(), nullable=False),
        sa.Column('oauth_provider', sa.String(length=50), nullable=True),
        sa.Column('oauth_subject', sa.String(length=255), nullable=True),
        sa.Column('refresh_token_version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_oauth_subject', 'users', ['oauth_subject'])
    op.create_index('ix_users_is_deleted', 'users', ['is_deleted'])

    op.create_table(
        'sessions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('device_class', sa.String(length=20), nullable=False),
        sa.Column('device_info', sa.String(length=500), nullable=True),
        sa.Column('last_ip', sa.String(length=64), nullable=True),
        sa.Column('last_activity', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('two_factor_pending', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sessions_user_id_expires_at', 'sessions', ['user_id', 'expires_at'])

    op.create_table(
        'single_use_tokens',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('purpose', token_purpose, nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token'),
    )
    op.create_index('ix_single_use_tokens_user_id', 'single_use_tokens', ['user_id'])
    op.create_index('ix_single_use_tokens_expires_at', 'single_use_tokens', ['expires_at'])

    op.create_table(
        'two_factor_auth',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('secret', sa.String(length=64), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('backup_codes', sa.Text(), nullable=False),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )

    op.create_table(
        'content_access',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('content_type', sa.String(length=50), nullable=False),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('visibility', sa.String(length=20), nullable=False),
        sa.Column('min_points_required', sa.Integer(), nullable=False),
        sa.Column('is_premium', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('content_type', 'content_id', name='uq_content_access_type_id'),
    )

    op.create_table(
        'content_access_rules',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('content_type', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('applies_to', sa.String(length=500), nullable=False),
        sa.Column('visibility', sa.String(length=20), nullable=False),
        sa.Column('min_points_required', sa.Integer(), nullable=False),
        sa.Column('min_trust_level', sa.String(length=20), nullable=True),
        sa.Column('is_premium_only', sa.Boolean(), nullable=False),
        sa.Column('is_moderator_only', sa.Boolean(), nullable=False),
        sa.Column('is_admin_only', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.ForeignKeyConstraint(['updated_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_content_access_rules_content_type', 'content_access_rules', ['content_type'])

    op.create_table(
        'user_content_permissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('content_type', sa.String(length=50), nullable=False),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('can_view', sa.Boolean(), nullable=False),
        sa.Column('can_comment', sa.Boolean(), nullable=False),
        sa.Column('can_edit', sa.Boolean(), nullable=False),
        sa.Column('granted_by', sa.Integer(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['granted_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_user_content_permissions_user_type', 'user_content_permissions', ['user_id', 'content_type']
    )

    op.create_table(
        'user_privacy_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('profile_visibility', sa.String(length=20), nullable=False),
        sa.Column('activity_visibility', sa.String(length=20), nullable=False),
        sa.Column('contact_info_visibility', sa.String(length=20), nullable=False),
        sa.Column('search_visibility', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )

    op.create_table(
        'admin_action_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=False),
        sa.Column('target_user_id', sa.Integer(), nullable=True),
        sa.Column('action', admin_action, nullable=False),
        sa.Column('target_ref', sa.String(length=100), nullable=True),
        sa.Column('detail', sa.String(length=255), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id']),
        sa.ForeignKeyConstraint(['target_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('admin_action_logs')
    op.drop_table('user_privacy_settings')
    op.drop_index('ix_user_content_permissions_user_type', table_name='user_content_permissions')
    op.drop_table('user_content_permissions')
    op.drop_index('ix_content_access_rules_content_type', table_name='content_access_rules')
    op.drop_table('content_access_rules')
    op.drop_table('content_access')
    op.drop_table('two_factor_auth')
    op.drop_index('ix_single_use_tokens_expires_at', table_name='single_use_tokens')
    op.drop_index('ix_single_use_tokens_user_id', table_name='single_use_tokens')
    op.drop_table('single_use_tokens')
    op.drop_index('ix_sessions_user_id_expires_at', table_name='sessions')
    op.drop_table('sessions')
    op.drop_index('ix_users_is_deleted', table_name='users')
    op.drop_index('ix_users_oauth_subject', table_name='users')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (admin_action, token_purpose, trust_level, membership_level, user_role):
        enum_type.drop(bind, checkfirst=True)
