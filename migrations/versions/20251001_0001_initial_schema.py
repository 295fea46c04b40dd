"""Initial schema: users, servers, access control, messages, notifications, billing, audit.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-10-01 09:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _uuid_pk():
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True)


def _ts(name, nullable=True):
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        'users',
        _uuid_pk(),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('is_superadmin', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('auth_provider', sa.String(), nullable=True),
        sa.Column('external_subject', sa.String(), nullable=True),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'servers',
        _uuid_pk(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('invite_code', sa.String(length=64), nullable=False, unique=True),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('idx_servers_owner_id', 'servers', ['owner_id'])

    op.create_table(
        'sections',
        _uuid_pk(),
        sa.Column('server_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('servers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('parent_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('sections.id', ondelete='CASCADE'), nullable=True),
        sa.Column('creator_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('position', sa.Integer(), server_default=sa.text('0'), nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('idx_sections_server_id', 'sections', ['server_id'])
    op.create_index('idx_sections_parent_id', 'sections', ['parent_id'])

    op.create_table(
        'channels',
        _uuid_pk(),
        sa.Column('server_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('servers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('section_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('sections.id', ondelete='SET NULL'), nullable=True),
        sa.Column('creator_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('type', sa.String(length=20), server_default=sa.text("'text'"), nullable=False),
        sa.Column('topic', sa.Text(), nullable=True),
        sa.Column('position', sa.Integer(), server_default=sa.text('0'), nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
        sa.CheckConstraint("type in ('text','announcement')", name='ck_channels_type'),
    )
    op.create_index('idx_channels_server_id', 'channels', ['server_id'])
    op.create_index('idx_channels_section_id', 'channels', ['section_id'])

    op.create_table(
        'roles',
        _uuid_pk(),
        sa.Column('server_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('servers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('creator_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('color', sa.String(length=16), nullable=True),
        sa.Column('is_default', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('is_admin', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
        sa.UniqueConstraint('server_id', 'name', name='uq_roles_server_id_name'),
    )
    op.create_index('idx_roles_server_id', 'roles', ['server_id'])

    op.create_table(
        'role_channel_access',
        _uuid_pk(),
        sa.Column('role_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('channel_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('channels.id', ondelete='CASCADE'), nullable=False),
        _ts('created_at'),
        sa.UniqueConstraint('role_id', 'channel_id', name='uq_role_channel_access_role_id_channel_id'),
    )
    op.create_index('idx_role_channel_access_channel_id', 'role_channel_access', ['channel_id'])

    op.create_table(
        'role_section_access',
        _uuid_pk(),
        sa.Column('role_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('section_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('sections.id', ondelete='CASCADE'), nullable=False),
        _ts('created_at'),
        sa.UniqueConstraint('role_id', 'section_id', name='uq_role_section_access_role_id_section_id'),
    )
    op.create_index('idx_role_section_access_section_id', 'role_section_access', ['section_id'])

    op.create_table(
        'members',
        _uuid_pk(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('server_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('servers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('roles.id'), nullable=False),
        sa.Column('nickname', sa.String(), nullable=True),
        _ts('joined_at'),
        _ts('updated_at'),
        sa.UniqueConstraint('user_id', 'server_id', name='uq_members_user_id_server_id'),
    )
    op.create_index('idx_members_server_id', 'members', ['server_id'])
    op.create_index('idx_members_role_id', 'members', ['role_id'])

    op.create_table(
        'messages',
        _uuid_pk(),
        sa.Column('channel_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('channels.id', ondelete='CASCADE'), nullable=False),
        sa.Column('member_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('members.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('deleted', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        _ts('created_at', nullable=False),
        _ts('updated_at', nullable=False),
    )
    op.create_index('idx_messages_channel_id_created_at', 'messages', ['channel_id', 'created_at'])
    op.create_index('idx_messages_member_id', 'messages', ['member_id'])

    op.create_table(
        'channel_notification_preferences',
        _uuid_pk(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('channel_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('channels.id', ondelete='CASCADE'), nullable=False),
        sa.Column('enabled', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        _ts('created_at', nullable=False),
        _ts('updated_at', nullable=False),
        sa.UniqueConstraint('user_id', 'channel_id', name='uq_channel_notification_preferences_user_channel'),
    )
    op.create_index(
        'idx_channel_notification_preferences_channel_id', 'channel_notification_preferences', ['channel_id']
    )

    op.create_table(
        'notifications',
        _uuid_pk(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('event_type', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('action_url', sa.String(length=500), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('message_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('messages.id', ondelete='CASCADE'), nullable=True),
        sa.Column('is_read', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        _ts('created_at', nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('user_id', 'message_id', name='uq_notifications_user_id_message_id'),
    )
    op.create_index('idx_notifications_user_id_created_at', 'notifications', ['user_id', 'created_at'])
    op.create_index('idx_notifications_user_id_is_read', 'notifications', ['user_id', 'is_read'])
    op.create_index('idx_notifications_expires_at', 'notifications', ['expires_at'])
    op.create_index('idx_notifications_event_type', 'notifications', ['event_type'])

    op.create_table(
        'subscriptions',
        _uuid_pk(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('stripe_subscription_id', sa.String(length=255), nullable=False, unique=True),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=32), server_default=sa.text("'free'"), nullable=False),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_at_period_end', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        _ts('created_at', nullable=False),
        _ts('updated_at', nullable=False),
        sa.CheckConstraint(
            "status in ('free','incomplete','incomplete_expired','trialing','active',"
            "'past_due','canceled','unpaid','paused')",
            name='ck_subscriptions_status',
        ),
    )
    op.create_index('idx_subscriptions_stripe_customer_id', 'subscriptions', ['stripe_customer_id'])

    op.create_table(
        'audit_logs',
        _uuid_pk(),
        sa.Column('server_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('servers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('actor_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('action_type', sa.Text(), nullable=False),
        sa.Column('target_type', sa.Text(), nullable=True),
        sa.Column('target_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _ts('created_at', nullable=False),
    )
    op.create_index('ix_audit_logs_server_id_created_at', 'audit_logs', ['server_id', 'created_at'])
    op.create_index('ix_audit_logs_actor_user_id_created_at', 'audit_logs', ['actor_user_id', 'created_at'])
    op.create_index('ix_audit_logs_action_type', 'audit_logs', ['action_type'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('subscriptions')
    op.drop_table('notifications')
    op.drop_table('channel_notification_preferences')
    op.drop_table('messages')
    op.drop_table('members')
    op.drop_table('role_section_access')
    op.drop_table('role_channel_access')
    op.drop_table('roles')
    op.drop_table('channels')
    op.drop_table('sections')
    op.drop_table('servers')
    op.drop_table('users')
