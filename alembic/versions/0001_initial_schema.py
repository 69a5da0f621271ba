"""Initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17

Creates users with their connection and following sets, connection requests,
projects with members, applicants and milestones, chat channels and messages,
notifications and events. Only one pending connection request may exist per
pair of users, enforced by a partial unique index on pair_key.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

ID = sa.String(128)
PAIR_ID = sa.String(257)


def _user_fk(column, table):
    return sa.ForeignKeyConstraint(
        [column], ['users.id'], name=f'fk_{table}_{column}_users', ondelete='CASCADE'
    )


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', ID, nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('username', sa.String(255), nullable=False, server_default=''),
        sa.Column('role', sa.String(50), nullable=False, server_default='PARTICIPANT'),
        sa.Column('profile_image_url', sa.String()),
        sa.Column('background_image_url', sa.String()),
        sa.Column('headline', sa.String(255)),
        sa.Column('university', sa.String(255)),
        sa.Column('faculty', sa.String(255)),
        sa.Column('course', sa.String(255)),
        sa.Column('year_of_study', sa.String(50)),
        sa.Column('bio', sa.Text()),
        sa.Column('resume_url', sa.String()),
        sa.Column('skills', sa.JSON()),
        sa.Column('phone_number', sa.String(50)),
        sa.Column('github_link', sa.String()),
        sa.Column('linkedin_link', sa.String()),
        sa.Column('portfolio_link', sa.String()),
        sa.Column('connections_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('following_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('projects_completed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'])

    op.create_table(
        'user_connections',
        sa.Column('user_id', ID, nullable=False),
        sa.Column('connection_id', ID, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('user_id', 'connection_id', name='pk_user_connections'),
        _user_fk('user_id', 'user_connections'),
        _user_fk('connection_id', 'user_connections'),
        sa.CheckConstraint('user_id <> connection_id', name='ck_user_connections_not_self'),
    )

    op.create_table(
        'user_following',
        sa.Column('user_id', ID, nullable=False),
        sa.Column('following_id', ID, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('user_id', 'following_id', name='pk_user_following'),
        _user_fk('user_id', 'user_following'),
        _user_fk('following_id', 'user_following'),
        sa.CheckConstraint('user_id <> following_id', name='ck_user_following_not_self'),
    )
    op.create_index('ix_user_following_following_id', 'user_following', ['following_id'])

    op.create_table(
        'connection_requests',
        sa.Column('id', ID, nullable=False),
        sa.Column('from_user_id', ID, nullable=False),
        sa.Column('to_user_id', ID, nullable=False),
        sa.Column('pair_key', PAIR_ID, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('resolved_at', sa.DateTime()),
        sa.PrimaryKeyConstraint('id', name='pk_connection_requests'),
        _user_fk('from_user_id', 'connection_requests'),
        _user_fk('to_user_id', 'connection_requests'),
        sa.CheckConstraint('from_user_id <> to_user_id', name='ck_connection_requests_not_self'),
    )
    op.create_index('ix_connection_requests_from_user_id', 'connection_requests', ['from_user_id'])
    op.create_index('ix_connection_requests_to_user_id', 'connection_requests', ['to_user_id'])
    op.create_index('ix_connection_requests_pair_key', 'connection_requests', ['pair_key'])
    op.create_index('ix_connection_requests_status', 'connection_requests', ['status'])
    op.create_index('ix_connection_requests_timestamp', 'connection_requests', ['timestamp'])
    # At most one pending request per unordered pair
    op.create_index(
        'uq_connection_requests_pending_pair',
        'connection_requests',
        ['pair_key'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'projects',
        sa.Column('id', ID, nullable=False),
        sa.Column('creator_id', ID, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('image_url', sa.String()),
        sa.Column('tags', sa.JSON()),
        sa.Column('recruitment_deadline', sa.String(50)),
        sa.Column('target_team_size', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(20), nullable=False, server_default='Active'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_projects'),
        _user_fk('creator_id', 'projects'),
    )
    op.create_index('ix_projects_creator_id', 'projects', ['creator_id'])
    op.create_index('ix_projects_status', 'projects', ['status'])

    op.create_table(
        'milestones',
        sa.Column('id', ID, nullable=False),
        sa.Column('project_id', ID, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_milestones'),
        sa.ForeignKeyConstraint(
            ['project_id'], ['projects.id'], name='fk_milestones_project_id_projects', ondelete='CASCADE'
        ),
    )
    op.create_index('ix_milestones_project_id', 'milestones', ['project_id'])

    op.create_table(
        'project_members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('project_id', ID, nullable=False),
        sa.Column('user_id', ID, nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_project_members'),
        sa.ForeignKeyConstraint(
            ['project_id'], ['projects.id'], name='fk_project_members_project_id_projects', ondelete='CASCADE'
        ),
        _user_fk('user_id', 'project_members'),
        sa.UniqueConstraint('project_id', 'user_id', name='uq_project_members_project_user'),
    )
    op.create_index('ix_project_members_project_id', 'project_members', ['project_id'])
    op.create_index('ix_project_members_user_id', 'project_members', ['user_id'])

    op.create_table(
        'project_applicants',
        sa.Column('project_id', ID, nullable=False),
        sa.Column('user_id', ID, nullable=False),
        sa.Column('requested_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('project_id', 'user_id', name='pk_project_applicants'),
        sa.ForeignKeyConstraint(
            ['project_id'], ['projects.id'], name='fk_project_applicants_project_id_projects', ondelete='CASCADE'
        ),
        _user_fk('user_id', 'project_applicants'),
    )
    op.create_index('ix_project_applicants_user_id', 'project_applicants', ['user_id'])

    op.create_table(
        'chat_channels',
        sa.Column('id', PAIR_ID, nullable=False),
        sa.Column('type', sa.String(20), nullable=False, server_default='Direct'),
        sa.Column('project_id', ID, nullable=True),
        sa.Column('group_name', sa.String(255)),
        sa.Column('group_image_url', sa.String()),
        sa.Column('last_message', sa.Text(), nullable=False, server_default=''),
        sa.Column('last_message_timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('last_sender_id', ID, nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_chat_channels'),
        sa.UniqueConstraint('project_id', name='uq_chat_channels_project_id'),
    )
    op.create_index('ix_chat_channels_last_message_timestamp', 'chat_channels', ['last_message_timestamp'])

    op.create_table(
        'channel_participants',
        sa.Column('channel_id', PAIR_ID, nullable=False),
        sa.Column('user_id', ID, nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('last_read_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('channel_id', 'user_id', name='pk_channel_participants'),
        sa.ForeignKeyConstraint(
            ['channel_id'], ['chat_channels.id'],
            name='fk_channel_participants_channel_id_chat_channels', ondelete='CASCADE',
        ),
        _user_fk('user_id', 'channel_participants'),
    )
    op.create_index('ix_channel_participants_user_id', 'channel_participants', ['user_id'])

    op.create_table(
        'chat_messages',
        sa.Column('id', ID, nullable=False),
        sa.Column('channel_id', PAIR_ID, nullable=False),
        sa.Column('sender_id', ID, nullable=False),
        sa.Column('sender_name', sa.String(255)),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('attachment_url', sa.String()),
        sa.Column('attachment_type', sa.String(20)),
        sa.Column('attachment_name', sa.String(255)),
        sa.Column('attachment_size', sa.String(50)),
        sa.PrimaryKeyConstraint('id', name='pk_chat_messages'),
        sa.ForeignKeyConstraint(
            ['channel_id'], ['chat_channels.id'], name='fk_chat_messages_channel_id_chat_channels', ondelete='CASCADE'
        ),
    )
    op.create_index('ix_chat_messages_channel_id', 'chat_messages', ['channel_id'])
    op.create_index('ix_chat_messages_sender_id', 'chat_messages', ['sender_id'])
    op.create_index('ix_chat_messages_timestamp', 'chat_messages', ['timestamp'])

    op.create_table(
        'notifications',
        sa.Column('id', ID, nullable=False),
        sa.Column('user_id', ID, nullable=False),
        sa.Column('type', sa.String(40), nullable=False, server_default='SYSTEM_ALERT'),
        sa.Column('title', sa.String(255), nullable=False, server_default=''),
        sa.Column('message', sa.Text(), nullable=False, server_default=''),
        sa.Column('related_id', PAIR_ID, nullable=False, server_default=''),
        sa.Column('sender_id', ID, nullable=False, server_default=''),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id', name='pk_notifications'),
        _user_fk('user_id', 'notifications'),
    )
    op.create_index('ix_notifications_related_id', 'notifications', ['related_id'])
    op.create_index('ix_notifications_user_read', 'notifications', ['user_id', 'is_read'])

    op.create_table(
        'events',
        sa.Column('id', ID, nullable=False),
        sa.Column('organizer_id', ID, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('location', sa.String(255)),
        sa.Column('image_url', sa.String()),
        sa.Column('event_date', sa.String(50)),
        sa.Column('joining_deadline', sa.String(50)),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_events'),
        _user_fk('organizer_id', 'events'),
    )
    op.create_index('ix_events_organizer_id', 'events', ['organizer_id'])

    op.create_table(
        'event_participants',
        sa.Column('event_id', ID, nullable=False),
        sa.Column('user_id', ID, nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('event_id', 'user_id', name='pk_event_participants'),
        sa.ForeignKeyConstraint(
            ['event_id'], ['events.id'], name='fk_event_participants_event_id_events', ondelete='CASCADE'
        ),
        _user_fk('user_id', 'event_participants'),
    )


def downgrade():
    for table in (
        'event_participants', 'events', 'notifications', 'chat_messages', 'channel_participants',
        'chat_channels', 'project_applicants', 'project_members', 'milestones', 'projects',
        'connection_requests', 'user_following', 'user_connections', 'users',
    ):
        op.drop_table(table)
