"""create beta program tables

Revision ID: 4f2a9c1d7b3e
Revises:
Create Date: 2025-06-02 09:14:27.381204

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4f2a9c1d7b3e'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    )
    op.create_index('ux_users_lower_email', 'users', [sa.text('lower(email)')], unique=True)

    op.create_table(
        'beta_testers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('device_type', sa.String(length=16), nullable=False),
        sa.Column('device_model', sa.String(length=255), nullable=False),
        sa.Column('experience_level', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), server_default='pending', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint("device_type IN ('ios', 'android')", name='ck_beta_testers_device_type'),
        sa.CheckConstraint("experience_level IN ('beginner', 'intermediate', 'expert')", name='ck_beta_testers_experience'),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'invited', 'active', 'declined')", name='ck_beta_testers_status'
        ),
    )
    op.create_index('ux_beta_testers_lower_email', 'beta_testers', [sa.text('lower(email)')], unique=True)
    op.create_index('ix_beta_testers_status', 'beta_testers', ['status'])
    op.create_index('ix_beta_testers_created_at', 'beta_testers', ['created_at'])

    op.create_table(
        'beta_invitations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tester_id', sa.Integer(), sa.ForeignKey('beta_testers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('platform', sa.String(length=16), nullable=False),
        sa.Column('invitation_link', sa.String(length=500), nullable=False),
        sa.Column('status', sa.String(length=16), server_default='sent', nullable=False),
        sa.Column('invitation_sent_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint("platform IN ('google_play', 'app_store')", name='ck_beta_invitations_platform'),
        sa.CheckConstraint(
            "status IN ('sent', 'accepted', 'declined', 'expired')", name='ck_beta_invitations_status'
        ),
    )
    op.create_index('ix_beta_invitations_tester_id', 'beta_invitations', ['tester_id'])
    op.create_index('ix_beta_invitations_created_at', 'beta_invitations', ['created_at'])

    op.create_table(
        'beta_feedback',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('device_type', sa.String(length=16), nullable=False),
        sa.Column('device_model', sa.String(length=255), nullable=False),
        sa.Column('feedback_type', sa.String(length=32), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('is_anonymous', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=True),
        sa.Column('status', sa.String(length=16), server_default='to_discuss', nullable=False),
        sa.Column('development_estimate', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint(
            "feedback_type IN ('bug_report', 'suggestion', 'general_comment')", name='ck_beta_feedback_type'
        ),
        sa.CheckConstraint(
            "status IN ('to_discuss', 'low', 'high', 'to_implement', 'archived')", name='ck_beta_feedback_status'
        ),
        sa.CheckConstraint('development_estimate >= 0', name='ck_beta_feedback_estimate_nonneg'),
    )
    op.create_index('ix_beta_feedback_feedback_type', 'beta_feedback', ['feedback_type'])
    op.create_index('ix_beta_feedback_status_created_at', 'beta_feedback', ['status', 'created_at'])

    op.create_table(
        'email_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('to_email', sa.String(length=320), nullable=False),
        sa.Column('template', sa.String(length=64), nullable=False),
        sa.Column('subject', sa.String(length=200), nullable=False),
        sa.Column('provider_msg_id', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('meta', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_email_logs_to_email', 'email_logs', ['to_email'])
    op.create_index('ix_email_logs_provider_msg_id', 'email_logs', ['provider_msg_id'])
    op.create_index('ix_email_logs_status', 'email_logs', ['status'])


def downgrade():
    op.drop_table('email_logs')
    op.drop_table('beta_feedback')
    op.drop_table('beta_invitations')
    op.drop_table('beta_testers')
    op.drop_table('users')
