"""initial simlok schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-01 00:00:00.000000

Creates the complete SIMLOK schema from scratch:
- users, session_tokens, security_events: accounts, bearer sessions, audit trail
- submissions: permit requests with review/approval state
- worker_photos: per-submission worker roster
- qr_scans: append-only gate scan log
- simlok_sequences: per-year permit number counters
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name, nullable=False):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('officer_name', sa.String(length=191), nullable=False),
        sa.Column('vendor_name', sa.String(length=191), nullable=True),
        sa.Column('phone_number', sa.String(length=32), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _timestamp('created_at'),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_role_active', 'users', ['role', 'is_active'])

    # ============================================================================
    # session_tokens
    # ============================================================================
    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        _timestamp('created_at'),
        _timestamp('last_used_at'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # security_events: append-only
    # ============================================================================
    op.create_table(
        'security_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('resource', sa.String(length=128), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        _timestamp('occurred_at'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_security_events_user_id', 'security_events', ['user_id'])
    op.create_index('ix_security_events_event_type', 'security_events', ['event_type'])
    op.create_index('ix_security_events_success', 'security_events', ['success'])
    op.create_index('ix_security_events_occurred_at', 'security_events', ['occurred_at'])
    op.create_index('ix_security_events_user_type', 'security_events', ['user_id', 'event_type'])

    # ============================================================================
    # submissions: permit requests
    # ============================================================================
    op.create_table(
        'submissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),

        sa.Column('vendor_name', sa.String(length=191), nullable=False),
        sa.Column('vendor_phone', sa.String(length=32), nullable=True),
        sa.Column('based_on', sa.Text(), nullable=False),
        sa.Column('officer_name', sa.String(length=191), nullable=False),
        sa.Column('job_description', sa.Text(), nullable=False),
        sa.Column('work_location', sa.String(length=191), nullable=False),
        sa.Column('implementation', sa.Text(), nullable=True),
        sa.Column('implementation_start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('implementation_end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('working_hours', sa.String(length=191), nullable=False),
        sa.Column('holiday_working_hours', sa.String(length=191), nullable=True),
        sa.Column('other_notes', sa.Text(), nullable=True),
        sa.Column('work_facilities', sa.Text(), nullable=False),
        sa.Column('worker_names', sa.Text(), nullable=False),
        sa.Column('worker_count', sa.Integer(), nullable=True),

        sa.Column('supporting_doc1_type', sa.String(length=64), nullable=True),
        sa.Column('supporting_doc1_number', sa.String(length=128), nullable=True),
        sa.Column('supporting_doc1_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('supporting_doc1_upload', sa.String(length=512), nullable=True),
        sa.Column('supporting_doc2_type', sa.String(length=64), nullable=True),
        sa.Column('supporting_doc2_number', sa.String(length=128), nullable=True),
        sa.Column('supporting_doc2_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('supporting_doc2_upload', sa.String(length=512), nullable=True),

        sa.Column('simja_number', sa.String(length=128), nullable=True),
        sa.Column('simja_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('simja_document_upload', sa.String(length=512), nullable=True),
        sa.Column('sika_number', sa.String(length=128), nullable=True),
        sa.Column('sika_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sika_document_upload', sa.String(length=512), nullable=True),

        sa.Column('review_status', sa.String(length=32), nullable=False),
        sa.Column('approval_status', sa.String(length=32), nullable=False),
        sa.Column('note_for_approver', sa.Text(), nullable=True),
        sa.Column('note_for_vendor', sa.Text(), nullable=True),
        sa.Column('reviewed_by_id', sa.Integer(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by_id', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),

        sa.Column('simlok_number', sa.String(length=64), nullable=True),
        sa.Column('simlok_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('tembusan', sa.Text(), nullable=True),
        sa.Column('signer_name', sa.String(length=191), nullable=True),
        sa.Column('signer_position', sa.String(length=191), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('qrcode', sa.String(length=255), nullable=True),

        _timestamp('created_at'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),

        sa.CheckConstraint(
            "review_status IN ('PENDING_REVIEW', 'MEETS_REQUIREMENTS', 'NOT_MEETS_REQUIREMENTS')",
            name='ck_submissions_review_status',
        ),
        sa.CheckConstraint(
            "approval_status IN ('PENDING_APPROVAL', 'APPROVED', 'REJECTED')",
            name='ck_submissions_approval_status',
        ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['reviewed_by_id'], ['users.id']),
        sa.ForeignKeyConstraint(['approved_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('simlok_number'),
        sa.UniqueConstraint('qrcode'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_submissions_user_id', 'submissions', ['user_id'])
    op.create_index('ix_submissions_vendor_name', 'submissions', ['vendor_name'])
    op.create_index('ix_submissions_review_status', 'submissions', ['review_status'])
    op.create_index('ix_submissions_approval_status', 'submissions', ['approval_status'])
    op.create_index('ix_submissions_created_at', 'submissions', ['created_at'])
    op.create_index('ix_submissions_status_pair', 'submissions', ['review_status', 'approval_status'])
    op.create_index('ix_submissions_user_created', 'submissions', ['user_id', 'created_at'])

    # ============================================================================
    # worker_photos: roster
    # ============================================================================
    op.create_table(
        'worker_photos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('submission_id', sa.Integer(), nullable=False),
        sa.Column('worker_name', sa.String(length=191), nullable=False),
        sa.Column('worker_photo', sa.String(length=512), nullable=True),
        sa.Column('hsse_pass_number', sa.String(length=128), nullable=True),
        sa.Column('hsse_pass_valid_thru', sa.DateTime(timezone=True), nullable=True),
        sa.Column('hsse_pass_document_upload', sa.String(length=512), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['submission_id'], ['submissions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_worker_photos_submission_id', 'worker_photos', ['submission_id'])

    # ============================================================================
    # qr_scans: append-only gate scan log
    # ============================================================================
    op.create_table(
        'qr_scans',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('submission_id', sa.Integer(), nullable=False),
        sa.Column('scanned_by_id', sa.Integer(), nullable=False),
        sa.Column('scanner_name', sa.String(length=191), nullable=True),
        sa.Column('scan_location', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _timestamp('scanned_at'),
        sa.ForeignKeyConstraint(['submission_id'], ['submissions.id']),
        sa.ForeignKeyConstraint(['scanned_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_qr_scans_submission_id', 'qr_scans', ['submission_id'])
    op.create_index('ix_qr_scans_scanned_by_id', 'qr_scans', ['scanned_by_id'])
    op.create_index('ix_qr_scans_scanned_at', 'qr_scans', ['scanned_at'])
    op.create_index('ix_qr_scans_submission_scanned', 'qr_scans', ['submission_id', 'scanned_at'])
    op.create_index('ix_qr_scans_scanner_scanned', 'qr_scans', ['scanned_by_id', 'scanned_at'])

    # ============================================================================
    # simlok_sequences: per-year permit counters
    # ============================================================================
    op.create_table(
        'simlok_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('last_number', sa.Integer(), nullable=False),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_simlok_sequences_year', 'simlok_sequences', ['year'], unique=True)


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('simlok_sequences')
    op.drop_table('qr_scans')
    op.drop_table('worker_photos')
    op.drop_table('submissions')
    op.drop_table('security_events')
    op.drop_table('session_tokens')
    op.drop_table('users')
