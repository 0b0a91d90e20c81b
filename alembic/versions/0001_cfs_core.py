"""Baseline migration - tenants, calls for service, incidents

Revision ID: 0001_cfs_core
Revises:
Create Date: 2026-10-19

Creates the organization/profile tables, the call-for-service tables
(timeline, org access grants, public tracking projection, attachments),
incidents, the audit trail and the outbound notification queue.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_cfs_core'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create tenant, CFS, incident, audit and notification tables."""

    # ==========================================================================
    # Organizations & profiles
    # ==========================================================================
    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_organizations'),
        sa.UniqueConstraint('slug', name='uq_organizations_slug'),
    )

    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=True),
        sa.Column('is_approved', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('is_global_admin', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('token_version', sa.Integer(), server_default=sa.text('1'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'],
            name='fk_profiles_organization_id_organizations', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_profiles'),
        sa.UniqueConstraint('email', name='uq_profiles_email'),
    )

    op.create_table(
        'memberships',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['profile_id'], ['profiles.id'],
            name='fk_memberships_profile_id_profiles', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'],
            name='fk_memberships_organization_id_organizations', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_memberships'),
        sa.UniqueConstraint('profile_id', 'organization_id', name='uq_membership_profile_org'),
    )

    op.create_table(
        'profile_permission_overrides',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Uuid(), nullable=False),
        sa.Column('permission', sa.String(100), nullable=False),
        sa.Column('override_type', sa.String(10), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'],
            name='fk_profile_permission_overrides_organization_id_organizations', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['profile_id'], ['profiles.id'],
            name='fk_profile_permission_overrides_profile_id_profiles', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_profile_permission_overrides'),
        sa.UniqueConstraint(
            'organization_id', 'profile_id', 'permission', name='uq_profile_permission_override'
        ),
    )
    op.create_index('idx_permission_overrides_profile', 'profile_permission_overrides', ['profile_id'])

    # ==========================================================================
    # Calls for service
    # ==========================================================================
    op.create_table(
        'calls_for_service',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('report_number', sa.String(32), nullable=True),
        sa.Column('owning_organization_id', sa.Integer(), nullable=False),
        sa.Column('created_by_profile_id', sa.Uuid(), nullable=True),
        sa.Column('origin', sa.String(20), nullable=False),
        sa.Column('source', sa.String(30), nullable=False),
        sa.Column('report_method', sa.String(30), nullable=False),
        sa.Column('report_priority_assessment', sa.String(20), nullable=False),
        sa.Column('type_hint', sa.String(40), nullable=True),
        sa.Column('priority_hint', sa.String(20), nullable=True),
        sa.Column('urgency_indicators', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(20), server_default=sa.text("'received'"), nullable=False),
        sa.Column('report_status', sa.String(20), server_default=sa.text("'active'"), nullable=False),
        sa.Column('triaged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('triaged_by_profile_id', sa.Uuid(), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.Column('duplicate_of_report_id', sa.Integer(), nullable=True),
        sa.Column('verification_status', sa.String(20), nullable=False),
        sa.Column('verification_method', sa.String(20), nullable=False),
        sa.Column('verification_notes', sa.Text(), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_by_profile_id', sa.Uuid(), nullable=True),
        sa.Column('anonymous_reporter', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('anonymous_reporter_details', sa.Text(), nullable=True),
        sa.Column('reporting_person_id', sa.Integer(), nullable=True),
        sa.Column('reporting_organization_id', sa.Integer(), nullable=True),
        sa.Column('referring_organization_id', sa.Integer(), nullable=True),
        sa.Column('referring_agency_name', sa.String(255), nullable=True),
        sa.Column('reporter_name', sa.String(255), nullable=True),
        sa.Column('reporter_phone', sa.String(50), nullable=True),
        sa.Column('reporter_email', sa.String(255), nullable=True),
        sa.Column('reporter_address', sa.Text(), nullable=True),
        sa.Column('reporter_relationship', sa.String(100), nullable=True),
        sa.Column('location_text', sa.Text(), nullable=True),
        sa.Column('reported_location', sa.Text(), nullable=True),
        sa.Column('reported_coordinates', sa.String(100), nullable=True),
        sa.Column('location_confidence', sa.String(50), nullable=True),
        sa.Column('initial_report_narrative', sa.Text(), nullable=False),
        sa.Column('notify_opt_in', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('notify_channel', sa.String(10), server_default=sa.text("'none'"), nullable=False),
        sa.Column('notify_target', sa.String(255), nullable=True),
        sa.Column('public_tracking_id', sa.String(20), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('report_received_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            'reporting_person_id IS NULL OR reporting_organization_id IS NULL',
            name='ck_calls_for_service_reporter_link_exclusive',
        ),
        sa.CheckConstraint(
            'NOT anonymous_reporter OR '
            '(reporting_person_id IS NULL AND reporting_organization_id IS NULL)',
            name='ck_calls_for_service_anonymous_reporter_unlinked',
        ),
        sa.CheckConstraint(
            "NOT notify_opt_in OR notify_channel = 'none' OR notify_target IS NOT NULL",
            name='ck_calls_for_service_notify_target_required',
        ),
        sa.ForeignKeyConstraint(
            ['owning_organization_id'], ['organizations.id'],
            name='fk_calls_for_service_owning_organization_id_organizations', ondelete='RESTRICT',
        ),
        sa.ForeignKeyConstraint(
            ['created_by_profile_id'], ['profiles.id'],
            name='fk_calls_for_service_created_by_profile_id_profiles', ondelete='SET NULL',
        ),
        sa.ForeignKeyConstraint(
            ['duplicate_of_report_id'], ['calls_for_service.id'],
            name='fk_calls_for_service_duplicate_of_report_id_calls_for_service', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_calls_for_service'),
        sa.UniqueConstraint('report_number', name='uq_calls_for_service_report_number'),
        sa.UniqueConstraint('public_tracking_id', name='uq_calls_for_service_public_tracking_id'),
    )
    op.create_index(
        'idx_cfs_owner_received', 'calls_for_service', ['owning_organization_id', 'report_received_at']
    )
    op.create_index('idx_cfs_status', 'calls_for_service', ['status'])

    op.create_table(
        'cfs_timeline_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cfs_id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=True),
        sa.Column('actor_profile_id', sa.Uuid(), nullable=True),
        sa.Column('phase', sa.String(30), nullable=False),
        sa.Column('status', sa.String(20), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['cfs_id'], ['calls_for_service.id'],
            name='fk_cfs_timeline_entries_cfs_id_calls_for_service', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'],
            name='fk_cfs_timeline_entries_organization_id_organizations', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_cfs_timeline_entries'),
    )
    op.create_index('idx_cfs_timeline_cfs', 'cfs_timeline_entries', ['cfs_id', 'created_at'])

    op.create_table(
        'cfs_org_access',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cfs_id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('access_level', sa.String(20), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('granted_by_profile_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['cfs_id'], ['calls_for_service.id'],
            name='fk_cfs_org_access_cfs_id_calls_for_service', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'],
            name='fk_cfs_org_access_organization_id_organizations', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_cfs_org_access'),
        sa.UniqueConstraint('cfs_id', 'organization_id', name='uq_cfs_org_access'),
    )
    op.create_index('idx_cfs_org_access_org', 'cfs_org_access', ['organization_id'])

    op.create_table(
        'cfs_public_tracking',
        sa.Column('cfs_id', sa.Integer(), nullable=False),
        sa.Column('public_tracking_id', sa.String(20), nullable=False),
        sa.Column('category', sa.String(30), nullable=False),
        sa.Column('location_area', sa.String(255), nullable=False),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['cfs_id'], ['calls_for_service.id'],
            name='fk_cfs_public_tracking_cfs_id_calls_for_service', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('cfs_id', name='pk_cfs_public_tracking'),
        sa.UniqueConstraint('public_tracking_id', name='uq_cfs_public_tracking_public_tracking_id'),
    )

    op.create_table(
        'cfs_attachments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('cfs_id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('uploaded_by_profile_id', sa.Uuid(), nullable=True),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_type', sa.String(100), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('storage_bucket', sa.String(100), nullable=False),
        sa.Column('storage_path', sa.String(512), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['cfs_id'], ['calls_for_service.id'],
            name='fk_cfs_attachments_cfs_id_calls_for_service', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'],
            name='fk_cfs_attachments_organization_id_organizations', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_cfs_attachments'),
        sa.UniqueConstraint('storage_bucket', 'storage_path', name='uq_cfs_attachment_object'),
    )
    op.create_index('idx_cfs_attachments_cfs', 'cfs_attachments', ['cfs_id', 'created_at'])

    # ==========================================================================
    # Incidents
    # ==========================================================================
    op.create_table(
        'incidents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cfs_id', sa.Integer(), nullable=True),
        sa.Column('owning_organization_id', sa.Integer(), nullable=False),
        sa.Column('incident_type', sa.String(40), nullable=True),
        sa.Column('priority', sa.String(20), nullable=True),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('dispatch_notes', sa.Text(), nullable=True),
        sa.Column('created_by_profile_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['cfs_id'], ['calls_for_service.id'],
            name='fk_incidents_cfs_id_calls_for_service', ondelete='SET NULL',
        ),
        sa.ForeignKeyConstraint(
            ['owning_organization_id'], ['organizations.id'],
            name='fk_incidents_owning_organization_id_organizations', ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_incidents'),
        sa.UniqueConstraint('cfs_id', name='uq_incidents_cfs_id'),
    )

    # ==========================================================================
    # Audit trail & outbound notifications
    # ==========================================================================
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=True),
        sa.Column('actor_profile_id', sa.Uuid(), nullable=True),
        sa.Column('event_type', sa.String(60), nullable=False),
        sa.Column('target_type', sa.String(50), nullable=True),
        sa.Column('target_id', sa.String(64), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'],
            name='fk_audit_logs_organization_id_organizations', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_audit_logs'),
    )
    op.create_index('idx_audit_org_created', 'audit_logs', ['organization_id', 'created_at'])
    op.create_index('idx_audit_target', 'audit_logs', ['target_type', 'target_id'])

    op.create_table(
        'outbound_notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cfs_id', sa.Integer(), nullable=True),
        sa.Column('recipient_email', sa.String(255), nullable=True),
        sa.Column('recipient_phone', sa.String(50), nullable=True),
        sa.Column('channels', sa.JSON(), nullable=False),
        sa.Column('subject', sa.String(255), nullable=False),
        sa.Column('body_text', sa.Text(), nullable=False),
        sa.Column('notification_type', sa.String(50), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(20), server_default=sa.text("'queued'"), nullable=False),
        sa.Column('created_by_profile_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['cfs_id'], ['calls_for_service.id'],
            name='fk_outbound_notifications_cfs_id_calls_for_service', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_outbound_notifications'),
    )
    op.create_index('idx_outbound_notifications_status', 'outbound_notifications', ['status', 'created_at'])
    op.create_index('idx_outbound_notifications_cfs', 'outbound_notifications', ['cfs_id'])


def downgrade() -> None:
    """Drop everything created above, children first."""
    op.drop_table('outbound_notifications')
    op.drop_table('audit_logs')
    op.drop_table('incidents')
    op.drop_table('cfs_attachments')
    op.drop_table('cfs_public_tracking')
    op.drop_table('cfs_org_access')
    op.drop_table('cfs_timeline_entries')
    op.drop_table('calls_for_service')
    op.drop_table('profile_permission_overrides')
    op.drop_table('memberships')
    op.drop_table('profiles')
    op.drop_table('organizations')
