"""Compliance tables: profiles, stores, incidents, investigations, actions,
attachments, activity log, route planning and audit templates

Revision ID: 202610010900
Revises: 
Create Date: 2026-10-01 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '202610010900'
down_revision = None
branch_labels = None
depends_on = None


def _uuid(name, **kwargs):
    return sa.Column(name, postgresql.UUID(as_uuid=True), **kwargs)


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)


def _updated_at():
    return sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)


def _incident_columns():
    return [
        _uuid('id', primary_key=True, nullable=False),
        sa.Column('reference_no', sa.String(20), nullable=False, unique=True),
        _uuid('store_id', sa.ForeignKey('fa_stores.id', ondelete='RESTRICT'), nullable=False, index=True),
        _uuid('reported_by_user_id', sa.ForeignKey('fa_profiles.id', ondelete='SET NULL'), nullable=True),
        _uuid('assigned_investigator_user_id', sa.ForeignKey('fa_profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('incident_category', sa.String(30), nullable=False),
        sa.Column('severity', sa.String(30), nullable=False),
        sa.Column('summary', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reported_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('persons_involved', sa.JSON(), nullable=True),
        sa.Column('injury_details', sa.JSON(), nullable=True),
        sa.Column('witnesses', sa.JSON(), nullable=True),
        sa.Column('riddor_reportable', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('status', sa.String(30), nullable=False, server_default='open', index=True),
        sa.Column('target_close_date', sa.Date(), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closure_summary', sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
    ]


def upgrade() -> None:
    # ------------------------------
    # Profiles
    # ------------------------------
    op.create_table(
        'fa_profiles',
        _uuid('id', primary_key=True, nullable=False, index=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('home_address', sa.String(500), nullable=True),
        sa.Column('home_latitude', sa.Float(), nullable=True),
        sa.Column('home_longitude', sa.Float(), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('failed_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_locked', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('token_version', sa.Integer(), nullable=False, server_default='1'),
        _created_at(),
        _updated_at(),
    )
    op.create_index('ix_fa_profiles_role', 'fa_profiles', ['role'])

    # ------------------------------
    # Stores
    # ------------------------------
    op.create_table(
        'fa_stores',
        _uuid('id', primary_key=True, nullable=False),
        sa.Column('store_code', sa.String(20), nullable=True, unique=True),
        sa.Column('store_name', sa.String(255), nullable=False),
        sa.Column('address_line_1', sa.String(255), nullable=True),
        sa.Column('city', sa.String(120), nullable=True),
        sa.Column('postcode', sa.String(16), nullable=True),
        sa.Column('region', sa.String(50), nullable=True, index=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        *[
            column
            for n in (1, 2, 3)
            for column in (
                sa.Column(f'compliance_audit_{n}_date', sa.Date(), nullable=True),
                sa.Column(f'compliance_audit_{n}_overall_pct', sa.Float(), nullable=True),
                sa.Column(f'action_plan_{n}_sent', sa.Boolean(), nullable=True),
                sa.Column(f'compliance_audit_{n}_pdf_path', sa.String(500), nullable=True),
            )
        ],
        sa.Column('area_average_pct', sa.Float(), nullable=True),
        sa.Column('total_audits_to_date', sa.Integer(), nullable=True),
        _uuid(
            'compliance_audit_2_assigned_manager_user_id',
            sa.ForeignKey('fa_profiles.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('compliance_audit_2_planned_date', sa.Date(), nullable=True),
        sa.Column('route_sequence', sa.Integer(), nullable=True),
        sa.Column('fire_risk_assessment_date', sa.Date(), nullable=True),
        sa.Column('fire_risk_assessment_pdf_path', sa.String(500), nullable=True),
        sa.Column('fire_risk_assessment_notes', sa.Text(), nullable=True),
        sa.Column('fire_risk_assessment_pct', sa.Float(), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index(
        'ix_fa_stores_route',
        'fa_stores',
        ['compliance_audit_2_assigned_manager_user_id', 'compliance_audit_2_planned_date'],
    )

    # ------------------------------
    # Incidents (open and closed share one shape)
    # ------------------------------
    op.create_table('fa_incidents', *_incident_columns())
    op.create_table('fa_closed_incidents', *_incident_columns())

    # ------------------------------
    # Investigations and actions
    # ------------------------------
    op.create_table(
        'fa_investigations',
        _uuid('id', primary_key=True, nullable=False),
        _uuid('incident_id', sa.ForeignKey('fa_incidents.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('investigation_type', sa.String(30), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='not_started'),
        _uuid('lead_investigator_user_id', sa.ForeignKey('fa_profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('root_cause', sa.Text(), nullable=True),
        sa.Column('contributing_factors', sa.Text(), nullable=True),
        sa.Column('findings', sa.Text(), nullable=True),
        sa.Column('recommendations', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    op.create_table(
        'fa_actions',
        _uuid('id', primary_key=True, nullable=False),
        _uuid('incident_id', sa.ForeignKey('fa_incidents.id', ondelete='CASCADE'), nullable=False, index=True),
        _uuid('investigation_id', sa.ForeignKey('fa_investigations.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('priority', sa.String(30), nullable=False),
        _uuid('assigned_to_user_id', sa.ForeignKey('fa_profiles.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('due_date', sa.Date(), nullable=False, index=True),
        sa.Column('status', sa.String(30), nullable=False, server_default='open'),
        sa.Column('evidence_required', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completion_notes', sa.Text(), nullable=True),
        _created_at(),
    )

    # ------------------------------
    # Attachments and activity log
    # ------------------------------
    op.create_table(
        'fa_attachments',
        _uuid('id', primary_key=True, nullable=False),
        sa.Column('entity_type', sa.String(20), nullable=False),
        _uuid('entity_id', nullable=False, index=True),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_path', sa.String(500), nullable=False, unique=True),
        sa.Column('file_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        _uuid('uploaded_by_user_id', sa.ForeignKey('fa_profiles.id', ondelete='SET NULL'), nullable=True),
        _created_at(),
    )

    op.create_table(
        'fa_activity_log',
        _uuid('id', primary_key=True, nullable=False),
        sa.Column('entity_type', sa.String(20), nullable=False),
        _uuid('entity_id', nullable=False),
        sa.Column('action', sa.String(20), nullable=False),
        _uuid('performed_by_user_id', sa.ForeignKey('fa_profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, index=True),
    )
    op.create_index('ix_fa_activity_log_entity', 'fa_activity_log', ['entity_type', 'entity_id'])

    # ------------------------------
    # Route planning
    # ------------------------------
    op.create_table(
        'fa_route_operational_items',
        _uuid('id', primary_key=True, nullable=False),
        _uuid('manager_user_id', sa.ForeignKey('fa_profiles.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('planned_date', sa.Date(), nullable=False),
        sa.Column('region', sa.String(50), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        'fa_route_visit_times',
        _uuid('id', primary_key=True, nullable=False),
        _uuid('manager_user_id', sa.ForeignKey('fa_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('planned_date', sa.Date(), nullable=False),
        sa.Column('region', sa.String(50), nullable=True),
        _uuid('store_id', sa.ForeignKey('fa_stores.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        _updated_at(),
        sa.UniqueConstraint(
            'manager_user_id', 'planned_date', 'region', 'store_id',
            name='uq_fa_route_visit_times_stop',
        ),
    )

    # ------------------------------
    # Audit templates
    # ------------------------------
    op.create_table(
        'fa_audit_templates',
        _uuid('id', primary_key=True, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(50), nullable=False, server_default='custom'),
        _uuid('created_by_user_id', sa.ForeignKey('fa_profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        _created_at(),
    )

    op.create_table(
        'fa_audit_template_sections',
        _uuid('id', primary_key=True, nullable=False),
        _uuid('template_id', sa.ForeignKey('fa_audit_templates.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
    )

    op.create_table(
        'fa_audit_template_questions',
        _uuid('id', primary_key=True, nullable=False),
        _uuid('section_id', sa.ForeignKey('fa_audit_template_sections.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('question_type', sa.String(20), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('options', sa.JSON(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table('fa_audit_template_questions')
    op.drop_table('fa_audit_template_sections')
    op.drop_table('fa_audit_templates')
    op.drop_table('fa_route_visit_times')
    op.drop_table('fa_route_operational_items')
    op.drop_index('ix_fa_activity_log_entity', table_name='fa_activity_log')
    op.drop_table('fa_activity_log')
    op.drop_table('fa_attachments')
    op.drop_table('fa_actions')
    op.drop_table('fa_investigations')
    op.drop_table('fa_closed_incidents')
    op.drop_table('fa_incidents')
    op.drop_index('ix_fa_stores_route', table_name='fa_stores')
    op.drop_table('fa_stores')
    op.drop_index('ix_fa_profiles_role', table_name='fa_profiles')
    op.drop_table('fa_profiles')
