"""
initial assessment authoring schema

Revision ID: 20261019_initial_assessment_schema
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261019_initial_assessment_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('role', sa.Enum('therapist', 'admin', name='userrole'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'clients',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('therapist_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('client_code', sa.String(length=32), nullable=False, unique=True),
        sa.Column('full_name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='Active'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_clients_therapist_id', 'clients', ['therapist_id'])
    op.create_index('ix_clients_therapist_email', 'clients', ['therapist_id', 'email'])

    op.create_table(
        'questions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('therapist_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('question_type', sa.String(length=32), nullable=False),
        sa.Column('options', sa.JSON(), nullable=True),
        sa.Column('validation_rules', sa.JSON(), nullable=True),
        sa.Column('placeholder_text', sa.String(), nullable=True),
        sa.Column('help_text', sa.Text(), nullable=True),
        sa.Column('is_library_item', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_questions_therapist_id', 'questions', ['therapist_id'])

    op.create_table(
        'assessments',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('therapist_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('allow_multiple_submissions', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('show_scores_to_client', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('share_token', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_assessments_therapist_id', 'assessments', ['therapist_id'])
    op.create_index('ix_assessments_share_token', 'assessments', ['share_token'], unique=True)

    op.create_table(
        'assessment_questions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('assessment_id', sa.String(), sa.ForeignKey('assessments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_id', sa.String(), sa.ForeignKey('questions.id'), nullable=False),
        sa.Column('question_order', sa.Integer(), nullable=False),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('override_question_text', sa.Text(), nullable=True),
        sa.Column('override_options', sa.JSON(), nullable=True),
        sa.Column('override_help_text', sa.Text(), nullable=True),
        sa.Column('section_name', sa.String(), nullable=True),
        sa.Column('conditional_logic', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.UniqueConstraint('assessment_id', 'question_order', name='uq_assessment_questions_order'),
        sa.UniqueConstraint('assessment_id', 'question_id', name='uq_assessment_questions_question'),
    )
    op.create_index('ix_assessment_questions_assessment_id', 'assessment_questions', ['assessment_id'])
    op.create_index('ix_assessment_questions_question_id', 'assessment_questions', ['question_id'])

    op.create_table(
        'assessment_submissions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('assessment_id', sa.String(), sa.ForeignKey('assessments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('client_id', sa.String(), sa.ForeignKey('clients.id'), nullable=False),
        sa.Column('therapist_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('session_id', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='completed'),
        sa.Column('completion_time_seconds', sa.Integer(), nullable=True),
        sa.Column('raw_score', sa.Float(), nullable=True),
        sa.Column('calculated_score', sa.Float(), nullable=True),
        sa.Column('score_interpretation', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_assessment_submissions_assessment_id', 'assessment_submissions', ['assessment_id'])
    op.create_index('ix_assessment_submissions_client_id', 'assessment_submissions', ['client_id'])
    op.create_index('ix_assessment_submissions_therapist_id', 'assessment_submissions', ['therapist_id'])

    op.create_table(
        'assessment_responses',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('submission_id', sa.String(), sa.ForeignKey('assessment_submissions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assessment_question_id', sa.String(), sa.ForeignKey('assessment_questions.id', ondelete='SET NULL'), nullable=True),
        sa.Column('question_id', sa.String(), sa.ForeignKey('questions.id'), nullable=False),
        sa.Column('response_value', sa.Text(), nullable=True),
        sa.Column('response_values', sa.JSON(), nullable=True),
        sa.Column('numeric_value', sa.Float(), nullable=True),
        sa.Column('points_earned', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_assessment_responses_submission_id', 'assessment_responses', ['submission_id'])

    op.create_table(
        'assessment_assignments',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('assessment_id', sa.String(), sa.ForeignKey('assessments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('client_id', sa.String(), sa.ForeignKey('clients.id'), nullable=False),
        sa.Column('therapist_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('submission_id', sa.String(), sa.ForeignKey('assessment_submissions.id', ondelete='SET NULL'), nullable=True),
        sa.Column('assigned_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.UniqueConstraint('assessment_id', 'client_id', name='uq_assessment_assignments_client'),
    )
    op.create_index('ix_assessment_assignments_assessment_id', 'assessment_assignments', ['assessment_id'])
    op.create_index('ix_assessment_assignments_client_id', 'assessment_assignments', ['client_id'])


def downgrade() -> None:
    op.drop_table('assessment_assignments')
    op.drop_table('assessment_responses')
    op.drop_table('assessment_submissions')
    op.drop_table('assessment_questions')
    op.drop_table('assessments')
    op.drop_table('questions')
    op.drop_table('clients')
    op.drop_table('users')
    sa.Enum(name='userrole').drop(op.get_bind(), checkfirst=True)
