"""initial_periodization_schema

Revision ID: 4f1c2a7b9d10
Revises:
Create Date: 2026-10-19 09:12:44.310822

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4f1c2a7b9d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


difficulty = sa.Enum('BEGINNER', 'INTERMEDIATE', 'ADVANCED', 'EXPERT', name='difficulty')
progression_strategy = sa.Enum('LINEAR', 'AUTO_REGULATED', 'CUSTOM', name='progression_strategy')
phase_type = sa.Enum(
    'ACCUMULATION', 'INTENSIFICATION', 'REALIZATION', 'DELOAD', 'HYPERTROPHY',
    'STRENGTH', 'POWER', 'ENDURANCE', 'PEAKING', 'TRANSITION',
    name='phase_type',
)
volume_level = sa.Enum('LOW', 'MEDIUM', 'HIGH', name='volume_level')
workout_type = sa.Enum('STRENGTH', 'HYPERTROPHY', 'POWER', 'CONDITIONING', 'MOBILITY', 'RECOVERY', name='workout_type')
movement_pattern = sa.Enum(
    'SQUAT', 'HINGE', 'LUNGE', 'HORIZONTAL_PUSH', 'HORIZONTAL_PULL',
    'VERTICAL_PUSH', 'VERTICAL_PULL', 'CARRY', 'CORE', 'ISOLATION',
    name='movement_pattern',
)
# exercise_slots reuses the type created with the exercises table
movement_pattern_existing = postgresql.ENUM(
    'SQUAT', 'HINGE', 'LUNGE', 'HORIZONTAL_PUSH', 'HORIZONTAL_PULL',
    'VERTICAL_PUSH', 'VERTICAL_PULL', 'CARRY', 'CORE', 'ISOLATION',
    name='movement_pattern',
    create_type=False,
)
subscription_status = sa.Enum('ACTIVE', 'PAUSED', 'ARCHIVED', 'COMPLETED', name='subscription_status')
session_status = sa.Enum('ACTIVE', 'PAUSED', 'ARCHIVED', 'COMPLETED', name='session_status')
active_kind = sa.Enum('PROGRAM', 'CUSTOM', 'NONE', name='active_kind')
relationship_status = sa.Enum('PENDING', 'ACTIVE', 'ENDED', name='relationship_status')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'exercises',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('movement_pattern', movement_pattern, nullable=True),
        sa.Column('muscle_targets', sa.JSON(), nullable=False),
        sa.Column('equipment', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'program_templates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('duration_weeks', sa.Integer(), nullable=False),
        sa.Column('difficulty', difficulty, nullable=False),
        sa.Column('category', sa.String(length=60), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.Column('has_exercise_slots', sa.Boolean(), nullable=False),
        sa.Column('progression_strategy', progression_strategy, nullable=False),
        sa.Column('auto_regulation', sa.Boolean(), nullable=False),
        sa.Column('template_data', sa.JSON(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('duration_weeks > 0', name='ck_program_templates_duration_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_program_templates_created_by', 'program_templates', ['created_by'])
    op.create_index('ix_program_templates_category', 'program_templates', ['category'])

    op.create_table(
        'program_phases',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('program_id', sa.Integer(), nullable=False),
        sa.Column('phase_number', sa.Integer(), nullable=False),
        sa.Column('phase_name', sa.String(length=120), nullable=False),
        sa.Column('phase_type', phase_type, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_week', sa.Integer(), nullable=False),
        sa.Column('end_week', sa.Integer(), nullable=False),
        sa.Column('target_intensity_low', sa.Float(), nullable=True),
        sa.Column('target_intensity_high', sa.Float(), nullable=True),
        sa.Column('target_volume', volume_level, nullable=True),
        sa.Column('rep_range_low', sa.Integer(), nullable=True),
        sa.Column('rep_range_high', sa.Integer(), nullable=True),
        sa.Column('sets_per_exercise', sa.Integer(), nullable=True),
        sa.Column('rest_seconds_min', sa.Integer(), nullable=True),
        sa.Column('rest_seconds_max', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['program_id'], ['program_templates.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('program_id', 'phase_number', name='uq_program_phase_number'),
        sa.CheckConstraint('start_week <= end_week', name='ck_program_phases_week_order'),
    )
    op.create_index('ix_program_phases_program_id', 'program_phases', ['program_id'])

    op.create_table(
        'program_microcycles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('phase_id', sa.Integer(), nullable=False),
        sa.Column('week_number', sa.Integer(), nullable=False),
        sa.Column('week_in_phase', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=120), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('volume_modifier', sa.Integer(), nullable=False),
        sa.Column('intensity_modifier', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['phase_id'], ['program_phases.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('phase_id', 'week_number', name='uq_microcycle_phase_week'),
    )
    op.create_index('ix_program_microcycles_phase_id', 'program_microcycles', ['phase_id'])

    op.create_table(
        'program_workouts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('microcycle_id', sa.Integer(), nullable=False),
        sa.Column('day_number', sa.Integer(), nullable=False),
        sa.Column('day_label', sa.String(length=120), nullable=True),
        sa.Column('workout_type', workout_type, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('estimated_duration', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['microcycle_id'], ['program_microcycles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('microcycle_id', 'day_number', name='uq_workout_microcycle_day'),
        sa.CheckConstraint('day_number between 1 and 7', name='ck_program_workouts_day_range'),
    )

    op.create_table(
        'exercise_slots',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('program_id', sa.Integer(), nullable=False),
        sa.Column('slot_number', sa.Integer(), nullable=False),
        sa.Column('slot_label', sa.String(length=120), nullable=False),
        sa.Column('movement_pattern', movement_pattern_existing, nullable=True),
        sa.Column('muscle_targets', sa.JSON(), nullable=False),
        sa.Column('equipment_options', sa.JSON(), nullable=False),
        sa.Column('suggested_exercise_ids', sa.JSON(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_required', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['program_id'], ['program_templates.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('program_id', 'slot_number', name='uq_exercise_slot_number'),
    )
    op.create_index('ix_exercise_slots_program_id', 'exercise_slots', ['program_id'])

    op.create_table(
        'program_workout_exercises',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('workout_id', sa.Integer(), nullable=False),
        sa.Column('fixed_exercise_id', sa.Integer(), nullable=True),
        sa.Column('slot_id', sa.Integer(), nullable=True),
        sa.Column('exercise_order', sa.Integer(), nullable=False),
        sa.Column('sets', sa.Integer(), nullable=True),
        sa.Column('reps_min', sa.Integer(), nullable=True),
        sa.Column('reps_max', sa.Integer(), nullable=True),
        sa.Column('target_rpe', sa.Float(), nullable=True),
        sa.Column('target_intensity', sa.Float(), nullable=True),
        sa.Column('rest_seconds', sa.Integer(), nullable=True),
        sa.Column('tempo', sa.String(length=20), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['workout_id'], ['program_workouts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['fixed_exercise_id'], ['exercises.id']),
        sa.ForeignKeyConstraint(['slot_id'], ['exercise_slots.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            '(fixed_exercise_id IS NULL) <> (slot_id IS NULL)',
            name='ck_workout_exercise_fixed_xor_slot',
        ),
    )
    op.create_index('ix_program_workout_exercises_workout_id', 'program_workout_exercises', ['workout_id'])

    op.create_table(
        'program_subscriptions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('program_id', sa.Integer(), nullable=False),
        sa.Column('status', subscription_status, nullable=False),
        sa.Column('current_week', sa.Integer(), nullable=False),
        sa.Column('current_day', sa.Integer(), nullable=False),
        sa.Column('current_phase_id', sa.Integer(), nullable=True),
        sa.Column('current_week_in_phase', sa.Integer(), nullable=False),
        sa.Column('phase_started_at', sa.DateTime(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('is_currently_active', sa.Boolean(), nullable=False),
        sa.Column('workouts_completed', sa.Integer(), nullable=False),
        sa.Column('adherence_rate', sa.Float(), nullable=False),
        sa.Column('last_workout_completed_at', sa.DateTime(), nullable=True),
        sa.Column('assigned_by', sa.Integer(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('archived_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['program_id'], ['program_templates.id']),
        sa.ForeignKeyConstraint(['current_phase_id'], ['program_phases.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('adherence_rate >= 0 AND adherence_rate <= 1', name='ck_subscription_adherence_range'),
        sa.CheckConstraint('current_day between 1 and 7', name='ck_subscription_day_range'),
    )
    op.create_index('ix_program_subscriptions_user_id', 'program_subscriptions', ['user_id'])
    op.create_index('ix_program_subscriptions_user_program', 'program_subscriptions', ['user_id', 'program_id'])

    op.create_table(
        'user_exercise_selections',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('program_id', sa.Integer(), nullable=False),
        sa.Column('subscription_id', sa.Integer(), nullable=True),
        sa.Column('slot_id', sa.Integer(), nullable=False),
        sa.Column('exercise_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['program_id'], ['program_templates.id']),
        sa.ForeignKeyConstraint(['subscription_id'], ['program_subscriptions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['slot_id'], ['exercise_slots.id']),
        sa.ForeignKeyConstraint(['exercise_id'], ['exercises.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('subscription_id', 'slot_id', name='uq_selection_subscription_slot'),
    )
    op.create_index(
        'uq_selection_staged_slot',
        'user_exercise_selections',
        ['user_id', 'program_id', 'slot_id'],
        unique=True,
        postgresql_where=sa.text('subscription_id IS NULL'),
        sqlite_where=sa.text('subscription_id IS NULL'),
    )

    op.create_table(
        'workout_sessions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('status', session_status, nullable=False),
        sa.Column('is_currently_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_workout_sessions_user_id', 'workout_sessions', ['user_id'])

    op.create_table(
        'active_session_pointers',
        sa.Column('user_id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('kind', active_kind, nullable=False),
        sa.Column('subscription_id', sa.Integer(), nullable=True),
        sa.Column('session_id', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['subscription_id'], ['program_subscriptions.id']),
        sa.ForeignKeyConstraint(['session_id'], ['workout_sessions.id']),
        sa.PrimaryKeyConstraint('user_id'),
        sa.CheckConstraint(
            "(kind = 'PROGRAM' AND subscription_id IS NOT NULL AND session_id IS NULL)"
            " OR (kind = 'CUSTOM' AND session_id IS NOT NULL AND subscription_id IS NULL)"
            " OR (kind = 'NONE' AND subscription_id IS NULL AND session_id IS NULL)",
            name='ck_active_pointer_tagged',
        ),
    )

    op.create_table(
        'workout_performances',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('subscription_id', sa.Integer(), nullable=False),
        sa.Column('workout_id', sa.Integer(), nullable=True),
        sa.Column('week_number', sa.Integer(), nullable=False),
        sa.Column('day_number', sa.Integer(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False),
        sa.Column('rpe', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('performed_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['subscription_id'], ['program_subscriptions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['workout_id'], ['program_workouts.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_workout_performances_subscription_week',
        'workout_performances',
        ['subscription_id', 'week_number'],
    )

    op.create_table(
        'trainer_clients',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('trainer_id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('status', relationship_status, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_trainer_clients_trainer_client', 'trainer_clients', ['trainer_id', 'client_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_trainer_clients_trainer_client', table_name='trainer_clients')
    op.drop_table('trainer_clients')
    op.drop_index('ix_workout_performances_subscription_week', table_name='workout_performances')
    op.drop_table('workout_performances')
    op.drop_table('active_session_pointers')
    op.drop_index('ix_workout_sessions_user_id', table_name='workout_sessions')
    op.drop_table('workout_sessions')
    op.drop_index('uq_selection_staged_slot', table_name='user_exercise_selections')
    op.drop_table('user_exercise_selections')
    op.drop_index('ix_program_subscriptions_user_program', table_name='program_subscriptions')
    op.drop_index('ix_program_subscriptions_user_id', table_name='program_subscriptions')
    op.drop_table('program_subscriptions')
    op.drop_index('ix_program_workout_exercises_workout_id', table_name='program_workout_exercises')
    op.drop_table('program_workout_exercises')
    op.drop_index('ix_exercise_slots_program_id', table_name='exercise_slots')
    op.drop_table('exercise_slots')
    op.drop_table('program_workouts')
    op.drop_index('ix_program_microcycles_phase_id', table_name='program_microcycles')
    op.drop_table('program_microcycles')
    op.drop_index('ix_program_phases_program_id', table_name='program_phases')
    op.drop_table('program_phases')
    op.drop_index('ix_program_templates_category', table_name='program_templates')
    op.drop_index('ix_program_templates_created_by', table_name='program_templates')
    op.drop_table('program_templates')
    op.drop_table('exercises')

    bind = op.get_bind()
    for enum in (
        relationship_status, active_kind, session_status, subscription_status,
        movement_pattern, workout_type, volume_level, phase_type,
        progression_strategy, difficulty,
    ):
        enum.drop(bind, checkfirst=True)
