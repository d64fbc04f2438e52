"""Create gamification and progress tables

Revision ID: 001_create_progress_tables
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_create_progress_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('display_name', sa.String(150), nullable=False),
        sa.Column('avatar_url', sa.String(500)),
        sa.Column('is_active', sa.Boolean, default=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Catalogue (read-only for the engine)
    op.create_table(
        'courses',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(200), nullable=False, unique=True),
        sa.Column('description', sa.Text),
        sa.Column('difficulty', sa.String(20)),
        sa.Column('is_published', sa.Boolean, default=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        'course_sections',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('course_id', sa.Uuid, sa.ForeignKey('courses.id'), nullable=False, index=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('order_index', sa.Integer, default=0),
    )
    op.create_table(
        'lessons',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('section_id', sa.Uuid, sa.ForeignKey('course_sections.id'), nullable=False, index=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('order_index', sa.Integer, default=0),
        sa.Column('duration_minutes', sa.Integer),
    )
    op.create_table(
        'practice_problems',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(200), nullable=False, unique=True),
        sa.Column('description', sa.Text),
        sa.Column('difficulty', sa.String(10), nullable=False),
        sa.Column('language', sa.String(30), default='python'),
        sa.Column('test_cases', sa.JSON),
        sa.Column('is_published', sa.Boolean, default=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # XP ledger and award events
    op.create_table(
        'user_xp',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('total_xp', sa.Integer, nullable=False, default=0),
        sa.Column('weekly_xp', sa.Integer, nullable=False, default=0),
        sa.Column('monthly_xp', sa.Integer, nullable=False, default=0),
        sa.Column('level', sa.Integer, nullable=False, default=1),
        sa.Column('week_starts_at', sa.DateTime(timezone=True)),
        sa.Column('month_starts_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.CheckConstraint('total_xp >= 0', name='ck_user_xp_total_non_negative'),
        sa.CheckConstraint('level >= 1', name='ck_user_xp_level_positive'),
    )
    op.create_table(
        'xp_transactions',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('action', sa.String(40), nullable=False),
        sa.Column('reference_id', sa.String(120), nullable=False),
        sa.Column('amount', sa.Integer, nullable=False),
        sa.Column('description', sa.String(255)),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('user_id', 'action', 'reference_id', name='uq_xp_award_once'),
        sa.CheckConstraint('amount > 0', name='ck_xp_transaction_amount_positive'),
    )
    op.create_table(
        'user_streaks',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('current_streak', sa.Integer, nullable=False, default=0),
        sa.Column('longest_streak', sa.Integer, nullable=False, default=0),
        sa.Column('last_active_date', sa.Date),
        sa.Column('total_active_days', sa.Integer, nullable=False, default=0),
        sa.CheckConstraint('longest_streak >= current_streak', name='ck_streak_longest_covers_current'),
    )
    op.create_table(
        'user_daily_progress',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('xp_earned', sa.Integer, nullable=False, default=0),
        sa.Column('lessons_completed', sa.Integer, nullable=False, default=0),
        sa.Column('problems_solved', sa.Integer, nullable=False, default=0),
        sa.Column('content_completed', sa.Integer, nullable=False, default=0),
        sa.UniqueConstraint('user_id', 'date', name='uq_daily_progress_user_date'),
    )
    op.create_table(
        'daily_goals',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('daily_xp_goal', sa.Integer, nullable=False, default=50),
        sa.Column('reminder_enabled', sa.Boolean, default=False),
        sa.Column('reminder_time', sa.String(5)),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Learning progress
    op.create_table(
        'lesson_progress',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('lesson_id', sa.Uuid, sa.ForeignKey('lessons.id'), nullable=False),
        sa.Column('completed', sa.Boolean, nullable=False, default=False),
        sa.Column('started_at', sa.DateTime(timezone=True)),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint('user_id', 'lesson_id', name='uq_lesson_progress_user_lesson'),
    )
    op.create_table(
        'course_enrollments',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('course_id', sa.Uuid, sa.ForeignKey('courses.id'), nullable=False),
        sa.Column('progress', sa.Integer, nullable=False, default=0),
        sa.Column('current_lesson_id', sa.Uuid, sa.ForeignKey('lessons.id'), nullable=True),
        sa.Column('enrolled_at', sa.DateTime(timezone=True)),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint('user_id', 'course_id', name='uq_enrollment_user_course'),
        sa.CheckConstraint('progress >= 0 AND progress <= 100', name='ck_enrollment_progress_range'),
    )
    op.create_table(
        'practice_submissions',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('problem_id', sa.Uuid, sa.ForeignKey('practice_problems.id'), nullable=False),
        sa.Column('code', sa.Text, nullable=False),
        sa.Column('status', sa.String(10), nullable=False),
        sa.Column('passed_tests', sa.Integer, nullable=False, default=0),
        sa.Column('total_tests', sa.Integer, nullable=False, default=0),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('passed_tests >= 0 AND passed_tests <= total_tests', name='ck_submission_test_counts'),
    )
    op.create_table(
        'activity_events',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('event_type', sa.String(30), nullable=False),
        sa.Column('target_id', sa.String(120)),
        sa.Column('details', sa.JSON),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('activity_date', sa.Date, nullable=False),
    )

    # Create indexes for better query performance
    op.create_index('ix_user_xp_total', 'user_xp', ['total_xp'])
    op.create_index('ix_user_xp_weekly', 'user_xp', ['weekly_xp'])
    op.create_index('ix_user_xp_monthly', 'user_xp', ['monthly_xp'])
    op.create_index('ix_xp_transactions_user_created', 'xp_transactions', ['user_id', 'created_at'])
    op.create_index('ix_submissions_user_problem', 'practice_submissions', ['user_id', 'problem_id'])
    op.create_index('ix_activity_events_user_date', 'activity_events', ['user_id', 'activity_date'])


def downgrade() -> None:
    # Drop indexes
    op.drop_index('ix_activity_events_user_date')
    op.drop_index('ix_submissions_user_problem')
    op.drop_index('ix_xp_transactions_user_created')
    op.drop_index('ix_user_xp_monthly')
    op.drop_index('ix_user_xp_weekly')
    op.drop_index('ix_user_xp_total')

    # Drop tables, dependents first
    op.drop_table('activity_events')
    op.drop_table('practice_submissions')
    op.drop_table('course_enrollments')
    op.drop_table('lesson_progress')
    op.drop_table('daily_goals')
    op.drop_table('user_daily_progress')
    op.drop_table('user_streaks')
    op.drop_table('xp_transactions')
    op.drop_table('user_xp')
    op.drop_table('practice_problems')
    op.drop_table('lessons')
    op.drop_table('course_sections')
    op.drop_table('courses')
    op.drop_table('users')
