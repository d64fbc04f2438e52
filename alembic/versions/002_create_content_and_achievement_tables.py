"""Create content progress and achievement tables

Revision ID: 002_content_and_achievements
Revises: 001_create_progress_tables
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '002_content_and_achievements'
down_revision = '001_create_progress_tables'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'contents',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(200), nullable=False, unique=True),
        sa.Column('content_type', sa.String(20), nullable=False),
        sa.Column('is_published', sa.Boolean, default=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        'content_progress',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('content_id', sa.Uuid, sa.ForeignKey('contents.id'), nullable=False),
        sa.Column('progress', sa.Integer, nullable=False, default=0),
        sa.Column('last_position', sa.Integer),
        sa.Column('time_spent', sa.Integer, nullable=False, default=0),
        sa.Column('started_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint('user_id', 'content_id', name='uq_content_progress_user_content'),
        sa.CheckConstraint('progress >= 0 AND progress <= 100', name='ck_content_progress_range'),
    )

    op.create_table(
        'achievements',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('icon', sa.String(50)),
        sa.Column('category', sa.String(30), nullable=False),
        sa.Column('xp_reward', sa.Integer, nullable=False, default=0),
        sa.Column('condition', sa.JSON, nullable=False),
        sa.Column('is_secret', sa.Boolean, default=False),
        sa.Column('is_active', sa.Boolean, default=True),
        sa.Column('order_index', sa.Integer, default=0),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        'user_achievements',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('achievement_id', sa.Uuid, sa.ForeignKey('achievements.id'), nullable=False),
        sa.Column('unlocked_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('user_id', 'achievement_id', name='uq_user_achievement'),
    )

    op.create_index('ix_content_progress_user_completed', 'content_progress', ['user_id', 'completed_at'])


def downgrade() -> None:
    op.drop_index('ix_content_progress_user_completed')

    op.drop_table('user_achievements')
    op.drop_table('achievements')
    op.drop_table('content_progress')
    op.drop_table('contents')
