"""create users, refresh tokens, surveys, option counters and answers

Revision ID: a3f1c2d4e5b6
Revises:
Create Date: 2025-06-02 10:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from cardsurvey.migrations.util import get_json_type, get_timestamp_default, get_uuid_type


# revision identifiers, used by Alembic.
revision: str = 'a3f1c2d4e5b6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    uuid_type = get_uuid_type()
    now_default = get_timestamp_default()

    op.create_table(
        'users',
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=80), nullable=True),
        sa.Column('photo_url', sa.String(length=1024), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now_default),
        sa.Column('last_login_date', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('user_id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'refresh_tokens',
        sa.Column('token_id', uuid_type, nullable=False),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now_default),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('token_id'),
    )
    op.create_index('ix_refresh_tokens_user_id', 'refresh_tokens', ['user_id'], unique=False)
    op.create_index('ix_refresh_tokens_token_hash', 'refresh_tokens', ['token_hash'], unique=False)

    op.create_table(
        'surveys',
        sa.Column('survey_id', uuid_type, nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False, server_default=''),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('survey_type', sa.String(length=20), nullable=False),
        sa.Column('questions', get_json_type(), nullable=False),
        sa.Column('question_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('responses', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('skip_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('privacy', sa.String(length=20), nullable=False),
        sa.Column('created_by', uuid_type, nullable=True),
        sa.Column('is_daily_poll', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now_default),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=now_default),
        sa.ForeignKeyConstraint(['created_by'], ['users.user_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('survey_id'),
    )
    op.create_index('ix_surveys_status', 'surveys', ['status'], unique=False)
    op.create_index('ix_surveys_created_by', 'surveys', ['created_by'], unique=False)
    op.create_index(
        'ix_surveys_public_listing', 'surveys', ['privacy', 'survey_type', 'status', 'created_at'], unique=False
    )

    op.create_table(
        'survey_option_counts',
        sa.Column('counter_id', uuid_type, nullable=False),
        sa.Column('survey_id', uuid_type, nullable=False),
        sa.Column('option', sa.String(length=255), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('count', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['survey_id'], ['surveys.survey_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('counter_id'),
    )
    op.create_index('ix_survey_option_counts_survey_id', 'survey_option_counts', ['survey_id'], unique=False)
    op.create_index(
        'ix_survey_option_counts_survey_option', 'survey_option_counts', ['survey_id', 'option'], unique=True
    )

    op.create_table(
        'user_survey_answers',
        sa.Column('answer_id', uuid_type, nullable=False),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('survey_id', uuid_type, nullable=False),
        sa.Column('question_id', sa.String(length=64), nullable=True),
        sa.Column('answer_value', sa.String(length=255), nullable=True),
        sa.Column('is_skipped', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=False, server_default=now_default),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['survey_id'], ['surveys.survey_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('answer_id'),
    )
    op.create_index('ix_user_survey_answers_user_id', 'user_survey_answers', ['user_id'], unique=False)
    op.create_index('ix_user_survey_answers_survey_id', 'user_survey_answers', ['survey_id'], unique=False)
    op.create_index(
        'ix_user_survey_answers_user_survey', 'user_survey_answers', ['user_id', 'survey_id'], unique=True
    )


def downgrade() -> None:
    op.drop_index('ix_user_survey_answers_user_survey', table_name='user_survey_answers')
    op.drop_index('ix_user_survey_answers_survey_id', table_name='user_survey_answers')
    op.drop_index('ix_user_survey_answers_user_id', table_name='user_survey_answers')
    op.drop_table('user_survey_answers')

    op.drop_index('ix_survey_option_counts_survey_option', table_name='survey_option_counts')
    op.drop_index('ix_survey_option_counts_survey_id', table_name='survey_option_counts')
    op.drop_table('survey_option_counts')

    op.drop_index('ix_surveys_public_listing', table_name='surveys')
    op.drop_index('ix_surveys_created_by', table_name='surveys')
    op.drop_index('ix_surveys_status', table_name='surveys')
    op.drop_table('surveys')

    op.drop_index('ix_refresh_tokens_token_hash', table_name='refresh_tokens')
    op.drop_index('ix_refresh_tokens_user_id', table_name='refresh_tokens')
    op.drop_table('refresh_tokens')

    op.drop_table('users')
