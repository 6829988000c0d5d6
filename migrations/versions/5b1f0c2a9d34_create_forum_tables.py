"""Create forum tables (categories, questions, answers, upvotes, problems)

Revision ID: 5b1f0c2a9d34
Revises:
Create Date: 2026-10-19 10:12:41.204518

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5b1f0c2a9d34'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sa.UniqueConstraint('slug'),
    )
    op.create_index('ix_categories_id', 'categories', ['id'])

    op.create_table(
        'forum_questions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=300), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('author_name', sa.String(length=100), nullable=True),
        sa.Column('account_id', sa.String(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('tags', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='open'),
        sa.Column('answer_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_pinned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_activity_at', sa.DateTime(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('converted_problem_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_forum_questions_id', 'forum_questions', ['id'])
    op.create_index('ix_forum_questions_account_id', 'forum_questions', ['account_id'])
    op.create_index('ix_forum_questions_category_id', 'forum_questions', ['category_id'])
    op.create_index('ix_forum_questions_status', 'forum_questions', ['status'])
    op.create_index('ix_forum_questions_last_activity_at', 'forum_questions', ['last_activity_at'])

    op.create_table(
        'forum_answers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('author_name', sa.String(length=100), nullable=True),
        sa.Column('account_id', sa.String(), nullable=True),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('mentions', sa.JSON(), nullable=False),
        sa.Column('is_solution', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('upvote_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['question_id'], ['forum_questions.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_forum_answers_id', 'forum_answers', ['id'])
    op.create_index('ix_forum_answers_question_id', 'forum_answers', ['question_id'])
    op.create_index('ix_forum_answers_account_id', 'forum_answers', ['account_id'])

    op.create_table(
        'forum_upvotes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('answer_id', sa.Integer(), nullable=False),
        sa.Column('voter_identity', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['answer_id'], ['forum_answers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('answer_id', 'voter_identity', name='uq_forum_upvotes_answer_voter'),
    )
    op.create_index('ix_forum_upvotes_voter', 'forum_upvotes', ['voter_identity'])

    op.create_table(
        'problems',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=300), nullable=False),
        sa.Column('slug', sa.String(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('quick_answer', sa.Text(), nullable=False),
        sa.Column('steps', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='draft'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('source_question_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.ForeignKeyConstraint(['source_question_id'], ['forum_questions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source_question_id'),
    )
    op.create_index('ix_problems_id', 'problems', ['id'])
    op.create_index('ix_problems_slug', 'problems', ['slug'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_problems_slug', table_name='problems')
    op.drop_index('ix_problems_id', table_name='problems')
    op.drop_table('problems')
    op.drop_index('ix_forum_upvotes_voter', table_name='forum_upvotes')
    op.drop_table('forum_upvotes')
    op.drop_index('ix_forum_answers_account_id', table_name='forum_answers')
    op.drop_index('ix_forum_answers_question_id', table_name='forum_answers')
    op.drop_index('ix_forum_answers_id', table_name='forum_answers')
    op.drop_table('forum_answers')
    op.drop_index('ix_forum_questions_last_activity_at', table_name='forum_questions')
    op.drop_index('ix_forum_questions_status', table_name='forum_questions')
    op.drop_index('ix_forum_questions_category_id', table_name='forum_questions')
    op.drop_index('ix_forum_questions_account_id', table_name='forum_questions')
    op.drop_index('ix_forum_questions_id', table_name='forum_questions')
    op.drop_table('forum_questions')
    op.drop_index('ix_categories_id', table_name='categories')
    op.drop_table('categories')
