"""initial schema: content, conversations, response cache

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2025-12-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b9d2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def _common_columns() -> list[sa.Column]:
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='Auto-incrementing primary key'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
    ]


def upgrade() -> None:
    """
    Creates:
    1. articles, faqs, videos - the knowledge base
    2. conversations - one row per chat turn
    3. response_cache - cached answers keyed by normalized question hash
    """

    # ================================
    # articles
    # ================================
    op.create_table(
        'articles',
        *_common_columns(),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('tags', JSONType, nullable=False, comment='Free-form tags (JSON array of strings)'),
        sa.Column('status', sa.String(length=20), nullable=False, comment='draft | published | archived'),
        sa.Column('embedding', JSONType, nullable=True, comment='Embedding of the search text; null until computed'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_articles')),
    )
    op.create_index(op.f('ix_articles_category'), 'articles', ['category'], unique=False)
    op.create_index(op.f('ix_articles_status'), 'articles', ['status'], unique=False)

    # ================================
    # faqs
    # ================================
    op.create_table(
        'faqs',
        *_common_columns(),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('answer', sa.Text(), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('embedding', JSONType, nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_faqs')),
    )
    op.create_index(op.f('ix_faqs_category'), 'faqs', ['category'], unique=False)

    # ================================
    # videos
    # ================================
    op.create_table(
        'videos',
        *_common_columns(),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('url', sa.String(length=2000), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('duration_seconds', sa.Integer(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('key_topics', JSONType, nullable=False),
        sa.Column('timestamps', JSONType, nullable=False, comment='[{"time": "02:15", "topic": "..."}]'),
        sa.Column('embedding', JSONType, nullable=True),
        sa.Column('analysis_status', sa.String(length=20), nullable=False, comment='pending | processing | done | failed'),
        sa.Column('analysis_error', sa.Text(), nullable=True),
        sa.Column('analysis_attempts', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_videos')),
    )
    op.create_index(op.f('ix_videos_category'), 'videos', ['category'], unique=False)
    op.create_index(op.f('ix_videos_analysis_status'), 'videos', ['analysis_status'], unique=False)

    # ================================
    # conversations
    # ================================
    op.create_table(
        'conversations',
        *_common_columns(),
        sa.Column('session_id', sa.String(length=100), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('sources', JSONType, nullable=True, comment='[{type, id, title, url?}] for assistant turns'),
        sa.Column('sentiment', sa.String(length=20), nullable=True),
        sa.Column('is_emergency', sa.Boolean(), nullable=False, server_default=sa.false(), comment='User turn answered by the emergency warning'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_conversations')),
    )
    op.create_index(op.f('ix_conversations_session_id'), 'conversations', ['session_id'], unique=False)
    op.create_index(op.f('ix_conversations_sentiment'), 'conversations', ['sentiment'], unique=False)

    # ================================
    # response_cache
    # ================================
    op.create_table(
        'response_cache',
        *_common_columns(),
        sa.Column('query_hash', sa.String(length=64), nullable=False),
        sa.Column('query_text', sa.Text(), nullable=False),
        sa.Column('response', sa.Text(), nullable=False),
        sa.Column('sources', JSONType, nullable=False),
        sa.Column('hit_count', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_response_cache')),
        sa.UniqueConstraint('query_hash', name=op.f('uq_response_cache_query_hash')),
    )
    op.create_index(op.f('ix_response_cache_expires_at'), 'response_cache', ['expires_at'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_response_cache_expires_at'), table_name='response_cache')
    op.drop_table('response_cache')

    op.drop_index(op.f('ix_conversations_sentiment'), table_name='conversations')
    op.drop_index(op.f('ix_conversations_session_id'), table_name='conversations')
    op.drop_table('conversations')

    op.drop_index(op.f('ix_videos_analysis_status'), table_name='videos')
    op.drop_index(op.f('ix_videos_category'), table_name='videos')
    op.drop_table('videos')

    op.drop_index(op.f('ix_faqs_category'), table_name='faqs')
    op.drop_table('faqs')

    op.drop_index(op.f('ix_articles_status'), table_name='articles')
    op.drop_index(op.f('ix_articles_category'), table_name='articles')
    op.drop_table('articles')
