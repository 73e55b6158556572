"""Initial gallery schema: items, tags, groups, notes, translations

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Trigram indexes back the substring / wildcard matching
    op.execute('CREATE EXTENSION IF NOT EXISTS pg_trgm')

    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('hash', sa.String(64), nullable=False),
        sa.Column('width', sa.Integer()),
        sa.Column('height', sa.Integer()),
        sa.Column('blurhash', sa.String(100)),
        sa.Column('mime_type', sa.String(100), nullable=False),
        sa.Column('imported_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('is_hidden', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.UniqueConstraint('hash', name='uq_items_hash'),
    )
    op.create_index('idx_items_imported_at', 'items', ['imported_at', 'id'])
    op.create_index('idx_items_mime_type', 'items', ['mime_type'])

    op.create_table(
        'tags',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('category', sa.String(20), nullable=False, server_default='general'),
        sa.Column('item_count', sa.Integer(), nullable=False, server_default='0'),
        sa.UniqueConstraint('name', 'category', name='uq_tags_name_category'),
        sa.CheckConstraint(
            "category IN ('creator', 'source', 'subject', 'general', 'meta')", name='ck_tags_category'
        ),
    )
    op.create_index('idx_tags_name', 'tags', ['name'])
    op.create_index('idx_tags_item_count', 'tags', ['item_count'])
    op.execute('CREATE INDEX idx_tags_name_trgm ON tags USING gin (name gin_trgm_ops)')

    op.create_table(
        'item_tags',
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('tag_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('item_id', 'tag_id'),
    )
    op.create_index('idx_item_tags_tag_item', 'item_tags', ['tag_id', 'item_id'])

    op.create_table(
        'groups',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('source_type', sa.String(50), nullable=False),
        sa.Column('source_id', sa.String(255), nullable=False),
        sa.Column('title', sa.Text()),
        sa.Column('title_hash', sa.String(64)),
        sa.UniqueConstraint('source_type', 'source_id', name='uq_groups_source'),
    )
    op.create_index('idx_groups_title_hash', 'groups', ['title_hash'])
    op.execute('CREATE INDEX idx_groups_title_trgm ON groups USING gin (lower(title) gin_trgm_ops)')

    op.create_table(
        'item_groups',
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('group_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('item_id', 'group_id'),
    )
    op.create_index('idx_item_groups_group', 'item_groups', ['group_id', 'position'])

    op.create_table(
        'notes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('content_hash', sa.String(64)),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ondelete='CASCADE'),
    )
    op.create_index('idx_notes_item', 'notes', ['item_id'])
    op.create_index('idx_notes_content_hash', 'notes', ['content_hash'])
    op.execute('CREATE INDEX idx_notes_content_trgm ON notes USING gin (lower(content) gin_trgm_ops)')

    op.create_table(
        'content_translations',
        sa.Column('content_hash', sa.String(64), primary_key=True),
        sa.Column('source_language', sa.String(20)),
        sa.Column('translated_content', sa.Text(), nullable=False),
        sa.Column('translated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.execute(
        'CREATE INDEX idx_content_translations_trgm ON content_translations '
        'USING gin (lower(translated_content) gin_trgm_ops)'
    )


def downgrade() -> None:
    op.drop_table('content_translations')
    op.drop_table('notes')
    op.drop_table('item_groups')
    op.drop_table('groups')
    op.drop_table('item_tags')
    op.drop_table('tags')
    op.drop_table('items')
