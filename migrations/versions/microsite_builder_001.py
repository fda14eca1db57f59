"""microsite builder tables

Revision ID: microsite_builder_001
Revises:
Create Date: 2026-10-17 09:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'microsite_builder_001'
down_revision = None
branch_labels = None
depends_on = None


JSONType = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _timestamps():
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    op.create_table(
        'microsite',
        *_timestamps(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('slug', sa.String(length=63), nullable=False),
        sa.Column('subdomain', sa.String(length=63), nullable=False),
        sa.Column('custom_domain', sa.String(length=255), nullable=True),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('owner_type', sa.String(length=15), nullable=False),
        sa.Column('status', sa.String(length=9), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('template_key', sa.String(length=64), nullable=True),
        sa.Column('theme_key', sa.String(length=64), nullable=False, server_default='default'),
        sa.Column('color_scheme', JSONType, nullable=True),
        sa.Column('custom_css', sa.Text(), nullable=True),
        sa.Column('logo_url', sa.String(length=512), nullable=True),
        sa.Column('favicon_url', sa.String(length=512), nullable=True),
        sa.Column('features', JSONType, nullable=True),
        sa.Column('seo_title', sa.String(length=120), nullable=True),
        sa.Column('seo_description', sa.String(length=320), nullable=True),
        sa.Column('seo_keywords', JSONType, nullable=True),
        sa.Column('og_image', sa.String(length=512), nullable=True),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('contact_phone', sa.String(length=32), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('social_links', JSONType, nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_microsite_slug', 'microsite', ['slug'], unique=True)
    op.create_index('ix_microsite_subdomain', 'microsite', ['subdomain'], unique=True)
    op.create_index('ix_microsite_custom_domain', 'microsite', ['custom_domain'], unique=True)
    op.create_index('ix_microsite_owner_id', 'microsite', ['owner_id'], unique=False)
    op.create_index('ix_microsite_owner_status', 'microsite', ['owner_id', 'status'], unique=False)

    op.create_table(
        'microsite_page',
        *_timestamps(),
        sa.Column('microsite_id', sa.Integer(), nullable=False),
        sa.Column('slug', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('meta_title', sa.String(length=120), nullable=True),
        sa.Column('meta_description', sa.String(length=320), nullable=True),
        sa.Column('is_home_page', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['microsite_id'], ['microsite.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('microsite_id', 'slug', name='uq_microsite_page_slug'),
    )
    op.create_index('ix_microsite_page_microsite_id', 'microsite_page', ['microsite_id'], unique=False)
    op.create_index('ix_microsite_page_order', 'microsite_page', ['microsite_id', 'sort_order'], unique=False)
    # Partial unique index: one home page per microsite
    op.create_index(
        'uq_microsite_page_home',
        'microsite_page',
        ['microsite_id'],
        unique=True,
        sqlite_where=sa.text('is_home_page = 1'),
        postgresql_where=sa.text('is_home_page = true'),
    )

    op.create_table(
        'content_block',
        *_timestamps(),
        sa.Column('page_id', sa.Integer(), nullable=False),
        sa.Column('block_type', sa.String(length=15), nullable=False),
        sa.Column('content', JSONType, nullable=True),
        sa.Column('settings', JSONType, nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_visible', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(['page_id'], ['microsite_page.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_content_block_page_id', 'content_block', ['page_id'], unique=False)
    op.create_index('ix_content_block_page_order', 'content_block', ['page_id', 'sort_order'], unique=False)

    op.create_table(
        'media_asset',
        *_timestamps(),
        sa.Column('microsite_id', sa.Integer(), nullable=False),
        sa.Column('uploaded_by', sa.String(length=64), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('original_name', sa.String(length=255), nullable=False),
        sa.Column('mime_type', sa.String(length=128), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('storage_key', sa.String(length=512), nullable=False),
        sa.Column('url', sa.String(length=1024), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False, server_default='image'),
        sa.Column('alt_text', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['microsite_id'], ['microsite.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_media_asset_microsite_id', 'media_asset', ['microsite_id'], unique=False)
    op.create_index('ix_media_asset_microsite_created', 'media_asset', ['microsite_id', 'created_at'], unique=False)

    op.create_table(
        'audit_log',
        *_timestamps(),
        sa.Column('microsite_id', sa.Integer(), nullable=True),
        sa.Column('actor_id', sa.String(length=64), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('meta', JSONType, nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_log_microsite_id', 'audit_log', ['microsite_id'], unique=False)
    op.create_index('ix_audit_log_actor_id', 'audit_log', ['actor_id'], unique=False)
    op.create_index('ix_audit_log_microsite_created', 'audit_log', ['microsite_id', 'created_at'], unique=False)


def downgrade():
    op.drop_index('ix_audit_log_microsite_created', table_name='audit_log')
    op.drop_index('ix_audit_log_actor_id', table_name='audit_log')
    op.drop_index('ix_audit_log_microsite_id', table_name='audit_log')
    op.drop_table('audit_log')
    op.drop_index('ix_media_asset_microsite_created', table_name='media_asset')
    op.drop_index('ix_media_asset_microsite_id', table_name='media_asset')
    op.drop_table('media_asset')
    op.drop_index('ix_content_block_page_order', table_name='content_block')
    op.drop_index('ix_content_block_page_id', table_name='content_block')
    op.drop_table('content_block')
    op.drop_index('uq_microsite_page_home', table_name='microsite_page')
    op.drop_index('ix_microsite_page_order', table_name='microsite_page')
    op.drop_index('ix_microsite_page_microsite_id', table_name='microsite_page')
    op.drop_table('microsite_page')
    op.drop_index('ix_microsite_owner_status', table_name='microsite')
    op.drop_index('ix_microsite_owner_id', table_name='microsite')
    op.drop_index('ix_microsite_custom_domain', table_name='microsite')
    op.drop_index('ix_microsite_subdomain', table_name='microsite')
    op.drop_index('ix_microsite_slug', table_name='microsite')
    op.drop_table('microsite')
