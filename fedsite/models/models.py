from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    event,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from fedsite.extensions import db

JSONType = JSON().with_variant(JSONB, 'postgresql')


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on."""
    module = type(dbapi_connection).__module__
    if module.startswith(("sqlite3", "pysqlite2")):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class TimestampedBase(db.Model):
    """Abstract base providing id/created/updated columns."""

    __abstract__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class OwnerType(Enum):
    CLUB = "club"
    STATE_COMMITTEE = "state_committee"
    PARTNER = "partner"


class MicrositeStatus(Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class BlockType(Enum):
    TEXT = "text"
    IMAGE = "image"
    GALLERY = "gallery"
    VIDEO = "video"
    CONTACT = "contact"
    MAP = "map"
    COURT_LIST = "court_list"
    TOURNAMENT_LIST = "tournament_list"
    CALENDAR = "calendar"
    CUSTOM_HTML = "custom_html"


class Microsite(TimestampedBase):
    """Tenant root: one subdomain-hosted website owned by a club, committee or partner."""

    __tablename__ = "microsite"
    __table_args__ = (
        Index("ix_microsite_owner_status", "owner_id", "status"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    slug: Mapped[str] = mapped_column(String(63), nullable=False, unique=True, index=True)
    subdomain: Mapped[str] = mapped_column(String(63), nullable=False, unique=True, index=True)
    custom_domain: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)

    # Ownership (account id issued by the Auth Provider)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    owner_type: Mapped[OwnerType] = mapped_column(
        SqlEnum(OwnerType, name="microsite_owner_type", native_enum=False),
        nullable=False,
        default=OwnerType.CLUB,
    )

    # Lifecycle
    status: Mapped[MicrositeStatus] = mapped_column(
        SqlEnum(MicrositeStatus, name="microsite_status", native_enum=False),
        nullable=False,
        default=MicrositeStatus.DRAFT,
    )
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Presentation
    template_key: Mapped[str | None] = mapped_column(String(64))
    theme_key: Mapped[str] = mapped_column(String(64), nullable=False, default='default')
    color_scheme: Mapped[dict | None] = mapped_column(JSONType, default=dict)
    custom_css: Mapped[str | None] = mapped_column(Text)
    logo_url: Mapped[str | None] = mapped_column(String(512))
    favicon_url: Mapped[str | None] = mapped_column(String(512))
    features: Mapped[dict | None] = mapped_column(JSONType, default=dict)

    # SEO
    seo_title: Mapped[str | None] = mapped_column(String(120))
    seo_description: Mapped[str | None] = mapped_column(String(320))
    seo_keywords: Mapped[list | None] = mapped_column(JSONType, default=list)
    og_image: Mapped[str | None] = mapped_column(String(512))

    # Contact
    contact_email: Mapped[str | None] = mapped_column(String(255))
    contact_phone: Mapped[str | None] = mapped_column(String(32))
    address: Mapped[str | None] = mapped_column(Text)
    social_links: Mapped[dict | None] = mapped_column(JSONType, default=dict)

    pages: Mapped[list["MicrositePage"]] = relationship(
        back_populates="microsite",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: (MicrositePage.sort_order, MicrositePage.id),
    )
    media_assets: Mapped[list["MediaAsset"]] = relationship(
        back_populates="microsite",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_live(self) -> bool:
        return self.status == MicrositeStatus.PUBLISHED and bool(self.is_public)

    @property
    def home_page(self) -> "MicrositePage | None":
        for page in self.pages:
            if page.is_home_page:
                return page
        return None


class MicrositePage(TimestampedBase):
    __tablename__ = "microsite_page"
    __table_args__ = (
        UniqueConstraint("microsite_id", "slug", name="uq_microsite_page_slug"),
        # At most one home page per microsite, enforced by the store itself
        Index(
            "uq_microsite_page_home",
            "microsite_id",
            unique=True,
            sqlite_where=text("is_home_page = 1"),
            postgresql_where=text("is_home_page = true"),
        ),
        Index("ix_microsite_page_order", "microsite_id", "sort_order"),
    )

    microsite_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("microsite.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    slug: Mapped[str] = mapped_column(String(120), nullable=False, default='')
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    meta_title: Mapped[str | None] = mapped_column(String(120))
    meta_description: Mapped[str | None] = mapped_column(String(320))

    is_home_page: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    microsite: Mapped[Microsite] = relationship(back_populates="pages")
    blocks: Mapped[list["ContentBlock"]] = relationship(
        back_populates="page",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: (ContentBlock.sort_order, ContentBlock.id),
    )


class ContentBlock(TimestampedBase):
    __tablename__ = "content_block"
    __table_args__ = (
        Index("ix_content_block_page_order", "page_id", "sort_order"),
    )

    page_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("microsite_page.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    block_type: Mapped[BlockType] = mapped_column(
        SqlEnum(BlockType, name="content_block_type", native_enum=False),
        nullable=False,
    )
    content: Mapped[dict | None] = mapped_column(JSONType, default=dict)
    settings: Mapped[dict | None] = mapped_column(JSONType, default=dict)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    page: Mapped[MicrositePage] = relationship(back_populates="blocks")


class MediaAsset(TimestampedBase):
    """Uploaded file reference; the bytes live with the storage provider."""

    __tablename__ = "media_asset"
    __table_args__ = (
        Index("ix_media_asset_microsite_created", "microsite_id", "created_at"),
    )

    microsite_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("microsite.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    uploaded_by: Mapped[str] = mapped_column(String(64), nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(128), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default='image')
    alt_text: Mapped[str | None] = mapped_column(String(255))

    microsite: Mapped[Microsite] = relationship(back_populates="media_assets")


class AuditLog(TimestampedBase):
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_microsite_created", "microsite_id", "created_at"),
    )

    # No foreign key: entries outlive the microsite they describe
    microsite_id: Mapped[int | None] = mapped_column(Integer, index=True)
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_id: Mapped[int | None] = mapped_column(Integer)
    meta: Mapped[dict | None] = mapped_column(JSONType, default=dict)


__all__ = [name for name in globals() if name[0].isupper()]
