"""
Data models — Page, PagePart, PageContent (placement), RenderedContent
SQLAlchemy 2.x + Pydantic v2

PagePart    : contenu éditable (block_contents) d'une clé de bloc, par site
              (page_slug="" → défaut site, sinon override propre à une page)
PageContent : noeud de l'arbre d'une page (ordre, visibilité, parent/slot)
RenderedContent : HTML mis en cache par (placement, locale), jamais autoritaire
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

import sqlalchemy as sa
from pydantic import BaseModel, Field
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ── ORM ────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    pass


class PageDB(Base):
    __tablename__ = "pages"
    __table_args__ = (sa.UniqueConstraint("website_id", "slug", name="uq_pages_website_slug"),)

    id:         Mapped[int]           = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    website_id: Mapped[int]           = mapped_column(sa.Integer, nullable=False, index=True)
    slug:       Mapped[str]           = mapped_column(sa.String, nullable=False)
    title:      Mapped[Optional[str]] = mapped_column(sa.String, nullable=True)
    visible:    Mapped[bool]          = mapped_column(sa.Boolean, default=True)
    part_keys:  Mapped[str]           = mapped_column(sa.Text, default="[]")
    created_at: Mapped[datetime]      = mapped_column(sa.DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime]      = mapped_column(sa.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    page_contents: Mapped[List["PageContentDB"]] = relationship("PageContentDB", back_populates="page")


class PagePartDB(Base):
    __tablename__ = "page_parts"
    __table_args__ = (
        sa.UniqueConstraint("website_id", "page_part_key", "page_slug", name="uq_page_parts_website_key_slug"),
    )

    id:              Mapped[int]           = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    website_id:      Mapped[int]           = mapped_column(sa.Integer, nullable=False, index=True)
    page_part_key:   Mapped[str]           = mapped_column(sa.String, nullable=False)
    page_slug:       Mapped[str]           = mapped_column(sa.String, nullable=False, default="")
    block_contents:  Mapped[str]           = mapped_column(sa.Text, default="{}")
    template:        Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    show_in_editor:  Mapped[bool]          = mapped_column(sa.Boolean, default=True)
    order_in_editor: Mapped[int]           = mapped_column(sa.Integer, default=0)
    created_at:      Mapped[datetime]      = mapped_column(sa.DateTime, default=datetime.utcnow)
    updated_at:      Mapped[datetime]      = mapped_column(sa.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class PageContentDB(Base):
    __tablename__ = "page_contents"
    __table_args__ = (
        sa.Index("ix_page_contents_parent_slot_order", "parent_page_content_id", "slot_name", "sort_order"),
        # un seul placement auto-créé par (page, clé) ; NULL pour les placements posés à la main
        sa.UniqueConstraint("page_id", "auto_key", name="uq_page_contents_page_auto_key"),
    )

    id:                     Mapped[int]           = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    website_id:             Mapped[int]           = mapped_column(sa.Integer, nullable=False, index=True)
    page_id:                Mapped[int]           = mapped_column(sa.Integer, sa.ForeignKey("pages.id"), nullable=False, index=True)
    page_part_key:          Mapped[str]           = mapped_column(sa.String, nullable=False)
    parent_page_content_id: Mapped[Optional[int]] = mapped_column(sa.Integer, sa.ForeignKey("page_contents.id"), nullable=True)
    slot_name:              Mapped[Optional[str]] = mapped_column(sa.String, nullable=True)
    sort_order:             Mapped[int]           = mapped_column(sa.Integer, default=0)
    visible_on_page:        Mapped[bool]          = mapped_column(sa.Boolean, default=True)
    label:                  Mapped[Optional[str]] = mapped_column(sa.String, nullable=True)
    is_rails_part:          Mapped[bool]          = mapped_column(sa.Boolean, default=False)
    auto_key:               Mapped[Optional[str]] = mapped_column(sa.String, nullable=True)
    created_at:             Mapped[datetime]      = mapped_column(sa.DateTime, default=datetime.utcnow)
    updated_at:             Mapped[datetime]      = mapped_column(sa.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    page:     Mapped["PageDB"]                  = relationship("PageDB", back_populates="page_contents")
    rendered: Mapped[List["RenderedContentDB"]] = relationship("RenderedContentDB", back_populates="page_content",
                                                               cascade="all, delete-orphan")


class RenderedContentDB(Base):
    __tablename__ = "rendered_contents"
    __table_args__ = (
        sa.UniqueConstraint("page_content_id", "locale", name="uq_rendered_contents_placement_locale"),
    )

    id:              Mapped[int]      = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    page_content_id: Mapped[int]      = mapped_column(sa.Integer, sa.ForeignKey("page_contents.id"), nullable=False)
    locale:          Mapped[str]      = mapped_column(sa.String, nullable=False)
    raw_html:        Mapped[str]      = mapped_column(sa.Text, default="")
    updated_at:      Mapped[datetime] = mapped_column(sa.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    page_content: Mapped["PageContentDB"] = relationship("PageContentDB", back_populates="rendered")


# ── PYDANTIC SCHEMAS ────────────────────────────────────────────────────

class PageCreate(BaseModel):
    slug:      str
    title:     Optional[str] = None
    visible:   bool          = True
    part_keys: List[str]     = Field(default_factory=list)


class PageContentCreate(BaseModel):
    page_part_key:          str
    sort_order:             Optional[int]  = None
    visible_on_page:        bool           = True
    label:                  Optional[str]  = None
    parent_page_content_id: Optional[int]  = None
    slot_name:              Optional[str]  = None


class PageContentUpdate(BaseModel):
    sort_order:      Optional[int]  = None
    visible_on_page: Optional[bool] = None
    label:           Optional[str]  = None
    slot_name:       Optional[str]  = None


class PartContentUpdate(BaseModel):
    """Payload d'édition : block_contents à plat ou enveloppé dans {blocks: {...}}."""
    block_contents: Optional[Dict[str, Any]] = None
    rendered_html:  Optional[str]            = None
    regenerate:     Optional[bool]           = None


class VisibilityUpdate(BaseModel):
    visible: bool
