"""SQLAlchemy — init + session + CRUD helpers"""
import json, os
from pathlib import Path
from typing import List, Optional

from sqlalchemy import create_engine, func
from sqlalchemy.orm import Session, sessionmaker

from .models import Base, PageDB, PagePartDB, PageContentDB, RenderedContentDB

DATA_DIR = Path(__file__).parent.parent / "data"

DB_PATH      = os.getenv("DB_PATH", str(DATA_DIR / "page_composer.db"))
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DB_PATH}")


def _make_engine(url: str):
    if url.startswith("sqlite:///"):
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url)


ENGINE       = _make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=ENGINE)


def init_db(engine=None):
    Base.metadata.create_all(bind=engine or ENGINE)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ── JSON helpers ──
def jl(s: str) -> list:
    try: return json.loads(s or "[]")
    except ValueError: return []

def jo(s: str) -> dict:
    try:
        value = json.loads(s or "{}")
    except ValueError:
        return {}
    return value if isinstance(value, dict) else {}

def jd(o) -> str:
    return json.dumps(o, ensure_ascii=False)


# ── Page ──
def db_create_page(db: Session, obj: PageDB) -> PageDB:
    db.add(obj); db.commit(); db.refresh(obj); return obj

def db_get_page(db: Session, website_id: int, page_id: int) -> Optional[PageDB]:
    return db.query(PageDB).filter_by(website_id=website_id, id=page_id).first()

def db_get_page_by_slug(db: Session, website_id: int, slug: str) -> Optional[PageDB]:
    return db.query(PageDB).filter_by(website_id=website_id, slug=slug).first()

def db_list_pages(db: Session, website_id: int) -> List[PageDB]:
    return db.query(PageDB).filter_by(website_id=website_id).order_by(PageDB.slug).all()


# ── PagePart ──
def db_get_page_part(db: Session, website_id: int, part_id: int) -> Optional[PagePartDB]:
    return db.query(PagePartDB).filter_by(website_id=website_id, id=part_id).first()

def db_find_page_part(db: Session, website_id: int, part_key: str, page_slug: str) -> Optional[PagePartDB]:
    """Recherche exacte (website, clé, slug) — slug "" = enregistrement site."""
    return (db.query(PagePartDB)
            .filter_by(website_id=website_id, page_part_key=part_key, page_slug=page_slug or "")
            .first())

def db_list_page_parts(db: Session, website_id: int, page_slug: Optional[str] = None,
                       editor_only: bool = True) -> List[PagePartDB]:
    q = db.query(PagePartDB).filter_by(website_id=website_id)
    if editor_only: q = q.filter_by(show_in_editor=True)
    if page_slug is not None: q = q.filter_by(page_slug=page_slug)
    return q.order_by(PagePartDB.order_in_editor, PagePartDB.page_slug, PagePartDB.page_part_key).all()


# ── PageContent (placements) ──
def db_get_page_content(db: Session, website_id: int, content_id: int) -> Optional[PageContentDB]:
    return db.query(PageContentDB).filter_by(website_id=website_id, id=content_id).first()

def db_root_contents(db: Session, page_id: int, include_hidden: bool = True) -> List[PageContentDB]:
    q = db.query(PageContentDB).filter_by(page_id=page_id, parent_page_content_id=None)
    if not include_hidden: q = q.filter_by(visible_on_page=True)
    return q.order_by(PageContentDB.sort_order, PageContentDB.id).all()

def db_children_in_slot(db: Session, parent_id: int, slot_name: str,
                        include_hidden: bool = True) -> List[PageContentDB]:
    q = db.query(PageContentDB).filter_by(parent_page_content_id=parent_id, slot_name=slot_name)
    if not include_hidden: q = q.filter_by(visible_on_page=True)
    return q.order_by(PageContentDB.sort_order, PageContentDB.id).all()

def db_children(db: Session, parent_id: int) -> List[PageContentDB]:
    return (db.query(PageContentDB).filter_by(parent_page_content_id=parent_id)
            .order_by(PageContentDB.sort_order, PageContentDB.id).all())

def db_count_children(db: Session, parent_id: int) -> int:
    return db.query(PageContentDB).filter_by(parent_page_content_id=parent_id).count()

def db_page_contents_for_key(db: Session, page_id: int, part_key: str) -> List[PageContentDB]:
    return (db.query(PageContentDB).filter_by(page_id=page_id, page_part_key=part_key)
            .order_by(PageContentDB.sort_order, PageContentDB.id).all())

def db_next_sort_order(db: Session, page_id: int, parent_id: Optional[int] = None,
                       slot_name: Optional[str] = None) -> int:
    q = db.query(func.max(PageContentDB.sort_order)).filter_by(page_id=page_id, parent_page_content_id=parent_id)
    if parent_id is not None: q = q.filter_by(slot_name=slot_name)
    current = q.scalar()
    return 0 if current is None else current + 1


# ── RenderedContent ──
def db_get_rendered(db: Session, content_id: int, locale: str) -> Optional[RenderedContentDB]:
    return db.query(RenderedContentDB).filter_by(page_content_id=content_id, locale=locale).first()

def db_set_rendered(db: Session, content_id: int, locale: str, html: str) -> RenderedContentDB:
    """Crée ou écrase le HTML (placement, locale). Pas de commit : à l'appelant."""
    rendered = db_get_rendered(db, content_id, locale)
    if rendered is None:
        rendered = RenderedContentDB(page_content_id=content_id, locale=locale, raw_html=html)
        db.add(rendered)
    else:
        rendered.raw_html = html
    db.flush()
    return rendered

def db_website_contents_for_key(db: Session, website_id: int, part_key: str) -> List[PageContentDB]:
    return (db.query(PageContentDB).filter_by(website_id=website_id, page_part_key=part_key)
            .order_by(PageContentDB.page_id, PageContentDB.sort_order, PageContentDB.id).all())

def db_delete_rendered(db: Session, content_id: int, locale: str) -> int:
    """Invalide le cache (placement, locale). Pas de commit : à l'appelant."""
    return (db.query(RenderedContentDB).filter_by(page_content_id=content_id, locale=locale)
            .delete(synchronize_session=False))
