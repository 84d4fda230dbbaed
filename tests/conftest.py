"""Fixtures partagées — SQLite en mémoire par test, session, contexte, client HTTP."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from page_composer.api.main import app
from page_composer.core.context import RequestContext
from page_composer.database import get_db, init_db, jd
from page_composer.models import PageContentDB, PageDB, PagePartDB


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def ctx():
    return RequestContext(website_id=1, locale="en")


@pytest.fixture
def page(db):
    p = PageDB(website_id=1, slug="home", title="Accueil")
    db.add(p); db.commit(); db.refresh(p)
    return p


@pytest.fixture
def client(session_factory):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ── Helpers ───────────────────────────────────────────────────────────────────

def add_placement(db, page, key, sort_order=0, **kw) -> PageContentDB:
    pc = PageContentDB(website_id=page.website_id, page_id=page.id, page_part_key=key,
                       sort_order=sort_order, **kw)
    db.add(pc); db.commit(); db.refresh(pc)
    return pc


def add_part(db, key, page_slug="", contents=None, website_id=1, template=None) -> PagePartDB:
    part = PagePartDB(website_id=website_id, page_part_key=key, page_slug=page_slug,
                      block_contents=jd(contents or {}), template=template)
    db.add(part); db.commit(); db.refresh(part)
    return part


def blocks(locale="en", **fields) -> dict:
    return {locale: {"blocks": {k: {"content": v} for k, v in fields.items()}}}
