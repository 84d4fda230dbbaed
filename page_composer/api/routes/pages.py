"""
Pages — création, liste, document éditeur, rendu public.

  POST /api/manage/pages
  GET  /api/manage/pages
  GET  /api/manage/pages/{page_id}  |  /api/manage/pages/by_slug/{slug}
  GET  /api/manage/pages/{slug}/document
  GET  /pages/{slug}                      (HTML public)
"""
from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from ... import composer
from ...core.context import RequestContext
from ...database import get_db
from ...models import PageCreate
from ...serializers import page_json
from ..deps import get_context

router = APIRouter(tags=["Pages"])


@router.post("/api/manage/pages", status_code=201)
def api_create_page(data: PageCreate, db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    return composer.create_page(db, ctx, data)


@router.get("/api/manage/pages")
def api_list_pages(db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    return {"pages": composer.list_pages(db, ctx)}


@router.get("/api/manage/pages/by_slug/{slug}")
def api_page_by_slug(slug: str, db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    return page_json(composer.get_page_by_slug(db, ctx, slug))


@router.get("/api/manage/pages/{page_id}")
def api_page(page_id: int, db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    return page_json(composer.get_page(db, ctx, page_id))


@router.get("/api/manage/pages/{slug}/document")
def api_page_document(slug: str, db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    """
    Document éditeur : tous les placements (masqués inclus) avec edit_key,
    template, contenu résolu pour la locale, locales disponibles, schéma de
    champs et HTML en cache. Les blocs attendus manquants sont créés d'abord.
    """
    return composer.page_document(db, ctx, slug)


@router.get("/pages/{slug}", response_class=HTMLResponse)
def public_page(slug: str, db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    return HTMLResponse(composer.render_page_html(db, ctx, slug))
