"""
Contenu des blocs par identifiants sémantiques (slug de page + clé de bloc).

  PATCH /api/manage/pages/{page_slug}/page_parts/reorder
  PATCH /api/manage/pages/{page_slug}/page_parts/{page_part_key}/visibility
  GET   /api/manage/pages/{page_slug}/page_parts/{page_part_key}
  PATCH /api/manage/pages/{page_slug}/page_parts/{page_part_key}

Les clés contiennent des "/" (heroes/hero_centered) : convertisseur `path`.
L'ordre de déclaration des routes compte (reorder, visibility, puis contenu).
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ... import composer
from ...core.context import RequestContext
from ...database import get_db
from ...models import PartContentUpdate, VisibilityUpdate
from ..deps import get_context, read_json_body

router = APIRouter(prefix="/api/manage/pages/{page_slug}/page_parts", tags=["PagePartContent"])


@router.patch("/reorder")
async def api_reorder(page_slug: str, request: Request,
                      db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    """
    Body : {"order": ["features/feature_grid_3col", "heroes/hero_centered", ...]}
    Clé inconnue → 422 PAGE_PARTS_NOT_FOUND (unknown_keys, available_keys), rien n'est appliqué.
    """
    body = await read_json_body(request)
    page = composer.get_page_by_slug(db, ctx, page_slug)
    return composer.reorder_semantic(db, ctx, page, body.get("order"))


@router.patch("/{page_part_key:path}/visibility")
def api_visibility(page_slug: str, page_part_key: str, data: VisibilityUpdate,
                   db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    page = composer.get_page_by_slug(db, ctx, page_slug)
    return composer.toggle_visibility(db, ctx, page, page_part_key, data.visible)


@router.get("/{page_part_key:path}")
def api_show_content(page_slug: str, page_part_key: str,
                     db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    page = composer.get_page_by_slug(db, ctx, page_slug)
    return composer.read_part_content(db, ctx, page, page_part_key)


@router.patch("/{page_part_key:path}")
def api_update_content(page_slug: str, page_part_key: str, payload: PartContentUpdate,
                       db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    """
    Body : {"block_contents": {...} | {"blocks": {...}}, "rendered_html": "..."}
       ou  {"block_contents": {...}, "regenerate": true}
    """
    page = composer.get_page_by_slug(db, ctx, page_slug)
    return composer.update_part_content(db, ctx, page, page_part_key, payload)
