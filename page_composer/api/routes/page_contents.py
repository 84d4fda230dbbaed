"""
Placements d'une page (par id de page) — arbre, CRUD, réordonnancement positionnel.

  GET    /api/manage/pages/{page_id}/page_contents
  POST   /api/manage/pages/{page_id}/page_contents
  PATCH  /api/manage/pages/{page_id}/page_contents/reorder
  GET    /api/manage/pages/{page_id}/page_contents/{content_id}
  PATCH  /api/manage/pages/{page_id}/page_contents/{content_id}
  DELETE /api/manage/pages/{page_id}/page_contents/{content_id}?force=true
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ... import composer
from ...core.context import RequestContext
from ...database import get_db
from ...models import PageContentCreate, PageContentUpdate
from ..deps import get_context, read_json_body

router = APIRouter(prefix="/api/manage/pages/{page_id}/page_contents", tags=["PageContents"])


@router.get("")
def api_tree(
    page_id: int,
    include_hidden: bool = False,
    part_keys: Optional[List[str]] = Query(default=None),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    """
    Arbre ordonné des placements. Conteneurs : `slots: {slot: [enfant...]}`.
    `part_keys` : clés attendues à auto-créer avant lecture (sinon celles de la page).
    """
    page = composer.get_page(db, ctx, page_id)
    tree = composer.read_tree(db, ctx, page, include_hidden=include_hidden, expected_keys=part_keys)
    return {"page_id": page.id, "page_slug": page.slug, "page_contents": tree}


@router.post("", status_code=201)
def api_create(page_id: int, data: PageContentCreate,
               db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    page = composer.get_page(db, ctx, page_id)
    return composer.create_placement(db, ctx, page, data)


@router.patch("/reorder")
async def api_reorder(page_id: int, request: Request,
                      db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    """Body : {order: [{id, sort_order}], slot_order: {slot: [id...]}, container_id}."""
    body = await read_json_body(request)
    page = composer.get_page(db, ctx, page_id)
    return composer.reorder_positional(db, ctx, page, body)


@router.get("/{content_id}")
def api_show(page_id: int, content_id: int,
             db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    page = composer.get_page(db, ctx, page_id)
    return composer.show_placement(db, ctx, page, content_id)


@router.patch("/{content_id}")
def api_update(page_id: int, content_id: int, data: PageContentUpdate,
               db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    page = composer.get_page(db, ctx, page_id)
    return composer.update_placement(db, ctx, page, content_id, data)


@router.delete("/{content_id}")
def api_delete(page_id: int, content_id: int, force: bool = False,
               db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    page = composer.get_page(db, ctx, page_id)
    return composer.delete_placement(db, ctx, page, content_id, force=force)
