"""
Page parts (gestion éditeur) — liste, détail, bibliothèque, régénération.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ... import composer
from ...core.context import RequestContext
from ...core.library import REGISTRY
from ...database import get_db
from ..deps import get_context

router = APIRouter(prefix="/api/manage/page_parts", tags=["PageParts"])


@router.get("")
def api_list(page_slug: Optional[str] = None,
             db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    return {"page_parts": composer.list_page_parts(db, ctx, page_slug=page_slug)}


@router.get("/library")
def api_library():
    return REGISTRY.catalog()


@router.get("/by_key/{key:path}")
def api_show_by_key(key: str, db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    """`home::heroes/hero_centered` (override de page) ou `heroes/hero_centered` (site)."""
    return composer.show_page_part_by_key(db, ctx, key)


@router.get("/{part_id}")
def api_show(part_id: int, db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    return composer.show_page_part(db, ctx, part_id)


@router.post("/{part_id}/regenerate")
def api_regenerate(part_id: int, all_locales: bool = False,
                   db: Session = Depends(get_db), ctx: RequestContext = Depends(get_context)):
    return composer.regenerate_page_part(db, ctx, part_id, locale=ctx.locale, all_locales=all_locales)
