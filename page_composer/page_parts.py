"""
PagePart repository — résolution + auto-création idempotente.

Fonctions exposées :
  find_page_part(db, ctx, part_key, page_slug)      -> PagePartDB | None
  resolve_or_create(db, ctx, part_key, page_slug)   -> PagePartDB
  resolve_edit_key(db, ctx, edit_key)               -> PagePartDB
  get_block_contents(part) / set_block_contents(part, contents)

Ordre de résolution : override de la page, puis défaut du site (slug "").
Création concurrente : contrainte unique (website, clé, slug) + "créer, et
en cas de conflit relire" — jamais "vérifier puis créer".
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import unquote

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .core.blocks import default_block_contents
from .core.context import DEFAULT_LOCALE, RequestContext
from .core.library import REGISTRY
from .database import db_find_page_part, jd, jo
from .models import PagePartDB

log = logging.getLogger(__name__)


def get_block_contents(part: Optional[PagePartDB]) -> Dict[str, Any]:
    return jo(part.block_contents) if part is not None else {}


def set_block_contents(part: PagePartDB, contents: Dict[str, Any]) -> None:
    part.block_contents = jd(contents)


def _cache_key(part_key: str, page_slug: Optional[str]) -> tuple:
    return ("page_part", part_key, page_slug or "")


def find_page_part(db: Session, ctx: RequestContext, part_key: str, page_slug: Optional[str]) -> Optional[PagePartDB]:
    """Lecture seule : override de la page, sinon défaut du site, sinon None."""
    def _load():
        part = None
        if page_slug:
            part = db_find_page_part(db, ctx.website_id, part_key, page_slug)
        if part is None:
            part = db_find_page_part(db, ctx.website_id, part_key, "")
        return part

    part = ctx.cached(_cache_key(part_key, page_slug), _load)
    if part is None:
        # ne pas mémoriser une absence : un autre appel peut créer l'enregistrement
        ctx.forget(_cache_key(part_key, page_slug))
    return part


def resolve_or_create(db: Session, ctx: RequestContext, part_key: str, page_slug: Optional[str]) -> PagePartDB:
    """
    Retourne le PagePart applicable à (site, clé, page), en le créant si absent.

    La création est rattachée à la page (pas au site) et initialisée avec les
    valeurs par défaut de la définition, sous la locale par défaut du process.
    """
    part = find_page_part(db, ctx, part_key, page_slug)
    if part is not None:
        return part

    part = _create_exact(db, ctx, part_key, page_slug or "")
    ctx.cache[_cache_key(part_key, page_slug)] = part
    return part


def resolve_edit_key(db: Session, ctx: RequestContext, edit_key: str) -> PagePartDB:
    """
    "home::heroes/hero_centered" → PagePart de la page "home"
    "heroes%2Fhero_centered"     → PagePart du site (clé seule, URL-décodée)

    Avec un slug : override de la page uniquement (pas de repli sur le site).
    """
    if "::" in edit_key:
        page_slug, part_key = edit_key.split("::", 1)
    else:
        page_slug, part_key = "", edit_key
    part_key = unquote(part_key)

    part = db_find_page_part(db, ctx.website_id, part_key, page_slug)
    if part is not None:
        return part
    return _create_exact(db, ctx, part_key, page_slug)


def _create_exact(db: Session, ctx: RequestContext, part_key: str, page_slug: str) -> PagePartDB:
    """Insère (site, clé, slug) ; sur conflit d'unicité, relit l'enregistrement existant."""
    part = PagePartDB(website_id=ctx.website_id, page_part_key=part_key, page_slug=page_slug, show_in_editor=True)
    set_block_contents(part, default_block_contents(REGISTRY.definition(part_key), DEFAULT_LOCALE))
    db.add(part)
    try:
        db.commit()
    except IntegrityError:
        # un appel concurrent a créé le même triplet entre-temps
        db.rollback()
        existing = db_find_page_part(db, ctx.website_id, part_key, page_slug)
        if existing is None:
            raise
        log.info("PagePart '%s' (page '%s') déjà créé par une requête concurrente", part_key, page_slug)
        return existing
    db.refresh(part)
    log.info("PagePart '%s' auto-créé pour la page '%s' (website %s)", part_key, page_slug, ctx.website_id)
    return part
