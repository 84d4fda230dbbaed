"""
CompositionFacade — opérations exposées à l'éditeur et au rendu public.

Toutes les erreurs de persistance sont traduites ici (storage_guard) en
ValidationFailed : aucune exception SQLAlchemy brute ne sort de ce module.
Les vérifications de paramètres (BadRequest) précèdent toute mutation.
"""
import html as html_lib
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import placements, reorder, renderer
from .core.blocks import merge_update
from .core.context import RequestContext
from .core.errors import BadRequest, PageContentNotFound, PageNotFound, PagePartNotFound, ValidationFailed
from .core.library import REGISTRY
from .core.locales import resolve_blocks
from .database import (
    db_create_page, db_delete_rendered, db_get_page, db_get_page_by_slug, db_get_page_content, db_get_page_part,
    db_get_rendered, db_list_page_parts, db_list_pages, db_page_contents_for_key,
    db_set_rendered, db_website_contents_for_key, jd, jl,
)
from .models import (
    PageContentCreate, PageContentDB, PageContentUpdate, PageCreate, PageDB,
    PagePartDB, PartContentUpdate,
)
from .page_parts import (
    find_page_part, get_block_contents, resolve_edit_key, resolve_or_create, set_block_contents,
)
from .placements import PlacementKind, PlacementView
from .serializers import edit_key, page_json, page_part_json, placement_fields, serialize, serialize_tree

log = logging.getLogger(__name__)


@contextmanager
def storage_guard(db: Session):
    try:
        yield
    except IntegrityError as e:
        db.rollback()
        log.info("Contrainte violée : %s", e.orig)
        raise ValidationFailed([str(e.orig)])
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Erreur de persistance : %s", e)
        raise ValidationFailed(["la sauvegarde a échoué"])


# ── Pages ─────────────────────────────────────────────────────────────────────

def get_page_by_slug(db: Session, ctx: RequestContext, slug: str) -> PageDB:
    page = db_get_page_by_slug(db, ctx.website_id, slug)
    if page is None:
        raise PageNotFound(slug)
    return page


def get_page(db: Session, ctx: RequestContext, page_id: int) -> PageDB:
    page = db_get_page(db, ctx.website_id, page_id)
    if page is None:
        raise PageNotFound(page_id)
    return page


def create_page(db: Session, ctx: RequestContext, data: PageCreate) -> dict:
    if not data.slug.strip():
        raise ValidationFailed(["slug can't be blank"])
    if db_get_page_by_slug(db, ctx.website_id, data.slug):
        raise ValidationFailed(["slug has already been taken"])
    page = PageDB(website_id=ctx.website_id, slug=data.slug, title=data.title,
                  visible=data.visible, part_keys=jd(data.part_keys))
    with storage_guard(db):
        db_create_page(db, page)
    log.info("Page '%s' créée (website %s)", page.slug, ctx.website_id)
    return page_json(page)


def list_pages(db: Session, ctx: RequestContext) -> List[dict]:
    return [page_json(p) for p in db_list_pages(db, ctx.website_id)]


def ensure_parts(db: Session, ctx: RequestContext, page: PageDB,
                 part_keys: Optional[List[str]] = None) -> List[str]:
    """
    Auto-création des PagePart + placements pour chaque clé attendue
    (liste fournie, sinon part_keys déclarées par la page).
    """
    keys = part_keys if part_keys is not None else jl(page.part_keys)
    with storage_guard(db):
        for key in keys:
            resolve_or_create(db, ctx, key, page.slug)
            placements.ensure_placement(db, ctx, page, key)
    return keys


# ── Arbre ─────────────────────────────────────────────────────────────────────

def read_tree(db: Session, ctx: RequestContext, page: PageDB, include_hidden: bool = False,
              expected_keys: Optional[List[str]] = None) -> List[dict]:
    ensure_parts(db, ctx, page, expected_keys)
    return serialize_tree(placements.build(db, ctx, page, include_hidden=include_hidden))


def get_placement(db: Session, ctx: RequestContext, page: PageDB, content_id: int) -> PageContentDB:
    pc = db_get_page_content(db, ctx.website_id, content_id)
    if pc is None or pc.page_id != page.id:
        raise PageContentNotFound(content_id)
    return pc


def show_placement(db: Session, ctx: RequestContext, page: PageDB, content_id: int) -> dict:
    pc = get_placement(db, ctx, page, content_id)
    return serialize(placements.build_node(db, ctx, page, pc))


def create_placement(db: Session, ctx: RequestContext, page: PageDB, data: PageContentCreate) -> dict:
    with storage_guard(db):
        pc = placements.create_placement(db, ctx, page, data)
        resolve_or_create(db, ctx, pc.page_part_key, page.slug)
    return serialize(placements.build_node(db, ctx, page, pc))


def update_placement(db: Session, ctx: RequestContext, page: PageDB, content_id: int,
                     data: PageContentUpdate) -> dict:
    pc = get_placement(db, ctx, page, content_id)
    with storage_guard(db):
        placements.update_placement(db, ctx, page, pc, data)
    return serialize(placements.build_node(db, ctx, page, pc))


def delete_placement(db: Session, ctx: RequestContext, page: PageDB, content_id: int, force: bool = False) -> dict:
    pc = get_placement(db, ctx, page, content_id)
    with storage_guard(db):
        deleted = placements.delete_placement(db, ctx, pc, force=force)
    return {"message": "Page content deleted successfully", "deleted_count": deleted}


def toggle_visibility(db: Session, ctx: RequestContext, page: PageDB, part_key: str, visible: bool) -> dict:
    with storage_guard(db):
        updated = placements.set_visibility(db, ctx, page, part_key, visible)
    return {
        "page_slug": page.slug,
        "page_part_key": part_key,
        "visible": visible,
        "updated_count": len(updated),
    }


# ── Réordonnancement ──────────────────────────────────────────────────────────

def reorder_semantic(db: Session, ctx: RequestContext, page: PageDB, order: Any) -> dict:
    keys = reorder.parse_semantic_order(order)
    with storage_guard(db):
        page_order = reorder.reorder_semantic(db, ctx, page, keys)
    return {
        "page_slug": page.slug,
        "order": keys,
        "page_order": page_order,
        "message": "Page parts reordered successfully",
    }


def reorder_positional(db: Session, ctx: RequestContext, page: PageDB, body: Dict[str, Any]) -> dict:
    pairs = reorder.parse_positional_order(body.get("order"))
    slot_order = reorder.parse_slot_order(body.get("slot_order"))
    container_id = body.get("container_id")
    if slot_order and container_id is None:
        raise BadRequest("'container_id' est requis avec 'slot_order'")
    if container_id is not None:
        container_id = reorder.as_int(container_id, "container_id")
    if not pairs and not slot_order:
        raise BadRequest("Paramètre requis 'order' ou 'slot_order' manquant")
    with storage_guard(db):
        reorder.reorder_positional(db, ctx, page, pairs, slot_order, container_id)
    return {"message": "Page contents reordered successfully"}


# ── Contenu d'un bloc ─────────────────────────────────────────────────────────

def read_part_content(db: Session, ctx: RequestContext, page: PageDB, part_key: str) -> dict:
    with storage_guard(db):
        part = resolve_or_create(db, ctx, part_key, page.slug)
    contents = get_block_contents(part)
    resolved_locale, resolved = resolve_blocks(ctx.locale, contents)
    return {
        "page_slug": page.slug,
        "page_part_key": part.page_part_key,
        "locale": ctx.locale,
        "block_contents": contents.get(ctx.locale) or {},
        "resolved_locale": resolved_locale,
        "resolved_blocks": resolved,
        "available_locales": list(contents.keys()),
        "field_schema": REGISTRY.field_schema(part_key),
        "updated_at": part.updated_at.isoformat() if part.updated_at else None,
    }


def update_part_content(db: Session, ctx: RequestContext, page: PageDB, part_key: str,
                        payload: PartContentUpdate) -> dict:
    """
    Fusionne block_contents pour ctx.locale puis : HTML fourni par le client
    (rendered_html) OU rendu serveur (regenerate=true). Exactement l'un des deux.
    """
    has_html = bool(payload.rendered_html and payload.rendered_html.strip())
    regenerate = payload.regenerate is True
    if not has_html and not regenerate:
        raise BadRequest(
            "Paramètre requis 'rendered_html' manquant. Fournir le HTML rendu "
            "ou 'regenerate': true pour un rendu serveur."
        )
    if has_html and regenerate:
        raise BadRequest("Fournir 'rendered_html' ou 'regenerate': true, pas les deux", code="INVALID_PARAMETER")

    with storage_guard(db):
        part = resolve_or_create(db, ctx, part_key, page.slug)
        if payload.block_contents:
            set_block_contents(part, merge_update(get_block_contents(part), ctx.locale, payload.block_contents))
            db.commit()
            db.refresh(part)

        outcomes: Dict[int, str] = {}
        targets = db_page_contents_for_key(db, page.id, part_key)
        # un enregistrement site est partagé : les autres pages qui le résolvent sont concernées aussi
        others = [pc for pc in _placements_using(db, ctx, part) if pc.page_id != page.id]
        if regenerate:
            for pc in targets + others:
                outcomes[pc.id] = renderer.render(db, ctx, pc, ctx.locale, part=part).outcome.value
        else:
            for pc in targets:
                if REGISTRY.is_container(pc.page_part_key):
                    continue
                db_set_rendered(db, pc.id, ctx.locale, payload.rendered_html)
                outcomes[pc.id] = renderer.RenderOutcome.RENDERED.value
            for pc in others:
                # HTML client propre à cette page : les autres se re-rendront à la lecture
                db_delete_rendered(db, pc.id, ctx.locale)
        db.commit()

    return {
        "page_slug": page.slug,
        "page_part_key": part.page_part_key,
        "locale": ctx.locale,
        "block_contents": get_block_contents(part).get(ctx.locale) or {},
        "render": outcomes,
        "message": "Page part content updated successfully",
    }


# ── Page parts (gestion) ──────────────────────────────────────────────────────

def list_page_parts(db: Session, ctx: RequestContext, page_slug: Optional[str] = None) -> List[dict]:
    return [page_part_json(p, include_contents=False)
            for p in db_list_page_parts(db, ctx.website_id, page_slug=page_slug)]


def get_page_part(db: Session, ctx: RequestContext, part_id: int) -> PagePartDB:
    part = db_get_page_part(db, ctx.website_id, part_id)
    if part is None:
        raise PagePartNotFound(str(part_id))
    return part


def show_page_part(db: Session, ctx: RequestContext, part_id: int) -> dict:
    part = get_page_part(db, ctx, part_id)
    data = page_part_json(part)
    data["field_schema"] = REGISTRY.field_schema(part.page_part_key)
    return data


def show_page_part_by_key(db: Session, ctx: RequestContext, key: str) -> dict:
    with storage_guard(db):
        part = resolve_edit_key(db, ctx, key)
    data = page_part_json(part)
    data["field_schema"] = REGISTRY.field_schema(part.page_part_key)
    return data


def _placements_using(db: Session, ctx: RequestContext, part: PagePartDB) -> List[PageContentDB]:
    """Placements dont le PagePart résolu est `part` (override de page ou défaut site)."""
    result = []
    for pc in db_website_contents_for_key(db, ctx.website_id, part.page_part_key):
        resolved = find_page_part(db, ctx, pc.page_part_key, pc.page.slug)
        if resolved is not None and resolved.id == part.id:
            result.append(pc)
    return result


def regenerate_page_part(db: Session, ctx: RequestContext, part_id: int,
                         locale: Optional[str] = None, all_locales: bool = False) -> dict:
    part = get_page_part(db, ctx, part_id)
    results = []
    with storage_guard(db):
        for pc in _placements_using(db, ctx, part):
            if all_locales:
                by_locale = renderer.render_all_locales(db, ctx, pc, part=part)
            else:
                loc = locale or ctx.locale
                by_locale = {loc: renderer.render(db, ctx, pc, loc, part=part)}
            results.append({
                "page_content_id": pc.id,
                "page_slug": pc.page.slug,
                "locales": {loc: r.outcome.value for loc, r in by_locale.items()},
            })
        db.commit()
    return {"page_part_key": part.page_part_key, "results": results}


# ── Documents de page ─────────────────────────────────────────────────────────

def _walk(views: List[PlacementView]):
    for view in views:
        yield view
        for children in view.slots.values():
            yield from _walk(children)


def page_document(db: Session, ctx: RequestContext, slug: str) -> dict:
    """Document éditeur : tous les placements (masqués inclus), enrichis pour l'édition."""
    page = get_page_by_slug(db, ctx, slug)
    ensure_parts(db, ctx, page)
    views = placements.build(db, ctx, page, include_hidden=True)

    contents = []
    for view in _walk(views):
        pc = view.placement
        part = view.page_part
        cached = db_get_rendered(db, pc.id, ctx.locale)
        item = placement_fields(pc)
        item.update({
            "kind": view.kind.value,
            "edit_key": edit_key(part.page_slug if part else page.slug, pc.page_part_key),
            "template": renderer.template_source(part, pc.page_part_key),
            "block_contents": view.blocks,
            "resolved_locale": view.resolved_locale,
            "available_locales": list(get_block_contents(part).keys()),
            "field_schema": REGISTRY.field_schema(pc.page_part_key),
            "rendered_html": cached.raw_html if cached else None,
        })
        contents.append(item)

    return {
        "page": page_json(page),
        "locale": ctx.locale,
        "page_contents": contents,
        "tree": serialize_tree(views),
    }


def _view_html(db: Session, ctx: RequestContext, view: PlacementView) -> str:
    key = html_lib.escape(view.placement.page_part_key, quote=True)
    if view.kind == PlacementKind.CONTAINER:
        slots = "".join(
            f'<div class="pc-slot" data-slot="{html_lib.escape(slot, quote=True)}">'
            + "".join(_view_html(db, ctx, child) for child in children)
            + "</div>"
            for slot, children in view.slots.items()
        )
        return f'<div class="pc-container" data-part-key="{key}">{slots}</div>'
    if view.kind == PlacementKind.CODE_PART:
        return f'<div class="pc-code-part" data-part-key="{key}"></div>'

    cached = db_get_rendered(db, view.placement.id, ctx.locale)
    if cached is not None:
        return cached.raw_html
    result = renderer.render(db, ctx, view.placement, ctx.locale, part=view.page_part)
    return result.html or ""


def render_page_html(db: Session, ctx: RequestContext, slug: str) -> str:
    page = get_page_by_slug(db, ctx, slug)
    if not page.visible:
        raise PageNotFound(slug)
    ensure_parts(db, ctx, page)
    views = placements.build(db, ctx, page, include_hidden=False)
    with storage_guard(db):
        body = "\n".join(_view_html(db, ctx, v) for v in views)
        # rendus paresseux éventuels
        db.commit()
    return body
