"""
Placement tree — arbre des blocs d'une page (racine + enfants par slot).

Fonctions exposées :
  build(db, ctx, page, include_hidden)            -> [PlacementView]   (lecture seule)
  build_node(db, ctx, page, placement, ...)       -> PlacementView
  create_placement / update_placement / delete_placement
  ensure_placement(db, ctx, page, part_key)       -> PageContentDB     (auto-création)
  set_visibility(db, ctx, page, part_key, visible)-> [PageContentDB]

Invariants :
  - un placement avec parent a un slot_name déclaré par la définition du parent
  - une définition non-conteneur ne peut pas être parent
  - les enfants d'un slot sont ordonnés par sort_order
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .core.context import RequestContext
from .core.errors import ContainerHasChildren, PagePartNotFound, ValidationFailed
from .core.library import REGISTRY, PagePartDefinition
from .core.locales import resolve_blocks
from .database import (
    db_children, db_children_in_slot, db_count_children, db_get_page_content,
    db_next_sort_order, db_page_contents_for_key, db_root_contents,
)
from .models import PageContentCreate, PageContentDB, PageContentUpdate, PageDB, PagePartDB
from .page_parts import find_page_part, get_block_contents

log = logging.getLogger(__name__)


# ── Vue ────────────────────────────────────────────────────────────────────────

class PlacementKind(str, Enum):
    CONTAINER     = "container"
    TEMPLATE_PART = "template_part"
    CODE_PART     = "code_part"


def classify(placement: PageContentDB, definition: Optional[PagePartDefinition]) -> PlacementKind:
    if definition is not None and definition.is_container:
        return PlacementKind.CONTAINER
    if placement.is_rails_part:
        return PlacementKind.CODE_PART
    return PlacementKind.TEMPLATE_PART


class PlacementView(BaseModel):
    """Noeud résolu : placement + PagePart + contenu localisé + enfants par slot."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    placement:       PageContentDB
    kind:            PlacementKind
    page_part:       Optional[PagePartDB]                  = None
    definition:      Optional[PagePartDefinition]          = None
    resolved_locale: Optional[str]                         = None
    blocks:          Dict[str, Any]                        = Field(default_factory=dict)
    slots:           Dict[str, List["PlacementView"]]      = Field(default_factory=dict)

    @property
    def is_container(self) -> bool:
        return self.kind == PlacementKind.CONTAINER


PlacementView.model_rebuild()


# ── Construction de l'arbre ───────────────────────────────────────────────────

def build(db: Session, ctx: RequestContext, page: PageDB, include_hidden: bool = False) -> List[PlacementView]:
    """
    Forêt ordonnée des placements d'une page.

    Racine : sans parent, visibles sauf include_hidden, triés par sort_order.
    Conteneurs : un groupe d'enfants par slot déclaré (ordre de déclaration).
    Ne crée jamais rien — l'auto-création est faite en amont (composer).
    """
    seen: Set[int] = set()
    return [
        _build_view(db, ctx, page, pc, include_hidden, seen)
        for pc in db_root_contents(db, page.id, include_hidden=include_hidden)
    ]


def build_node(db: Session, ctx: RequestContext, page: PageDB, placement: PageContentDB,
               include_hidden: bool = True) -> PlacementView:
    return _build_view(db, ctx, page, placement, include_hidden, set())


def _build_view(db: Session, ctx: RequestContext, page: PageDB, pc: PageContentDB,
                include_hidden: bool, seen: Set[int]) -> PlacementView:
    seen.add(pc.id)
    definition = REGISTRY.definition(pc.page_part_key)
    part = find_page_part(db, ctx, pc.page_part_key, page.slug)
    locale, blocks = resolve_blocks(ctx.locale, get_block_contents(part))
    view = PlacementView(
        placement=pc,
        kind=classify(pc, definition),
        page_part=part,
        definition=definition,
        resolved_locale=locale,
        blocks=blocks,
    )
    if view.is_container:
        for slot in definition.slots:
            children = db_children_in_slot(db, pc.id, slot, include_hidden=include_hidden)
            view.slots[slot] = [
                _build_view(db, ctx, page, child, include_hidden, seen)
                for child in children
                if child.id not in seen
            ]
    return view


# ── Validation ────────────────────────────────────────────────────────────────

def _ancestor_ids(db: Session, ctx: RequestContext, placement: PageContentDB) -> Set[int]:
    ids: Set[int] = set()
    current = placement
    while current is not None and current.parent_page_content_id is not None:
        if current.parent_page_content_id in ids:
            break
        ids.add(current.parent_page_content_id)
        current = db_get_page_content(db, ctx.website_id, current.parent_page_content_id)
    return ids


def validate_placement(db: Session, ctx: RequestContext, page: PageDB, part_key: Optional[str],
                       parent_id: Optional[int], slot_name: Optional[str],
                       placement_id: Optional[int] = None) -> List[str]:
    """Liste des erreurs (vide si valide) pour un couple parent/slot."""
    errors: List[str] = []
    if not part_key:
        errors.append("page_part_key can't be blank")
    if parent_id is None:
        return errors

    parent = db_get_page_content(db, ctx.website_id, parent_id)
    if parent is None or parent.page_id != page.id:
        errors.append("parent_page_content must exist on this page")
        return errors
    if not REGISTRY.is_container(parent.page_part_key):
        errors.append("parent_page_content must be a container page part")
        return errors
    if not slot_name:
        errors.append("slot_name can't be blank when a parent is set")
    elif slot_name not in REGISTRY.available_slots(parent.page_part_key):
        errors.append(
            f"slot_name '{slot_name}' is not a slot of {parent.page_part_key} "
            f"({', '.join(REGISTRY.available_slots(parent.page_part_key))})"
        )
    if placement_id is not None and (parent.id == placement_id or placement_id in _ancestor_ids(db, ctx, parent)):
        errors.append("a page content cannot be nested inside itself")
    return errors


# ── Mutations ─────────────────────────────────────────────────────────────────

def create_placement(db: Session, ctx: RequestContext, page: PageDB, data: PageContentCreate) -> PageContentDB:
    errors = validate_placement(db, ctx, page, data.page_part_key, data.parent_page_content_id, data.slot_name)
    if errors:
        raise ValidationFailed(errors)

    sort_order = data.sort_order
    if sort_order is None:
        sort_order = db_next_sort_order(db, page.id, data.parent_page_content_id, data.slot_name)

    pc = PageContentDB(
        website_id=ctx.website_id,
        page_id=page.id,
        page_part_key=data.page_part_key,
        parent_page_content_id=data.parent_page_content_id,
        slot_name=data.slot_name if data.parent_page_content_id is not None else None,
        sort_order=sort_order,
        visible_on_page=data.visible_on_page,
        label=data.label,
        is_rails_part=REGISTRY.is_code_part(data.page_part_key),
    )
    db.add(pc); db.commit(); db.refresh(pc)
    log.info("Placement %s créé : '%s' sur la page '%s'", pc.id, pc.page_part_key, page.slug)
    return pc


def update_placement(db: Session, ctx: RequestContext, page: PageDB, pc: PageContentDB,
                     data: PageContentUpdate) -> PageContentDB:
    changes = data.model_dump(exclude_unset=True)
    if "slot_name" in changes:
        if pc.parent_page_content_id is None:
            # slot sans objet à la racine
            changes.pop("slot_name")
        else:
            errors = validate_placement(db, ctx, page, pc.page_part_key, pc.parent_page_content_id,
                                        changes["slot_name"], placement_id=pc.id)
            if errors:
                raise ValidationFailed(errors)
    for k, v in changes.items():
        if k in ("sort_order", "visible_on_page") and v is None:
            continue
        setattr(pc, k, v)
    db.commit(); db.refresh(pc)
    return pc


def _root_placement(db: Session, page: PageDB, part_key: str) -> Optional[PageContentDB]:
    for pc in db_page_contents_for_key(db, page.id, part_key):
        if pc.parent_page_content_id is None:
            return pc
    return None


def ensure_placement(db: Session, ctx: RequestContext, page: PageDB, part_key: str) -> PageContentDB:
    """
    Placement racine de `part_key` sur la page ; créé en fin de page si absent.

    La ligne créée porte auto_key = part_key, unique par page : deux premiers
    rendus concurrents n'insèrent qu'un placement, le perdant relit l'existant.
    """
    existing = _root_placement(db, page, part_key)
    if existing is not None:
        return existing
    pc = PageContentDB(
        website_id=ctx.website_id,
        page_id=page.id,
        page_part_key=part_key,
        sort_order=db_next_sort_order(db, page.id),
        visible_on_page=True,
        is_rails_part=REGISTRY.is_code_part(part_key),
        auto_key=part_key,
    )
    db.add(pc)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = _root_placement(db, page, part_key)
        if existing is None:
            raise
        log.info("Placement '%s' déjà auto-créé sur la page '%s' par une requête concurrente", part_key, page.slug)
        return existing
    db.refresh(pc)
    log.info("Placement '%s' auto-créé sur la page '%s' (ordre %s)", part_key, page.slug, pc.sort_order)
    return pc


def _collect_subtree(db: Session, pc: PageContentDB, out: List[PageContentDB], seen: Set[int]) -> None:
    """Post-ordre : enfants d'abord, puis le noeud lui-même."""
    seen.add(pc.id)
    for child in db_children(db, pc.id):
        if child.id not in seen:
            _collect_subtree(db, child, out, seen)
    out.append(pc)


def delete_placement(db: Session, ctx: RequestContext, pc: PageContentDB, force: bool = False) -> int:
    """
    Supprime un placement. Un conteneur avec enfants est refusé sans `force` ;
    avec `force`, la suppression descend récursivement. Retourne le nombre
    de placements supprimés.
    """
    children_count = db_count_children(db, pc.id)
    if children_count and not force:
        log.info("Suppression refusée : placement %s a %d enfant(s)", pc.id, children_count)
        raise ContainerHasChildren(children_count)

    doomed: List[PageContentDB] = []
    _collect_subtree(db, pc, doomed, set())
    try:
        for node in doomed:
            db.delete(node)
            db.flush()
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    log.info("Placement %s supprimé (%d noeud(s))", pc.id, len(doomed))
    return len(doomed)


def set_visibility(db: Session, ctx: RequestContext, page: PageDB, part_key: str, visible: bool) -> List[PageContentDB]:
    placements = db_page_contents_for_key(db, page.id, part_key)
    if not placements:
        raise PagePartNotFound(part_key, page.slug)
    for pc in placements:
        pc.visible_on_page = visible
    db.commit()
    return placements
