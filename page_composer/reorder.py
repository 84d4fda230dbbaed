"""
Réordonnancement des placements — deux protocoles distincts, tous deux atomiques.

  reorder_positional : paires (id, sort_order) + réaffectation optionnelle
                       des enfants d'un conteneur par slot
  reorder_semantic   : liste ordonnée de clés de bloc (racine de la page)

Toute erreur annule l'ensemble (rollback) avant d'être propagée.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from .core.context import RequestContext
from .core.errors import BadRequest, PageContentNotFound, UnknownPartKeys, ValidationFailed
from .core.library import REGISTRY
from .database import db_root_contents
from .models import PageContentDB, PageDB

log = logging.getLogger(__name__)


def as_int(value: Any, what: str) -> int:
    if isinstance(value, bool):
        raise BadRequest(f"'{what}' doit être un entier", code="INVALID_PARAMETER")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BadRequest(f"'{what}' doit être un entier", code="INVALID_PARAMETER")


def parse_positional_order(order: Any) -> List[Tuple[int, int]]:
    """[{id, sort_order}, ...] → [(id, sort_order)] ; levé avant toute mutation."""
    if order is None:
        return []
    if not isinstance(order, list):
        raise BadRequest("'order' doit être une liste de {id, sort_order}")
    pairs = []
    for item in order:
        if not isinstance(item, dict) or "id" not in item or "sort_order" not in item:
            raise BadRequest("chaque entrée de 'order' doit contenir 'id' et 'sort_order'")
        pairs.append((as_int(item["id"], "id"), as_int(item["sort_order"], "sort_order")))
    return pairs


def parse_slot_order(slot_order: Any) -> Dict[str, List[int]]:
    if slot_order is None:
        return {}
    if not isinstance(slot_order, dict):
        raise BadRequest("'slot_order' doit être un objet {slot: [id, ...]}")
    parsed: Dict[str, List[int]] = {}
    for slot, ids in slot_order.items():
        if not isinstance(ids, list):
            raise BadRequest(f"'slot_order.{slot}' doit être une liste d'identifiants")
        parsed[str(slot)] = [as_int(i, f"slot_order.{slot}") for i in ids]
    return parsed


def reorder_positional(db: Session, ctx: RequestContext, page: PageDB,
                       pairs: Iterable[Tuple[int, int]],
                       slot_order: Optional[Dict[str, List[int]]] = None,
                       container_id: Optional[int] = None) -> None:
    """
    Applique chaque (id, sort_order) ; les ids inconnus ou d'une autre page sont
    ignorés (état client périmé). Avec `container_id`, chaque liste de
    `slot_order` réaffecte les enfants du conteneur : index = nouvel ordre.
    """
    by_id = {pc.id: pc for pc in page.page_contents if pc.website_id == ctx.website_id}
    try:
        for content_id, sort_order in pairs:
            pc = by_id.get(content_id)
            if pc is None:
                log.info("Reorder : placement %s ignoré (absent de la page '%s')", content_id, page.slug)
                continue
            pc.sort_order = sort_order

        if slot_order and container_id is not None:
            container = by_id.get(container_id)
            if container is None:
                raise PageContentNotFound(container_id)
            slots = REGISTRY.available_slots(container.page_part_key)
            bad = [s for s in slot_order if s not in slots]
            if bad:
                raise ValidationFailed([f"slot_name '{s}' is not a slot of {container.page_part_key}" for s in bad])
            for slot, ids in slot_order.items():
                for index, child_id in enumerate(ids):
                    child = by_id.get(child_id)
                    if child is None or child.parent_page_content_id != container.id:
                        continue
                    child.slot_name = slot
                    child.sort_order = index
        db.commit()
    except Exception:
        db.rollback()
        raise


def parse_semantic_order(order: Any) -> List[str]:
    if not isinstance(order, list) or not order:
        raise BadRequest("Paramètre requis 'order' manquant : liste ordonnée de page_part_key")
    if not all(isinstance(k, str) and k for k in order):
        raise BadRequest("'order' ne doit contenir que des page_part_key non vides")
    if len(set(order)) != len(order):
        raise BadRequest("'order' contient des page_part_key en double", code="INVALID_PARAMETER")
    return list(order)


def reorder_semantic(db: Session, ctx: RequestContext, page: PageDB, order: List[str]) -> List[str]:
    """
    Les blocs nommés prennent sort_order = position dans `order` ; les autres
    placements racine sont renumérotés à la suite, dans leur ordre antérieur.
    Une clé absente de la page rejette tout le lot. Retourne l'ordre racine final.
    """
    roots = db_root_contents(db, page.id, include_hidden=True)
    first_by_key: Dict[str, PageContentDB] = {}
    for pc in roots:
        first_by_key.setdefault(pc.page_part_key, pc)

    unknown = [k for k in order if k not in first_by_key]
    if unknown:
        log.info("Reorder '%s' rejeté : clés inconnues %s", page.slug, unknown)
        raise UnknownPartKeys(unknown, list(first_by_key))

    named = [first_by_key[k] for k in order]
    named_ids = {pc.id for pc in named}
    rest = [pc for pc in roots if pc.id not in named_ids]
    try:
        for position, pc in enumerate(named + rest):
            pc.sort_order = position
        db.commit()
    except Exception:
        db.rollback()
        raise
    return [pc.page_part_key for pc in named + rest]
