"""Sérialisation JSON des vues de placement — un sérialiseur par PlacementKind."""
from typing import Any, Callable, Dict, List, Optional

from .core.library import REGISTRY
from .database import jl
from .models import PageContentDB, PageDB, PagePartDB
from .placements import PlacementKind, PlacementView
from .page_parts import get_block_contents


def edit_key(page_slug: Optional[str], part_key: str) -> str:
    return f"{page_slug}::{part_key}" if page_slug else part_key


def page_json(page: PageDB) -> dict:
    return {
        "id": page.id,
        "slug": page.slug,
        "title": page.title,
        "visible": page.visible,
        "part_keys": jl(page.part_keys),
    }


def page_part_json(part: PagePartDB, include_contents: bool = True) -> dict:
    data = {
        "id": part.id,
        "page_part_key": part.page_part_key,
        "page_slug": part.page_slug or None,
        "edit_key": edit_key(part.page_slug, part.page_part_key),
        "show_in_editor": part.show_in_editor,
        "order_in_editor": part.order_in_editor,
        "available_locales": list(get_block_contents(part).keys()),
        "definition": REGISTRY.definition_summary(part.page_part_key),
        "updated_at": part.updated_at.isoformat() if part.updated_at else None,
    }
    if include_contents:
        data["block_contents"] = get_block_contents(part)
    return data


def placement_fields(pc: PageContentDB) -> dict:
    return {
        "id": pc.id,
        "page_part_key": pc.page_part_key,
        "sort_order": pc.sort_order,
        "visible_on_page": pc.visible_on_page,
        "label": pc.label,
        "is_rails_part": pc.is_rails_part,
        "is_container": REGISTRY.is_container(pc.page_part_key),
        "parent_id": pc.parent_page_content_id,
        "slot_name": pc.slot_name,
    }


def _base(view: PlacementView) -> dict:
    data = placement_fields(view.placement)
    data["kind"] = view.kind.value
    data["is_container"] = view.is_container
    return data


def _container_json(view: PlacementView) -> dict:
    data = _base(view)
    data["available_slots"] = list(view.definition.slots) if view.definition else []
    data["slots"] = {slot: [serialize(child) for child in children] for slot, children in view.slots.items()}
    return data


def _template_part_json(view: PlacementView) -> dict:
    data = _base(view)
    data["locale"] = view.resolved_locale
    data["block_contents"] = view.blocks
    return data


def _code_part_json(view: PlacementView) -> dict:
    # HTML produit hors template : seul le contenu éditable est exposé
    data = _base(view)
    data["locale"] = view.resolved_locale
    data["block_contents"] = view.blocks
    return data


_SERIALIZERS: Dict[PlacementKind, Callable[[PlacementView], dict]] = {
    PlacementKind.CONTAINER:     _container_json,
    PlacementKind.TEMPLATE_PART: _template_part_json,
    PlacementKind.CODE_PART:     _code_part_json,
}


def serialize(view: PlacementView) -> dict:
    return _SERIALIZERS[view.kind](view)


def serialize_tree(views: List[PlacementView]) -> List[Dict[str, Any]]:
    return [serialize(v) for v in views]
