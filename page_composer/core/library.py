"""
Catalogue des blocs (page parts) — clé → schéma de champs, conteneur, slots.

Deux formats de déclaration des champs coexistent :
  - liste de noms (format historique, type déduit du nom, défaut "")
  - dict nom → config (type, label, default, group…)

Les templates Jinja2 vivent dans templates/<clé>.html (surcharge : PAGE_PARTS_DIR).
Le registre est en lecture seule une fois chargé.
"""
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

PAGE_PARTS_DIR = Path(os.getenv("PAGE_PARTS_DIR", str(Path(__file__).parent.parent / "templates")))

CATEGORIES: Dict[str, dict] = {
    "heroes":       {"label": "Hero Sections",  "description": "Large banner sections typically used at the top of pages", "icon": "hero"},
    "features":     {"label": "Features",       "description": "Sections showcasing features, services, or benefits",     "icon": "grid"},
    "testimonials": {"label": "Testimonials",   "description": "Customer reviews and testimonials",                       "icon": "quote"},
    "cta":          {"label": "Call to Action", "description": "Sections designed to encourage user action",              "icon": "megaphone"},
    "stats":        {"label": "Statistics",     "description": "Number counters and statistics displays",                 "icon": "chart"},
    "faqs":         {"label": "FAQs",           "description": "Frequently asked questions sections",                     "icon": "help"},
    "layout":       {"label": "Layout",         "description": "Containers that arrange other page parts in slots",      "icon": "columns"},
    "content":      {"label": "Content",        "description": "General content sections",                                "icon": "text"},
    "contact":      {"label": "Contact",        "description": "Contact forms and information",                           "icon": "mail"},
}


class PagePartDefinition(BaseModel):
    key:          str
    category:     str                                   = "content"
    label:        str                                   = ""
    description:  str                                   = ""
    is_container: bool                                  = False
    slots:        List[str]                             = Field(default_factory=list)
    fields:       Union[List[str], Dict[str, Dict[str, Any]]] = Field(default_factory=list)
    field_groups: Dict[str, Dict[str, Any]]             = Field(default_factory=dict)
    legacy:       bool                                  = False
    code_part:    bool                                  = False

    def field_names(self) -> List[str]:
        return list(self.fields)


_DEFINITIONS: Dict[str, dict] = {
    # ── Heroes ──
    "heroes/hero_centered": {
        "category": "heroes",
        "label": "Centered Hero",
        "description": "Full-width hero with centered content and optional CTA buttons",
        "fields": {
            "pretitle":           {"type": "text",     "label": "Pre-title", "max_length": 50, "group": "titles"},
            "title":              {"type": "text",     "label": "Main Title", "required": True, "max_length": 80, "group": "titles"},
            "subtitle":           {"type": "textarea", "label": "Subtitle", "max_length": 200, "rows": 2, "group": "titles"},
            "cta_text":           {"type": "text",     "label": "Primary Button Text", "max_length": 30, "group": "cta", "paired_with": "cta_link"},
            "cta_link":           {"type": "url",      "label": "Primary Button Link", "group": "cta", "paired_with": "cta_text"},
            "cta_secondary_text": {"type": "text",     "label": "Secondary Button Text", "max_length": 30, "group": "cta"},
            "cta_secondary_link": {"type": "url",      "label": "Secondary Button Link", "group": "cta"},
            "background_image":   {"type": "image",    "label": "Background Image", "required": True, "group": "media"},
        },
        "field_groups": {
            "titles": {"label": "Titles & Text", "order": 1},
            "cta":    {"label": "Call to Action Buttons", "order": 2},
            "media":  {"label": "Media", "order": 3},
        },
    },
    "heroes/hero_split": {
        "category": "heroes",
        "label": "Split Hero",
        "description": "Two-column hero with content on one side and image on the other",
        "fields": ["pretitle", "title", "subtitle", "description", "cta_text", "cta_link", "image", "image_alt"],
    },
    # ── Features ──
    "features/feature_grid_3col": {
        "category": "features",
        "label": "3-Column Feature Grid",
        "description": "Three feature cards in a grid layout",
        "fields": ["section_title", "section_subtitle",
                   "feature_1_icon", "feature_1_title", "feature_1_description",
                   "feature_2_icon", "feature_2_title", "feature_2_description",
                   "feature_3_icon", "feature_3_title", "feature_3_description"],
    },
    # ── Testimonials ──
    "testimonials/testimonial_grid": {
        "category": "testimonials",
        "label": "Testimonial Grid",
        "description": "Grid of testimonial cards",
        "fields": ["section_title", "testimonial_1_text", "testimonial_1_name", "testimonial_1_role",
                   "testimonial_2_text", "testimonial_2_name", "testimonial_2_role"],
    },
    # ── CTA ──
    "cta/cta_banner": {
        "category": "cta",
        "label": "CTA Banner",
        "description": "Full-width call-to-action banner",
        "fields": {
            "title":        {"type": "text",     "label": "Title", "required": True, "max_length": 80, "group": "content"},
            "subtitle":     {"type": "textarea", "label": "Subtitle", "max_length": 200, "group": "content"},
            "button_text":  {"type": "text",     "label": "Primary Button Text", "max_length": 30, "group": "buttons"},
            "button_link":  {"type": "url",      "label": "Primary Button Link", "group": "buttons"},
            "button_style": {"type": "select",   "label": "Primary Button Style", "default": "primary", "group": "buttons",
                             "choices": ["primary", "secondary", "white", "dark"]},
            "style":        {"type": "select",   "label": "Banner Style", "default": "primary", "group": "style",
                             "choices": ["light", "dark", "primary", "gradient"]},
        },
        "field_groups": {
            "content": {"label": "Content", "order": 1},
            "buttons": {"label": "Buttons", "order": 2},
            "style":   {"label": "Appearance", "order": 3},
        },
    },
    # ── Stats ──
    "stats/stats_counter": {
        "category": "stats",
        "label": "Stats Counter",
        "description": "Number counters for statistics",
        "fields": ["section_title", "stat_1_value", "stat_1_label", "stat_2_value", "stat_2_label",
                   "stat_3_value", "stat_3_label"],
    },
    # ── FAQs ──
    "faqs/faq_accordion": {
        "category": "faqs",
        "label": "FAQ Accordion",
        "description": "Expandable FAQ section",
        "fields": {
            "section_title":    {"type": "text",      "label": "Section Title", "max_length": 80, "group": "header"},
            "section_subtitle": {"type": "textarea",  "label": "Section Subtitle", "max_length": 200, "group": "header"},
            "faq_items":        {"type": "faq_array", "label": "FAQ Items", "required": True, "default": [], "group": "faqs"},
        },
        "field_groups": {
            "header": {"label": "Section Header", "order": 1},
            "faqs":   {"label": "Questions & Answers", "order": 2},
        },
    },
    # ── Layout (conteneurs) ──
    "layout/layout_two_column_equal": {
        "category": "layout",
        "label": "Two Equal Columns",
        "description": "Two columns of equal width",
        "is_container": True,
        "slots": ["left", "right"],
    },
    "layout/layout_sidebar_left": {
        "category": "layout",
        "label": "Sidebar Left",
        "description": "Narrow sidebar on the left, main column on the right",
        "is_container": True,
        "slots": ["sidebar", "main"],
    },
    "layout/layout_three_column": {
        "category": "layout",
        "label": "Three Columns",
        "description": "Three columns of equal width",
        "is_container": True,
        "slots": ["left", "center", "right"],
    },
    # ── Legacy ──
    "our_agency": {
        "category": "content",
        "label": "Our Agency",
        "description": "Agency introduction section",
        "fields": ["title_a", "content_a", "our_agency_img"],
        "legacy": True,
    },
    "content_html": {
        "category": "content",
        "label": "HTML Content",
        "description": "Free-form HTML content section",
        "fields": {"content_html": {"type": "html", "label": "Content", "required": True}},
        "legacy": True,
    },
    "footer_content_html": {
        "category": "content",
        "label": "Footer Content",
        "description": "Footer HTML content",
        "fields": ["content_html"],
        "legacy": True,
    },
    "form_and_map": {
        "category": "contact",
        "label": "Contact Form & Map",
        "description": "Contact form with embedded map",
        "fields": ["title", "map_embed"],
        "legacy": True,
        "code_part": True,
    },
    "search_cmpt": {
        "category": "content",
        "label": "Search Component",
        "description": "Property search component",
        "fields": [],
        "legacy": True,
        "code_part": True,
    },
}


# ── Déduction de type (format liste) ────────────────────────────────────────

def infer_field_type(name: str) -> str:
    n = name.lower()
    if "image" in n or n.endswith("_img"):
        return "image"
    if "link" in n or "url" in n or n == "href":
        return "url"
    if "html" in n:
        return "html"
    if n in ("subtitle", "description") or n.endswith("_description") or n.endswith("_text"):
        return "textarea"
    return "text"


def build_field_definition(name: str, config: Optional[dict] = None) -> dict:
    """Définition d'un champ pour l'UI d'édition (config explicite > déduction)."""
    config = config or {}
    field = {
        "name":     name,
        "type":     config.get("type") or infer_field_type(name),
        "label":    config.get("label") or name.replace("_", " ").capitalize(),
        "required": bool(config.get("required", False)),
    }
    for opt in ("hint", "placeholder", "max_length", "rows", "choices", "default", "group", "paired_with"):
        if opt in config:
            field[opt] = config[opt]
    return field


def _load_templates(root: Path) -> Dict[str, str]:
    """Tous les fichiers <clé>.html sous `root`, indexés par clé (chemin relatif sans extension)."""
    if not root.is_dir():
        return {}
    return {
        path.relative_to(root).with_suffix("").as_posix(): path.read_text(encoding="utf-8")
        for path in sorted(root.rglob("*.html"))
    }


# ── Registre ─────────────────────────────────────────────────────────────────

class PartDefinitionRegistry:
    """Lookup pur : aucune écriture après chargement."""

    def __init__(self, definitions: Dict[str, dict], templates_dir: Path = PAGE_PARTS_DIR):
        self._definitions = {k: PagePartDefinition(key=k, **cfg) for k, cfg in definitions.items()}
        self._templates: Dict[str, str] = _load_templates(templates_dir)

    def definition(self, key: str) -> Optional[PagePartDefinition]:
        return self._definitions.get(key)

    def is_container(self, key: str) -> bool:
        d = self.definition(key)
        return bool(d and d.is_container)

    def is_code_part(self, key: str) -> bool:
        d = self.definition(key)
        return bool(d and d.code_part)

    def available_slots(self, key: str) -> List[str]:
        d = self.definition(key)
        return list(d.slots) if d and d.is_container else []

    def categories(self) -> Dict[str, dict]:
        return CATEGORIES

    def for_category(self, category: str) -> Dict[str, PagePartDefinition]:
        return {k: d for k, d in self._definitions.items() if d.category == category}

    def by_category(self) -> Dict[str, Dict[str, PagePartDefinition]]:
        grouped: Dict[str, Dict[str, PagePartDefinition]] = {}
        for k, d in self._definitions.items():
            grouped.setdefault(d.category, {})[k] = d
        return grouped

    def template_for(self, key: str) -> Optional[str]:
        return self._templates.get(key)

    def field_schema(self, key: str) -> Optional[dict]:
        d = self.definition(key)
        if d is None:
            return None
        if isinstance(d.fields, list):
            return {"fields": [build_field_definition(name) for name in d.fields], "groups": []}
        groups = [
            {"key": gk, "label": cfg.get("label") or gk.replace("_", " ").capitalize(), "order": cfg.get("order", 999)}
            for gk, cfg in d.field_groups.items()
        ]
        return {
            "fields": [build_field_definition(name, cfg) for name, cfg in d.fields.items()],
            "groups": sorted(groups, key=lambda g: g["order"]),
        }

    def definition_summary(self, key: str) -> Optional[dict]:
        d = self.definition(key)
        if d is None:
            return None
        return {
            "label":        d.label,
            "description":  d.description,
            "category":     d.category,
            "is_container": d.is_container,
            "slots":        d.slots if d.is_container else None,
        }

    def catalog(self) -> dict:
        """Catalogue JSON groupé par catégorie (UI « ajouter un bloc »)."""
        return {
            "categories": [
                {
                    "key": cat,
                    **info,
                    "parts": [
                        {
                            "key": k,
                            "label": d.label,
                            "description": d.description,
                            "is_container": d.is_container,
                            "slots": d.slots,
                            "fields": d.field_names(),
                            "legacy": d.legacy,
                        }
                        for k, d in self.for_category(cat).items()
                    ],
                }
                for cat, info in CATEGORIES.items()
            ]
        }


REGISTRY = PartDefinitionRegistry(_DEFINITIONS)
