"""
TemplateRenderer — exécution Jinja2 d'un bloc (placement, locale) → HTML.

Le template reçoit une seule variable, `page_part` : la map `blocks` résolue
pour la locale, ex. {{ page_part.title.content }}.

Résultats : rendered (HTML persisté dans RenderedContent), skipped (conteneur,
bloc code, pas de template), failed (TemplateError journalisée, rien persisté).
"""
import logging
from enum import Enum
from typing import Dict, Optional

from jinja2 import ChainableUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .core.context import RequestContext
from .core.library import REGISTRY
from .core.locales import resolve_blocks
from .database import db_set_rendered
from .models import PageContentDB, PagePartDB
from .page_parts import find_page_part, get_block_contents

log = logging.getLogger(__name__)

_ENV = SandboxedEnvironment(autoescape=False, undefined=ChainableUndefined)

# échecs d'exécution d'un template, absorbés par render()
_TEMPLATE_FAILURES = (TemplateError, ArithmeticError, LookupError, TypeError, ValueError)


class RenderOutcome(str, Enum):
    RENDERED = "rendered"
    SKIPPED  = "skipped"
    FAILED   = "failed"


class RenderResult(BaseModel):
    outcome: RenderOutcome
    locale:  str
    html:    Optional[str] = None
    reason:  Optional[str] = None


def template_source(part: Optional[PagePartDB], part_key: str) -> Optional[str]:
    """Copie stockée sur le PagePart en priorité, sinon fichier de la bibliothèque."""
    if part is not None and part.template:
        return part.template
    return REGISTRY.template_for(part_key)


def render_template(source: str, blocks: dict) -> str:
    return _ENV.from_string(source).render(page_part=blocks)


def render(db: Session, ctx: RequestContext, placement: PageContentDB,
           locale: Optional[str] = None, part: Optional[PagePartDB] = None) -> RenderResult:
    locale = locale or ctx.locale
    key = placement.page_part_key

    if REGISTRY.is_container(key):
        return RenderResult(outcome=RenderOutcome.SKIPPED, locale=locale, reason="container")
    if placement.is_rails_part:
        return RenderResult(outcome=RenderOutcome.SKIPPED, locale=locale, reason="code_part")

    if part is None:
        part = find_page_part(db, ctx, key, placement.page.slug)
    source = template_source(part, key)
    if not source:
        return RenderResult(outcome=RenderOutcome.SKIPPED, locale=locale, reason="no_template")

    _, blocks = resolve_blocks(locale, get_block_contents(part))
    try:
        html = render_template(source, blocks)
    except _TEMPLATE_FAILURES as e:
        log.warning("Rendu '%s' (placement %s, %s) échoué : %s", key, placement.id, locale, e)
        return RenderResult(outcome=RenderOutcome.FAILED, locale=locale, reason=str(e))

    db_set_rendered(db, placement.id, locale, html)
    return RenderResult(outcome=RenderOutcome.RENDERED, locale=locale, html=html)


def render_all_locales(db: Session, ctx: RequestContext, placement: PageContentDB,
                       part: Optional[PagePartDB] = None) -> Dict[str, RenderResult]:
    """Régénère chaque locale stockée ; un échec n'interrompt pas les suivantes."""
    if part is None:
        part = find_page_part(db, ctx, placement.page_part_key, placement.page.slug)
    locales = list(get_block_contents(part).keys()) or [ctx.locale]
    return {loc: render(db, ctx, placement, loc, part=part) for loc in locales}
