"""Dépendances FastAPI partagées : contexte de requête (site + locale)."""
import json
from typing import Optional

from fastapi import Header, Query, Request

from ..core.context import DEFAULT_LOCALE, DEFAULT_WEBSITE_ID, RequestContext
from ..core.errors import BadRequest


def get_context(
    x_website_id: Optional[str] = Header(default=None),
    locale: Optional[str] = Query(default=None),
) -> RequestContext:
    website_id = DEFAULT_WEBSITE_ID
    if x_website_id:
        try:
            website_id = int(x_website_id)
        except ValueError:
            raise BadRequest("En-tête X-Website-Id invalide", code="INVALID_PARAMETER")
    return RequestContext(website_id=website_id, locale=locale or DEFAULT_LOCALE)


async def read_json_body(request: Request) -> dict:
    """Corps JSON brut : absent ou non-objet → {}, JSON invalide → BadRequest."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        raise BadRequest("Corps JSON invalide", code="INVALID_PARAMETER")
    return body if isinstance(body, dict) else {}
