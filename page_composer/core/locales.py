"""
Résolution de locale — chaîne de repli déterministe.

  1. locale exacte         ("es-MX")
  2. langue de base        ("es")
  3. locale de repli fixe  ("en", FALLBACK_LOCALE)
  4. première locale stockée (ordre du dict tel que persisté)

Fonctions pures : appelées à chaque lecture (éditeur + rendu public).
"""
import os
from typing import Any, Dict, List, Optional, Tuple

FALLBACK_LOCALE = os.getenv("FALLBACK_LOCALE", "en")


def locale_to_base(locale: Optional[str]) -> str:
    """"en-UK" → "en", "pt-BR" → "pt", vide → "en"."""
    if not locale:
        return "en"
    return locale.split("-")[0].lower()


def locale_variant(locale: Optional[str]) -> Optional[str]:
    """"en-UK" → "UK", "es" → None."""
    if not locale:
        return None
    parts = locale.split("-")
    return parts[1] if len(parts) > 1 else None


def supported_locales_for_content(locales: Optional[List[str]]) -> List[str]:
    """Codes de base uniques, dans l'ordre : ["en-UK", "en-US", "es"] → ["en", "es"]."""
    if not locales:
        return ["en"]
    result: List[str] = []
    for loc in locales:
        if not loc:
            continue
        base = locale_to_base(loc)
        if base not in result:
            result.append(base)
    return result


def resolve(requested: Optional[str], content_by_locale: Optional[Dict[str, Any]]) -> Tuple[Optional[str], Dict[str, Any]]:
    """
    Retourne (locale_résolue, contenu) pour la locale demandée.

    Map vide ou absente → (None, {"blocks": {}}) sans erreur.
    Une entrée vide ({}) ne compte pas comme une correspondance.
    """
    if not content_by_locale:
        return None, {"blocks": {}}

    candidates: List[str] = []
    if requested:
        candidates.append(requested)
        base = requested.split("-")[0]
        if base != requested:
            candidates.append(base)
    candidates.append(FALLBACK_LOCALE)

    for loc in candidates:
        if content_by_locale.get(loc):
            return loc, content_by_locale[loc]

    for loc, content in content_by_locale.items():
        if content:
            return loc, content
    return None, {"blocks": {}}


def resolve_blocks(requested: Optional[str], content_by_locale: Optional[Dict[str, Any]]) -> Tuple[Optional[str], Dict[str, Any]]:
    """Comme resolve(), mais retourne directement le sous-dict `blocks`."""
    loc, content = resolve(requested, content_by_locale)
    blocks = content.get("blocks") if isinstance(content, dict) else None
    return loc, blocks if isinstance(blocks, dict) else {}
