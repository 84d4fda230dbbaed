"""
Block contents — contenu structuré multi-locales d'un bloc.

Forme persistée (contrat chargé) :
  {"<locale>": {"blocks": {"<champ>": {"content": <valeur>}}}}

Fonctions pures : aucune persistance ici, l'appelant sauvegarde.
"""
import copy
from typing import Any, Dict, Optional

from .library import PagePartDefinition


def default_blocks_for(definition: Optional[PagePartDefinition]) -> Dict[str, Dict[str, Any]]:
    """
    Blocs initiaux d'une définition : {champ: {"content": défaut ou ""}}.

    Détection de forme : liste de noms (défaut "") ou dict nom → config
    (clé "default" optionnelle). Définition absente → {}.
    """
    if definition is None:
        return {}
    fields = definition.fields
    blocks: Dict[str, Dict[str, Any]] = {}
    if isinstance(fields, dict):
        for name, config in fields.items():
            default = (config or {}).get("default")
            blocks[str(name)] = {"content": "" if default is None else copy.deepcopy(default)}
    else:
        for name in fields:
            blocks[str(name)] = {"content": ""}
    return blocks


def default_block_contents(definition: Optional[PagePartDefinition], locale: str) -> Dict[str, Any]:
    return {locale: {"blocks": default_blocks_for(definition)}}


def normalize_incoming(incoming: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    {blocks: {...}} ou {...} → {champ: valeur}.
    Une valeur {"content": v} est ramenée à v.
    """
    if not incoming:
        return {}
    data = incoming
    if isinstance(data.get("blocks"), dict):
        data = data["blocks"]
    flat: Dict[str, Any] = {}
    for name, value in data.items():
        if isinstance(value, dict) and "content" in value:
            flat[str(name)] = value["content"]
        else:
            flat[str(name)] = value
    return flat


def merge_update(current: Optional[Dict[str, Any]], locale: str, incoming: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Fusion champ par champ pour une locale, retourne une nouvelle map complète.

    - champs absents du payload : intacts
    - champs présents : l'entrée {"content": v} est remplacée en entier
    - champs inconnus de la définition : conservés (pas de validation ici)
    - autres locales : intactes
    """
    merged = copy.deepcopy(current) if current else {}
    locale_entry = merged.get(locale)
    if not isinstance(locale_entry, dict):
        locale_entry = {}
    blocks = locale_entry.get("blocks")
    if not isinstance(blocks, dict):
        blocks = {}

    for name, value in normalize_incoming(incoming).items():
        blocks[name] = {"content": copy.deepcopy(value)}

    locale_entry["blocks"] = blocks
    merged[locale] = locale_entry
    return merged


def blocks_for_locale(block_contents: Optional[Dict[str, Any]], locale: str) -> Dict[str, Any]:
    """Sous-dict `blocks` exact pour une locale (sans repli)."""
    entry = (block_contents or {}).get(locale)
    if not isinstance(entry, dict):
        return {}
    blocks = entry.get("blocks")
    return blocks if isinstance(blocks, dict) else {}
