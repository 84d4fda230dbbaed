"""
Taxonomie d'erreurs du moteur de composition.

Chaque erreur porte un code machine stable + un message lisible ; la couche
HTTP (api/main.py) les traduit en réponse JSON 4xx. Les erreurs de template
ne passent jamais par ici : elles sont absorbées par le renderer.
"""
from typing import Any, Dict, Iterable, List, Optional


class ComposerError(Exception):
    """Erreur métier de base (code + message + statut HTTP + champs additionnels)."""
    status_code: int = 400
    error: str = "Error"

    def __init__(self, code: str, message: str, **extra: Any):
        super().__init__(message)
        self.code = code
        self.message = message
        self.extra: Dict[str, Any] = extra

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message, "code": self.code, **self.extra}


class NotFound(ComposerError):
    status_code = 404
    error = "Not found"


class PageNotFound(NotFound):
    error = "Page not found"

    def __init__(self, page_ref: Any):
        super().__init__("PAGE_NOT_FOUND", f"Aucune page trouvée pour '{page_ref}'")


class PagePartNotFound(NotFound):
    error = "Page part not found"

    def __init__(self, part_key: str, page_slug: Optional[str] = None):
        where = f" sur la page '{page_slug}'" if page_slug else ""
        super().__init__("PAGE_PART_NOT_FOUND", f"Bloc '{part_key}' introuvable{where}")


class PageContentNotFound(NotFound):
    error = "Page content not found"

    def __init__(self, content_id: Any):
        super().__init__("PAGE_CONTENT_NOT_FOUND", f"Placement {content_id} introuvable")


class ValidationFailed(ComposerError):
    status_code = 422
    error = "Validation failed"

    def __init__(self, errors: List[str]):
        super().__init__("VALIDATION_FAILED", "; ".join(errors), errors=list(errors))


class BadRequest(ComposerError):
    status_code = 400
    error = "Missing parameter"

    def __init__(self, message: str, code: str = "MISSING_PARAMETER"):
        super().__init__(code, message)


class ContainerHasChildren(ComposerError):
    status_code = 422
    error = "Cannot delete"

    def __init__(self, children_count: int):
        super().__init__(
            "CONTAINER_HAS_CHILDREN",
            "Le conteneur a des enfants. Retirez-les ou utilisez force=true pour tout supprimer.",
            children_count=children_count,
        )


class UnknownPartKeys(ComposerError):
    status_code = 422
    error = "Page parts not found"

    def __init__(self, unknown_keys: Iterable[str], available_keys: Iterable[str]):
        unknown = list(unknown_keys)
        super().__init__(
            "PAGE_PARTS_NOT_FOUND",
            f"Blocs inconnus sur cette page : {', '.join(unknown)}",
            unknown_keys=unknown,
            available_keys=list(available_keys),
        )
