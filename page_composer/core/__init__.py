"""Core module pour page_composer (registre, locales, block contents, erreurs)."""
from .context import RequestContext
from .errors import (
    ComposerError,
    NotFound,
    PageNotFound,
    PagePartNotFound,
    PageContentNotFound,
    ValidationFailed,
    BadRequest,
    ContainerHasChildren,
    UnknownPartKeys,
)
from .library import REGISTRY, PagePartDefinition, PartDefinitionRegistry

__all__ = [
    "RequestContext",
    "ComposerError",
    "NotFound",
    "PageNotFound",
    "PagePartNotFound",
    "PageContentNotFound",
    "ValidationFailed",
    "BadRequest",
    "ContainerHasChildren",
    "UnknownPartKeys",
    "REGISTRY",
    "PagePartDefinition",
    "PartDefinitionRegistry",
]
