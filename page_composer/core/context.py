"""
Contexte de requête explicite — website + locale + cache de lookups.

Remplace tout état global "site courant / locale courante" : chaque opération
du moteur reçoit ce contexte en argument. Le cache ne vit que le temps
d'une requête.
"""
import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_LOCALE     = os.getenv("DEFAULT_LOCALE", "en")
DEFAULT_WEBSITE_ID = int(os.getenv("DEFAULT_WEBSITE_ID", "1"))


class RequestContext(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    website_id: int
    locale:     str            = DEFAULT_LOCALE
    cache:      Dict[Any, Any] = Field(default_factory=dict)

    def cached(self, key: Any, loader) -> Optional[Any]:
        """Retourne la valeur en cache pour `key`, sinon appelle loader() et mémorise."""
        if key not in self.cache:
            self.cache[key] = loader()
        return self.cache[key]

    def forget(self, key: Any) -> None:
        self.cache.pop(key, None)
