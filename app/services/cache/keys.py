"""Cache key construction.

Keys are composite (user, provider, scope, query parameters) and render to a
stable string shared by both cache tiers.
"""

import hashlib
from dataclasses import dataclass, field
from typing import Any

# Scopes
EVENTS_SCOPE = "events"
REPOSITORIES_SCOPE = "repositories"


@dataclass(frozen=True)
class CacheKey:
    user_id: str
    provider: str
    scope: str
    params: tuple[tuple[str, Any], ...] = field(default=())

    @classmethod
    def build(cls, user_id: str, provider: str, scope: str, **params: Any) -> "CacheKey":
        return cls(user_id, provider, scope, tuple(sorted(params.items())))

    def render(self) -> str:
        """
        Render as "{provider}:{scope}:{user_id}:{params digest}".

        Parameters are hashed so arbitrary query values can't break the key format.
        """
        digest = hashlib.md5(repr(self.params).encode()).hexdigest()
        return f"{self.provider}:{self.scope}:{self.user_id}:{digest}"
