from app.api.v1 import activities, cache, integrations_github, internal

__all__ = [
    "activities",
    "cache",
    "integrations_github",
    "internal",
]
