from . import documents, health, notifications, public_signatures, templates

__all__ = [
    "documents",
    "health",
    "notifications",
    "public_signatures",
    "templates",
]
