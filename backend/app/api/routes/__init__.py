from . import documents, health

__all__ = [
    "documents",
    "health",
]
