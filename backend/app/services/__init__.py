from app.services.errors import DocumentError, InvalidPageIndexError, MalformedInputError, NotFoundError
from app.services.pipeline import AssemblyPipeline
from app.services.storage import DocumentRepository, LocalStorage, MemoryStorage, S3Storage

__all__ = [
    "AssemblyPipeline",
    "DocumentError",
    "DocumentRepository",
    "InvalidPageIndexError",
    "LocalStorage",
    "MalformedInputError",
    "MemoryStorage",
    "NotFoundError",
    "S3Storage",
]
