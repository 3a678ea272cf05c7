from typing import Annotated

from fastapi import Depends

from app.core.config import settings
from app.services.pipeline import AssemblyPipeline
from app.services.storage import DocumentRepository, StorageBackend, get_storage


def get_storage_backend() -> StorageBackend:
    return get_storage(settings)


def get_repository(storage: Annotated[StorageBackend, Depends(get_storage_backend)]) -> DocumentRepository:
    return DocumentRepository(storage)


def get_pipeline(repository: Annotated[DocumentRepository, Depends(get_repository)]) -> AssemblyPipeline:
    return AssemblyPipeline(repository)
