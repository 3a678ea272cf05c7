from fastapi import APIRouter, Depends

from app.api.deps import get_storage_backend
from app.core.config import settings
from app.services.storage import StorageBackend

router = APIRouter(tags=["health"])


@router.get("/live")
def live() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready")
def ready(storage: StorageBackend = Depends(get_storage_backend)) -> dict[str, str]:
    # consulta uma chave qualquer só para garantir que o backend responde
    storage.exists("health/ready")
    return {"status": "ready", "storage": settings.storage_backend}
