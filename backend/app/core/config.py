from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Configurações globais do DocStacker.
    Lê automaticamente variáveis do arquivo .env (prefixo DOCSTACKER_).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DOCSTACKER_",
        extra="ignore",
    )

    # Projeto
    project_name: str = "DocStacker API"
    api_prefix: str = "/api"
    debug: bool = False

    # CORS
    allowed_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8080",
        "http://127.0.0.1:8080",
    ]

    # Armazenamento: memory | local | s3
    storage_backend: str = "memory"
    storage_path: str = "_storage"

    # Armazenamento S3 / MinIO
    s3_endpoint_url: Optional[str] = None
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_region: str = "us-east-1"
    s3_bucket_documents: str = "docstacker-documents"

    # Rasterização / composição do papel timbrado
    render_dpi: float = 150.0
    white_threshold: int = 250
    jpeg_quality: int = 90
    letterhead_workers: int = 1

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def render_scale(self) -> float:
        return self.render_dpi / 72.0


@lru_cache
def get_settings() -> Settings:
    """Retorna a instância de configurações globais (cacheada)."""
    return Settings()


settings = get_settings()
