from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import ClientError

from app.core.config import Settings, settings as default_settings
from app.models.document import SignatureField


class StorageBackend(Protocol):
    def put(self, key: str, data: bytes) -> None:
        ...

    def get(self, key: str) -> bytes:  # raises KeyError
        ...

    def delete(self, key: str) -> None:
        ...

    def exists(self, key: str) -> bool:
        ...


@dataclass
class MemoryStorage:
    _items: dict[str, bytes] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def put(self, key: str, data: bytes) -> None:
        with self._lock:
            self._items[key] = bytes(data)

    def get(self, key: str) -> bytes:
        with self._lock:
            return self._items[key]

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


@dataclass
class LocalStorage:
    base_dir: Path

    def __post_init__(self) -> None:
        self.base_dir = Path(self.base_dir).expanduser().resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if not path.is_relative_to(self.base_dir):
            raise KeyError(key)
        return path

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # grava em arquivo temporário e renomeia para nunca deixar escrita parcial
        tmp_path = path.with_name(f".{path.name}.tmp")
        tmp_path.write_bytes(data)
        tmp_path.replace(path)

    def get(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise KeyError(key)
        return path.read_bytes()

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()


@dataclass
class S3Storage:
    bucket: str
    client: Any
    prefix: str = ""

    def _key(self, key: str) -> str:
        return f"{self.prefix.strip('/')}/{key}" if self.prefix.strip("/") else key

    def put(self, key: str, data: bytes) -> None:
        self.client.put_object(Bucket=self.bucket, Key=self._key(key), Body=data)

    def get(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self._key(key))
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in {"NoSuchKey", "404"}:
                raise KeyError(key) from exc
            raise
        body = response.get("Body")
        return body.read() if body else b""

    def delete(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=self._key(key))

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._key(key))
        except ClientError:
            return False
        return True


_memory_storage = MemoryStorage()


def get_storage(config: Settings | None = None) -> StorageBackend:
    config = config or default_settings
    backend = (config.storage_backend or "memory").strip().lower()

    if backend == "local":
        return LocalStorage(base_dir=Path(config.storage_path))

    if backend == "s3":
        if not (config.s3_access_key and config.s3_secret_key and config.s3_bucket_documents):
            raise ValueError("S3 storage requires s3_access_key, s3_secret_key and s3_bucket_documents")
        client = boto3.client(
            "s3",
            endpoint_url=config.s3_endpoint_url,
            aws_access_key_id=config.s3_access_key,
            aws_secret_access_key=config.s3_secret_key,
            config=BotoConfig(signature_version="s3v4"),
            region_name=config.s3_region,
        )
        return S3Storage(bucket=config.s3_bucket_documents, client=client)

    if backend != "memory":
        raise ValueError(f"Unknown storage backend: {backend!r}")
    # os mapas em memória são compartilhados pelo processo inteiro
    return _memory_storage


class DocumentRepository:
    """Mapeia documentos, campos e carimbos para chaves do StorageBackend."""

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage

    @staticmethod
    def _document_key(document_id: str) -> str:
        return f"documents/{document_id}.pdf"

    @staticmethod
    def _fields_key(document_id: str) -> str:
        return f"fields/{document_id}.json"

    @staticmethod
    def _stamp_key(document_id: str) -> str:
        return f"stamps/{document_id}.bin"

    def has_document(self, document_id: str) -> bool:
        return self.storage.exists(self._document_key(document_id))

    def load_document(self, document_id: str) -> bytes | None:
        try:
            return self.storage.get(self._document_key(document_id))
        except KeyError:
            return None

    def save_document(self, document_id: str, data: bytes) -> None:
        self.storage.put(self._document_key(document_id), data)

    def load_fields(self, document_id: str) -> list[SignatureField]:
        try:
            raw = self.storage.get(self._fields_key(document_id))
        except KeyError:
            return []
        return [SignatureField.model_validate(item) for item in json.loads(raw)]

    def save_fields(self, document_id: str, fields: list[SignatureField]) -> None:
        payload = [item.model_dump(mode="json", by_alias=True) for item in fields]
        self.storage.put(self._fields_key(document_id), json.dumps(payload).encode("utf-8"))

    def load_stamp(self, document_id: str) -> bytes | None:
        try:
            return self.storage.get(self._stamp_key(document_id))
        except KeyError:
            return None

    def save_stamp(self, document_id: str, data: bytes) -> None:
        self.storage.put(self._stamp_key(document_id), data)
