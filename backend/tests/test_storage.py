import io

import pytest
from botocore.exceptions import ClientError

from app.core.config import Settings
from app.models.document import AnchorLogic, SignatureField
from app.services.storage import DocumentRepository, LocalStorage, MemoryStorage, S3Storage, get_storage


class FakeS3Client:
    """Subconjunto do cliente boto3 usado pelo S3Storage."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}

    @staticmethod
    def _missing(operation: str) -> ClientError:
        return ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, operation)

    def put_object(self, Bucket: str, Key: str, Body: bytes) -> dict:
        self.objects[(Bucket, Key)] = Body
        return {}

    def get_object(self, Bucket: str, Key: str) -> dict:
        if (Bucket, Key) not in self.objects:
            raise self._missing("GetObject")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}

    def head_object(self, Bucket: str, Key: str) -> dict:
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {}

    def delete_object(self, Bucket: str, Key: str) -> dict:
        self.objects.pop((Bucket, Key), None)
        return {}


def _exercise_backend(storage) -> None:
    assert not storage.exists("documents/a.pdf")
    with pytest.raises(KeyError):
        storage.get("documents/a.pdf")

    storage.put("documents/a.pdf", b"first")
    storage.put("documents/a.pdf", b"second")
    assert storage.exists("documents/a.pdf")
    assert storage.get("documents/a.pdf") == b"second"

    storage.delete("documents/a.pdf")
    storage.delete("documents/a.pdf")
    assert not storage.exists("documents/a.pdf")


def test_memory_storage() -> None:
    _exercise_backend(MemoryStorage())


def test_local_storage(tmp_path) -> None:
    storage = LocalStorage(base_dir=tmp_path / "store")

    _exercise_backend(storage)

    storage.put("fields/doc.json", b"[]")
    assert (tmp_path / "store" / "fields" / "doc.json").read_bytes() == b"[]"


def test_local_storage_rejects_keys_outside_base_dir(tmp_path) -> None:
    storage = LocalStorage(base_dir=tmp_path / "store")

    with pytest.raises(KeyError):
        storage.put("../escape.pdf", b"data")


def test_s3_storage() -> None:
    client = FakeS3Client()
    storage = S3Storage(bucket="docs", client=client, prefix="docstacker/")

    _exercise_backend(storage)

    storage.put("stamps/x.bin", b"png")
    assert client.objects[("docs", "docstacker/stamps/x.bin")] == b"png"


def test_s3_storage_propagates_other_errors() -> None:
    class DeniedClient(FakeS3Client):
        def get_object(self, Bucket: str, Key: str) -> dict:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "GetObject")

    storage = S3Storage(bucket="docs", client=DeniedClient())

    with pytest.raises(ClientError):
        storage.get("documents/a.pdf")


def test_repository_round_trip() -> None:
    repository = DocumentRepository(MemoryStorage())
    field = SignatureField(
        id="f1",
        fieldType="initials",
        pageNumber=1,
        xNorm=0.9,
        yNorm=0.2,
        widthNorm=0.3,
        heightNorm=0.1,
        signerRole="witness",
        required=True,
        anchorLogic="PAGE_N",
    )

    assert repository.load_document("doc") is None
    assert repository.load_fields("doc") == []
    assert repository.load_stamp("doc") is None

    repository.save_document("doc", b"%PDF")
    repository.save_fields("doc", [field])
    repository.save_stamp("doc", b"stamp")

    assert repository.has_document("doc")
    assert repository.load_document("doc") == b"%PDF"
    assert repository.load_stamp("doc") == b"stamp"
    loaded = repository.load_fields("doc")
    assert loaded == [field]
    assert loaded[0].anchor_logic is AnchorLogic.PAGE_N


def test_get_storage_selects_backend(tmp_path) -> None:
    assert isinstance(get_storage(Settings(storage_backend="memory")), MemoryStorage)
    assert get_storage(Settings(storage_backend="memory")) is get_storage(Settings(storage_backend="MEMORY"))

    local = get_storage(Settings(storage_backend="local", storage_path=str(tmp_path / "docs")))
    assert isinstance(local, LocalStorage)

    s3 = get_storage(
        Settings(
            storage_backend="s3",
            s3_endpoint_url="http://localhost:9000",
            s3_access_key="key",
            s3_secret_key="secret",
            s3_bucket_documents="bucket",
        )
    )
    assert isinstance(s3, S3Storage)
    assert s3.bucket == "bucket"


@pytest.mark.parametrize(
    "overrides",
    [
        {"storage_backend": "ftp"},
        {"storage_backend": "s3", "s3_access_key": None, "s3_secret_key": None},
    ],
)
def test_get_storage_rejects_invalid_configuration(overrides) -> None:
    with pytest.raises(ValueError):
        get_storage(Settings(**overrides))
