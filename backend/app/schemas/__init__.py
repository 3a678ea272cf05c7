from app.schemas.document import (
    DocumentInfoResponse,
    DocumentRefResponse,
    FieldsRequest,
    FieldsResponse,
    SignatureData,
    SignRequest,
    StackRequest,
    StackResponse,
)

__all__ = [
    "DocumentInfoResponse",
    "DocumentRefResponse",
    "FieldsRequest",
    "FieldsResponse",
    "SignatureData",
    "SignRequest",
    "StackRequest",
    "StackResponse",
]
