from typing import Dict, List, Optional

from pydantic import Field

from app.models.document import SignatureField
from app.schemas.common import CamelModel, MessageModel


# -------------------------------------------------------------------------
# Stacking
# -------------------------------------------------------------------------

class StackRequest(CamelModel):
    """Alternativa JSON ao upload multipart: cada parte em base64."""

    letterhead_base64: Optional[str] = None
    cover_base64: str
    body_base64: str
    terms_base64: Optional[str] = None
    stamp_base64: Optional[str] = None


class StackResponse(MessageModel):
    document_id: str
    page_count: int


# -------------------------------------------------------------------------
# Fields
# -------------------------------------------------------------------------

class FieldsRequest(CamelModel):
    fields: List[SignatureField] = Field(default_factory=list)


class FieldsResponse(MessageModel):
    document_id: str
    field_count: int


# -------------------------------------------------------------------------
# Signing / finalization
# -------------------------------------------------------------------------

class SignatureData(CamelModel):
    image_base64: str
    field_id: Optional[str] = None


class SignRequest(CamelModel):
    signatures: Dict[str, SignatureData] = Field(default_factory=dict)


class DocumentRefResponse(MessageModel):
    document_id: str


class DocumentInfoResponse(CamelModel):
    document_id: str
    page_count: int
    page_width: float
    page_height: float
