from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FieldType(str, Enum):
    SIGNATURE = "signature"
    INITIALS = "initials"
    DATE = "date"
    TEXT = "text"


class AnchorLogic(str, Enum):
    FIRST_PAGE = "FIRST_PAGE"
    LAST_PAGE = "LAST_PAGE"
    ALL_PAGES = "ALL_PAGES"
    PAGE_N = "PAGE_N"


class SignatureField(BaseModel):
    """
    Posição de um campo de assinatura em coordenadas normalizadas.

    Origem no canto superior esquerdo, Y crescendo para baixo, valores relativos
    à largura/altura da página. Nenhum clamp é aplicado aqui: x + width pode
    passar de 1; o ajuste às margens acontece só no desenho.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    field_type: FieldType = Field(default=FieldType.SIGNATURE, alias="fieldType")
    page_number: int = Field(default=0, ge=0, alias="pageNumber")
    x_norm: float = Field(ge=0.0, allow_inf_nan=False, alias="xNorm")
    y_norm: float = Field(ge=0.0, allow_inf_nan=False, alias="yNorm")
    width_norm: float = Field(ge=0.0, allow_inf_nan=False, alias="widthNorm")
    height_norm: float = Field(ge=0.0, allow_inf_nan=False, alias="heightNorm")
    signer_role: str = Field(default="", alias="signerRole")
    required: bool = False
    anchor_logic: Optional[AnchorLogic] = Field(default=None, alias="anchorLogic")

    @field_validator("field_type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("anchor_logic", mode="before")
    @classmethod
    def normalize_anchor(cls, value):
        if isinstance(value, str):
            cleaned = value.strip().upper()
            return cleaned or None
        return value
