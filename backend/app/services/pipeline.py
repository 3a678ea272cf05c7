from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from app.models.document import SignatureField
from app.services.errors import MalformedInputError, NotFoundError
from app.services.letterhead import apply_underlay
from app.services.placement import apply_signatures, decode_signature_image, flatten, normalize_image
from app.services.raster import load_pdf, page_box, render_page_png
from app.services.stitcher import stitch
from app.services.storage import DocumentRepository

logger = logging.getLogger("docstacker.pipeline")

SIGNED_SUFFIX = "-signed"
FINAL_SUFFIX = "-final"


def signed_id(document_id: str) -> str:
    return f"{document_id}{SIGNED_SUFFIX}"


def final_id(document_id: str) -> str:
    return f"{document_id.replace(SIGNED_SUFFIX, '')}{FINAL_SUFFIX}"


@dataclass(frozen=True)
class StackResult:
    document_id: str
    page_count: int


@dataclass(frozen=True)
class DocumentInfo:
    document_id: str
    page_count: int
    page_width: float
    page_height: float


class AssemblyPipeline:
    """
    Orquestra empilhamento, assinatura e finalização.

    Cada transição grava um novo snapshot (<id>, <id>-signed, <id>-final); os
    bytes existentes nunca são sobrescritos quando uma etapa falha.
    """

    def __init__(self, repository: DocumentRepository) -> None:
        self.repository = repository

    def _require_document(self, document_id: str) -> bytes:
        data = self.repository.load_document(document_id)
        if data is None:
            raise NotFoundError("Document not found", document_id=document_id)
        return data

    def assemble(
        self,
        *,
        cover: Optional[bytes],
        body: Optional[bytes],
        letterhead: Optional[bytes] = None,
        terms: Optional[bytes] = None,
    ) -> bytes:
        logger.info("Starting document assembly")
        stitched = stitch([cover, body, terms])
        assembled = apply_underlay(stitched, letterhead)
        logger.info("Document assembly complete")
        return assembled

    def stack(
        self,
        *,
        cover: Optional[bytes],
        body: Optional[bytes],
        letterhead: Optional[bytes] = None,
        terms: Optional[bytes] = None,
        stamp: Optional[bytes] = None,
    ) -> StackResult:
        if not cover:
            raise MalformedInputError("Cover PDF is required")
        if not body:
            raise MalformedInputError("Body PDF is required")
        if stamp:
            normalize_image(stamp, label="stamp")

        assembled = self.assemble(cover=cover, body=body, letterhead=letterhead, terms=terms)
        page_count = len(load_pdf(assembled).pages)

        document_id = str(uuid.uuid4())
        if stamp:
            self.repository.save_stamp(document_id, stamp)
            logger.info("Stored stamp for document: %s", document_id)
        # o documento é gravado por último: sem ele, o id não existe para o cliente
        self.repository.save_document(document_id, assembled)
        logger.info("Stacked document %s with %s pages", document_id, page_count)
        return StackResult(document_id=document_id, page_count=page_count)

    def get_document(self, document_id: str) -> bytes:
        return self._require_document(document_id)

    def save_fields(self, document_id: str, fields: Sequence[SignatureField]) -> int:
        if not self.repository.has_document(document_id):
            raise NotFoundError("Document not found", document_id=document_id)
        for item in fields:
            logger.info(
                "Field %s - type: %s, page: %s, xNorm: %s, yNorm: %s, widthNorm: %s, heightNorm: %s",
                item.id,
                item.field_type.value,
                item.page_number,
                item.x_norm,
                item.y_norm,
                item.width_norm,
                item.height_norm,
            )
        self.repository.save_fields(document_id, list(fields))
        return len(fields)

    def get_fields(self, document_id: str) -> list[SignatureField]:
        return self.repository.load_fields(document_id)

    def sign(self, document_id: str, signatures: Mapping[str, str]) -> str:
        pdf = self._require_document(document_id)
        if not signatures:
            raise MalformedInputError("At least one signature is required", document_id=document_id)

        images = {field_id: decode_signature_image(payload) for field_id, payload in signatures.items()}
        fields = self.repository.load_fields(document_id)
        stamp = self.repository.load_stamp(document_id)
        if stamp:
            logger.info("Using stamp for document: %s", document_id)

        signed_pdf = apply_signatures(pdf, fields, images, stamp)

        target_id = signed_id(document_id)
        self.repository.save_document(target_id, signed_pdf)
        logger.info("Signed document %s -> %s", document_id, target_id)
        return target_id

    def finalize(self, document_id: str) -> str:
        pdf = self._require_document(document_id)
        final_pdf = flatten(pdf)

        target_id = final_id(document_id)
        self.repository.save_document(target_id, final_pdf)
        logger.info("Finalized document %s -> %s", document_id, target_id)
        return target_id

    def info(self, document_id: str) -> DocumentInfo:
        pdf = self._require_document(document_id)
        count = len(load_pdf(pdf).pages)
        width, height = page_box(pdf, 0) if count else (0.0, 0.0)
        return DocumentInfo(document_id=document_id, page_count=count, page_width=width, page_height=height)

    def render_page(self, document_id: str, page_number: int) -> bytes:
        pdf = self._require_document(document_id)
        logger.info("Rendering page %s for document: %s", page_number, document_id)
        return render_page_png(pdf, page_number)
