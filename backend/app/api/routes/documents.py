from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_pipeline
from app.core.logging_setup import logger
from app.models.document import SignatureField
from app.schemas.document import (
    DocumentInfoResponse,
    DocumentRefResponse,
    FieldsRequest,
    FieldsResponse,
    SignRequest,
    StackRequest,
    StackResponse,
)
from app.services.errors import MalformedInputError, NotFoundError
from app.services.payloads import decode_base64_payload
from app.services.pipeline import AssemblyPipeline

router = APIRouter(tags=["documents"])


async def _read_upload(upload: UploadFile | None) -> bytes | None:
    if upload is None:
        return None
    contents = await upload.read()
    await upload.close()
    return contents or None


def _decode_optional(value: str | None, label: str) -> bytes | None:
    if not value:
        return None
    return decode_base64_payload(value, label=label)


def _pdf_response(pdf_bytes: bytes, filename: str, disposition: str) -> Response:
    return Response(
        pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'{disposition}; filename="{filename}"'},
    )


# ===============================================================
# EMPILHAMENTO
# ===============================================================
@router.post("/stack", response_model=StackResponse)
async def stack_documents(
    cover: UploadFile = File(...),
    body: UploadFile = File(...),
    letterhead: Optional[UploadFile] = File(None),
    terms: Optional[UploadFile] = File(None),
    stamp: Optional[UploadFile] = File(None),
    pipeline: AssemblyPipeline = Depends(get_pipeline),
) -> StackResponse:
    logger.info(
        f"Received stack request - cover: {cover.filename}, body: {body.filename}, "
        f"stamp: {stamp.filename if stamp else 'none'}"
    )
    parts = {
        "cover": await _read_upload(cover),
        "body": await _read_upload(body),
        "letterhead": await _read_upload(letterhead),
        "terms": await _read_upload(terms),
        "stamp": await _read_upload(stamp),
    }
    try:
        result = await run_in_threadpool(lambda: pipeline.stack(**parts))
    except MalformedInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return StackResponse(
        document_id=result.document_id,
        page_count=result.page_count,
        message="Document stacked successfully",
    )


@router.post("/stack/json", response_model=StackResponse)
def stack_documents_json(
    payload: StackRequest,
    pipeline: AssemblyPipeline = Depends(get_pipeline),
) -> StackResponse:
    try:
        result = pipeline.stack(
            cover=decode_base64_payload(payload.cover_base64, label="cover"),
            body=decode_base64_payload(payload.body_base64, label="body"),
            letterhead=_decode_optional(payload.letterhead_base64, "letterhead"),
            terms=_decode_optional(payload.terms_base64, "terms"),
            stamp=_decode_optional(payload.stamp_base64, "stamp"),
        )
    except MalformedInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return StackResponse(
        document_id=result.document_id,
        page_count=result.page_count,
        message="Document stacked successfully",
    )


# ===============================================================
# CONTEÚDO DO DOCUMENTO
# ===============================================================
@router.get("/documents/{document_id}/preview")
def get_preview(document_id: str, pipeline: AssemblyPipeline = Depends(get_pipeline)) -> Response:
    logger.info(f"Getting preview for document: {document_id}")
    try:
        pdf_bytes = pipeline.get_document(document_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found") from exc
    return _pdf_response(pdf_bytes, "preview.pdf", "inline")


@router.get("/documents/{document_id}/download")
def download_document(document_id: str, pipeline: AssemblyPipeline = Depends(get_pipeline)) -> Response:
    logger.info(f"Downloading document: {document_id}")
    try:
        pdf_bytes = pipeline.get_document(document_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found") from exc
    return _pdf_response(pdf_bytes, "document.pdf", "attachment")


@router.get("/documents/{document_id}/info", response_model=DocumentInfoResponse)
def get_document_info(document_id: str, pipeline: AssemblyPipeline = Depends(get_pipeline)) -> DocumentInfoResponse:
    try:
        info = pipeline.info(document_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found") from exc
    return DocumentInfoResponse(
        document_id=info.document_id,
        page_count=info.page_count,
        page_width=info.page_width,
        page_height=info.page_height,
    )


@router.get("/documents/{document_id}/pages/{page_number}/image")
def get_page_image(
    document_id: str,
    page_number: int,
    pipeline: AssemblyPipeline = Depends(get_pipeline),
) -> Response:
    try:
        image = pipeline.render_page(document_id, page_number)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found") from exc
    except MalformedInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return Response(image, media_type="image/png", headers={"Cache-Control": "max-age=300"})


# ===============================================================
# CAMPOS DE ASSINATURA
# ===============================================================
@router.post("/documents/{document_id}/fields", response_model=FieldsResponse)
def save_fields(
    document_id: str,
    payload: FieldsRequest,
    pipeline: AssemblyPipeline = Depends(get_pipeline),
) -> FieldsResponse:
    logger.info(f"Saving {len(payload.fields)} fields for document: {document_id}")
    try:
        count = pipeline.save_fields(document_id, payload.fields)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found") from exc
    return FieldsResponse(document_id=document_id, field_count=count, message="Fields saved successfully")


@router.get("/documents/{document_id}/fields", response_model=List[SignatureField])
def get_fields(document_id: str, pipeline: AssemblyPipeline = Depends(get_pipeline)) -> List[SignatureField]:
    return pipeline.get_fields(document_id)


# ===============================================================
# ASSINATURA / FINALIZAÇÃO
# ===============================================================
@router.post("/documents/{document_id}/sign", response_model=DocumentRefResponse)
def sign_document(
    document_id: str,
    payload: SignRequest,
    pipeline: AssemblyPipeline = Depends(get_pipeline),
) -> DocumentRefResponse:
    logger.info(f"Signing document: {document_id} with {len(payload.signatures)} signatures")
    signatures = {field_id: data.image_base64 for field_id, data in payload.signatures.items()}
    try:
        signed_document_id = pipeline.sign(document_id, signatures)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found") from exc
    except MalformedInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return DocumentRefResponse(document_id=signed_document_id, message="Document signed successfully")


@router.post("/documents/{document_id}/finalize", response_model=DocumentRefResponse)
def finalize_document(document_id: str, pipeline: AssemblyPipeline = Depends(get_pipeline)) -> DocumentRefResponse:
    logger.info(f"Finalizing document: {document_id}")
    try:
        final_document_id = pipeline.finalize(document_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found") from exc
    except MalformedInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return DocumentRefResponse(document_id=final_document_id, message="Document finalized successfully")
