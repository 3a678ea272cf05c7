"""
Posicionamento de assinaturas e carimbos sobre as páginas.

Com carimbo, ele é desenhado primeiro (fundo) e a assinatura por cima,
deslocada para o canto inferior direito do carimbo.
"""

from __future__ import annotations

import io
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from PIL import Image, UnidentifiedImageError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from app.models.document import SignatureField
from app.services.coordinates import PointRect, to_point_rect
from app.services.errors import InvalidPageIndexError, MalformedInputError
from app.services.payloads import decode_base64_payload
from app.services.raster import flatten_forms, load_pdf, merge_overlays, page_boxes

logger = logging.getLogger("docstacker.placement")

PAGE_MARGIN = 5.0
STAMP_WIDTH_FACTOR = 1.4
STAMP_MAX_HEIGHT_FACTOR = 2.5
SIGNATURE_OFFSET_X = 0.7
SIGNATURE_OFFSET_Y = 0.2


@dataclass(frozen=True)
class DrawCommand:
    image: bytes
    rect: PointRect
    layer: str = "signature"


def normalize_image(data: bytes | None, *, label: str = "image") -> Image.Image:
    if not data:
        raise MalformedInputError(f"{label} is empty")
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise MalformedInputError(f"{label} is not a valid image: {exc}") from exc
    return image


def image_size(data: bytes, *, label: str = "image") -> tuple[int, int]:
    return normalize_image(data, label=label).size


def decode_signature_image(payload: str | None) -> bytes:
    """Decodifica base64 (com ou sem prefixo data URI) e garante que o resultado é uma imagem."""
    data = decode_base64_payload(payload, label="signature image")
    normalize_image(data, label="signature image")
    return data


def stamp_rect(
    page_width: float,
    page_height: float,
    field_rect: PointRect,
    stamp_size: tuple[int, int],
) -> PointRect:
    pixel_width, pixel_height = stamp_size
    aspect_ratio = pixel_width / pixel_height

    stamp_width = field_rect.width * STAMP_WIDTH_FACTOR
    stamp_height = stamp_width / aspect_ratio
    max_height = field_rect.height * STAMP_MAX_HEIGHT_FACTOR
    if stamp_height > max_height:
        stamp_height = max_height
        stamp_width = stamp_height * aspect_ratio

    stamp_x = field_rect.x
    stamp_y = field_rect.y
    if stamp_x < PAGE_MARGIN:
        stamp_x = PAGE_MARGIN
    if stamp_y < PAGE_MARGIN:
        stamp_y = PAGE_MARGIN
    if stamp_x + stamp_width > page_width - PAGE_MARGIN:
        stamp_x = page_width - stamp_width - PAGE_MARGIN
    if stamp_y + stamp_height > page_height - PAGE_MARGIN:
        stamp_y = page_height - stamp_height - PAGE_MARGIN
    # carimbo maior que a área útil: a margem esquerda/inferior prevalece
    stamp_x = max(stamp_x, PAGE_MARGIN)
    stamp_y = max(stamp_y, PAGE_MARGIN)

    return PointRect(stamp_x, stamp_y, stamp_width, stamp_height)


def place(
    page_width: float,
    page_height: float,
    field_rect: PointRect,
    signature: bytes,
    stamp: Optional[bytes] = None,
) -> list[DrawCommand]:
    """Retorna os desenhos na ordem de pintura (o último fica por cima)."""
    if not stamp:
        return [DrawCommand(signature, field_rect)]

    background = stamp_rect(page_width, page_height, field_rect, image_size(stamp, label="stamp"))
    signature_rect = PointRect(
        x=background.x + (background.width - field_rect.width) * SIGNATURE_OFFSET_X,
        # PDF: Y cresce para cima, 20% a partir da base do carimbo
        y=background.y + (background.height - field_rect.height) * SIGNATURE_OFFSET_Y,
        width=field_rect.width,
        height=field_rect.height,
    )
    logger.debug("Stamp (background): %s; signature (overlay): %s", background, signature_rect)
    return [DrawCommand(stamp, background, layer="stamp"), DrawCommand(signature, signature_rect)]


def _render_overlay(page_size: tuple[float, float], commands: Sequence[DrawCommand]) -> bytes:
    overlay_stream = io.BytesIO()
    c = canvas.Canvas(overlay_stream, pagesize=page_size)
    for command in commands:
        rect = command.rect
        c.drawImage(
            ImageReader(io.BytesIO(command.image)),
            rect.x,
            rect.y,
            width=rect.width,
            height=rect.height,
            mask="auto",
        )
    c.save()
    return overlay_stream.getvalue()


def apply_signatures(
    pdf: bytes,
    fields: Sequence[SignatureField],
    images: Mapping[str, bytes],
    stamp: Optional[bytes] = None,
) -> bytes:
    """
    Aplica as imagens de assinatura (e o carimbo, se houver) nos campos.

    Campos sem imagem são ignorados. Todos os desenhos de uma página vão para um
    único overlay, mantendo a ordem dos campos: carimbo antes da sua assinatura,
    campos posteriores por cima dos anteriores.
    """
    logger.info("Applying %s signatures to document, stamp: %s", len(images), "yes" if stamp else "no")
    boxes = page_boxes(load_pdf(pdf))

    page_commands: dict[int, list[DrawCommand]] = defaultdict(list)
    for field in fields:
        signature = images.get(field.id)
        if signature is None:
            logger.debug("No signature supplied for field %s, skipping", field.id)
            continue
        if field.page_number >= len(boxes):
            raise InvalidPageIndexError(field.page_number, len(boxes))

        page_width, page_height = boxes[field.page_number]
        field_rect = to_point_rect(field, page_width, page_height)
        logger.info(
            "Applying signature %s to page %s at (%s, %s)",
            field.id,
            field.page_number,
            field.x_norm,
            field.y_norm,
        )
        page_commands[field.page_number].extend(place(page_width, page_height, field_rect, signature, stamp))

    if not page_commands:
        return pdf

    overlays = {index: _render_overlay(boxes[index], commands) for index, commands in page_commands.items()}
    return merge_overlays(pdf, overlays)


def flatten(pdf: bytes) -> bytes:
    logger.info("Flattening PDF document")
    return flatten_forms(pdf)
