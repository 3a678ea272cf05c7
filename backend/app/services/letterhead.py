"""
Aplicação do papel timbrado como fundo (underlay) em todas as páginas.

Cada página é rasterizada, os pixels brancos viram transparentes e o resultado
é composto sobre o timbrado rasterizado. A página final é uma imagem JPEG que
ocupa a media box original, portanto o texto deixa de ser selecionável.
"""

from __future__ import annotations

import io
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np
from PIL import Image

from app.core.config import settings
from app.services.raster import image_pages_to_pdf, load_pdf, page_boxes, render_page, render_pages

logger = logging.getLogger("docstacker.letterhead")

WHITE_THRESHOLD = 250


def white_key(image: Image.Image, threshold: int = WHITE_THRESHOLD) -> Image.Image:
    """
    Torna transparentes os pixels cujos canais R, G e B são todos >= threshold.
    Todos os outros pixels ficam totalmente opacos.
    """
    pixels = np.asarray(image.convert("RGB"), dtype=np.uint8)
    keyed = np.all(pixels >= threshold, axis=2)

    rgba = np.empty((pixels.shape[0], pixels.shape[1], 4), dtype=np.uint8)
    rgba[..., :3] = pixels
    rgba[..., 3] = 255
    rgba[keyed] = (255, 255, 255, 0)
    return Image.fromarray(rgba)


def _centered(outer: tuple[int, int], inner: tuple[int, int]) -> tuple[int, int]:
    return (outer[0] - inner[0]) // 2, (outer[1] - inner[1]) // 2


def composite_page(
    letterhead: Image.Image,
    page: Image.Image,
    threshold: int = WHITE_THRESHOLD,
) -> Image.Image:
    width = max(letterhead.width, page.width)
    height = max(letterhead.height, page.height)

    composite = Image.new("RGBA", (width, height), (255, 255, 255, 255))
    composite.paste(letterhead.convert("RGBA"), _centered((width, height), letterhead.size))
    composite.alpha_composite(white_key(page, threshold), dest=_centered((width, height), page.size))

    # o canvas é opaco, então descartar o alfa equivale a compor sobre branco
    return composite.convert("RGB")


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    output = io.BytesIO()
    image.save(output, format="JPEG", quality=quality)
    return output.getvalue()


def apply_underlay(
    document: bytes,
    letterhead: Optional[bytes],
    *,
    scale: float | None = None,
    threshold: int | None = None,
    quality: int | None = None,
    workers: int | None = None,
) -> bytes:
    if not letterhead:
        logger.info("No letterhead supplied, skipping underlay")
        return document

    scale = scale or settings.render_scale
    threshold = threshold if threshold is not None else settings.white_threshold
    quality = quality or settings.jpeg_quality
    workers = workers or settings.letterhead_workers

    boxes = page_boxes(load_pdf(document))
    if not boxes:
        return document
    load_pdf(letterhead, label="letterhead")

    logger.info("Applying letterhead underlay to %s pages using image composition", len(boxes))
    letterhead_image = render_page(letterhead, 0, scale, label="letterhead")
    logger.info("Letterhead rendered: %sx%s pixels", letterhead_image.width, letterhead_image.height)

    def compose(page_image: Image.Image) -> bytes:
        return encode_jpeg(composite_page(letterhead_image, page_image, threshold), quality)

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            # map preserva a ordem de entrada
            jpegs = list(executor.map(compose, render_pages(document, scale)))
    else:
        jpegs = [compose(page_image) for page_image in render_pages(document, scale)]

    result = image_pages_to_pdf(list(zip(jpegs, boxes)))
    logger.info("Letterhead applied to %s pages, final size: %s bytes", len(jpegs), len(result))
    return result
