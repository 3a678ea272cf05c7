"""
Ponte entre o motor de composição e as bibliotecas de PDF.

pypdf cuida de leitura, cópia de páginas e mesclagem de overlays; PyMuPDF
rasteriza páginas; reportlab gera páginas novas a partir de imagens. Os demais
serviços só conversam com PDFs através deste módulo.
"""

from __future__ import annotations

import io
import logging
from typing import Iterable, Sequence

import fitz  # PyMuPDF
from PIL import Image
from pypdf import PdfReader, PdfWriter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from app.core.config import settings
from app.services.errors import InvalidPageIndexError, MalformedInputError

logger = logging.getLogger("docstacker.raster")

PREVIEW_DPI = 150.0


def load_pdf(data: bytes | None, *, label: str = "document") -> PdfReader:
    if not data:
        raise MalformedInputError(f"{label} is empty")
    try:
        reader = PdfReader(io.BytesIO(data))
        # força o parse da árvore de páginas
        len(reader.pages)
    except Exception as exc:
        raise MalformedInputError(f"{label} is not a valid PDF: {exc}") from exc
    return reader


def page_count(data: bytes) -> int:
    return len(load_pdf(data).pages)


def page_box(data: bytes, index: int = 0) -> tuple[float, float]:
    reader = load_pdf(data)
    _check_index(index, len(reader.pages))
    page = reader.pages[index]
    return float(page.mediabox.width), float(page.mediabox.height)


def page_boxes(reader: PdfReader) -> list[tuple[float, float]]:
    return [(float(page.mediabox.width), float(page.mediabox.height)) for page in reader.pages]


def write_pdf(writer: PdfWriter) -> bytes:
    output = io.BytesIO()
    writer.write(output)
    return output.getvalue()


def _check_index(index: int, count: int) -> None:
    if index < 0 or index >= count:
        raise InvalidPageIndexError(index, count)


def _open_fitz(data: bytes, label: str) -> fitz.Document:
    try:
        return fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise MalformedInputError(f"{label} could not be rendered: {exc}") from exc


def _pixmap_to_image(pix: fitz.Pixmap) -> Image.Image:
    return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)


def render_page(data: bytes, index: int, scale: float, *, label: str = "document") -> Image.Image:
    """Rasteriza uma página em RGB na escala indicada (1.0 = 72 DPI)."""
    with _open_fitz(data, label) as doc:
        _check_index(index, doc.page_count)
        pix = doc.load_page(index).get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        return _pixmap_to_image(pix)


def render_pages(data: bytes, scale: float, *, label: str = "document") -> Iterable[Image.Image]:
    """Rasteriza todas as páginas, em ordem. PyMuPDF não é thread-safe, então é sequencial."""
    with _open_fitz(data, label) as doc:
        matrix = fitz.Matrix(scale, scale)
        for page in doc:
            yield _pixmap_to_image(page.get_pixmap(matrix=matrix, alpha=False))


def render_page_png(data: bytes, index: int, *, dpi: float | None = None) -> bytes:
    scale = (dpi or settings.render_dpi or PREVIEW_DPI) / 72.0
    image = render_page(data, index, scale)
    output = io.BytesIO()
    image.save(output, format="PNG")
    logger.debug(
        "Rendered page %s as image: %sx%s pixels, %s bytes",
        index,
        image.width,
        image.height,
        output.tell(),
    )
    return output.getvalue()


def image_pages_to_pdf(pages: Sequence[tuple[bytes, tuple[float, float]]]) -> bytes:
    """Cria um PDF em que cada imagem ocupa a página inteira do tamanho informado (pontos)."""
    pdf_buffer = io.BytesIO()
    pdf_canvas = canvas.Canvas(pdf_buffer)
    for image_bytes, (width, height) in pages:
        pdf_canvas.setPageSize((width, height))
        pdf_canvas.drawImage(ImageReader(io.BytesIO(image_bytes)), 0, 0, width=width, height=height)
        pdf_canvas.showPage()
    pdf_canvas.save()
    return pdf_buffer.getvalue()


def merge_overlays(data: bytes, overlays: dict[int, bytes]) -> bytes:
    """Mescla um overlay de uma página sobre cada página indicada, preservando o restante."""
    reader = load_pdf(data)
    writer = PdfWriter(clone_from=reader)
    for index in sorted(overlays):
        _check_index(index, len(writer.pages))
        overlay_reader = PdfReader(io.BytesIO(overlays[index]))
        writer.pages[index].merge_page(overlay_reader.pages[0])
    return write_pdf(writer)


def flatten_forms(data: bytes) -> bytes:
    """Incorpora widgets de formulário ao conteúdo das páginas. Sem formulário, devolve os bytes intactos."""
    load_pdf(data)
    with _open_fitz(data, "document") as doc:
        if not doc.is_form_pdf:
            return data
        doc.bake(annots=False, widgets=True)
        return doc.tobytes(garbage=3, deflate=True)
