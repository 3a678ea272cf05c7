from __future__ import annotations

import base64
import io
from typing import Callable, Optional, Sequence

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from reportlab.pdfgen import canvas

from app.api.deps import get_storage_backend
from app.main import app
from app.services.pipeline import AssemblyPipeline
from app.services.raster import render_page
from app.services.storage import DocumentRepository, MemoryStorage

Color = tuple[float, float, float]

WHITE: Color = (1, 1, 1)
BLACK: Color = (0, 0, 0)
RED: Color = (1, 0, 0)
GREEN: Color = (0, 1, 0)
BLUE: Color = (0, 0, 1)


def build_pdf(
    colors: Sequence[Color] = (WHITE,),
    size: tuple[float, float] = (200, 100),
    *,
    inner: Optional[Color] = None,
    text: Optional[str] = None,
) -> bytes:
    """Uma página por cor; `inner` pinta um retângulo no miolo de cada página."""
    width, height = size
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=size)
    for color in colors:
        pdf.setFillColorRGB(*color)
        pdf.rect(0, 0, width, height, fill=1, stroke=0)
        if inner is not None:
            pdf.setFillColorRGB(*inner)
            pdf.rect(width / 4, height / 4, width / 2, height / 2, fill=1, stroke=0)
        if text:
            pdf.setFillColorRGB(*BLACK)
            pdf.drawString(10, 10, text)
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def build_form_pdf(size: tuple[float, float] = (300, 200)) -> bytes:
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=size)
    pdf.drawString(20, 170, "Contrato")
    pdf.acroForm.textfield(name="signer_name", value="Fulano", x=20, y=100, width=200, height=24)
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def build_image(size: tuple[int, int] = (40, 10), color=(0, 0, 255), fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def to_base64(data: bytes, *, data_uri: bool = False) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:image/png;base64,{encoded}" if data_uri else encoded


def pixel_at(pdf: bytes, index: int, x: float, y: float) -> tuple[int, int, int]:
    """Cor do ponto (x, y) em coordenadas PDF, renderizando a página a 72 DPI."""
    image = render_page(pdf, index, 1.0)
    return image.getpixel((int(x), int(image.height - y)))


def close_to(actual: Sequence[int], expected: Sequence[int], tolerance: int = 24) -> bool:
    return all(abs(a - e) <= tolerance for a, e in zip(actual, expected))


@pytest.fixture()
def pdf_factory() -> Callable[..., bytes]:
    return build_pdf


@pytest.fixture()
def image_factory() -> Callable[..., bytes]:
    return build_image


@pytest.fixture()
def form_pdf() -> bytes:
    return build_form_pdf()


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def repository(storage: MemoryStorage) -> DocumentRepository:
    return DocumentRepository(storage)


@pytest.fixture()
def pipeline(repository: DocumentRepository) -> AssemblyPipeline:
    return AssemblyPipeline(repository)


@pytest.fixture()
def client(storage: MemoryStorage) -> TestClient:
    app.dependency_overrides[get_storage_backend] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.pop(get_storage_backend, None)
