from __future__ import annotations

from dataclasses import dataclass

from app.models.document import SignatureField


@dataclass(frozen=True)
class PointRect:
    """Retângulo em pontos PDF (origem inferior esquerda, Y para cima)."""

    x: float
    y: float
    width: float
    height: float


def to_point_rect(field: SignatureField, page_width: float, page_height: float) -> PointRect:
    # navegador: Y cresce para baixo; PDF: Y cresce para cima
    return PointRect(
        x=field.x_norm * page_width,
        y=(1 - field.y_norm - field.height_norm) * page_height,
        width=field.width_norm * page_width,
        height=field.height_norm * page_height,
    )


def to_normalized(rect: PointRect, page_width: float, page_height: float) -> tuple[float, float, float, float]:
    """Inverso de to_point_rect: (xNorm, yNorm, widthNorm, heightNorm)."""
    return (
        rect.x / page_width,
        1 - (rect.y + rect.height) / page_height,
        rect.width / page_width,
        rect.height / page_height,
    )
