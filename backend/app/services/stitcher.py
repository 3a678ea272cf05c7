from __future__ import annotations

import logging
from typing import Optional, Sequence

from pypdf import PdfWriter

from app.services.raster import load_pdf, write_pdf

logger = logging.getLogger("docstacker.stitcher")


def stitch(parts: Sequence[Optional[bytes]]) -> bytes:
    """
    Concatena as partes na ordem recebida (capa, corpo, termos...).

    Partes nulas ou vazias são ignoradas; qualquer parte não vazia que não seja
    um PDF válido rejeita a operação inteira com MalformedInputError.
    """
    present = [(position, part) for position, part in enumerate(parts, start=1) if part]
    logger.info("Stitching %s PDF parts together (%s skipped)", len(present), len(parts) - len(present))

    readers = [load_pdf(part, label=f"part {position}") for position, part in present]

    writer = PdfWriter()
    for reader in readers:
        writer.append(reader)

    result = write_pdf(writer)
    logger.info("Stitched PDF: %s pages, %s bytes", len(writer.pages), len(result))
    return result
