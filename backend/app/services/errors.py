from __future__ import annotations


class DocumentError(Exception):
    """Base de erros de domínio do motor de composição."""

    status_code = 500

    def __init__(self, message: str, *, document_id: str | None = None) -> None:
        super().__init__(message)
        self.document_id = document_id


class NotFoundError(DocumentError):
    status_code = 404


class MalformedInputError(DocumentError):
    status_code = 400


class InvalidPageIndexError(MalformedInputError):
    def __init__(self, page_number: int, page_count: int, *, document_id: str | None = None) -> None:
        super().__init__(
            f"Invalid page number: {page_number} (document has {page_count} pages)",
            document_id=document_id,
        )
        self.page_number = page_number
        self.page_count = page_count
