"""
Document locator - resolves a stored document reference into a download URL
the job worker can fetch. Storage itself lives in the content service.
"""

from typing import Protocol
from urllib.parse import quote


class DocumentLocator(Protocol):
    def download_reference(self, document_ref: str) -> str:
        ...


class UrlDocumentLocator:
    """Builds links to the content service's download endpoint."""

    def __init__(self, base_url: str, download_path: str = "/api/content/download"):
        self.base_url = base_url.rstrip("/")
        self.download_path = download_path

    def download_reference(self, document_ref: str) -> str:
        return f"{self.base_url}{self.download_path}?path={quote(document_ref, safe='')}"
