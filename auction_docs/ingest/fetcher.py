"""
Document download module.

Downloads auction attachments, classifies their format, converts them to
text directly and stores the raw bytes.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

import requests

from ..config import IngestConfig
from ..errors import ConversionError, DownloadError
from ..models import DocumentKind, DocumentLink, FetchedDocument
from ..run import ProcessingRun
from .text_extractor import extract_text

logger = logging.getLogger(__name__)

WORD_CONTENT_TYPES = ("wordprocessingml", "msword")
WORD_EXTENSIONS = (".docx", ".doc")


def classify_document(content_type: str, url: str) -> DocumentKind:
    """
    Classify a download as DOCX or PDF.

    The content type is only a hint; a Word URL suffix is enough to treat
    the document as DOCX. Everything else is handled as PDF.
    """
    content_type = (content_type or "").lower()
    url_lower = url.lower()
    if any(t in content_type for t in WORD_CONTENT_TYPES) or url_lower.endswith(WORD_EXTENSIONS):
        return DocumentKind.DOCX
    return DocumentKind.PDF


class DocumentFetcher:
    """Download and convert a single document link."""

    def __init__(self, config: Optional[IngestConfig] = None):
        self.config = config or IngestConfig()

    def fetch(
        self,
        link: DocumentLink,
        referer_url: str,
        run: ProcessingRun,
        auth_cookies: Optional[str] = None,
    ) -> FetchedDocument:
        """
        Download a document, convert it to text and store it.

        Args:
            link: Document description and URL
            referer_url: Announcement page the link was found on
            run: Processing run owning the blob sink and temp directory
            auth_cookies: ``Cookie`` header value for session-gated downloads

        Returns:
            FetchedDocument with direct-extraction text (``None`` if conversion failed)

        Raises:
            DownloadError: On network failure, non-2xx status or empty body,
                or if the run was closed before the document could be stored
        """
        logger.info(f"Downloading document '{link.description}' from {link.url}")

        data, content_type = self._download(link.url, referer_url, auth_cookies)
        kind = classify_document(content_type, link.url)

        logger.info(
            f"Document downloaded: '{link.description}' "
            f"({len(data) / 1024:.2f} KB, content-type={content_type or 'n/a'}, kind={kind.value})"
        )

        text: Optional[str]
        try:
            text = extract_text(data, kind)
        except ConversionError as e:
            logger.warning(f"Conversion failed for '{link.description}': {e}")
            text = None

        if text and text.strip():
            logger.info(f"Document converted to text: '{link.description}' ({len(text)} chars)")
        else:
            logger.info(f"Document has no content: '{link.description}' ({kind.value})")

        if run.closed:
            raise DownloadError(link.url, "Processing run closed before the document was stored")

        name = f"{uuid.uuid4()}.{kind.extension}"
        temp_path = run.write_temp(data, name)
        stored_ref = run.blob_store.put(data, f"documents/{name}", kind.content_type)

        logger.debug(f"Document stored as {stored_ref}, temp copy {temp_path}")

        return FetchedDocument(
            description=link.description,
            url=link.url,
            stored_ref=stored_ref,
            kind=kind,
            text=text,
            ocr_used=False,
            temp_path=temp_path,
            size_bytes=len(data),
        )

    def _download(
        self, url: str, referer_url: str, auth_cookies: Optional[str]
    ) -> tuple[bytes, str]:
        headers = {"User-Agent": self.config.user_agent}
        if referer_url:
            headers["Referer"] = referer_url
        if auth_cookies:
            headers["Cookie"] = auth_cookies

        try:
            response = requests.get(url, headers=headers, timeout=self.config.request_timeout)
        except requests.RequestException as e:
            raise DownloadError(url, f"Network error ({e})") from e

        if not 200 <= response.status_code < 300:
            raise DownloadError(url, f"HTTP {response.status_code}", response.status_code)
        if not response.content:
            raise DownloadError(url, "Empty response body", response.status_code)

        return response.content, response.headers.get("content-type", "")
