"""
Main document pipeline orchestrator.

Coordinates the document stages of one auction listing:
1. Parallel download and direct text extraction of every attachment
2. Inclusion policy and OCR fallback, evaluated after all downloads resolve
3. Photo extraction from PDF attachments
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Optional, Sequence

from .config import IngestConfig
from .errors import DownloadError
from .ingest import DocumentFetcher, PhotoExtractor
from .models import (
    ComposedListing,
    DocumentKind,
    DocumentLink,
    ExtractedPhoto,
    FetchedDocument,
    FetchResult,
    ListingDocuments,
)
from .ocr import OcrFallbackEngine, OcrState
from .policy import InclusionDecision, collect_signals, decide_inclusion
from .run import ProcessingRun
from .utils import timed_operation

logger = logging.getLogger(__name__)


class DocumentPipeline:
    """
    Orchestrator for the attachments of one auction listing.

    Components are created lazily; none of them hold per-document state,
    so one pipeline can serve many runs.
    """

    def __init__(
        self,
        config: Optional[IngestConfig] = None,
        fetcher: Optional[DocumentFetcher] = None,
        ocr_engine: Optional[OcrFallbackEngine] = None,
    ):
        """
        Initialize the document pipeline.

        Args:
            config: Ingestion configuration (defaults from IngestConfig)
            fetcher: Document fetcher override
            ocr_engine: OCR fallback engine override
        """
        self.config = config or IngestConfig()
        self._fetcher = fetcher
        self._ocr_engine = ocr_engine

    @property
    def fetcher(self) -> DocumentFetcher:
        """Get or create the document fetcher."""
        if self._fetcher is None:
            self._fetcher = DocumentFetcher(self.config)
        return self._fetcher

    @property
    def ocr_engine(self) -> OcrFallbackEngine:
        """Get or create the OCR fallback engine."""
        if self._ocr_engine is None:
            self._ocr_engine = OcrFallbackEngine(self.config)
        return self._ocr_engine

    def fetch_all(
        self,
        links: Sequence[DocumentLink],
        run: ProcessingRun,
        referer_url: str,
        auth_cookies: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> FetchResult:
        """
        Fetch and convert every link in parallel.

        A failing or unfinished document is dropped; the batch never fails.
        Fetches still running after ``timeout`` are not interrupted: they may
        store their bytes while ``run`` is open but are left out of the result,
        and once the run is closed they stop before storing anything.

        Args:
            links: Attachments of the listing
            run: Processing run owning storage and temp files
            referer_url: Announcement page URL
            auth_cookies: ``Cookie`` header for session-gated downloads
            timeout: Outer wall-clock bound in seconds; documents not done
                by then are treated as missing

        Returns:
            FetchResult with documents in the order of ``links``
        """
        logger.info(f"Processing {len(links)} documents in parallel")
        if not links:
            return FetchResult()

        executor = ThreadPoolExecutor(max_workers=self.config.max_workers)
        futures: dict[Future, DocumentLink] = {
            executor.submit(self.fetcher.fetch, link, referer_url, run, auth_cookies): link
            for link in links
        }
        done, not_done = wait(futures, timeout=timeout)
        executor.shutdown(wait=not not_done, cancel_futures=True)

        by_url: dict[str, FetchedDocument] = {}
        failed: list[str] = []
        for future in done:
            link = futures[future]
            try:
                by_url[link.url] = future.result()
            except DownloadError as e:
                logger.warning(f"Failed to download document '{link.description}': {e}")
                failed.append(link.url)
            except Exception as e:
                logger.warning(f"Failed to process document '{link.description}': {e}")
                failed.append(link.url)

        for future in not_done:
            link = futures[future]
            logger.warning(f"Document '{link.description}' did not finish within {timeout}s")
            failed.append(link.url)

        documents = [by_url[link.url] for link in links if link.url in by_url]
        logger.info(
            f"All documents processed: total={len(links)}, "
            f"successful={len(documents)}, failed={len(failed)}"
        )
        return FetchResult(documents=documents, failed_urls=failed)

    def compose(
        self,
        listing_markdown: str,
        documents: Sequence[FetchedDocument],
    ) -> ComposedListing:
        """
        Append usable document text to the listing narrative.

        Must only be called after ``fetch_all`` has returned, since the
        decision for each document depends on all of its siblings.
        """
        policy = self.config.policy
        signals = collect_signals(documents, listing_markdown, policy)
        composed = ComposedListing(markdown=listing_markdown)

        for doc, doc_signals in zip(documents, signals):
            decision = decide_inclusion(doc_signals, policy)
            logger.info(
                f"Document '{doc.description}': {decision.value} "
                f"(text={doc_signals.text_length}, listing_short={doc_signals.listing_is_short}, "
                f"siblings_have_content={doc_signals.sibling_has_content}, "
                f"authoritative={doc_signals.is_authoritative_report})"
            )

            if decision == InclusionDecision.OCR and self._apply_ocr(doc):
                if doc.ocr_used:
                    composed.ocr_urls.append(doc.url)
                decision = InclusionDecision.INCLUDE
            elif decision == InclusionDecision.OCR:
                decision = InclusionDecision.UNUSED

            if decision == InclusionDecision.INCLUDE:
                composed.markdown += self._section(doc)
                composed.used_urls.append(doc.url)
            else:
                composed.unused_urls.append(doc.url)

        return composed

    def extract_photos(
        self, documents: Sequence[FetchedDocument], run: ProcessingRun
    ) -> dict[str, list[ExtractedPhoto]]:
        """Extract photos from every PDF document, one document at a time."""
        extractor = PhotoExtractor(run.blob_store, self.config)
        photos: dict[str, list[ExtractedPhoto]] = {}

        for doc in documents:
            if doc.kind != DocumentKind.PDF or doc.temp_path is None:
                continue
            with timed_operation(f"Photo extraction '{doc.description}'", self.config.verbose):
                photos[doc.url] = extractor.extract(doc.temp_path.read_bytes(), doc.document_id)

        return photos

    def process(
        self,
        listing_markdown: str,
        links: Sequence[DocumentLink],
        run: ProcessingRun,
        referer_url: str,
        auth_cookies: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ListingDocuments:
        """
        Run the whole document flow for one listing.

        Args:
            listing_markdown: The listing's own primary content
            links: Attachments of the listing
            run: Processing run owning storage and temp files
            referer_url: Announcement page URL
            auth_cookies: ``Cookie`` header for session-gated downloads
            timeout: Outer wall-clock bound for the download phase

        Returns:
            ListingDocuments with the composed narrative, documents and photos
        """
        with timed_operation(f"Fetching {len(links)} documents", self.config.verbose):
            result = self.fetch_all(links, run, referer_url, auth_cookies, timeout)

        composed = self.compose(listing_markdown, result.documents)
        photos = self.extract_photos(result.documents, run)

        return ListingDocuments(composed=composed, documents=result.documents, photos=photos)

    def _apply_ocr(self, doc: FetchedDocument) -> bool:
        """Run the OCR fallback on a document; True if it produced text."""
        if doc.kind != DocumentKind.PDF:
            logger.info(f"Cannot OCR '{doc.description}': not a PDF")
            return False
        if doc.temp_path is None or not doc.temp_path.exists():
            logger.warning(f"Cannot OCR '{doc.description}': no temporary copy available")
            return False

        try:
            with timed_operation(f"OCR of '{doc.description}'", self.config.verbose):
                outcome = self.ocr_engine.convert(doc.temp_path.read_bytes())
        except Exception as e:
            logger.warning(f"OCR failed for document '{doc.description}': {e}")
            return False

        if outcome.state is OcrState.OCR_FAILED or not outcome.text.strip():
            logger.info(f"OCR produced no text for '{doc.description}'")
            return False

        doc.text = outcome.text
        doc.ocr_used = outcome.ocr_used
        logger.info(
            f"OCR completed for '{doc.description}': {len(outcome.text)} chars "
            f"(ocr_used={outcome.ocr_used})"
        )
        return True

    def _section(self, doc: FetchedDocument) -> str:
        return f"\n\n---\n\n## {self.config.section_label}: {doc.description}\n\n{doc.text}"
