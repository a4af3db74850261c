"""Tests for document download and conversion."""

import io
from unittest.mock import Mock, patch

import pytest
import requests
from docx import Document

from auction_docs.config import IngestConfig
from auction_docs.errors import DownloadError
from auction_docs.ingest.fetcher import DocumentFetcher, classify_document
from auction_docs.models import DocumentKind, DocumentLink
from auction_docs.run import ProcessingRun

DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def fake_response(content=b"", status_code=200, content_type="application/pdf"):
    response = Mock()
    response.status_code = status_code
    response.content = content
    response.headers = {"content-type": content_type}
    return response


@pytest.fixture
def run(blob_store):
    with ProcessingRun(blob_store=blob_store, run_id="test") as run:
        yield run


@pytest.fixture
def text_pdf(pdf_builder):
    return pdf_builder().text_page("Odredba o prodaji nepremicnine").build()


class TestClassifyDocument:
    """Tests for classify_document."""

    @pytest.mark.parametrize(
        "content_type,url,expected",
        [
            ("application/pdf", "https://e.org/a.pdf", DocumentKind.PDF),
            (DOCX_TYPE, "https://e.org/download?id=1", DocumentKind.DOCX),
            ("application/msword", "https://e.org/a", DocumentKind.DOCX),
            ("application/octet-stream", "https://e.org/Priloga.DOCX", DocumentKind.DOCX),
            ("", "https://e.org/old.doc", DocumentKind.DOCX),
            ("application/octet-stream", "https://e.org/file", DocumentKind.PDF),
            ("", "https://e.org/file", DocumentKind.PDF),
        ],
    )
    def test_classification(self, content_type, url, expected):
        assert classify_document(content_type, url) == expected


class TestDocumentFetcher:
    """Tests for DocumentFetcher.fetch."""

    @patch("auction_docs.ingest.fetcher.requests.get")
    def test_fetch_pdf(self, mock_get, run, blob_store, text_pdf):
        mock_get.return_value = fake_response(text_pdf)
        link = DocumentLink("Odredba", "https://e.org/odredba.pdf")

        doc = DocumentFetcher().fetch(link, "https://e.org/oklic", run)

        assert doc.kind == DocumentKind.PDF
        assert doc.text == "Odredba o prodaji nepremicnine"
        assert not doc.ocr_used
        assert doc.size_bytes == len(text_pdf)
        assert doc.stored_ref.startswith("documents/")
        assert doc.stored_ref.endswith(".pdf")
        assert blob_store.objects[doc.stored_ref] == (text_pdf, "application/pdf")
        assert doc.temp_path.read_bytes() == text_pdf
        assert doc.temp_path.parent == run.temp_dir

    @patch("auction_docs.ingest.fetcher.requests.get")
    def test_request_headers(self, mock_get, run, text_pdf):
        mock_get.return_value = fake_response(text_pdf)
        config = IngestConfig(request_timeout=12)
        link = DocumentLink("Odredba", "https://e.org/odredba.pdf")

        DocumentFetcher(config).fetch(link, "https://e.org/oklic", run, "sid=abc; x=1")

        args, kwargs = mock_get.call_args
        assert args == ("https://e.org/odredba.pdf",)
        assert kwargs["headers"]["Referer"] == "https://e.org/oklic"
        assert kwargs["headers"]["Cookie"] == "sid=abc; x=1"
        assert kwargs["timeout"] == 12

    @patch("auction_docs.ingest.fetcher.requests.get")
    def test_no_cookie_header_without_cookies(self, mock_get, run, text_pdf):
        mock_get.return_value = fake_response(text_pdf)

        DocumentFetcher().fetch(DocumentLink("a", "https://e.org/a.pdf"), "", run)

        headers = mock_get.call_args.kwargs["headers"]
        assert "Cookie" not in headers
        assert "Referer" not in headers

    @patch("auction_docs.ingest.fetcher.requests.get")
    def test_fetch_docx(self, mock_get, run, blob_store):
        document = Document()
        document.add_paragraph("Pogoji prodaje")
        buffer = io.BytesIO()
        document.save(buffer)
        mock_get.return_value = fake_response(
            buffer.getvalue(), content_type="application/octet-stream"
        )

        doc = DocumentFetcher().fetch(
            DocumentLink("Pogoji", "https://e.org/pogoji.docx"), "https://e.org", run
        )

        assert doc.kind == DocumentKind.DOCX
        assert doc.text == "Pogoji prodaje"
        assert doc.stored_ref.endswith(".docx")
        assert blob_store.objects[doc.stored_ref][1] == DOCX_TYPE

    @patch("auction_docs.ingest.fetcher.requests.get")
    def test_unconvertible_document_is_kept(self, mock_get, run, blob_store):
        mock_get.return_value = fake_response(b"%PDF-broken")

        doc = DocumentFetcher().fetch(DocumentLink("a", "https://e.org/a.pdf"), "", run)

        assert not doc.text
        assert doc.stored_ref in blob_store.objects

    @patch("auction_docs.ingest.fetcher.requests.get")
    def test_http_error(self, mock_get, run, blob_store):
        mock_get.return_value = fake_response(b"Not found", status_code=404)

        with pytest.raises(DownloadError) as exc_info:
            DocumentFetcher().fetch(DocumentLink("a", "https://e.org/a.pdf"), "", run)

        assert exc_info.value.status_code == 404
        assert exc_info.value.url == "https://e.org/a.pdf"
        assert blob_store.objects == {}

    @patch("auction_docs.ingest.fetcher.requests.get")
    def test_network_error(self, mock_get, run):
        mock_get.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(DownloadError) as exc_info:
            DocumentFetcher().fetch(DocumentLink("a", "https://e.org/a.pdf"), "", run)

        assert exc_info.value.status_code is None

    @patch("auction_docs.ingest.fetcher.requests.get")
    def test_empty_body(self, mock_get, run):
        mock_get.return_value = fake_response(b"")

        with pytest.raises(DownloadError):
            DocumentFetcher().fetch(DocumentLink("a", "https://e.org/a.pdf"), "", run)

    @patch("auction_docs.ingest.fetcher.requests.get")
    def test_closed_run_stores_nothing(self, mock_get, blob_store, text_pdf):
        """A download finishing after its run was closed leaves no blob behind."""
        mock_get.return_value = fake_response(text_pdf)
        with ProcessingRun(blob_store=blob_store) as run:
            pass

        with pytest.raises(DownloadError, match="closed"):
            DocumentFetcher().fetch(DocumentLink("a", "https://e.org/a.pdf"), "", run)

        assert blob_store.objects == {}
