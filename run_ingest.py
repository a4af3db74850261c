#!/usr/bin/env python3
"""
CLI entry point for auction document ingestion.

Usage:
    python run_ingest.py photos report.pdf --output storage/
    python run_ingest.py text report.pdf --ocr
    python run_ingest.py fetch https://example.org/doc.pdf --referer https://example.org/auction
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Suppress noisy third-party library logs
    for logger_name in ["PIL", "urllib3", "google", "google.auth"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def cmd_photos(args, config) -> int:
    from auction_docs.ingest import PhotoExtractor
    from auction_docs.storage import LocalBlobStore

    pdf_path = Path(args.pdf)
    if not pdf_path.exists():
        logging.getLogger(__name__).error(f"PDF file not found: {pdf_path}")
        return 1

    extractor = PhotoExtractor(LocalBlobStore(config.storage_dir), config)
    photos = extractor.extract(pdf_path.read_bytes(), args.document_id or pdf_path.stem)

    print(f"\nTotal photos extracted: {len(photos)}")
    for photo in photos:
        print(f"  {photo.index}: {photo.stored_ref} ({photo.width}x{photo.height})")
    return 0


def check_ocr_backend(config) -> bool:
    """Check that the configured OCR backend can run on this machine."""
    from auction_docs.ocr import create_ocr_engine

    with create_ocr_engine(config) as engine:
        available = engine.is_available()
    if not available:
        logging.getLogger(__name__).warning(
            f"OCR backend '{config.ocr_backend.value}' is not available"
        )
    return available


def cmd_text(args, config) -> int:
    from auction_docs.ingest import classify_document, extract_text
    from auction_docs.models import DocumentKind
    from auction_docs.ocr import OcrFallbackEngine

    path = Path(args.file)
    if not path.exists():
        logging.getLogger(__name__).error(f"File not found: {path}")
        return 1

    data = path.read_bytes()
    kind = classify_document("", path.name)
    if args.ocr and kind == DocumentKind.PDF:
        if not check_ocr_backend(config):
            logging.getLogger(__name__).error("Cannot run OCR; install or configure the backend")
            return 1
        outcome = OcrFallbackEngine(config).convert(data)
        text = outcome.text
        print(f"[state={outcome.state.value}, ocr_used={outcome.ocr_used}]", file=sys.stderr)
    else:
        text = extract_text(data, kind)

    print(text)
    return 0


def load_cookies(value: Optional[str]) -> Optional[str]:
    """Accept a raw Cookie header or a JSON file of exported browser cookies."""
    from auction_docs.utils import build_cookie_header

    if not value:
        return None
    path = Path(value)
    if path.suffix == ".json" and path.exists():
        return build_cookie_header(json.loads(path.read_text()))
    return value


def cmd_fetch(args, config) -> int:
    from auction_docs import DocumentLink, DocumentPipeline, ProcessingRun

    listing = Path(args.listing_file).read_text() if args.listing_file else ""
    links = [DocumentLink(description=Path(url).name or url, url=url) for url in args.urls]
    if not check_ocr_backend(config):
        logging.getLogger(__name__).warning(
            "Documents that need OCR will be reported as unused"
        )

    pipeline = DocumentPipeline(config)
    with ProcessingRun(config) as run:
        result = pipeline.process(
            listing,
            links,
            run,
            referer_url=args.referer or "",
            auth_cookies=load_cookies(args.cookies),
            timeout=args.timeout,
        )

    summary = {
        "documents": [
            {
                "description": d.description,
                "url": d.url,
                "stored_ref": d.stored_ref,
                "kind": d.kind.value,
                "ocr_used": d.ocr_used,
                "text_length": len(d.text or ""),
            }
            for d in result.documents
        ],
        "used": result.composed.used_urls,
        "unused": result.composed.unused_urls,
        "photos": {
            url: [p.stored_ref for p in photos] for url, photos in result.photos.items()
        },
    }
    print(json.dumps(summary, indent=2, ensure_ascii=False))

    if args.markdown_out:
        Path(args.markdown_out).write_text(result.composed.markdown)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser; common options are accepted after every subcommand."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--output", "-o", type=str, help="Blob storage directory")
    common.add_argument(
        "--ocr-backend",
        choices=["tesseract", "google_vision"],
        help="OCR backend (overrides OCR_BACKEND)",
    )
    common.add_argument("--ocr-language", type=str, help="OCR language code (default: slv)")
    common.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")

    parser = argparse.ArgumentParser(
        description="Auction document ingestion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract photos embedded in a valuation report
  python run_ingest.py photos cenitev.pdf --output storage/

  # Convert a scanned PDF, running OCR if direct extraction is empty
  python run_ingest.py text scan.pdf --ocr --ocr-language slv

  # Fetch attachments of a listing and compose its narrative
  python run_ingest.py fetch https://example.org/a.pdf --listing-file listing.md
""",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    photos = subparsers.add_parser("photos", parents=[common], help="Extract photos from a PDF")
    photos.add_argument("pdf", type=str)
    photos.add_argument("--document-id", type=str, help="Identifier used in storage keys")

    text = subparsers.add_parser("text", parents=[common], help="Convert a PDF/DOCX file to text")
    text.add_argument("file", type=str)
    text.add_argument("--ocr", action="store_true", help="Use the OCR fallback for PDFs")

    fetch = subparsers.add_parser(
        "fetch", parents=[common], help="Fetch and process document links"
    )
    fetch.add_argument("urls", nargs="+")
    fetch.add_argument("--referer", type=str, help="Announcement page URL")
    fetch.add_argument(
        "--cookies", type=str, help="Cookie header, or a JSON file of browser cookies"
    )
    fetch.add_argument("--listing-file", type=str, help="Listing's own content (markdown)")
    fetch.add_argument("--markdown-out", type=str, help="Write composed markdown here")
    fetch.add_argument("--timeout", type=float, help="Wall-clock bound for downloads (s)")

    return parser


def main():
    """Main entry point."""
    args = build_parser().parse_args()

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    from auction_docs.config import IngestConfig

    try:
        overrides = {"verbose": args.verbose}
        if args.output:
            overrides["storage_dir"] = Path(args.output)
        if args.ocr_backend:
            overrides["ocr_backend"] = args.ocr_backend
        if args.ocr_language:
            overrides["ocr_language"] = args.ocr_language
        config = IngestConfig.from_env(**overrides)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    commands = {"photos": cmd_photos, "text": cmd_text, "fetch": cmd_fetch}
    try:
        sys.exit(commands[args.command](args, config))
    except KeyboardInterrupt:
        logger.info("Processing interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.exception(f"Processing failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
