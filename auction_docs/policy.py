"""
Document inclusion policy.

Decides, per fetched document, whether its directly extracted text is used,
whether it is worth running OCR on, or whether it stays unused. OCR is the
most expensive step, so it only runs when the listing would otherwise lack
content or the document is the authoritative valuation report.

All functions here are pure; the sibling-content signal must be computed
after every fetch of the listing has resolved.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from .config import PolicyThresholds
from .models import FetchedDocument
from .utils import stripped_length


class InclusionDecision(Enum):
    """What to do with one document's text."""

    INCLUDE = "include"
    OCR = "ocr"
    UNUSED = "unused"


@dataclass(frozen=True)
class InclusionSignals:
    """Inputs of the inclusion decision for one document."""

    text_length: int  # Non-whitespace characters of the direct extraction
    sibling_has_content: bool
    is_authoritative_report: bool
    listing_is_short: bool


def has_sufficient_content(text: Optional[str], thresholds: PolicyThresholds) -> bool:
    """True if the text has more than the sufficiency threshold of visible characters."""
    return stripped_length(text) > thresholds.sufficient_content_chars


def is_listing_short(listing_markdown: str, thresholds: PolicyThresholds) -> bool:
    """True if the listing's own content is below the short-listing threshold."""
    return len(listing_markdown or "") < thresholds.short_listing_chars


def is_authoritative_report(description: str, thresholds: PolicyThresholds) -> bool:
    """True if the description names the authoritative valuation report."""
    description = (description or "").lower()
    return any(marker in description for marker in thresholds.authoritative_markers)


Rule = Callable[[InclusionSignals, PolicyThresholds], Optional[InclusionDecision]]


def _include_sufficient_text(s: InclusionSignals, t: PolicyThresholds) -> Optional[InclusionDecision]:
    if s.text_length > t.sufficient_content_chars:
        return InclusionDecision.INCLUDE
    return None


def _ocr_authoritative_report(s: InclusionSignals, t: PolicyThresholds) -> Optional[InclusionDecision]:
    if s.is_authoritative_report:
        return InclusionDecision.OCR
    return None


def _ocr_when_listing_lacks_content(
    s: InclusionSignals, t: PolicyThresholds
) -> Optional[InclusionDecision]:
    if s.listing_is_short and not s.sibling_has_content:
        return InclusionDecision.OCR
    return None


RULES: tuple[Rule, ...] = (
    _include_sufficient_text,
    _ocr_authoritative_report,
    _ocr_when_listing_lacks_content,
)


def decide_inclusion(
    signals: InclusionSignals, thresholds: Optional[PolicyThresholds] = None
) -> InclusionDecision:
    """Apply the rules in order; the first one that decides wins."""
    thresholds = thresholds or PolicyThresholds()
    for rule in RULES:
        decision = rule(signals, thresholds)
        if decision is not None:
            return decision
    return InclusionDecision.UNUSED


def collect_signals(
    documents: Sequence[FetchedDocument],
    listing_markdown: str,
    thresholds: Optional[PolicyThresholds] = None,
) -> list[InclusionSignals]:
    """
    Compute the inclusion signals of every document of a listing.

    Must be called once all fetches have resolved so the sibling signal
    does not depend on completion order.
    """
    thresholds = thresholds or PolicyThresholds()
    listing_short = is_listing_short(listing_markdown, thresholds)
    sufficient = [has_sufficient_content(doc.text, thresholds) for doc in documents]

    signals = []
    for i, doc in enumerate(documents):
        signals.append(
            InclusionSignals(
                text_length=stripped_length(doc.text),
                sibling_has_content=any(s for j, s in enumerate(sufficient) if j != i),
                is_authoritative_report=is_authoritative_report(doc.description, thresholds),
                listing_is_short=listing_short,
            )
        )
    return signals
