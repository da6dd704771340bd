from typing import List, Optional

from citation_audit.models import ProviderListing
from citation_audit.normalizer import normalize_phone, normalize_text

NOT_LISTED_TEMPLATE = "Not listed on {source}. Submit business listing to improve citation coverage."
INCORRECT_TEMPLATE = "Incorrect {issues} on {source}. Update the listing to match current business information."


def build_recommendation(
    listing: ProviderListing,
    is_live: bool,
    expected_name: str,
    expected_phone: str,
) -> Optional[str]:
    """
    Build the remediation text for a single listing.

    Address differences are deliberately left out of the text; they still
    count against `nap_correct`.

    Args:
        listing (ProviderListing): Listing reported by the provider.
        is_live (bool): True if the listing is active or has a URL.
        expected_name (str): Authoritative business name.
        expected_phone (str): Authoritative phone number.

    Returns:
        Optional[str]: Recommendation, or None when nothing needs to change.
    """
    if not is_live:
        return NOT_LISTED_TEMPLATE.format(source=listing.source)

    issues: List[str] = []
    if listing.found_name and normalize_text(listing.found_name) != normalize_text(expected_name):
        issues.append("business name")
    if listing.found_phone and normalize_phone(listing.found_phone) != normalize_phone(expected_phone):
        issues.append("phone number")

    if not issues:
        return None

    return INCORRECT_TEMPLATE.format(issues=", ".join(issues), source=listing.source)
