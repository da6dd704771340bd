from typing import Callable, Optional

from citation_audit.models import AuthoritativeRecord, NAPMatch, ProviderListing
from citation_audit.normalizer import normalize_phone, normalize_text


def _field_matches(found: Optional[str], expected: str, normalize: Callable[[Optional[str]], str]) -> bool:
    # A field the provider did not report is never a discrepancy
    if not found:
        return True
    return normalize(found) == normalize(expected)


def match_nap(listing: ProviderListing, authoritative: AuthoritativeRecord) -> NAPMatch:
    """
    Compare a provider listing's name, address and phone against the location's
    authoritative record.

    Args:
        listing (ProviderListing): Listing reported by the provider.
        authoritative (AuthoritativeRecord): The location's own NAP data.

    Returns:
        NAPMatch: Per-field results; `nap_correct` only when all three match.
    """
    return NAPMatch(
        name_match=_field_matches(listing.found_name, authoritative.name, normalize_text),
        address_match=_field_matches(listing.found_address, authoritative.expected_address, normalize_text),
        phone_match=_field_matches(listing.found_phone, authoritative.phone, normalize_phone),
    )
