# citation_audit/matchers/listing_reconciler.py

from datetime import datetime

from citation_audit.models import AuthoritativeRecord, ProviderListing, ReconciledListing
from citation_audit.matchers.nap_matcher import match_nap
from citation_audit.matchers.status_classifier import classify_status, is_live
from citation_audit.matchers.recommendation_builder import build_recommendation


def reconcile_listing(
    listing: ProviderListing,
    authoritative: AuthoritativeRecord,
    location_id: str,
    audit_id: str,
    checked_at: datetime,
) -> ReconciledListing:
    """
    Run a single provider listing through matching, classification and
    recommendation and produce the record to persist.

    Args:
        listing (ProviderListing): Listing reported by the provider.
        authoritative (AuthoritativeRecord): The location's own NAP data.
        location_id (str): Location the audit belongs to.
        audit_id (str): Audit run producing this result.
        checked_at (datetime): Timestamp shared by every listing of the run.

    Returns:
        ReconciledListing: Reconciled result for this directory.
    """
    match = match_nap(listing, authoritative)

    return ReconciledListing(
        location_id=location_id,
        audit_id=audit_id,
        directory_name=listing.source,
        listing_url=listing.listing_url,
        expected_name=authoritative.name,
        expected_address=authoritative.expected_address,
        expected_phone=authoritative.phone,
        found_name=listing.found_name,
        found_address=listing.found_address,
        found_phone=listing.found_phone,
        name_match=match.name_match,
        address_match=match.address_match,
        phone_match=match.phone_match,
        nap_correct=match.nap_correct,
        status=classify_status(listing, match.nap_correct),
        recommendation=build_recommendation(
            listing,
            is_live(listing),
            authoritative.name,
            authoritative.phone,
        ),
        last_checked_at=checked_at,
        metadata=dict(listing.metadata),
    )
