from citation_audit.models import ListingStatus, ProviderListing, ProviderStatus

MISSING = "missing"
CORRECT = "correct"
INCORRECT = "incorrect"


def has_listing(listing: ProviderListing) -> bool:
    return bool(listing.listing_url)


def is_live(listing: ProviderListing) -> bool:
    """A listing is live when the provider marks it active or a URL was found."""
    return listing.provider_status == ProviderStatus.ACTIVE or has_listing(listing)


def is_missing(listing: ProviderListing) -> bool:
    """Not active and no URL. Either signal alone is not enough to call it missing."""
    return listing.provider_status != ProviderStatus.ACTIVE and not has_listing(listing)


def classify_status(listing: ProviderListing, nap_correct: bool) -> ListingStatus:
    """
    Derive the per-directory status shown to users.

    Args:
        listing (ProviderListing): Listing reported by the provider.
        nap_correct (bool): Whether name, address and phone all matched.

    Returns:
        ListingStatus: not_listed, action_needed or found.
    """
    if is_missing(listing):
        return ListingStatus.NOT_LISTED
    if not nap_correct:
        return ListingStatus.ACTION_NEEDED
    return ListingStatus.FOUND


def classify_bucket(listing: ProviderListing, nap_correct: bool) -> str:
    """Aggregate bucket for audit totals: missing, correct or incorrect."""
    if is_missing(listing):
        return MISSING
    return CORRECT if nap_correct else INCORRECT
