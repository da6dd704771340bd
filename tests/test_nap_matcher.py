from citation_audit.matchers.nap_matcher import match_nap
from citation_audit.models import AuthoritativeRecord, ProviderListing

AUTHORITATIVE = AuthoritativeRecord(
    name="Joe's Pizza",
    phone="(555) 123-4567",
    address_line="123 Main St",
    city="New York",
    region="NY",
    postal_code="10001",
)


def test_expected_address_skips_empty_parts():
    assert AUTHORITATIVE.expected_address == "123 Main St, New York, NY, 10001"
    assert AuthoritativeRecord(name="X", city="Austin", postal_code="78701").expected_address == "Austin, 78701"


def test_formatting_differences_match():
    listing = ProviderListing(
        source="Yelp",
        listing_url="https://yelp.com/biz/joes",
        provider_status="active",
        found_name="JOE'S PIZZA",
        found_address="123 Main St., New York, NY 10001",
        found_phone="+1 555.123.4567",
    )
    match = match_nap(listing, AUTHORITATIVE)
    assert match.name_match
    assert match.address_match
    assert match.phone_match
    assert match.nap_correct


def test_missing_fields_are_not_penalized():
    listing = ProviderListing(source="Bing", provider_status="active")
    match = match_nap(listing, AUTHORITATIVE)
    assert match.nap_correct


def test_missing_phone_matches_regardless_of_authoritative_phone():
    listing = ProviderListing(source="Bing", found_phone=None, found_name="Joes Pizza")
    for phone in ["", "(555) 123-4567", "999"]:
        record = AuthoritativeRecord(name="Joe's Pizza", phone=phone)
        assert match_nap(listing, record).phone_match is True


def test_single_contradicted_field_fails_record():
    listing = ProviderListing(
        source="Foursquare",
        found_name="Joe's Pizza",
        found_phone="(555) 999-0000",
    )
    match = match_nap(listing, AUTHORITATIVE)
    assert match.name_match
    assert match.address_match
    assert not match.phone_match
    assert not match.nap_correct


def test_address_mismatch():
    listing = ProviderListing(source="YP", found_address="9 Elm St, Boston, MA, 02108")
    match = match_nap(listing, AUTHORITATIVE)
    assert not match.address_match
    assert not match.nap_correct
