from citation_audit.matchers.recommendation_builder import build_recommendation
from citation_audit.models import ProviderListing

NAME = "Joe's Pizza"
PHONE = "(555) 123-4567"


def test_not_live_always_suggests_submission():
    listing = ProviderListing(source="Yelp", found_name="Wrong Name", found_phone="000")
    assert build_recommendation(listing, False, NAME, PHONE) == (
        "Not listed on Yelp. Submit business listing to improve citation coverage."
    )


def test_live_and_matching_returns_none():
    listing = ProviderListing(source="Yelp", found_name="JOES PIZZA", found_phone="555-123-4567")
    assert build_recommendation(listing, True, NAME, PHONE) is None


def test_live_without_data_returns_none():
    listing = ProviderListing(source="Yelp")
    assert build_recommendation(listing, True, NAME, PHONE) is None


def test_phone_mismatch_only():
    listing = ProviderListing(source="Bing", found_name="Joe's Pizza", found_phone="555-000-0000")
    assert build_recommendation(listing, True, NAME, PHONE) == (
        "Incorrect phone number on Bing. Update the listing to match current business information."
    )


def test_name_and_phone_mismatch_name_first():
    listing = ProviderListing(source="Bing", found_name="Joe Pizzeria", found_phone="555-000-0000")
    assert build_recommendation(listing, True, NAME, PHONE) == (
        "Incorrect business name, phone number on Bing. "
        "Update the listing to match current business information."
    )


def test_address_mismatch_not_mentioned():
    listing = ProviderListing(source="Bing", found_address="1 Other Rd")
    assert build_recommendation(listing, True, NAME, PHONE) is None
