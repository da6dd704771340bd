"""
Typed data models for the citation audit engine.
All data structures used throughout the codebase should be defined here.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from citation_audit.errors import AuditDataError


class ProviderStatus(str, Enum):
    """Provider's confidence that a listing exists on a directory."""
    ACTIVE = "active"
    PENDING = "pending"
    POSSIBLE = "possible"


class ListingStatus(str, Enum):
    NOT_LISTED = "not_listed"
    ACTION_NEEDED = "action_needed"
    FOUND = "found"


class AuditStatus(str, Enum):
    SUBMITTED = "submitted"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# Provider payload keys that map onto ProviderListing fields; everything else is metadata
_LISTING_KEYS = {"source", "url", "citation-status", "business-name", "address", "telephone"}


def _found_text(payload: Mapping[str, Any], key: str) -> Optional[str]:
    """Read a reported NAP field as text; numbers (e.g. a JSON phone number) are stringified."""
    value = payload.get(key)
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise AuditDataError(f"Provider listing field {key!r} is not text: {value!r}")


@dataclass
class AuthoritativeRecord:
    """A location's own source-of-truth NAP data."""
    name: str
    phone: str = ""
    address_line: str = ""
    city: str = ""
    region: str = ""
    postal_code: str = ""

    @property
    def expected_address(self) -> str:
        parts = [self.address_line, self.city, self.region, self.postal_code]
        return ", ".join(p for p in parts if p)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AuthoritativeRecord":
        """Build a record from a location row (name, phone, address_line1, city, state, postal_code)."""
        def text(key: str) -> str:
            value = row.get(key)
            return str(value) if value else ""

        return cls(
            name=text("name"),
            phone=text("phone"),
            address_line=text("address_line1"),
            city=text("city"),
            region=text("state"),
            postal_code=text("postal_code"),
        )


@dataclass(frozen=True)
class ProviderListing:
    """One directory listing as reported by the provider for an audit run."""
    source: str
    listing_url: Optional[str] = None
    provider_status: str = ProviderStatus.POSSIBLE.value
    found_name: Optional[str] = None
    found_address: Optional[str] = None
    found_phone: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_provider(cls, payload: Mapping[str, Any]) -> "ProviderListing":
        """
        Parse a citation entry from the provider's results payload.

        Args:
            payload: Citation dict with hyphenated keys ("citation-status", "business-name", ...).

        Returns:
            ProviderListing: The parsed listing, other provider fields kept in `metadata`.
        """
        if not isinstance(payload, Mapping):
            raise AuditDataError(f"Malformed provider listing: {payload!r}")
        source = payload.get("source")
        if not source:
            raise AuditDataError(f"Provider listing has no source: {dict(payload)}")

        return cls(
            source=str(source),
            listing_url=payload.get("url") or None,
            provider_status=str(payload.get("citation-status") or ""),
            found_name=_found_text(payload, "business-name"),
            found_address=_found_text(payload, "address"),
            found_phone=_found_text(payload, "telephone"),
            metadata={k: v for k, v in payload.items() if k not in _LISTING_KEYS},
        )


@dataclass(frozen=True)
class NAPMatch:
    """Field-by-field comparison of a listing against the authoritative record."""
    name_match: bool
    address_match: bool
    phone_match: bool

    @property
    def nap_correct(self) -> bool:
        return self.name_match and self.address_match and self.phone_match


@dataclass
class ReconciledListing:
    """Reconciled result for one (location, directory) pair."""
    location_id: str
    audit_id: str
    directory_name: str
    listing_url: Optional[str]
    expected_name: str
    expected_address: str
    expected_phone: str
    found_name: Optional[str]
    found_address: Optional[str]
    found_phone: Optional[str]
    name_match: bool
    address_match: bool
    phone_match: bool
    nap_correct: bool
    status: ListingStatus
    recommendation: Optional[str]
    last_checked_at: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self):
        return (self.location_id, self.directory_name)


@dataclass(frozen=True)
class AuditTotals:
    """Aggregate counts over every listing returned for an audit run."""
    found: int = 0
    correct: int = 0
    incorrect: int = 0
    missing: int = 0


@dataclass
class AuditRun:
    """One submit -> poll -> reconcile cycle for a location."""
    id: str
    location_id: str
    provider_report_id: str
    status: AuditStatus = AuditStatus.SUBMITTED
    total_found: int = 0
    total_correct: int = 0
    total_incorrect: int = 0
    total_missing: int = 0
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_error: Optional[str] = None
