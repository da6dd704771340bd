"""
Persistence interfaces for audit runs, reconciled listings and authoritative
location records, with in-memory implementations.
"""
import dataclasses
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from loguru import logger

from citation_audit.errors import AuditStateError
from citation_audit.models import (
    AuditRun,
    AuditStatus,
    AuditTotals,
    AuthoritativeRecord,
    ReconciledListing,
)

ListingKey = Tuple[str, str]


class AuditRepository(ABC):
    """Storage for audit runs and reconciled listings."""

    @abstractmethod
    async def create_audit_run(self, location_id: str, provider_report_id: str) -> AuditRun:
        """Create a new run in the `submitted` state."""

    @abstractmethod
    async def get_audit_run(self, audit_id: str) -> Optional[AuditRun]:
        ...

    @abstractmethod
    async def list_audit_runs(self, status: Optional[AuditStatus] = None) -> List[AuditRun]:
        ...

    @abstractmethod
    async def mark_running(self, audit_id: str, started_at: datetime) -> AuditRun:
        ...

    @abstractmethod
    async def mark_failed(self, audit_id: str, error: str) -> AuditRun:
        ...

    @abstractmethod
    async def complete_audit(
        self,
        audit_id: str,
        listings: List[ReconciledListing],
        totals: AuditTotals,
        completed_at: datetime,
    ) -> AuditRun:
        """
        Upsert every listing keyed by (location_id, directory_name) and mark the
        run completed with its totals. Implementations must apply all of it or
        none of it.
        """

    @abstractmethod
    async def get_listings(self, location_id: str) -> List[ReconciledListing]:
        ...


class LocationStore(ABC):
    """Read-only access to authoritative location records."""

    @abstractmethod
    async def get_location(self, location_id: str) -> Optional[AuthoritativeRecord]:
        ...


class InMemoryAuditRepository(AuditRepository):
    """
    Dict-backed repository. Runs are stored by id, listings by
    (location_id, directory_name). Returned objects are copies.
    """

    def __init__(self):
        self._runs: Dict[str, AuditRun] = {}
        self._listings: Dict[ListingKey, ReconciledListing] = {}

    def _require_run(self, audit_id: str) -> AuditRun:
        run = self._runs.get(audit_id)
        if run is None:
            raise AuditStateError(f"Unknown audit run {audit_id}")
        return run

    async def create_audit_run(self, location_id: str, provider_report_id: str) -> AuditRun:
        run = AuditRun(
            id=str(uuid.uuid4()),
            location_id=location_id,
            provider_report_id=provider_report_id,
            status=AuditStatus.SUBMITTED,
            created_at=datetime.now(timezone.utc),
        )
        self._runs[run.id] = run
        return dataclasses.replace(run)

    async def get_audit_run(self, audit_id: str) -> Optional[AuditRun]:
        run = self._runs.get(audit_id)
        return dataclasses.replace(run) if run else None

    async def list_audit_runs(self, status: Optional[AuditStatus] = None) -> List[AuditRun]:
        return [
            dataclasses.replace(run)
            for run in self._runs.values()
            if status is None or run.status == status
        ]

    async def mark_running(self, audit_id: str, started_at: datetime) -> AuditRun:
        run = self._require_run(audit_id)
        if run.status != AuditStatus.SUBMITTED:
            raise AuditStateError(f"Audit {audit_id} is {run.status.value}, expected submitted")
        run.status = AuditStatus.RUNNING
        run.started_at = started_at
        return dataclasses.replace(run)

    async def mark_failed(self, audit_id: str, error: str) -> AuditRun:
        run = self._require_run(audit_id)
        if run.status == AuditStatus.COMPLETED:
            raise AuditStateError(f"Audit {audit_id} is already completed")
        run.status = AuditStatus.FAILED
        run.last_error = error
        return dataclasses.replace(run)

    def _write_listing(self, staged: Dict[ListingKey, ReconciledListing], listing: ReconciledListing) -> None:
        staged[listing.key] = dataclasses.replace(listing)

    async def complete_audit(
        self,
        audit_id: str,
        listings: List[ReconciledListing],
        totals: AuditTotals,
        completed_at: datetime,
    ) -> AuditRun:
        run = self._require_run(audit_id)
        if run.status != AuditStatus.RUNNING:
            raise AuditStateError(f"Audit {audit_id} is {run.status.value}, expected running")

        # Stage every upsert on a copy so a failure leaves the stored state untouched
        staged = dict(self._listings)
        for listing in listings:
            self._write_listing(staged, listing)

        completed = dataclasses.replace(
            run,
            status=AuditStatus.COMPLETED,
            total_found=totals.found,
            total_correct=totals.correct,
            total_incorrect=totals.incorrect,
            total_missing=totals.missing,
            completed_at=completed_at,
            last_error=None,
        )
        self._listings = staged
        self._runs[audit_id] = completed
        logger.debug(f"Stored {len(listings)} listings for audit {audit_id}")
        return dataclasses.replace(completed)

    async def get_listings(self, location_id: str) -> List[ReconciledListing]:
        return [
            dataclasses.replace(listing)
            for (loc_id, _), listing in self._listings.items()
            if loc_id == location_id
        ]


class InMemoryLocationStore(LocationStore):
    """Location records held in a dict keyed by location id."""

    def __init__(self, records: Optional[Dict[str, AuthoritativeRecord]] = None):
        self._records: Dict[str, AuthoritativeRecord] = dict(records or {})

    def add(self, location_id: str, record: AuthoritativeRecord) -> None:
        self._records[location_id] = record

    def location_ids(self) -> Iterable[str]:
        return list(self._records)

    async def get_location(self, location_id: str) -> Optional[AuthoritativeRecord]:
        return self._records.get(location_id)
