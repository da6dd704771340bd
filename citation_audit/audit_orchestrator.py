# citation_audit/audit_orchestrator.py

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional

from loguru import logger

from citation_audit.clients import ProviderClient
from citation_audit.config import POLL_BATCH_SIZE
from citation_audit.errors import AuditDataError, AuditStateError, ProviderError
from citation_audit.matchers.listing_reconciler import reconcile_listing
from citation_audit.matchers.status_classifier import CORRECT, INCORRECT, MISSING, classify_bucket
from citation_audit.models import (
    AuditRun,
    AuditStatus,
    AuditTotals,
    AuthoritativeRecord,
    ProviderListing,
    ReconciledListing,
)
from citation_audit.repository import AuditRepository, LocationStore

TERMINAL_STATUSES = {"complete", "completed"}


def is_report_complete(status: Optional[str]) -> bool:
    return (status or "").strip().lower() in TERMINAL_STATUSES


def compute_totals(listings: List[ProviderListing], reconciled: List[ReconciledListing]) -> AuditTotals:
    """
    Count every listing returned by the provider into missing, correct or
    incorrect. `found` is the number of listings returned, missing ones included.

    Args:
        listings (List[ProviderListing]): Listings as reported by the provider.
        reconciled (List[ReconciledListing]): Results in the same order.

    Returns:
        AuditTotals: Aggregate counts for the run.
    """
    counts = {MISSING: 0, CORRECT: 0, INCORRECT: 0}
    for listing, result in zip(listings, reconciled):
        counts[classify_bucket(listing, result.nap_correct)] += 1

    return AuditTotals(
        found=len(listings),
        correct=counts[CORRECT],
        incorrect=counts[INCORRECT],
        missing=counts[MISSING],
    )


def batch_iter(runs: List[AuditRun], batch_size: int):
    """Yield slices of `runs` of size `batch_size`."""
    for i in range(0, len(runs), batch_size):
        yield runs[i:i + batch_size]


class AuditOrchestrator:
    """
    Drives audit runs through submit -> poll -> reconcile.

    The provider client, repository and location store are owned by the
    caller; the orchestrator holds no other state, so independent runs can
    be polled concurrently.
    """

    def __init__(
        self,
        provider: ProviderClient,
        repository: AuditRepository,
        locations: LocationStore,
        batch_size: int = POLL_BATCH_SIZE,
    ):
        self.provider = provider
        self.repository = repository
        self.locations = locations
        self.batch_size = max(1, batch_size)

    async def _get_authoritative(self, location_id: str) -> AuthoritativeRecord:
        record = await self.locations.get_location(location_id)
        if record is None:
            raise AuditDataError(f"No authoritative record for location {location_id}")
        return record

    async def submit_audit(self, location_id: str) -> AuditRun:
        """
        Register the location with the provider, create an audit run and start
        the provider scan.

        Args:
            location_id (str): Location to audit.

        Returns:
            AuditRun: The run, `running` if the scan started or `failed` if the
            provider refused to start it.
        """
        record = await self._get_authoritative(location_id)
        report_id = await self.provider.submit_report(location_id, record)
        run = await self.repository.create_audit_run(location_id, report_id)
        logger.info(f"Submitted audit {run.id} for location {location_id} (report {report_id})")

        try:
            await self.provider.run_report(report_id)
        except ProviderError as e:
            logger.error(f"Failed to start scan for audit {run.id}: {e}")
            return await self.repository.mark_failed(run.id, str(e))

        return await self.repository.mark_running(run.id, datetime.now(timezone.utc))

    def reconcile(
        self,
        run: AuditRun,
        listings: List[ProviderListing],
        authoritative: AuthoritativeRecord,
        checked_at: datetime,
    ) -> List[ReconciledListing]:
        """Reconcile every provider listing for a run. Pure, no I/O."""
        return [
            reconcile_listing(listing, authoritative, run.location_id, run.id, checked_at)
            for listing in listings
        ]

    async def poll_and_reconcile(self, run: AuditRun) -> bool:
        """
        Check whether the provider finished the run's report and, if so,
        reconcile and persist every listing together with the run's totals.

        Safe to call repeatedly: while the report is still running, or when the
        provider fails transiently, nothing is written and False is returned.

        Args:
            run (AuditRun): A run in the `running` state.

        Returns:
            bool: True if results were reconciled and stored on this call.
        """
        if run.status != AuditStatus.RUNNING:
            raise AuditStateError(
                f"Cannot reconcile audit {run.id} in state {AuditStatus(run.status).value}"
            )

        try:
            status = await self.provider.get_report_status(run.provider_report_id)
            if not is_report_complete(status):
                logger.debug(f"Audit {run.id}: report {run.provider_report_id} is {status!r}, check back later")
                return False

            listings = await self.provider.get_report_listings(run.provider_report_id)
            authoritative = await self._get_authoritative(run.location_id)
        except ProviderError as e:
            logger.warning(f"Audit {run.id}: provider error, will retry on next poll: {e}")
            return False
        except AuditDataError as e:
            logger.error(f"Audit {run.id}: {e}")
            raise

        checked_at = datetime.now(timezone.utc)
        reconciled = self.reconcile(run, listings, authoritative, checked_at)
        totals = compute_totals(listings, reconciled)

        await self.repository.complete_audit(run.id, reconciled, totals, checked_at)
        logger.info(
            f"Audit {run.id} completed: {totals.found} listings, {totals.correct} correct, "
            f"{totals.incorrect} incorrect, {totals.missing} missing"
        )
        return True

    async def _poll_one(self, run: AuditRun) -> str:
        try:
            pulled = await self.poll_and_reconcile(run)
        except AuditStateError:
            raise
        except AuditDataError:
            return "errors"
        except Exception as e:
            # One broken run must not stop the rest of the cycle
            logger.exception(f"Audit {run.id}: unexpected error while polling: {e}")
            return "errors"
        return "pulled" if pulled else "pending"

    async def poll_running_audits(self) -> Dict[str, int]:
        """
        Poll every running audit once, in concurrent batches.

        Returns:
            Dict[str, int]: Counts of runs that were `pulled`, still `pending`,
            or failed on this poll (`errors`).
        """
        stats = {"pulled": 0, "pending": 0, "errors": 0}
        running = await self.repository.list_audit_runs(AuditStatus.RUNNING)
        if not running:
            logger.debug("No running audits to poll")
            return stats

        for batch in batch_iter(running, self.batch_size):
            outcomes = await asyncio.gather(*[self._poll_one(run) for run in batch])
            for outcome in outcomes:
                stats[outcome] += 1

        logger.info(f"Poll cycle: {stats['pulled']} pulled, {stats['pending']} pending, {stats['errors']} errors")
        return stats
