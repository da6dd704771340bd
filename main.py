import os
import asyncio
import pandas as pd
import csv
from typing import Dict, List
import sys
from loguru import logger

from citation_audit.models import AuditRun, AuditStatus, AuthoritativeRecord, ReconciledListing
from citation_audit.audit_orchestrator import AuditOrchestrator
from citation_audit.repository import InMemoryAuditRepository, InMemoryLocationStore
from citation_audit.errors import CitationAuditError
from citation_audit.config import INPUT_CSV, OUTPUT_CSV, LOG_LEVEL, MAX_POLLS, POLL_INTERVAL_SECONDS
from citation_audit.clients import BrightLocalClient

OUTPUT_COLUMNS = [
    "location_id", "audit_id", "directory_name", "listing_url", "status",
    "nap_correct", "name_match", "address_match", "phone_match",
    "expected_name", "found_name", "expected_address", "found_address",
    "expected_phone", "found_phone", "recommendation", "last_checked_at",
]


def load_locations_from_csv(file_path: str, nrows: int = None) -> Dict[str, AuthoritativeRecord]:
    """Load locations from CSV, keyed by the `id` column."""
    df = pd.read_csv(file_path, nrows=nrows, dtype=str)
    # NaN -> "" so missing columns read as absent
    df = df.fillna("")
    records = {}
    for _, row in df.iterrows():
        location_id = str(row.get("id", "")).strip()
        if not location_id:
            logger.warning(f"Skipping location row without id: {row.to_dict()}")
            continue
        records[location_id] = AuthoritativeRecord.from_row(row.to_dict())
    return records


async def submit_all(orchestrator: AuditOrchestrator, location_ids: List[str]) -> List[AuditRun]:
    """Submit one audit per location. Locations that cannot be submitted are logged and skipped."""
    runs = []
    for location_id in location_ids:
        try:
            runs.append(await orchestrator.submit_audit(location_id))
        except CitationAuditError as e:
            logger.error(f"Could not submit audit for location {location_id}: {e}")
    return runs


async def poll_until_done(orchestrator: AuditOrchestrator, repository: InMemoryAuditRepository):
    """Poll running audits until none is left running or MAX_POLLS is reached."""
    for attempt in range(1, MAX_POLLS + 1):
        stats = await orchestrator.poll_running_audits()
        remaining = await repository.list_audit_runs(AuditStatus.RUNNING)
        if not remaining:
            return
        logger.info(f"Poll {attempt}/{MAX_POLLS}: {len(remaining)} audits still running ({stats})")
        if attempt < MAX_POLLS:
            await asyncio.sleep(POLL_INTERVAL_SECONDS)
    logger.warning("Stopped polling with audits still running; they will show as running")


def write_listings_csv(output_path: str, listings: List[ReconciledListing]):
    with open(output_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(OUTPUT_COLUMNS)
        for listing in listings:
            row = []
            for column in OUTPUT_COLUMNS:
                value = getattr(listing, column)
                if column == "status":
                    value = listing.status.value
                elif column == "last_checked_at":
                    value = listing.last_checked_at.isoformat()
                row.append("" if value is None else value)
            writer.writerow(row)


async def main():
    """
    Run a full citation audit for every location in the input CSV.

    - Submits a provider report per location.
    - Polls until the reports complete and reconciles their listings.
    - Writes every reconciled listing to the output CSV.
    """
    # Initialize logs
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=LOG_LEVEL, format="<green>{time:HH:mm:ss}</green> | <level>{message}</level>")

    locations = load_locations_from_csv(INPUT_CSV)
    store = InMemoryLocationStore(locations)
    repository = InMemoryAuditRepository()
    client = BrightLocalClient()
    orchestrator = AuditOrchestrator(client, repository, store)

    try:
        runs = await submit_all(orchestrator, list(locations))
        logger.info(f"Submitted {len(runs)} audits for {len(locations)} locations")
        await poll_until_done(orchestrator, repository)
    finally:
        # Cleanup: close the client session to prevent unclosed connector warnings
        await client.close()

    all_listings = []
    for location_id in locations:
        all_listings.extend(await repository.get_listings(location_id))

    if os.path.exists(OUTPUT_CSV):
        os.remove(OUTPUT_CSV)
    write_listings_csv(OUTPUT_CSV, all_listings)

    for run in await repository.list_audit_runs():
        print(
            f"{run.location_id}: {run.status.value} "
            f"(found={run.total_found}, correct={run.total_correct}, "
            f"incorrect={run.total_incorrect}, missing={run.total_missing})"
        )

if __name__ == "__main__":
    asyncio.run(main())
