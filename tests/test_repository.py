import pytest
from datetime import datetime, timezone

from citation_audit.errors import AuditStateError
from citation_audit.models import AuditStatus, AuditTotals, AuthoritativeRecord, ListingStatus, ReconciledListing
from citation_audit.repository import InMemoryAuditRepository, InMemoryLocationStore


def make_listing(audit_id, directory, status=ListingStatus.FOUND, location_id="loc-1"):
    return ReconciledListing(
        location_id=location_id,
        audit_id=audit_id,
        directory_name=directory,
        listing_url=None,
        expected_name="Joe's Pizza",
        expected_address="",
        expected_phone="",
        found_name=None,
        found_address=None,
        found_phone=None,
        name_match=True,
        address_match=True,
        phone_match=True,
        nap_correct=True,
        status=status,
        recommendation=None,
        last_checked_at=datetime.now(timezone.utc),
    )


@pytest.mark.asyncio
async def test_run_lifecycle():
    repo = InMemoryAuditRepository()
    run = await repo.create_audit_run("loc-1", "r-1")
    assert run.status == AuditStatus.SUBMITTED
    assert run.created_at is not None

    running = await repo.mark_running(run.id, datetime.now(timezone.utc))
    assert running.status == AuditStatus.RUNNING
    assert [r.id for r in await repo.list_audit_runs(AuditStatus.RUNNING)] == [run.id]

    with pytest.raises(AuditStateError):
        await repo.mark_running(run.id, datetime.now(timezone.utc))

    done = await repo.complete_audit(run.id, [make_listing(run.id, "Yelp")], AuditTotals(found=1, correct=1), datetime.now(timezone.utc))
    assert done.status == AuditStatus.COMPLETED
    assert done.total_found == 1
    assert done.total_correct == 1

    with pytest.raises(AuditStateError):
        await repo.complete_audit(run.id, [], AuditTotals(), datetime.now(timezone.utc))
    with pytest.raises(AuditStateError):
        await repo.mark_failed(run.id, "late failure")


@pytest.mark.asyncio
async def test_returned_runs_are_copies():
    repo = InMemoryAuditRepository()
    run = await repo.create_audit_run("loc-1", "r-1")
    run.status = AuditStatus.COMPLETED
    assert (await repo.get_audit_run(run.id)).status == AuditStatus.SUBMITTED


@pytest.mark.asyncio
async def test_upsert_keeps_one_row_per_directory():
    repo = InMemoryAuditRepository()
    first = await repo.create_audit_run("loc-1", "r-1")
    await repo.mark_running(first.id, datetime.now(timezone.utc))
    await repo.complete_audit(first.id, [make_listing(first.id, "Yelp", ListingStatus.ACTION_NEEDED)], AuditTotals(found=1, incorrect=1), datetime.now(timezone.utc))

    second = await repo.create_audit_run("loc-1", "r-1")
    await repo.mark_running(second.id, datetime.now(timezone.utc))
    await repo.complete_audit(second.id, [make_listing(second.id, "Yelp")], AuditTotals(found=1, correct=1), datetime.now(timezone.utc))

    listings = await repo.get_listings("loc-1")
    assert len(listings) == 1
    assert listings[0].audit_id == second.id
    assert listings[0].status == ListingStatus.FOUND


@pytest.mark.asyncio
async def test_listings_scoped_by_location():
    repo = InMemoryAuditRepository()
    run = await repo.create_audit_run("loc-1", "r-1")
    await repo.mark_running(run.id, datetime.now(timezone.utc))
    await repo.complete_audit(
        run.id,
        [make_listing(run.id, "Yelp"), make_listing(run.id, "Yelp", location_id="loc-2")],
        AuditTotals(found=2, correct=2),
        datetime.now(timezone.utc),
    )
    assert len(await repo.get_listings("loc-1")) == 1
    assert len(await repo.get_listings("loc-2")) == 1
    assert await repo.get_listings("loc-3") == []


@pytest.mark.asyncio
async def test_mark_failed_records_error():
    repo = InMemoryAuditRepository()
    run = await repo.create_audit_run("loc-1", "r-1")
    failed = await repo.mark_failed(run.id, "scan refused")
    assert failed.status == AuditStatus.FAILED
    assert failed.last_error == "scan refused"


@pytest.mark.asyncio
async def test_unknown_run():
    repo = InMemoryAuditRepository()
    assert await repo.get_audit_run("nope") is None
    with pytest.raises(AuditStateError):
        await repo.mark_failed("nope", "x")


@pytest.mark.asyncio
async def test_location_store():
    record = AuthoritativeRecord(name="Joe's Pizza")
    store = InMemoryLocationStore({"loc-1": record})
    store.add("loc-2", AuthoritativeRecord(name="Other"))
    assert await store.get_location("loc-1") is record
    assert await store.get_location("missing") is None
    assert sorted(store.location_ids()) == ["loc-1", "loc-2"]
