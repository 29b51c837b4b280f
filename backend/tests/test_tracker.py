from sqlalchemy import text

from digital_download.core.config import settings
from digital_download.errors import LinkDisabled, ResourceUnreadable
from digital_download.services.tracker import Attempt, UsageTracker


async def test_success_increments_counter_and_sets_last_downloaded(seed, session_factory):
    await seed.token("T1", asset=await seed.asset())
    tracker = UsageTracker(session_factory, keep_log=False)

    await tracker.track(Attempt(token="T1", ip_address="10.0.0.1"))

    record = await seed.get_token("T1")
    assert record.total_downloads == 1
    assert record.last_downloaded is not None


async def test_failure_leaves_counters_untouched(seed, session_factory):
    await seed.token("T1", asset=await seed.asset(), total_downloads=4)
    tracker = UsageTracker(session_factory, keep_log=False)

    await tracker.track(Attempt(token="T1"), LinkDisabled())

    record = await seed.get_token("T1")
    assert record.total_downloads == 4
    assert record.last_downloaded is None


async def test_increment_does_not_depend_on_a_stale_snapshot(seed, session_factory):
    await seed.token("T1", asset=await seed.asset())
    tracker = UsageTracker(session_factory, keep_log=False)

    # Two attempts authorized against the same counter value both count.
    await tracker.track(Attempt(token="T1"))
    await tracker.track(Attempt(token="T1"))

    assert (await seed.get_token("T1")).total_downloads == 2


async def test_audit_log_records_every_outcome(seed, session_factory):
    asset = await seed.asset()
    token = await seed.token("T1", asset=asset)
    tracker = UsageTracker(session_factory, keep_log=True)

    await tracker.track(Attempt(token="T1", user_id=42, ip_address="10.0.0.1"))
    await tracker.track(Attempt(token="T1", ip_address="10.0.0.2"), ResourceUnreadable())

    success, failure = await seed.logs()
    assert (success.token_id, success.asset_id, success.user_id) == (token.id, asset.id, 42)
    assert success.ip_address == "10.0.0.1"
    assert success.success is True
    assert success.error is None

    assert failure.user_id is None
    assert failure.success is False
    assert failure.error == "the file you are looking for does not exist"


async def test_audit_log_disabled_writes_nothing(seed, session_factory):
    await seed.token("T1", asset=await seed.asset())
    tracker = UsageTracker(session_factory, keep_log=False)

    await tracker.track(Attempt(token="T1"))
    await tracker.track(Attempt(token="T1"), LinkDisabled())

    assert await seed.logs() == []


async def test_keep_log_follows_settings_by_default(seed, session_factory, monkeypatch):
    await seed.token("T1", asset=await seed.asset())
    monkeypatch.setattr(settings, "KEEP_DOWNLOAD_LOG", False)

    await UsageTracker(session_factory).track(Attempt(token="T1"))

    assert await seed.logs() == []


async def test_unknown_token_is_a_silent_no_op(seed, session_factory):
    tracker = UsageTracker(session_factory, keep_log=True)

    await tracker.track(Attempt(token="deleted"), LinkDisabled())
    await tracker.track(Attempt(token="deleted"))

    assert await seed.logs() == []


async def test_same_attempt_is_tracked_once(seed, session_factory):
    await seed.token("T1", asset=await seed.asset())
    tracker = UsageTracker(session_factory, keep_log=True)
    attempt = Attempt(token="T1")

    await tracker.track(attempt)
    await tracker.track(attempt)

    assert (await seed.get_token("T1")).total_downloads == 1
    assert len(await seed.logs()) == 1


async def test_database_errors_do_not_escape(seed, session_factory):
    await seed.token("T1", asset=await seed.asset())
    async with session_factory() as db:
        await db.execute(text("DROP TABLE download_log"))
        await db.commit()

    tracker = UsageTracker(session_factory, keep_log=True)
    await tracker.track(Attempt(token="T1"), LinkDisabled())
