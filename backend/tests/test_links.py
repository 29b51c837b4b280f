from datetime import datetime, timedelta, timezone

from digital_download.services.authorization import AnyOf, AnyUser, ExactGroup, ExactUser, Unrecognized
from digital_download.services.links import parse_headers, resolve_link


async def test_resolve_link_builds_link_from_token_record(seed, session_factory):
    asset = await seed.asset()
    expires = datetime.now(timezone.utc) + timedelta(days=2)
    await seed.token(
        "abc123",
        asset=asset,
        expires=expires,
        max_downloads=5,
        total_downloads=2,
        require_user=[42, "editors"],
        headers={"Cache-Control": "no-store"},
    )

    async with session_factory() as db:
        link = await resolve_link(db, "abc123")

    assert link.token == "abc123"
    assert link.asset_id == asset.id
    assert link.enabled is True
    assert link.max_downloads == 5
    assert link.total_downloads == 2
    assert link.requirement == AnyOf((ExactUser(42), ExactGroup("editors")))
    assert link.headers == {"Cache-Control": "no-store"}
    assert link.expires is not None


async def test_resolve_link_without_optional_fields(seed, session_factory):
    await seed.token("plain", asset=await seed.asset())

    async with session_factory() as db:
        link = await resolve_link(db, "plain")

    assert link.requirement == AnyUser()
    assert link.headers == {}
    assert link.expires is None
    assert link.max_downloads is None


async def test_resolve_link_returns_none_for_unknown_token(session_factory):
    async with session_factory() as db:
        assert await resolve_link(db, "missing") is None


async def test_malformed_requirement_is_kept_as_unrecognized(seed, session_factory):
    token = await seed.token("bad-acl", asset=await seed.asset())
    async with session_factory() as db:
        record = await db.get(type(token), token.id)
        record.require_user = "{broken"
        await db.commit()

    async with session_factory() as db:
        link = await resolve_link(db, "bad-acl")

    assert isinstance(link.requirement, Unrecognized)


def test_parse_headers_ignores_garbage():
    assert parse_headers(None) == {}
    assert parse_headers("not json") == {}
    assert parse_headers('["a", "b"]') == {}
    assert parse_headers('{"X-Count": 3, "X-Skip": null}') == {"X-Count": "3"}


async def test_expiry_is_read_back_in_utc(seed, session_factory):
    plus_five = timezone(timedelta(hours=5))
    expires = datetime(2026, 3, 1, 17, 0, tzinfo=plus_five)
    await seed.token("tz", asset=await seed.asset(), expires=expires)

    async with session_factory() as db:
        link = await resolve_link(db, "tz")

    assert link.expires == datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert link.expires.utcoffset() == timedelta(0)
