import asyncio
import json

import pytest

from sky_sdk.client import SkynetClient
from sky_sdk.config import RequestOptions
from sky_sdk.constants import DELETION_ENTRY_DATA
from sky_sdk.crypto import hash_data_key
from sky_sdk.errors import (ConcurrentAccessError, ExecuteRequestError,
                            RegistryUpdateError, ValidationError,
                            VerificationError)
from sky_sdk.registry.entry import RegistryEntry
from sky_sdk.skydb import EntryStatus
from sky_sdk.skylink import decode_skylink, encode_skylink_base32

JSON_OLD = {"message": 1}
JSON_NEW = {"message": 2}


async def _delayed(delay: float, coro):
    await asyncio.sleep(delay)
    return await coro


# --- basic reads and writes -------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize("data_key", ["app", "", ".", "..", "http://localhost:8000/", "ключ π ✓"])
async def test_set_and_get_json(client, key_pair, data_key):
    set_resp = await client.db.set_json(key_pair.private_key, data_key, {"foo": "bar", "n": [1, 2]})
    assert set_resp.data == {"foo": "bar", "n": [1, 2]}
    assert set_resp.data_link.startswith("sia:")

    resp = await client.db.get_json(key_pair.public_key, data_key)
    assert resp.data == {"foo": "bar", "n": [1, 2]}
    assert resp.data_link == set_resp.data_link
    assert resp.status is EntryStatus.PRESENT


@pytest.mark.asyncio
async def test_get_json_absent(client, key_pair):
    resp = await client.db.get_json(key_pair.public_key, "nothing here")
    assert resp.data is None and resp.data_link is None
    assert resp.status is EntryStatus.ABSENT


@pytest.mark.asyncio
async def test_content_is_wrapped_in_envelope(client, portal, key_pair):
    resp = await client.db.set_json(key_pair.private_key, "app", {"a": "π"})
    stored = portal.content[resp.data_link[len("sia:"):]]
    assert json.loads(stored.decode("utf-8")) == {"_data": {"a": "π"}, "_v": 2}
    assert ("upload", f"dk:{hash_data_key('app').hex()}") in portal.calls


@pytest.mark.asyncio
async def test_set_json_revisions(client, portal, key_pair):
    await client.db.set_json(key_pair.private_key, "app", JSON_OLD)
    cached = await client.revision_number_cache.get_revision_and_mutex_for_entry(key_pair.public_key, "app")
    assert cached.revision == 0

    await client.db.set_json(key_pair.private_key, "app", JSON_NEW)
    assert cached.revision == 1

    await client.db.get_json(key_pair.public_key, "app")
    assert cached.revision == 1
    assert portal.entries[(key_pair.public_key, hash_data_key("app").hex())]["revision"] == 1


@pytest.mark.asyncio
async def test_hashed_data_key_hex_option(client, key_pair):
    hashed = hash_data_key("test").hex()
    await client.db.set_json(key_pair.private_key, hashed, {"message": "foo"}, hashed_data_key_hex=True)
    resp = await client.db.get_json(key_pair.public_key, "test", hashed_data_key_hex=False)
    assert resp.data == {"message": "foo"}

    # Both forms share one revision cache entry
    await client.db.set_json(key_pair.private_key, "test", {"message": "bar"})
    assert client.revision_number_cache.peek_revision(key_pair.public_key, hashed, True) == 1


@pytest.mark.asyncio
async def test_cached_data_link_skips_download(client, portal, key_pair):
    resp = await client.db.set_json(key_pair.private_key, "app", JSON_OLD)
    downloads = portal.count("download")

    same = await client.db.get_json(key_pair.public_key, "app", cached_data_link=resp.data_link)
    assert same.data is None
    assert same.data_link == resp.data_link
    assert same.status is EntryStatus.UNCHANGED
    assert portal.count("download") == downloads

    # The cached link may be given in base32 form and without prefix
    b32 = encode_skylink_base32(decode_skylink(resp.data_link))
    assert (await client.db.get_json(key_pair.public_key, "app", RequestOptions(cached_data_link=b32))).data is None

    await client.db.set_json(key_pair.private_key, "app", JSON_NEW)
    changed = await client.db.get_json(key_pair.public_key, "app", cached_data_link=resp.data_link)
    assert changed.data == JSON_NEW
    assert changed.status is EntryStatus.PRESENT


@pytest.mark.asyncio
async def test_legacy_json_is_returned_as_is(client, portal, key_pair):
    link = await portal.upload(json.dumps({"legacy": True, "_v": 1}).encode(), "legacy", "application/json")
    await client.db.set_data_link(key_pair.private_key, "app", link)
    resp = await client.db.get_json(key_pair.public_key, "app")
    assert resp.data == {"legacy": True, "_v": 1}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "content",
    [b"[1, 2]", b"\"str\"", b"{not json", b"\xff\xfe", b"{\"_data\": [1], \"_v\": 2}", b"{\"_data\": \"str\", \"_v\": 2}"],
)
async def test_undecodable_content_is_fatal(client, portal, key_pair, content):
    link = await portal.upload(content, "bad", "application/json")
    await client.db.set_data_link(key_pair.private_key, "app", link)
    with pytest.raises(VerificationError):
        await client.db.get_json(key_pair.public_key, "app")


@pytest.mark.asyncio
async def test_set_json_validation(client, portal, key_pair):
    with pytest.raises(ValidationError):
        await client.db.set_json(key_pair.private_key, "app", [1, 2])  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        await client.db.set_json(key_pair.private_key, 7, {"a": 1})  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        await client.db.set_json("bad key", "app", {"a": 1})
    with pytest.raises(ValidationError):
        await client.db.get_json("bad key", "app")
    assert portal.calls == []


# --- deletion -------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_delete_json_writes_tombstone(client, portal, key_pair):
    await client.db.set_json(key_pair.private_key, "app", JSON_OLD)
    await client.db.delete_json(key_pair.private_key, "app")

    stored = portal.entries[(key_pair.public_key, hash_data_key("app").hex())]
    assert bytes.fromhex(stored["data"]) == DELETION_ENTRY_DATA
    assert stored["revision"] == 1

    resp = await client.db.get_json(key_pair.public_key, "app")
    assert resp.data is None and resp.data_link is None
    assert (await client.db.get_entry_data(key_pair.public_key, "app")).data is None
    assert (await client.db.get_raw_bytes(key_pair.public_key, "app")).data is None

    await client.db.set_json(key_pair.private_key, "app", JSON_NEW)
    assert (await client.db.get_json(key_pair.public_key, "app")).data == JSON_NEW
    assert client.revision_number_cache.peek_revision(key_pair.public_key, "app") == 2


@pytest.mark.asyncio
async def test_delete_absent_entry(client, portal, key_pair):
    await client.db.delete_json(key_pair.private_key, "never set")
    assert portal.entries[(key_pair.public_key, hash_data_key("never set").hex())]["revision"] == 0


# --- entry data and raw bytes ---------------------------------------------------------------


@pytest.mark.asyncio
async def test_entry_data_roundtrip(client, key_pair):
    for data in (b"", b"small", bytes(range(70))):
        resp = await client.db.set_entry_data(key_pair.private_key, "raw", data)
        assert resp.data == data
        assert (await client.db.get_entry_data(key_pair.public_key, "raw")).data == data
    assert (await client.db.get_entry_data(key_pair.public_key, "unset")).data is None


@pytest.mark.asyncio
async def test_entry_data_validation(client, portal, key_pair):
    with pytest.raises(ValidationError):
        await client.db.set_entry_data(key_pair.private_key, "raw", bytes(71))
    with pytest.raises(ValidationError):
        await client.db.set_entry_data(key_pair.private_key, "raw", DELETION_ENTRY_DATA)
    assert portal.calls == []

    await client.db.set_entry_data(key_pair.private_key, "raw", DELETION_ENTRY_DATA, allow_deletion_entry_data=True)
    assert (await client.db.get_entry_data(key_pair.public_key, "raw")).data is None


@pytest.mark.asyncio
async def test_delete_entry_data(client, key_pair):
    await client.db.set_entry_data(key_pair.private_key, "raw", b"x")
    await client.db.delete_entry_data(key_pair.private_key, "raw")
    assert (await client.db.get_entry_data(key_pair.public_key, "raw")).data is None


@pytest.mark.asyncio
async def test_raw_bytes(client, key_pair):
    payload = bytes(range(256)) * 4
    set_resp = await client.db.set_raw_bytes(key_pair.private_key, "blob", payload)
    resp = await client.db.get_raw_bytes(key_pair.public_key, "blob")
    assert resp.data == payload
    assert resp.data_link == set_resp.data_link

    unchanged = await client.db.get_raw_bytes(key_pair.public_key, "blob", cached_data_link=set_resp.data_link)
    assert unchanged.data is None and unchanged.status is EntryStatus.UNCHANGED


@pytest.mark.asyncio
async def test_set_data_link_accepts_base32(client, portal, key_pair):
    link = await portal.upload(b'{"x": 1}', "x", "application/json")
    b32 = encode_skylink_base32(decode_skylink(link))
    await client.db.set_data_link(key_pair.private_key, "app", f"sia:{b32}")
    resp = await client.db.get_json(key_pair.public_key, "app")
    assert resp.data == {"x": 1}
    assert resp.data_link == f"sia:{link}"


@pytest.mark.asyncio
async def test_legacy_text_data_link_in_entry(client, portal, key_pair):
    link = await portal.upload(b'{"x": 2}', "x", "application/json")
    await client.registry.set_entry(key_pair.private_key, RegistryEntry(data_key="app", data=link.encode("ascii"), revision=0))
    resp = await client.db.get_json(key_pair.public_key, "app")
    assert resp.data == {"x": 2}
    assert resp.data_link == f"sia:{link}"


# --- revision protocol under concurrency ------------------------------------------------------


def _errors(results):
    return [r for r in results if isinstance(r, BaseException)]


@pytest.mark.asyncio
async def test_stale_read_after_local_write_is_rejected(client, portal, key_pair):
    key = (key_pair.public_key, hash_data_key("app").hex())
    await client.db.set_json(key_pair.private_key, "app", JSON_OLD)
    old_body = dict(portal.body_for(key))
    await client.db.set_json(key_pair.private_key, "app", JSON_NEW)

    # A lagging portal serves revision 0 after this client wrote revision 1
    portal.stale[key] = old_body
    with pytest.raises(ConcurrentAccessError, match="Concurrent access prevented in SkyDB"):
        await client.db.get_json(key_pair.public_key, "app")
    assert client.revision_number_cache.peek_revision(key_pair.public_key, "app") == 1

    portal.stale[key] = None
    with pytest.raises(ConcurrentAccessError):
        await client.db.get_json(key_pair.public_key, "app")

    assert (await client.db.get_json(key_pair.public_key, "app")).data == JSON_NEW


@pytest.mark.asyncio
@pytest.mark.parametrize("delay", [0, 0.01, 0.05])
async def test_get_json_concurrent_with_set_json_on_one_client(slow_portal, key_pair, delay):
    client = SkynetClient(transport=slow_portal)
    await client.db.set_json(key_pair.private_key, "app", JSON_OLD)

    got, written = await asyncio.gather(
        _delayed(delay, client.db.get_json(key_pair.public_key, "app")),
        client.db.set_json(key_pair.private_key, "app", JSON_NEW),
        return_exceptions=True,
    )
    for err in _errors([got, written]):
        assert isinstance(err, ConcurrentAccessError)
    if not isinstance(got, BaseException):
        assert got.data in (JSON_OLD, JSON_NEW)
    if not isinstance(written, BaseException):
        assert (await client.db.get_json(key_pair.public_key, "app")).data == JSON_NEW


@pytest.mark.asyncio
@pytest.mark.parametrize("delay", [0, 0.01, 0.05])
async def test_concurrent_set_json_on_one_client(slow_portal, key_pair, delay):
    client = SkynetClient(transport=slow_portal)
    late, early = await asyncio.gather(
        _delayed(delay, client.db.set_json(key_pair.private_key, "app", JSON_NEW)),
        client.db.set_json(key_pair.private_key, "app", JSON_OLD),
        return_exceptions=True,
    )
    assert not isinstance(early, BaseException)
    final = (await client.db.get_json(key_pair.public_key, "app")).data
    if isinstance(late, BaseException):
        assert isinstance(late, ConcurrentAccessError)
        assert final == JSON_OLD
    else:
        assert final == JSON_NEW
        assert client.revision_number_cache.peek_revision(key_pair.public_key, "app") == 1


@pytest.mark.asyncio
async def test_simultaneous_set_json_on_one_client_fails_fast(client, key_pair):
    results = await asyncio.gather(
        client.db.set_json(key_pair.private_key, "app", JSON_NEW),
        client.db.set_json(key_pair.private_key, "app", JSON_OLD),
        return_exceptions=True,
    )
    assert not isinstance(results[0], BaseException)
    assert isinstance(results[1], ConcurrentAccessError)
    assert (await client.db.get_json(key_pair.public_key, "app")).data == JSON_NEW
    assert client.revision_number_cache.peek_revision(key_pair.public_key, "app") == 0


@pytest.mark.asyncio
async def test_stale_client_loses_to_registry(portal, key_pair):
    client1 = SkynetClient(transport=portal)
    client2 = SkynetClient(transport=portal)

    await client1.db.set_json(key_pair.private_key, "app", JSON_OLD)
    assert (await client2.db.get_json(key_pair.public_key, "app")).data == JSON_OLD
    assert client2.revision_number_cache.peek_revision(key_pair.public_key, "app") == 0

    await client1.db.set_json(key_pair.private_key, "app", JSON_NEW)

    # client2 still believes revision 0 is current and must not clobber revision 1
    with pytest.raises(RegistryUpdateError, match="Unable to update the registry"):
        await client2.db.set_json(key_pair.private_key, "app", {"message": 3})
    assert (await client1.db.get_json(key_pair.public_key, "app")).data == JSON_NEW
    assert client2.revision_number_cache.peek_revision(key_pair.public_key, "app") == 0

    # After refreshing, client2 writes on top
    assert (await client2.db.get_json(key_pair.public_key, "app")).data == JSON_NEW
    assert client2.revision_number_cache.peek_revision(key_pair.public_key, "app") == 1
    await client2.db.set_json(key_pair.private_key, "app", {"message": 3})
    assert (await client1.db.get_json(key_pair.public_key, "app")).data == {"message": 3}


@pytest.mark.asyncio
@pytest.mark.parametrize("delay", [0, 0.01, 0.05])
async def test_concurrent_set_json_on_two_clients(slow_portal, key_pair, delay):
    client1 = SkynetClient(transport=slow_portal)
    client2 = SkynetClient(transport=slow_portal)
    results = await asyncio.gather(
        _delayed(delay, client2.db.set_json(key_pair.private_key, "app", JSON_NEW)),
        client1.db.set_json(key_pair.private_key, "app", JSON_OLD),
        return_exceptions=True,
    )
    for err in _errors(results):
        assert isinstance(err, RegistryUpdateError)
    assert len(_errors(results)) < 2

    resp = await SkynetClient(transport=slow_portal).db.get_json(key_pair.public_key, "app")
    assert resp.data in (JSON_OLD, JSON_NEW)


@pytest.mark.asyncio
async def test_fresh_client_picks_up_existing_revision(portal, key_pair):
    client1 = SkynetClient(transport=portal)
    for i in range(3):
        await client1.db.set_json(key_pair.private_key, "app", {"i": i})

    client2 = SkynetClient(transport=portal)
    await client2.db.set_json(key_pair.private_key, "app", {"i": 3})
    assert client2.revision_number_cache.peek_revision(key_pair.public_key, "app") == 3
    assert (await client1.db.get_json(key_pair.public_key, "app")).data == {"i": 3}


@pytest.mark.asyncio
async def test_client_context_manager_closes_transport(portal, key_pair):
    async with SkynetClient(transport=portal) as client:
        assert client.portal_url == "https://portal.test"
        await client.db.set_json(key_pair.private_key, "app", JSON_OLD)
    assert portal.closed


@pytest.mark.asyncio
async def test_call_options_override_client_options(portal, key_pair):
    client = SkynetClient(transport=portal, options=RequestOptions(hashed_data_key_hex=True))
    await client.db.set_json(key_pair.private_key, "app", JSON_OLD, RequestOptions(hashed_data_key_hex=False))
    assert (await client.db.get_json(key_pair.public_key, "app", hashed_data_key_hex=False)).data == JSON_OLD
    hashed = hash_data_key("app").hex()
    assert (await client.db.get_json(key_pair.public_key, hashed)).data == JSON_OLD


@pytest.mark.asyncio
async def test_failed_lookup_cancels_pending_upload(client, portal, key_pair):
    cancelled = asyncio.Event()

    async def slow_upload(*args, **kwargs):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    async def failing_lookup(*args, **kwargs):
        raise ExecuteRequestError("portal unavailable", status=503, method="GET")

    portal.upload = slow_upload
    portal.get_registry_entry = failing_lookup
    with pytest.raises(ExecuteRequestError):
        await client.db.set_json(key_pair.private_key, "app", JSON_OLD)
    await asyncio.wait_for(cancelled.wait(), timeout=1)
    assert portal.count("post") == 0
