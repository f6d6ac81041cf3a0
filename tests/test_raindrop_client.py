import pytest

from config import Config
from errors import DecodeError, ErrorKind, RemoteRejectionError, TransportError
from raindrop_client import RaindropClient

TEST_TOKEN = "test-token-123"


@pytest.mark.asyncio
async def test_requests_carry_bearer_token_and_json_content_type(client, fake_api):
    await client.get_current_user()

    req = fake_api.last
    assert req.method == "GET"
    assert req.path == "/user"
    assert req.headers["Authorization"] == f"Bearer {TEST_TOKEN}"
    assert req.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_caller_headers_are_added_and_may_override(client, fake_api):
    await client._request(
        "GET",
        "/user",
        headers={"X-Request-Source": "tests", "Content-Type": "application/vnd.api+json"},
    )

    headers = fake_api.last.headers
    assert headers["X-Request-Source"] == "tests"
    assert headers["Content-Type"] == "application/vnd.api+json"
    assert headers["Authorization"] == f"Bearer {TEST_TOKEN}"


@pytest.mark.asyncio
async def test_get_raindrop_returns_decoded_json(client, fake_api):
    fake_api.respond("GET", "/raindrop/123", json_body={"result": True, "item": {"_id": 123}})

    result = await client.get_raindrop("123")

    assert result == {"result": True, "item": {"_id": 123}}
    assert fake_api.last.path == "/raindrop/123"


@pytest.mark.asyncio
async def test_get_raindrops_without_options_sends_no_query(client, fake_api):
    await client.get_raindrops()

    assert fake_api.last.path == "/raindrops/0"
    assert fake_api.last.query == {}


@pytest.mark.asyncio
async def test_get_raindrops_sends_present_options(client, fake_api):
    await client.get_raindrops(
        -1, page=0, perpage=50, search="python", sort="title", nested=False
    )

    assert fake_api.last.path == "/raindrops/-1"
    assert fake_api.last.query == {
        "page": "0",
        "perpage": "50",
        "search": "python",
        "sort": "title",
        "nested": "false",
    }


@pytest.mark.asyncio
async def test_get_raindrops_skips_empty_search_and_sort(client, fake_api):
    await client.get_raindrops(-99, search="", sort="")

    assert fake_api.last.path == "/raindrops/-99"
    assert fake_api.last.query == {}


@pytest.mark.asyncio
async def test_search_raindrops_targets_all_collections(client, fake_api):
    await client.search_raindrops("async python", perpage=10)

    assert fake_api.last.path == "/raindrops/0"
    assert fake_api.last.query == {"search": "async python", "perpage": "10"}


@pytest.mark.asyncio
async def test_create_and_update_raindrop_send_json_body(client, fake_api):
    await client.create_raindrop({"link": "https://example.com", "tags": ["a"]})
    assert fake_api.last.method == "POST"
    assert fake_api.last.path == "/raindrop"
    assert fake_api.last.body == {"link": "https://example.com", "tags": ["a"]}

    await client.update_raindrop(7, {"title": "New"})
    assert fake_api.last.method == "PUT"
    assert fake_api.last.path == "/raindrop/7"
    assert fake_api.last.body == {"title": "New"}


@pytest.mark.asyncio
async def test_delete_raindrop(client, fake_api):
    await client.delete_raindrop("55")

    assert fake_api.last.method == "DELETE"
    assert fake_api.last.path == "/raindrop/55"
    assert fake_api.last.body is None


@pytest.mark.asyncio
async def test_collection_endpoints(client, fake_api):
    await client.get_collections()
    await client.get_child_collections()
    await client.get_collection(9)
    await client.create_collection({"title": "Reading"})
    await client.update_collection(9, {"title": "Later"})
    await client.delete_collection(9)
    await client.delete_collections([1, 2, 3])

    calls = [(r.method, r.path, r.body) for r in fake_api.requests]
    assert calls == [
        ("GET", "/collections", None),
        ("GET", "/collections/childrens", None),
        ("GET", "/collection/9", None),
        ("POST", "/collection", {"title": "Reading"}),
        ("PUT", "/collection/9", {"title": "Later"}),
        ("DELETE", "/collection/9", None),
        ("DELETE", "/collections", {"ids": [1, 2, 3]}),
    ]


@pytest.mark.asyncio
async def test_tag_endpoints_default_scope(client, fake_api):
    await client.get_tags()
    await client.rename_tag("foo", "bar")
    await client.merge_tags(["a", "b"], "c")
    await client.delete_tags(["old"])

    calls = [(r.method, r.path, r.body) for r in fake_api.requests]
    assert calls == [
        ("GET", "/tags/0", None),
        ("PUT", "/tags", {"replace": "bar", "tags": ["foo"]}),
        ("PUT", "/tags", {"replace": "c", "tags": ["a", "b"]}),
        ("DELETE", "/tags", {"tags": ["old"]}),
    ]


@pytest.mark.asyncio
async def test_tag_endpoints_collection_scope(client, fake_api):
    await client.get_tags(5)
    await client.rename_tag("foo", "bar", 5)
    await client.delete_tags(["old"], collection_id=5)

    assert [r.path for r in fake_api.requests] == ["/tags/5", "/tags/5", "/tags/5"]


@pytest.mark.asyncio
async def test_error_status_raises_remote_rejection_with_raw_body(client, fake_api):
    fake_api.respond("GET", "/raindrop/404", status=404, text="not found")

    with pytest.raises(RemoteRejectionError) as exc_info:
        await client.get_raindrop(404)

    err = exc_info.value
    assert err.kind is ErrorKind.REMOTE_REJECTION
    assert err.status == 404
    assert err.body == "not found"
    assert str(err) == "Raindrop API error (404): not found"


@pytest.mark.asyncio
async def test_non_json_success_body_raises_decode_error(client, fake_api):
    fake_api.respond("GET", "/user", text="<html>maintenance</html>")

    with pytest.raises(DecodeError):
        await client.get_current_user()


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error():
    config = Config(token=TEST_TOKEN, base_url="http://127.0.0.1:1/rest/v1", request_timeout=5)

    async with RaindropClient(config) as client:
        with pytest.raises(TransportError) as exc_info:
            await client.get_current_user()

    assert TEST_TOKEN not in str(exc_info.value)


@pytest.mark.asyncio
async def test_timeout_raises_transport_error(api_server, fake_api):
    fake_api.delay = 1.0
    config = Config(
        token=TEST_TOKEN,
        base_url=str(api_server.make_url("/rest/v1")),
        request_timeout=0.1,
    )

    async with RaindropClient(config) as client:
        with pytest.raises(TransportError):
            await client.get_current_user()


@pytest.mark.asyncio
async def test_request_outside_context_manager_is_rejected(config):
    client = RaindropClient(config)

    with pytest.raises(RuntimeError):
        await client.get_current_user()


@pytest.mark.asyncio
async def test_undecodable_error_body_keeps_status(client, fake_api):
    fake_api.respond("GET", "/user", status=500, raw=b"\xff\xfe oops")

    with pytest.raises(RemoteRejectionError) as exc_info:
        await client.get_current_user()

    assert exc_info.value.status == 500
    assert "oops" in exc_info.value.body
    assert "(500)" in str(exc_info.value)


@pytest.mark.asyncio
async def test_undecodable_success_body_raises_decode_error(client, fake_api):
    fake_api.respond("GET", "/user", raw=b"\xff\xfe oops")

    with pytest.raises(DecodeError):
        await client.get_current_user()


@pytest.mark.asyncio
async def test_array_bodies_are_forwarded_as_given(client, fake_api):
    await client.delete_collections([10, 20])
    assert fake_api.last.body == {"ids": [10, 20]}

    await client.merge_tags(["one", "two"], "both")
    assert fake_api.last.body == {"replace": "both", "tags": ["one", "two"]}

    await client.delete_tags(["foo"])
    assert fake_api.last.body == {"tags": ["foo"]}
