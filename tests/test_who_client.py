import httpx
import pytest

from icf_server.errors import ApiError, AuthenticationError, ConfigurationError, ValidationError
from icf_server.who_client import AccessToken, WHOICFClient


def test_missing_credentials_prevent_construction():
    with pytest.raises(ConfigurationError):
        WHOICFClient(client_id=None, client_secret="secret")
    with pytest.raises(ConfigurationError):
        WHOICFClient(client_id="id", client_secret="")


def test_repr_hides_credentials():
    client = WHOICFClient(client_id="my-id", client_secret="my-secret")
    assert "my-secret" not in repr(client)
    assert "my-id" not in repr(client)


def test_access_token_validity():
    token = AccessToken(value="abc", expires_at=100.0)
    assert token.is_valid(99.9)
    assert not token.is_valid(100.0)


async def test_token_exchange_request(who_client, who_api):
    who_api.routes[who_api.icf_path] = {"title": "ICF"}

    await who_client.get_icf_root()

    assert len(who_api.token_requests) == 1
    body = who_api.token_requests[0].content.decode()
    assert "grant_type=client_credentials" in body
    assert "client_id=test-client" in body
    assert "client_secret=test-secret" in body
    assert "scope=icdapi_access" in body


async def test_authenticated_request_headers(who_client, who_api):
    who_api.routes[who_api.icf_path] = {"title": "ICF"}

    await who_client.raw_request(who_api.icf_path)

    request = who_api.api_requests[0]
    assert request.headers["Authorization"] == "Bearer token-1"
    assert request.headers["Accept-Language"] == "en"
    assert request.headers["API-Version"] == "v2"
    assert request.headers["Accept"] == "application/json"


async def test_token_reused_within_validity_window(who_client, who_api, clock):
    who_api.routes[who_api.icf_path] = {"title": "ICF"}

    await who_client.raw_request(who_api.icf_path)
    clock.now += 600
    await who_client.raw_request(who_api.icf_path)

    assert len(who_api.token_requests) == 1
    assert len(who_api.api_requests) == 2


async def test_token_refreshed_after_expiry_margin(who_client, who_api, clock):
    who_api.routes[who_api.icf_path] = {"title": "ICF"}

    await who_client.raw_request(who_api.icf_path)
    # 3600s lifetime minus the 300s safety margin
    clock.now += 3300
    await who_client.raw_request(who_api.icf_path)

    assert len(who_api.token_requests) == 2
    assert who_api.api_requests[-1].headers["Authorization"] == "Bearer token-2"


async def test_single_unauthorized_triggers_one_retry(who_client, who_api):
    who_api.routes[who_api.icf_path] = {"title": "ICF"}
    await who_client.raw_request(who_api.icf_path)

    who_api.unauthorized = 1
    data = await who_client.raw_request(who_api.icf_path)

    assert data == {"title": "ICF"}
    assert len(who_api.token_requests) == 2
    # initial call, rejected call, retry
    assert len(who_api.api_requests) == 3
    assert who_api.api_requests[-1].headers["Authorization"] == "Bearer token-2"


async def test_repeated_unauthorized_is_fatal_without_third_attempt(who_client, who_api):
    who_api.routes[who_api.icf_path] = {"title": "ICF"}
    who_api.unauthorized = 5

    with pytest.raises(ApiError) as exc_info:
        await who_client.raw_request(who_api.icf_path)

    assert exc_info.value.status_code == 401
    assert len(who_api.api_requests) == 2


async def test_authentication_failure_carries_status_and_body(who_client, who_api):
    who_api.token_status = 400

    with pytest.raises(AuthenticationError) as exc_info:
        await who_client.raw_request(who_api.icf_path)

    assert exc_info.value.status_code == 400
    assert exc_info.value.body == "invalid_client"
    assert "400" in str(exc_info.value)
    assert who_api.api_requests == []


async def test_api_error_on_server_failure(who_client, who_api):
    who_api.routes[who_api.icf_path] = (500, "boom")

    with pytest.raises(ApiError) as exc_info:
        await who_client.raw_request(who_api.icf_path)

    assert exc_info.value.status_code == 500
    assert exc_info.value.body == "boom"


async def test_get_entity_by_code(who_client, who_api):
    who_api.add_entity(
        "1234",
        "d450",
        {"@language": "en", "@value": "Walking"},
        definition={"@language": "en", "@value": "Moving along a surface on foot"},
        inclusion=[{"label": {"@language": "en", "@value": "walking short distances"}}],
        exclusion=[{"label": {"@language": "en", "@value": "transferring oneself"}}],
        parent=["http://id.who.int/icd/release/11/2025-01/icf/45"],
        child=["http://id.who.int/icd/release/11/2025-01/icf/4500"],
    )

    entity = await who_client.get_entity_by_code("d450")

    assert entity is not None
    assert entity.code == "d450"
    assert entity.title == "Walking"
    assert entity.definition == "Moving along a surface on foot"
    assert entity.inclusions == ("walking short distances",)
    assert entity.exclusions == ("transferring oneself",)
    assert entity.parent == "http://id.who.int/icd/release/11/2025-01/icf/45"
    assert entity.children == ("http://id.who.int/icd/release/11/2025-01/icf/4500",)
    assert entity.uri == f"http://id.who.int{who_api.icf_path}/1234"
    # http stem id is fetched over https
    assert who_api.api_requests[-1].url.scheme == "https"
    assert who_api.api_requests[-1].url.path == f"{who_api.icf_path}/1234"


async def test_get_entity_by_code_without_stem_id(who_client, who_api):
    who_api.routes[f"{who_api.icf_path}/codeinfo/x999"] = {"code": "x999"}

    assert await who_client.get_entity_by_code("x999") is None


async def test_get_entity_by_code_unknown_code(who_client, who_api):
    assert await who_client.get_entity_by_code("zzz") is None


async def test_get_entity_by_code_propagates_authentication_error(who_client, who_api):
    who_api.token_status = 401

    with pytest.raises(AuthenticationError):
        await who_client.get_entity_by_code("d450")


async def test_get_entity_by_uri_failure_is_absence(who_client, who_api):
    who_api.routes[f"{who_api.icf_path}/9"] = (503, "unavailable")

    assert await who_client.get_entity_by_uri(f"https://id.who.int{who_api.icf_path}/9") is None


async def test_get_entity_by_uri_transport_error_is_absence(who_api, clock):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "icdaccessmanagement.who.int":
            return who_api(request)
        raise httpx.ConnectError("connection refused", request=request)

    async with WHOICFClient(
        client_id="id",
        client_secret="secret",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        clock=clock,
    ) as client:
        assert await client.get_entity_by_uri(f"http://id.who.int{who_api.icf_path}/1") is None


async def test_entity_title_without_value_falls_back_to_serialized(who_client, who_api):
    who_api.add_entity("77", "b280", {"@language": "en"})

    entity = await who_client.get_entity_by_code("b280")

    assert entity is not None
    assert '"@language": "en"' in entity.title


async def test_search_truncates_and_defaults_fields(who_client, who_api):
    who_api.routes[f"{who_api.icf_path}/search"] = {
        "destinationEntities": [
            {"theCode": "d450", "title": "Walking", "score": 0.9, "id": "http://id.who.int/1"},
            {"title": "No code"},
            {"theCode": "d455", "title": "Moving around", "score": 0.5, "id": "http://id.who.int/3"},
        ]
    }

    results = await who_client.search("walking", max_results=2)

    assert [r.code for r in results] == ["d450", ""]
    assert results[0].score == 0.9
    assert results[1].title == "No code"
    assert results[1].score == 0.0
    assert results[1].uri == ""

    params = who_api.api_requests[-1].url.params
    assert params["q"] == "walking"
    assert params["useFlexisearch"] == "true"
    assert params["flatResults"] == "true"
    assert params["highlightingEnabled"] == "false"


async def test_search_without_results(who_client, who_api):
    who_api.routes[f"{who_api.icf_path}/search"] = {"destinationEntities": []}

    assert await who_client.search("nothing") == []


async def test_get_children_preserves_order_and_drops_failures(who_client, who_api):
    first = who_api.add_entity("4500", "d4500", "Walking short distances")
    second = who_api.add_entity("4501", "d4501", "Walking long distances")
    broken = f"http://id.who.int{who_api.icf_path}/missing"
    who_api.add_entity("450", "d450", "Walking", child=[second, broken, first])

    children = await who_client.get_children("d450")

    assert [c.code for c in children] == ["d4501", "d4500"]


async def test_get_children_drops_children_when_token_renewal_fails(who_client, who_api, clock):
    """
    A token that expires after the parent was fetched, and cannot be renewed,
    drops the children instead of failing the whole call.
    """
    first = who_api.add_entity("4500", "d4500", "Walking short distances")
    second = who_api.add_entity("4501", "d4501", "Walking long distances")
    who_api.add_entity("450", "d450", "Walking", child=[first, second])

    def expire_token():
        clock.now += 4000
        who_api.token_status = 400

    who_api.after_serving[f"{who_api.icf_path}/450"] = expire_token

    assert await who_client.get_children("d450") == []
    # initial exchange plus one failed renewal per child
    assert len(who_api.token_requests) == 3


async def test_get_entity_by_uri_authentication_failure_is_absence(who_client, who_api):
    who_api.token_status = 400

    assert await who_client.get_entity_by_uri(f"http://id.who.int{who_api.icf_path}/1") is None


async def test_get_entity_by_code_token_endpoint_unreachable_is_error(who_client, who_api):
    who_api.token_error = httpx.ConnectError("connection refused")

    with pytest.raises(AuthenticationError) as exc_info:
        await who_client.get_entity_by_code("d450")

    assert exc_info.value.status_code is None
    assert str(exc_info.value) == "Authentication failed: ConnectError: connection refused"
    assert who_api.api_requests == []


async def test_get_children_of_leaf(who_client, who_api):
    who_api.add_entity("4500", "d4500", "Walking short distances")

    assert await who_client.get_children("d4500") == []


async def test_browse_category(who_client, who_api):
    who_api.routes[f"{who_api.icf_path}/search"] = {
        "destinationEntities": [
            {"theCode": f"b{i}", "title": f"Item {i}", "score": 1.0, "id": f"u{i}"}
            for i in range(30)
        ]
    }

    result = await who_client.browse_category("B")

    assert result.category == "b"
    assert result.name == "Body Functions"
    assert result.description.startswith("Body Functions are")
    assert len(result.results) == 20
    assert who_api.api_requests[-1].url.params["q"] == "Body Functions"


async def test_browse_invalid_category(who_client, who_api):
    with pytest.raises(ValidationError) as exc_info:
        await who_client.browse_category("x")

    assert "b, s, d, e" in str(exc_info.value)
    assert who_api.api_requests == []
    assert who_api.token_requests == []


async def test_close_releases_http_client(who_api, clock):
    client = WHOICFClient(
        client_id="id",
        client_secret="secret",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(who_api)),
        clock=clock,
    )
    await client.close()
    assert client._http_client is None
