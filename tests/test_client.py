"""Tests for the GitHub client module."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from dora_scorecard.errors import AuthenticationError, NotFoundError, RateLimitError
from dora_scorecard.github.client import GitHubClient


def test_client_instantiation():
    client = GitHubClient(token="test-token")
    assert client._client is not None
    assert "Bearer test-token" in client._client.headers["Authorization"]


def test_client_default_concurrency():
    client = GitHubClient(token="test-token", concurrency=10)
    assert client._semaphore._value == 10


def test_client_custom_base_url():
    client = GitHubClient(token="test-token", base_url="https://ghe.example.com/api/v3")
    assert str(client._client.base_url).startswith("https://ghe.example.com/api/v3")


@pytest.mark.asyncio
async def test_client_context_manager():
    async with GitHubClient(token="test-token") as client:
        assert client is not None


def _make_mock_response(
    status_code: int = 200,
    json_data=None,
    headers: dict | None = None,
):
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status_code
    resp.json.return_value = json_data if json_data is not None else []
    resp.headers = headers or {"Link": ""}
    return resp


def _make_client(*responses) -> GitHubClient:
    client = GitHubClient(token="test-token")
    client._client.get = AsyncMock(side_effect=list(responses))
    client._rate_limit.wait_if_needed = AsyncMock()
    client._rate_limit.update = MagicMock()
    return client


def _params(client: GitHubClient, call: int = -1) -> dict:
    call_args = client._client.get.call_args_list[call]
    return call_args.kwargs.get("params") or {}


@pytest.mark.asyncio
async def test_get_basic():
    """_get should call httpx client and return response."""
    resp = _make_mock_response(200, json_data={"key": "value"})
    client = _make_client(resp)

    result = await client._get("/test")
    assert result == resp
    client._rate_limit.wait_if_needed.assert_awaited_once()
    client._rate_limit.update.assert_called_once_with(resp)


@pytest.mark.asyncio
async def test_get_raises_typed_errors():
    client = _make_client(_make_mock_response(404), _make_mock_response(401))
    with pytest.raises(NotFoundError):
        await client._get("/missing")
    with pytest.raises(AuthenticationError):
        await client._get("/private")


@pytest.mark.asyncio
async def test_get_raises_rate_limit_error():
    resp = _make_mock_response(403, headers={"X-RateLimit-Remaining": "0"})
    client = _make_client(resp)
    with pytest.raises(RateLimitError):
        await client._get("/test")


@pytest.mark.asyncio
async def test_paginate_single_page():
    """_paginate should handle a single page response."""
    client = _make_client(_make_mock_response(200, json_data=[{"id": 1}, {"id": 2}]))

    result = await client._paginate("/test")
    assert result == [{"id": 1}, {"id": 2}]
    assert _params(client)["per_page"] == 100


@pytest.mark.asyncio
async def test_paginate_multiple_pages():
    """_paginate should follow Link headers for pagination."""
    resp1 = _make_mock_response(
        200,
        json_data=[{"id": 1}],
        headers={"Link": '<https://api.github.com/test?page=2>; rel="next"'},
    )
    resp2 = _make_mock_response(200, json_data=[{"id": 2}])
    client = _make_client(resp1, resp2)

    result = await client._paginate("/test")
    assert result == [{"id": 1}, {"id": 2}]
    assert client._client.get.call_args_list[1].args[0] == "https://api.github.com/test?page=2"
    assert _params(client, 1) == {}


@pytest.mark.asyncio
async def test_paginate_item_key():
    resp = _make_mock_response(200, json_data={"total_count": 1, "workflow_runs": [{"id": 7}]})
    client = _make_client(resp)

    result = await client._paginate("/runs", item_key="workflow_runs")
    assert result == [{"id": 7}]


@pytest.mark.asyncio
async def test_paginate_non_list_response():
    """_paginate should handle non-list (object) responses."""
    client = _make_client(_make_mock_response(200, json_data={"total": 5}))

    result = await client._paginate("/test")
    assert result == [{"total": 5}]


@pytest.mark.asyncio
async def test_paginate_stop_when():
    resp1 = _make_mock_response(
        200,
        json_data=[{"id": 1}, {"id": 2}],
        headers={"Link": '<https://api.github.com/test?page=2>; rel="next"'},
    )
    resp2 = _make_mock_response(200, json_data=[{"id": 3}, {"id": 4}])
    client = _make_client(resp1, resp2)

    result = await client._paginate("/test", stop_when=lambda item: item["id"] == 3)
    assert result == [{"id": 1}, {"id": 2}]


@pytest.mark.asyncio
async def test_list_pull_requests_stops_at_stale_prs():
    data = [
        {"number": 3, "updated_at": "2024-06-20T00:00:00Z"},
        {"number": 2, "updated_at": "2024-06-02T00:00:00Z"},
        {"number": 1, "updated_at": "2024-05-01T00:00:00Z"},
    ]
    client = _make_client(_make_mock_response(200, json_data=data))

    result = await client.list_pull_requests("acme", "api", since="2024-06-01T00:00:00Z")
    assert [pr["number"] for pr in result] == [3, 2]
    params = _params(client)
    assert params["state"] == "all"
    assert params["sort"] == "updated"
    assert params["direction"] == "desc"


@pytest.mark.asyncio
async def test_list_pull_requests_without_since():
    data = [{"number": 1, "updated_at": "2020-01-01T00:00:00Z"}]
    client = _make_client(_make_mock_response(200, json_data=data))

    assert await client.list_pull_requests("acme", "api") == data


@pytest.mark.asyncio
async def test_get_pull_request():
    data = {"number": 5, "additions": 10}
    client = _make_client(_make_mock_response(200, json_data=data))

    assert await client.get_pull_request("acme", "api", 5) == data
    assert client._client.get.call_args.args[0] == "/repos/acme/api/pulls/5"


@pytest.mark.asyncio
async def test_list_deployments_environment_param():
    client = _make_client(_make_mock_response(200, json_data=[]))

    await client.list_deployments("acme", "api", environment="production")
    assert _params(client)["environment"] == "production"


@pytest.mark.asyncio
async def test_get_latest_deployment_status():
    client = _make_client(
        _make_mock_response(200, json_data=[{"state": "success"}]),
        _make_mock_response(200, json_data=[]),
    )

    assert await client.get_latest_deployment_status("acme", "api", 1) == "success"
    assert await client.get_latest_deployment_status("acme", "api", 2) is None


@pytest.mark.asyncio
async def test_list_deployments_with_status():
    deployments = [
        {"id": 1, "created_at": "2024-06-10T00:00:00Z"},
        {"id": 2, "created_at": "2024-05-10T00:00:00Z"},
    ]
    client = _make_client(
        _make_mock_response(200, json_data=deployments),
        _make_mock_response(200, json_data=[{"state": "failure"}]),
    )

    result = await client.list_deployments_with_status(
        "acme", "api", since="2024-06-01T00:00:00Z"
    )
    assert result == [{"id": 1, "created_at": "2024-06-10T00:00:00Z", "status": "failure"}]


@pytest.mark.asyncio
async def test_list_workflow_runs():
    data = {"total_count": 1, "workflow_runs": [{"id": 9, "name": "Deploy"}]}
    client = _make_client(_make_mock_response(200, json_data=data))

    result = await client.list_workflow_runs("acme", "api", since="2024-06-01T00:00:00Z")
    assert result == [{"id": 9, "name": "Deploy"}]
    params = _params(client)
    assert params["status"] == "completed"
    assert params["created"] == ">=2024-06-01"


@pytest.mark.asyncio
async def test_list_issues_filters_pull_requests():
    data = [
        {"number": 1, "title": "Outage"},
        {"number": 2, "title": "A PR", "pull_request": {"url": "..."}},
    ]
    client = _make_client(_make_mock_response(200, json_data=data))

    result = await client.list_issues("acme", "api", since="2024-06-01T00:00:00Z")
    assert result == [{"number": 1, "title": "Outage"}]
    assert _params(client)["since"] == "2024-06-01T00:00:00Z"
