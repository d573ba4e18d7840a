import json

import pytest
import respx
from httpx import Response

from raindrop_mcp.api import RaindropAPI
from raindrop_mcp.models import RaindropInput
from raindrop_mcp.operations import RaindropOperations

# Mock Data
MOCK_TOKEN = "test-token"
BASE_URL = "https://api.raindrop.io/rest/v1"


@pytest.fixture
def ops():
    return RaindropOperations(RaindropAPI(MOCK_TOKEN))


@pytest.fixture
def sleeps(monkeypatch):
    calls = []

    async def fake_sleep(seconds):
        calls.append(seconds)

    monkeypatch.setattr("raindrop_mcp.operations.asyncio.sleep", fake_sleep)
    return calls


def inputs(count):
    return [RaindropInput(link=f"https://site{i}.example") for i in range(count)]


def respond_by_link(failing):
    def handler(request):
        link = json.loads(request.content)["link"]
        if link in failing:
            return Response(400, json={"errorMessage": "Invalid link"})
        return Response(200, json={"result": True, "item": {"_id": len(link), "link": link}})

    return handler


@pytest.mark.asyncio
async def test_bulk_create_all_succeed(ops, sleeps):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.post("/raindrop").mock(side_effect=respond_by_link(set()))
        result = await ops.create_raindrops_bulk(inputs(3), delay_ms=250)

        assert result.success is True
        assert result.successful == 3
        assert [item["link"] for item in result.created] == [
            "https://site0.example", "https://site1.example", "https://site2.example",
        ]
        assert route.call_count == 3
        # The delay runs between requests, not before the first
        assert sleeps == [0.25, 0.25]


@pytest.mark.asyncio
async def test_bulk_create_stops_at_first_failure(ops, sleeps):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.post("/raindrop").mock(
            side_effect=respond_by_link({"https://site1.example"})
        )
        result = await ops.create_raindrops_bulk(inputs(5))

        assert result.total == 5
        assert result.successful == 1
        assert result.failed == 1
        assert result.total - result.attempted == 3
        assert route.call_count == 2
        assert result.success is False
        assert result.errors[0].index == 1
        assert result.errors[0].link == "https://site1.example"
        assert result.errors[0].error == "Invalid link"


@pytest.mark.asyncio
async def test_bulk_create_continue_on_error(ops, sleeps):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.post("/raindrop").mock(
            side_effect=respond_by_link({"https://site1.example", "https://site3.example"})
        )
        result = await ops.create_raindrops_bulk(inputs(5), continue_on_error=True)

        assert result.successful == 3
        assert result.failed == 2
        assert [error.index for error in result.errors] == [1, 3]
        assert route.call_count == 5


@pytest.mark.asyncio
async def test_bulk_payload_shape(ops, sleeps):
    raindrop = RaindropInput(
        link="https://a.example", title="", tags=["x"], collectionId=9, pleaseParse=False
    )
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.post("/raindrop").mock(side_effect=respond_by_link(set()))
        await ops.create_raindrops_bulk([raindrop])
        assert json.loads(route.calls.last.request.content) == {
            "link": "https://a.example",
            "tags": ["x"],
            "collection": {"$id": 9},
        }
        assert sleeps == []
