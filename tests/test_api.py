import json

import httpx
import pytest
import respx
from httpx import Response

from raindrop_mcp.api import (
    ApiError,
    FileTooLargeError,
    MissingFileError,
    NetworkError,
    RaindropAPI,
    RaindropError,
    ResponseParseError,
    UnsupportedFileTypeError,
)
from raindrop_mcp.models import CollectionCreate, CollectionUpdate, RaindropCreate, RaindropUpdate

# Mock Data
MOCK_TOKEN = "test-token"
BASE_URL = "https://api.raindrop.io/rest/v1"


@pytest.fixture
def api():
    return RaindropAPI(MOCK_TOKEN)


@pytest.mark.asyncio
async def test_get_user(api):
    mock_user = {"result": True, "user": {"_id": 123, "fullName": "Test User"}}
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.get("/user").mock(return_value=Response(200, json=mock_user))
        user = await api.get_user()
        assert user["fullName"] == "Test User"
        assert route.calls.last.request.headers["Authorization"] == "Bearer test-token"


@pytest.mark.asyncio
async def test_responses_have_titles_cleaned(api):
    mock_data = {"result": True, "items": [{"_id": 1, "title": ' "Quoted" '}]}
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/collections").mock(return_value=Response(200, json=mock_data))
        data = await api.get_collections()
        assert data["items"][0]["title"] == "Quoted"


@pytest.mark.asyncio
async def test_child_collections(api):
    mock_data = {"result": True, "items": [{"_id": 2, "title": "Child", "parent": {"$id": 1}}]}
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/collections/childrens").mock(return_value=Response(200, json=mock_data))
        data = await api.get_collections(root=False)
        assert data["items"][0]["parent"]["$id"] == 1


@pytest.mark.asyncio
async def test_create_collection(api):
    mock_resp = {"result": True, "item": {"_id": 100, "title": "New Col"}}
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.post("/collection").mock(return_value=Response(200, json=mock_resp))
        result = await api.create_collection(CollectionCreate(title="New Col", public=True))
        assert result["item"]["_id"] == 100

        payload = json.loads(route.calls.last.request.content)
        assert payload == {"title": "New Col", "public": True}


@pytest.mark.asyncio
async def test_update_collection_sends_only_set_fields(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.put("/collection/100").mock(
            return_value=Response(200, json={"result": True, "item": {"_id": 100}})
        )
        await api.update_collection(100, CollectionUpdate(title="Updated", expanded=False))
        payload = json.loads(route.calls.last.request.content)
        assert payload == {"title": "Updated", "expanded": False}


@pytest.mark.asyncio
async def test_get_raindrops_query_params(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.get("/raindrops/-1").mock(
            return_value=Response(200, json={"result": True, "items": []})
        )
        await api.get_raindrops(-1, {"page": 2, "perpage": 10, "nested": True, "sort": None})
        params = route.calls.last.request.url.params
        assert params["page"] == "2"
        assert params["perpage"] == "10"
        assert params["nested"] == "true"
        assert "sort" not in params


@pytest.mark.asyncio
async def test_search_raindrops_merges_query(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.get("/raindrops/0").mock(
            return_value=Response(200, json={"result": True, "items": []})
        )
        await api.search_raindrops(0, "#python site:example.com", {"page": 0})
        params = route.calls.last.request.url.params
        assert params["search"] == "#python site:example.com"
        assert params["page"] == "0"


@pytest.mark.asyncio
async def test_create_raindrop_with_special_characters(api):
    special_title = "Title with 🚀 and <script>alert(1)</script>"
    mock_resp = {"result": True, "item": {"_id": 1, "link": "http://x.com", "title": special_title}}
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.post("/raindrop").mock(return_value=Response(200, json=mock_resp))
        result = await api.create_raindrop(
            RaindropCreate(link="http://x.com", title=special_title, pleaseParse={})
        )
        assert result["item"]["title"] == special_title
        payload = json.loads(route.calls.last.request.content)
        assert payload == {"link": "http://x.com", "title": special_title, "pleaseParse": {}}


@pytest.mark.asyncio
async def test_update_raindrop_sends_explicit_null(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.put("/raindrop/5").mock(
            return_value=Response(200, json={"result": True, "item": {"_id": 5}})
        )
        await api.update_raindrop(5, RaindropUpdate(reminder=None))
        assert json.loads(route.calls.last.request.content) == {"reminder": None}


@pytest.mark.asyncio
async def test_tags_paths(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        all_route = respx_mock.put("/tags").mock(return_value=Response(200, json={"result": True}))
        scoped_route = respx_mock.delete("/tags/7").mock(return_value=Response(200, json={"result": True}))

        await api.merge_tags(["react", "reactjs"], "React")
        await api.delete_tags(["old"], 7)

        assert json.loads(all_route.calls.last.request.content) == {
            "tags": ["react", "reactjs"],
            "replace": "React",
        }
        assert json.loads(scoped_route.calls.last.request.content) == {"tags": ["old"]}


@pytest.mark.asyncio
async def test_check_url_exists(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.post("/import/url/exists").mock(
            return_value=Response(200, json={"result": True, "ids": [3], "duplicates": []})
        )
        result = await api.check_url_exists(["https://a.example"])
        assert result["ids"] == [3]
        assert json.loads(route.calls.last.request.content) == {"urls": ["https://a.example"]}


@pytest.mark.asyncio
async def test_parse_url(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.get("/import/url/parse").mock(
            return_value=Response(200, json={"result": True, "item": {"title": "Parsed"}})
        )
        result = await api.parse_url("https://a.example/page")
        assert result["item"]["title"] == "Parsed"
        assert route.calls.last.request.url.params["url"] == "https://a.example/page"


# Error taxonomy

@pytest.mark.asyncio
async def test_get_nonexistent_raindrop_404(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/raindrop/999").mock(
            return_value=Response(404, json={"errorMessage": "Not Found"})
        )
        with pytest.raises(ApiError) as excinfo:
            await api.get_raindrop(999)
        assert excinfo.value.status_code == 404
        assert str(excinfo.value) == "Not Found"


@pytest.mark.asyncio
async def test_delete_forbidden_collection_403(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.delete("/collection/123").mock(
            return_value=Response(403, json={"error": "Access Denied"})
        )
        with pytest.raises(RaindropError) as excinfo:
            await api.delete_collection(123)
        assert excinfo.value.status_code == 403
        assert "Access Denied" in str(excinfo.value)


@pytest.mark.asyncio
async def test_result_false_is_an_error(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.put("/raindrop/1").mock(
            return_value=Response(200, json={"result": False, "errorMessage": "Bad input"})
        )
        with pytest.raises(ApiError) as excinfo:
            await api.update_raindrop(1, RaindropUpdate(title="x"))
        assert str(excinfo.value) == "Bad input"
        assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_error_without_message(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/user").mock(return_value=Response(500, json={}))
        with pytest.raises(ApiError) as excinfo:
            await api.get_user()
        assert str(excinfo.value) == "API request failed: 500"


@pytest.mark.asyncio
async def test_api_returns_malformed_json(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        # Simulate a 200 OK but with body that isn't JSON
        respx_mock.get("/user").mock(return_value=Response(200, content="Not JSON"))
        with pytest.raises(ResponseParseError) as excinfo:
            await api.get_user()
        assert "JSON" in str(excinfo.value)


@pytest.mark.asyncio
async def test_network_failure(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/user").mock(side_effect=httpx.ConnectError("connection refused"))
        with pytest.raises(NetworkError) as excinfo:
            await api.get_user()
        assert excinfo.value.status_code == 503


# Files

@pytest.mark.asyncio
async def test_upload_missing_file(api, tmp_path):
    with pytest.raises(MissingFileError) as excinfo:
        await api.upload_file(str(tmp_path / "nope.pdf"))
    assert isinstance(excinfo.value, FileNotFoundError)


@pytest.mark.asyncio
async def test_upload_rejects_unsupported_type_before_network(api, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    async with respx.mock(base_url=BASE_URL, assert_all_called=False) as respx_mock:
        route = respx_mock.put("/raindrop/file")
        with pytest.raises(UnsupportedFileTypeError) as excinfo:
            await api.upload_file(str(path))
        assert excinfo.value.status_code == 415
        assert not route.called


@pytest.mark.asyncio
async def test_upload_rejects_large_file(api, tmp_path, monkeypatch):
    path = tmp_path / "huge.pdf"
    path.write_bytes(b"%PDF")
    monkeypatch.setattr("raindrop_mcp.api.MAX_UPLOAD_SIZE", 2)
    with pytest.raises(FileTooLargeError) as excinfo:
        await api.upload_file(str(path))
    assert excinfo.value.status_code == 413


@pytest.mark.asyncio
async def test_upload_file_multipart(api, tmp_path):
    path = tmp_path / "Report.PDF"
    path.write_bytes(b"%PDF-1.4")
    mock_resp = {"result": True, "item": {"_id": 42, "title": "Report.PDF"}}
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.put("/raindrop/file").mock(return_value=Response(200, json=mock_resp))
        result = await api.upload_file(str(path), 12)
        assert result["item"]["_id"] == 42

        request = route.calls.last.request
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        body = request.content
        assert b'name="file"; filename="Report.PDF"' in body
        assert b"application/pdf" in body
        assert b'name="collectionId"' in body


@pytest.mark.asyncio
async def test_import_bookmarks_file(api, tmp_path):
    path = tmp_path / "bookmarks.html"
    path.write_text("<DL><DT><A HREF='https://a.example'>A</A></DL>")
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.post("/import/file").mock(
            return_value=Response(200, json={"result": True, "items": []})
        )
        await api.import_bookmarks_file(str(path))
        body = route.calls.last.request.content
        assert b'name="import"; filename="bookmarks.html"' in body
        assert b"text/html" in body


@pytest.mark.asyncio
async def test_export_collection_returns_text(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/raindrops/0/export.csv").mock(
            return_value=Response(200, text="id,title\n1,One\n")
        )
        text = await api.export_collection(0, "csv")
        assert text.startswith("id,title")


@pytest.mark.asyncio
async def test_export_collection_failure(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/raindrops/5/export.html").mock(return_value=Response(403))
        with pytest.raises(ApiError) as excinfo:
            await api.export_collection(5)
        assert "Export failed: 403" in str(excinfo.value)


@pytest.mark.asyncio
async def test_cache_redirect_not_followed(api):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/raindrop/9/cache").mock(
            return_value=Response(307, headers={"Location": "https://cache.example/9"})
        )
        response = await api.get_cache_redirect(9)
        assert response.status_code == 307
        assert response.headers["Location"] == "https://cache.example/9"
