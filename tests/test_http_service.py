"""Tests for the httpx-backed entity service."""

import json
import pytest

import httpx

from chronicle.config import ServiceConfig
from chronicle.errors import RemoteServiceError
from chronicle.models import EntityKind
from chronicle.service.base import EntityService, collection_path, entity_path
from chronicle.service.http import HttpEntityService, extract_message


class Recorder:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, status: int = 200, body=None, content: bytes | None = None):
        self.status = status
        self.body = body
        self.content = content
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.content is not None:
            return httpx.Response(self.status, content=self.content)
        if self.body is None:
            return httpx.Response(self.status)
        return httpx.Response(self.status, json=self.body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


def make_service(handler, token: str = "secret") -> HttpEntityService:
    config = ServiceConfig(base_url="http://api.test", token=token)
    return HttpEntityService(config, transport=httpx.MockTransport(handler))


class TestRoutes:
    def test_paths(self):
        assert collection_path("p1", EntityKind.CHARACTER) == "/projects/p1/characters"
        assert collection_path("p1", EntityKind.EVENT, "E1") == "/projects/p1/eras/E1/events"
        assert entity_path("p1", EntityKind.EVENT, "ev1") == "/projects/p1/timeline/ev1"
        assert entity_path("p1", EntityKind.CATALOGUE, "i1") == "/projects/p1/catalogue/i1"

    def test_event_create_needs_era(self):
        with pytest.raises(ValueError):
            collection_path("p1", EntityKind.EVENT)

    def test_satisfies_protocol(self):
        assert isinstance(make_service(Recorder()), EntityService)


class TestRequests:
    @pytest.mark.asyncio
    async def test_fetch_user_data_sends_bearer(self):
        recorder = Recorder(body={"username": "aria", "projects": {}})
        async with make_service(recorder) as service:
            data = await service.fetch_user_data()
        assert data == {"username": "aria", "projects": {}}
        assert recorder.last.method == "GET"
        assert recorder.last.url.path == "/me/data"
        assert recorder.last.headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_no_token_no_header(self):
        recorder = Recorder(body={})
        async with make_service(recorder, token="") as service:
            await service.fetch_user_data()
        assert "Authorization" not in recorder.last.headers

    @pytest.mark.asyncio
    async def test_create_event(self):
        recorder = Recorder(status=201, body={"id": "ev9", "eraId": "E1", "order": 3})
        async with make_service(recorder) as service:
            result = await service.create(
                "p1", EntityKind.EVENT, {"title": "Truce"}, parent_id="E1"
            )
        assert result["id"] == "ev9"
        assert recorder.last.method == "POST"
        assert recorder.last.url.path == "/projects/p1/eras/E1/events"
        assert recorder.last_json() == {"title": "Truce"}

    @pytest.mark.asyncio
    async def test_update_uses_put(self):
        recorder = Recorder(body={"id": "w1", "name": "Eldwood"})
        async with make_service(recorder) as service:
            await service.update("p1", EntityKind.WORLD, "w1", {"name": "Eldwood"})
        assert recorder.last.method == "PUT"
        assert recorder.last.url.path == "/projects/p1/worlds/w1"

    @pytest.mark.asyncio
    async def test_delete_with_empty_body(self):
        recorder = Recorder(status=204)
        async with make_service(recorder) as service:
            result = await service.delete("p1", EntityKind.ERA, "E1")
        assert result is None
        assert recorder.last.method == "DELETE"
        assert recorder.last.url.path == "/projects/p1/eras/E1"

    @pytest.mark.asyncio
    async def test_reorder_payloads(self):
        recorder = Recorder(body=[])
        async with make_service(recorder) as service:
            await service.reorder_eras("p1", ["E2", "E1"])
            assert recorder.last.url.path == "/projects/p1/eras/reorder"
            assert recorder.last_json() == {"orderedIds": ["E2", "E1"]}

            await service.reorder_events("p1", "E1", ["ev2", "ev1"])
            assert recorder.last.url.path == "/projects/p1/eras/E1/events/reorder"
            assert recorder.last_json() == {"orderedIds": ["ev2", "ev1"]}

    @pytest.mark.asyncio
    async def test_project_routes(self):
        recorder = Recorder(body={"projectId": "p9", "name": "Saga"})
        async with make_service(recorder) as service:
            await service.create_project("Saga")
            assert (recorder.last.method, recorder.last.url.path) == ("POST", "/projects")
            await service.update_project("p9", "Saga II")
            assert (recorder.last.method, recorder.last.url.path) == ("PUT", "/projects/p9")
            assert recorder.last_json() == {"name": "Saga II"}
            await service.delete_project("p9")
            assert (recorder.last.method, recorder.last.url.path) == ("DELETE", "/projects/p9")


class TestErrors:
    @pytest.mark.asyncio
    async def test_message_from_body(self):
        recorder = Recorder(status=400, body={"message": "Name is required"})
        async with make_service(recorder) as service:
            with pytest.raises(RemoteServiceError) as exc:
                await service.update("p1", EntityKind.CHARACTER, "c1", {"name": ""})
        assert exc.value.message == "Name is required"
        assert exc.value.status_code == 400

    @pytest.mark.asyncio
    async def test_message_list_is_joined(self):
        recorder = Recorder(status=422, body={"message": ["name too short", "order invalid"]})
        async with make_service(recorder) as service:
            with pytest.raises(RemoteServiceError) as exc:
                await service.create("p1", EntityKind.ERA, {"name": "x"})
        assert exc.value.message == "name too short; order invalid"

    @pytest.mark.asyncio
    async def test_unstructured_error(self):
        recorder = Recorder(status=502, content=b"<html>Bad gateway</html>")
        async with make_service(recorder) as service:
            with pytest.raises(RemoteServiceError) as exc:
                await service.fetch_user_data()
        assert exc.value.message is None
        assert exc.value.status_code == 502

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_service(handler) as service:
            with pytest.raises(RemoteServiceError) as exc:
                await service.fetch_user_data()
        assert exc.value.message is None
        assert exc.value.status_code is None

    @pytest.mark.asyncio
    async def test_invalid_json_success(self):
        recorder = Recorder(status=200, content=b"not json")
        async with make_service(recorder) as service:
            with pytest.raises(RemoteServiceError):
                await service.fetch_user_data()

    def test_extract_message_variants(self):
        assert extract_message(httpx.Response(400, json={"message": "  bad  "})) == "bad"
        assert extract_message(httpx.Response(400, json={"error": "x"})) is None
        assert extract_message(httpx.Response(400, json=["x"])) is None
        assert extract_message(httpx.Response(400, json={"message": ""})) is None
        assert extract_message(httpx.Response(400, content=b"oops")) is None
